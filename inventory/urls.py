from django.urls import path
from . import views

urlpatterns = [
    path("inventory/", views.stock, name="inventory_stock"),
    path("inventory/deposit/", views.deposit_units, name="inventory_deposit"),
    path("inventory/thresholds/", views.thresholds, name="inventory_thresholds"),
    path("inventory/thresholds/<str:blood_group>/", views.threshold_update, name="inventory_threshold_update"),
    path("inventory/<str:blood_group>/available/", views.availability, name="inventory_availability"),
]
