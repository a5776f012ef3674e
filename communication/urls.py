from django.urls import path
from . import views

urlpatterns = [
    path("notifications/", views.inbox, name="notification_inbox"),
    path("notifications/<int:pk>/read/", views.mark_read, name="notification_read"),
    path("notifications/<int:pk>/respond/", views.respond, name="notification_respond"),
]
