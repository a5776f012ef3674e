from django.contrib import admin
from django.urls import path, include

from core.http import csrf_token

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/csrf/', csrf_token, name='csrf_token'),
    path('api/', include('blood.urls')),
    path('api/', include('inventory.urls')),
    path('api/', include('communication.urls')),
]
