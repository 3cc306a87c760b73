"""
URL configuration for the constracker backend.

Every app mounts its routes under ``api/``; the Django admin stays at
``admin/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Constracker Admin Panel"
admin.site.site_title = "Constracker Admin Portal"
admin.site.index_title = "Construction Project Management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('constracker.core.urls')),
    path('api/', include('constracker.projects.urls')),
    path('api/', include('constracker.catalog.urls')),
    path('api/', include('constracker.inventory.urls')),
    path('api/', include('constracker.procurement.urls')),
    path('api/', include('constracker.assets.urls')),
    path('api/', include('constracker.reports.urls')),
]
