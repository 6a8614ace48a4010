"""
URL configuration for the back-office project.

All API routes live under /api/v1/, one include per app.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Back-Office Inventory Admin Panel"
admin.site.site_title = "Back-Office Inventory Admin Portal"
admin.site.index_title = "Inventory, catalog and legacy sync"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.locations.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.sync.urls')),
    path('api/v1/', include('backoffice.inventory.urls')),
]
