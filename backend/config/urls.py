"""
URL configuration for the COD order management backend.

Every app exposes its endpoints under the versioned `api/v1/` prefix.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "COD Orders Admin Panel"
admin.site.site_title = "COD Orders Admin Portal"
admin.site.index_title = "Workspace administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.workspaces.urls')),
    path('api/v1/', include('backend.billing.urls')),
    path('api/v1/', include('backend.locations.urls')),
    path('api/v1/', include('backend.carriers.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.orders.urls')),
    path('api/v1/', include('backend.advertising.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
