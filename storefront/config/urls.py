"""
URL configuration for the storefront project.

Every app exposes its endpoints under the shared /api/v1/ prefix.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Storefront Admin Panel"
admin.site.site_title = "Storefront Admin Portal"
admin.site.index_title = "Catalog, orders and sourcing"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('storefront.core.urls')),
    path('api/v1/', include('storefront.catalog.urls')),
    path('api/v1/', include('storefront.sourcing.urls')),
    path('api/v1/', include('storefront.orders.urls')),
    path('api/v1/', include('storefront.purchasing.urls')),
]
