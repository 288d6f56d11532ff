"""
URL configuration for the kitchen back-office API.

Every domain app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Kitchen Back-Office Admin Panel"
admin.site.site_title = "Kitchen Back-Office Admin Portal"
admin.site.index_title = "Welcome to the Kitchen Back-Office"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.ingredients.urls')),
    path('api/v1/', include('backoffice.vendors.urls')),
    path('api/v1/', include('backoffice.production.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
