from django.urls import path
from .views import (
    vendor_code_list_create, vendor_code_detail, vendor_code_set_current,
    vendor_price_list_create, vendor_price_change_list, vendor_analytics,
    vendor_template_list_create,
    vendor_import_list, vendor_import_upload_csv, vendor_import_apply, vendor_import_upload_file,
)

urlpatterns = [
    # Vendor code endpoints
    path('vendor-codes/', vendor_code_list_create, name='vendor-code-list-create'),
    path('vendor-codes/<int:pk>/', vendor_code_detail, name='vendor-code-detail'),
    path('vendor-codes/<int:pk>/set-current/', vendor_code_set_current, name='vendor-code-set-current'),

    # Price endpoints
    path('vendor-prices/', vendor_price_list_create, name='vendor-price-list-create'),
    path('vendor-price-changes/', vendor_price_change_list, name='vendor-price-change-list'),
    path('vendor-analytics/', vendor_analytics, name='vendor-analytics'),

    # Invoice import endpoints
    path('vendor-templates/', vendor_template_list_create, name='vendor-template-list-create'),
    path('vendor-imports/', vendor_import_list, name='vendor-import-list'),
    path('vendor-imports/upload-csv/', vendor_import_upload_csv, name='vendor-import-upload-csv'),
    path('vendor-imports/import/', vendor_import_apply, name='vendor-import-apply'),
    path('vendor-imports/upload-file/', vendor_import_upload_file, name='vendor-import-upload-file'),
]
