from django.contrib import admin
from .models import VendorCode, VendorPriceHistory, VendorPriceChange, VendorTemplate, VendorImport


@admin.register(VendorCode)
class VendorCodeAdmin(admin.ModelAdmin):
    list_display = ['code', 'vendor_id', 'master_ingredient', 'is_current', 'updated_at']
    list_filter = ['vendor_id', 'is_current']
    search_fields = ['code', 'master_ingredient__product']
    raw_id_fields = ['master_ingredient']


@admin.register(VendorPriceHistory)
class VendorPriceHistoryAdmin(admin.ModelAdmin):
    list_display = ['master_ingredient', 'vendor_id', 'price', 'effective_date', 'created_at']
    list_filter = ['vendor_id', 'effective_date']
    search_fields = ['master_ingredient__product']
    raw_id_fields = ['master_ingredient', 'vendor_code', 'invoice']


@admin.register(VendorPriceChange)
class VendorPriceChangeAdmin(admin.ModelAdmin):
    list_display = ['product_name', 'vendor_id', 'old_price', 'new_price', 'change_percent', 'created_at']
    list_filter = ['vendor_id']
    search_fields = ['product_name', 'item_code']
    readonly_fields = ['created_at']


@admin.register(VendorTemplate)
class VendorTemplateAdmin(admin.ModelAdmin):
    list_display = ['vendor_id', 'name', 'organization', 'updated_at']


@admin.register(VendorImport)
class VendorImportAdmin(admin.ModelAdmin):
    list_display = ['vendor_id', 'import_type', 'file_name', 'status', 'items_count', 'price_changes_count', 'created_at']
    list_filter = ['import_type', 'status', 'vendor_id']
    readonly_fields = ['created_at']
