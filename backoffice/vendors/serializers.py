from rest_framework import serializers
from backoffice.ingredients.models import MasterIngredient
from .models import VendorCode, VendorPriceHistory, VendorPriceChange, VendorTemplate, VendorImport
from .pricing import format_price_change


class VendorCodeSerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source='master_ingredient.product', read_only=True)

    class Meta:
        model = VendorCode
        fields = ['id', 'organization', 'master_ingredient', 'ingredient_name', 'vendor_id', 'code',
                  'variation_label', 'note', 'is_current', 'created_at', 'updated_at']
        read_only_fields = ['organization', 'created_at', 'updated_at']
        # One current code per ingredient/vendor is enforced by the views
        validators = []

    def validate_master_ingredient(self, value):
        organization = self.context.get('organization')
        if organization is not None and value.organization_id != organization.id:
            raise serializers.ValidationError("Master ingredient not found")
        return value

    def validate_code(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Code is required")
        return value


class VendorPriceHistorySerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source='master_ingredient.product', read_only=True)

    class Meta:
        model = VendorPriceHistory
        fields = ['id', 'master_ingredient', 'ingredient_name', 'vendor_id', 'vendor_code', 'price',
                  'effective_date', 'invoice', 'notes', 'created_by', 'created_at']


class RecordPriceSerializer(serializers.Serializer):
    master_ingredient_id = serializers.IntegerField()
    vendor_id = serializers.CharField(max_length=100)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    effective_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_master_ingredient_id(self, value):
        organization = self.context.get('organization')
        if not MasterIngredient.objects.filter(pk=value, organization=organization).exists():
            raise serializers.ValidationError("Master ingredient not found")
        return value


class VendorPriceChangeSerializer(serializers.ModelSerializer):
    formatted = serializers.SerializerMethodField()

    class Meta:
        model = VendorPriceChange
        fields = ['id', 'vendor_id', 'item_code', 'product_name', 'master_ingredient', 'old_price',
                  'new_price', 'change_percent', 'formatted', 'invoice_date', 'created_at']

    def get_formatted(self, obj):
        return format_price_change(obj.change_percent)


class VendorTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorTemplate
        fields = ['id', 'vendor_id', 'name', 'item_code_column', 'product_name_column', 'unit_price_column',
                  'unit_of_measure_column', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class VendorImportSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorImport
        fields = ['id', 'vendor_id', 'import_type', 'file_name', 'file', 'invoice_date', 'items_count',
                  'price_changes_count', 'new_items_count', 'status', 'error_message', 'created_by', 'created_at']
        read_only_fields = fields


class InvoiceItemSerializer(serializers.Serializer):
    item_code = serializers.CharField(allow_blank=True, required=False, default='')
    product_name = serializers.CharField(allow_blank=True, required=False, default='')
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_of_measure = serializers.CharField(allow_blank=True, required=False, default='')


class InvoiceImportSerializer(serializers.Serializer):
    vendor_id = serializers.CharField(max_length=100)
    invoice_date = serializers.DateField(required=False, allow_null=True)
    file_name = serializers.CharField(required=False, allow_blank=True, default='')
    items = InvoiceItemSerializer(many=True, required=False)
    rows = serializers.ListField(child=serializers.DictField(), required=False)

    def validate(self, attrs):
        if not attrs.get('items') and not attrs.get('rows'):
            raise serializers.ValidationError("Provide either items or rows to import")
        return attrs


class InvoiceFileSerializer(serializers.Serializer):
    IMPORT_TYPES = [('pdf', 'PDF'), ('photo', 'Photo')]

    vendor_id = serializers.CharField(max_length=100)
    import_type = serializers.ChoiceField(choices=IMPORT_TYPES)
    invoice_date = serializers.DateField(required=False, allow_null=True)
    file = serializers.FileField()
