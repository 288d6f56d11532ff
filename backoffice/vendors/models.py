from django.db import models
from decimal import Decimal
from backoffice.core.models import Organization, User
from backoffice.ingredients.models import MasterIngredient


class VendorCode(models.Model):
    """Vendor-specific item code for a master ingredient"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='vendor_codes')
    master_ingredient = models.ForeignKey(MasterIngredient, on_delete=models.CASCADE, related_name='vendor_codes')
    vendor_id = models.CharField(max_length=100)  # Vendor name from operations settings
    code = models.CharField(max_length=100)
    variation_label = models.CharField(max_length=100, blank=True)
    note = models.TextField(blank=True)
    is_current = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.vendor_id}:{self.code}"

    class Meta:
        db_table = 'vendor_codes'
        ordering = ['vendor_id', 'code']
        indexes = [
            models.Index(fields=['organization', 'vendor_id', 'code'], name='idx_vendor_code_lookup'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['master_ingredient', 'vendor_id'],
                condition=models.Q(is_current=True),
                name='uniq_current_vendor_code',
            ),
        ]


class VendorImport(models.Model):
    """Invoice import history"""
    IMPORT_TYPE_CHOICES = [
        ('csv', 'CSV'),
        ('pdf', 'PDF'),
        ('photo', 'Photo'),
        ('manual', 'Manual'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='vendor_imports')
    vendor_id = models.CharField(max_length=100)
    import_type = models.CharField(max_length=10, choices=IMPORT_TYPE_CHOICES, default='csv')
    file_name = models.CharField(max_length=255, blank=True)
    file = models.FileField(upload_to='invoices/%Y/%m/', blank=True, null=True)
    invoice_date = models.DateField(null=True, blank=True)
    items_count = models.IntegerField(default=0)
    price_changes_count = models.IntegerField(default=0)
    new_items_count = models.IntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    error_message = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='vendor_imports')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.vendor_id} {self.import_type} import ({self.status})"

    class Meta:
        db_table = 'vendor_imports'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', '-created_at'], name='idx_import_org_created'),
        ]


class VendorPriceHistory(models.Model):
    """Every recorded price for an ingredient from a vendor"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='vendor_price_history')
    master_ingredient = models.ForeignKey(MasterIngredient, on_delete=models.CASCADE, related_name='price_history')
    vendor_id = models.CharField(max_length=100)
    vendor_code = models.ForeignKey(VendorCode, on_delete=models.SET_NULL, null=True, blank=True, related_name='price_history')
    price = models.DecimalField(max_digits=12, decimal_places=2)
    effective_date = models.DateField()
    invoice = models.ForeignKey(VendorImport, on_delete=models.SET_NULL, null=True, blank=True, related_name='price_history')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='recorded_prices')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.master_ingredient} @ {self.price} ({self.effective_date})"

    class Meta:
        db_table = 'vendor_price_history'
        ordering = ['-effective_date', '-created_at']
        indexes = [
            models.Index(fields=['master_ingredient', 'vendor_id', '-effective_date'], name='idx_price_ingredient_date'),
            models.Index(fields=['organization', '-effective_date'], name='idx_price_org_date'),
        ]


class VendorPriceChange(models.Model):
    """Derived row stored whenever a recorded price differs from the previous one"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='vendor_price_changes')
    vendor_id = models.CharField(max_length=100)
    item_code = models.CharField(max_length=100, blank=True)
    product_name = models.CharField(max_length=255)
    master_ingredient = models.ForeignKey(MasterIngredient, on_delete=models.SET_NULL, null=True, blank=True, related_name='price_changes')
    old_price = models.DecimalField(max_digits=12, decimal_places=2)
    new_price = models.DecimalField(max_digits=12, decimal_places=2)
    change_percent = models.DecimalField(max_digits=9, decimal_places=2, default=Decimal('0.00'))
    invoice_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product_name}: {self.old_price} -> {self.new_price}"

    class Meta:
        db_table = 'vendor_price_changes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', '-created_at'], name='idx_price_change_org_created'),
        ]


class VendorTemplate(models.Model):
    """Per-vendor CSV column mapping"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='vendor_templates')
    vendor_id = models.CharField(max_length=100)
    name = models.CharField(max_length=200, blank=True)
    item_code_column = models.CharField(max_length=100)
    product_name_column = models.CharField(max_length=100)
    unit_price_column = models.CharField(max_length=100)
    unit_of_measure_column = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or f"{self.vendor_id} template"

    @property
    def column_mapping(self):
        return {
            'item_code': self.item_code_column,
            'product_name': self.product_name_column,
            'unit_price': self.unit_price_column,
            'unit_of_measure': self.unit_of_measure_column,
        }

    class Meta:
        db_table = 'vendor_templates'
        unique_together = [['organization', 'vendor_id']]
