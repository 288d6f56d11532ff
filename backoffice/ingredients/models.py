from django.db import models
from decimal import Decimal


class MasterIngredient(models.Model):
    """Purchasable ingredient as it appears on vendor invoices"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='master_ingredients')
    product = models.CharField(max_length=255)
    item_code = models.CharField(max_length=100, blank=True, db_index=True)
    vendor = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=100, blank=True)
    sub_category = models.CharField(max_length=100, blank=True)
    case_size = models.CharField(max_length=100, blank=True)
    units_per_case = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'))
    current_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    unit_of_measure = models.CharField(max_length=50, blank=True)
    storage_area = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.product

    class Meta:
        db_table = 'master_ingredients'
        ordering = ['product']
        indexes = [
            models.Index(fields=['organization', 'vendor'], name='idx_ingredient_org_vendor'),
            models.Index(fields=['organization', 'item_code'], name='idx_ingredient_org_code'),
        ]


class UmbrellaIngredient(models.Model):
    """Groups equivalent master ingredients (same product from several vendors)"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='umbrella_ingredients')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    sub_category = models.CharField(max_length=100, blank=True)
    master_ingredients = models.ManyToManyField(
        MasterIngredient, through='UmbrellaIngredientMember', related_name='umbrella_ingredients', blank=True
    )
    primary_master_ingredient = models.ForeignKey(
        MasterIngredient, on_delete=models.SET_NULL, null=True, blank=True, related_name='primary_for_umbrellas'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'umbrella_ingredients'
        ordering = ['name']


class UmbrellaIngredientMember(models.Model):
    umbrella_ingredient = models.ForeignKey(UmbrellaIngredient, on_delete=models.CASCADE, related_name='memberships')
    master_ingredient = models.ForeignKey(MasterIngredient, on_delete=models.CASCADE, related_name='umbrella_memberships')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.umbrella_ingredient} - {self.master_ingredient}"

    class Meta:
        db_table = 'umbrella_ingredient_master_ingredients'
        unique_together = ['umbrella_ingredient', 'master_ingredient']
