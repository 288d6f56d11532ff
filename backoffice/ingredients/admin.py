from django.contrib import admin
from .models import MasterIngredient, UmbrellaIngredient, UmbrellaIngredientMember


@admin.register(MasterIngredient)
class MasterIngredientAdmin(admin.ModelAdmin):
    list_display = ['product', 'item_code', 'vendor', 'category', 'current_price', 'organization']
    list_filter = ['vendor', 'category', 'organization']
    search_fields = ['product', 'item_code', 'vendor']


class UmbrellaIngredientMemberInline(admin.TabularInline):
    model = UmbrellaIngredientMember
    extra = 0
    raw_id_fields = ['master_ingredient']


@admin.register(UmbrellaIngredient)
class UmbrellaIngredientAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'primary_master_ingredient', 'organization']
    search_fields = ['name']
    inlines = [UmbrellaIngredientMemberInline]
