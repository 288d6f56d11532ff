import django_filters
from django.db.models import Q
from .models import MasterIngredient


class MasterIngredientFilter(django_filters.FilterSet):
    """Filter for master ingredients using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    vendor = django_filters.CharFilter(field_name='vendor', lookup_expr='iexact')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    item_code = django_filters.CharFilter(field_name='item_code', lookup_expr='iexact')

    class Meta:
        model = MasterIngredient
        fields = ['search', 'vendor', 'category', 'item_code']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(product__icontains=value) |
            Q(item_code__icontains=value) |
            Q(vendor__icontains=value)
        )
