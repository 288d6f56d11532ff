import django_filters
from django.db.models import Q
from .models import TeamMember


class TeamMemberFilter(django_filters.FilterSet):
    """Filter for team members using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    role = django_filters.CharFilter(field_name='kitchen_role', lookup_expr='exact')
    active = django_filters.BooleanFilter(field_name='is_active')
    station = django_filters.CharFilter(method='filter_station', label='Station')

    class Meta:
        model = TeamMember
        fields = ['search', 'role', 'active', 'station']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value) |
            Q(email__icontains=value)
        )

    def filter_station(self, queryset, name, value):
        # JSON containment is not portable to SQLite, so match in Python
        if not value:
            return queryset
        value = value.strip().lower()
        ids = [m.id for m in queryset if value in [str(s).lower() for s in (m.kitchen_stations or [])]]
        return queryset.filter(id__in=ids)
