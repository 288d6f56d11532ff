import django_filters
from django.db.models import Q
from .models import Task, PrepList, PrepListTemplate


class TaskFilter(django_filters.FilterSet):
    """Filter for board tasks using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status')
    priority = django_filters.CharFilter(field_name='priority')
    assignment_type = django_filters.CharFilter(field_name='assignment_type')
    assignee = django_filters.NumberFilter(field_name='assignee_id')
    station = django_filters.CharFilter(field_name='assignee_station', lookup_expr='iexact')
    prep_system = django_filters.CharFilter(field_name='prep_system')
    start_date = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    due_date = django_filters.DateFilter(field_name='due_date')
    prep_list = django_filters.NumberFilter(field_name='prep_list_id')

    class Meta:
        model = Task
        fields = ['search', 'status', 'priority', 'assignment_type', 'assignee', 'station',
                  'prep_system', 'start_date', 'end_date', 'due_date', 'prep_list']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))


class PrepListTemplateFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')
    category = django_filters.CharFilter(field_name='category')
    prep_system = django_filters.CharFilter(field_name='prep_system')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    class Meta:
        model = PrepListTemplate
        fields = ['search', 'category', 'prep_system', 'is_active']


class PrepListFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='status')
    template = django_filters.NumberFilter(field_name='template_id')
    start_date = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = PrepList
        fields = ['status', 'template', 'start_date', 'end_date']
