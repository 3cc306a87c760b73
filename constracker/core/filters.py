import django_filters
from django.db.models import Q
from .models import AuditLog


class AuditLogFilter(django_filters.FilterSet):
    """Activity feed filters: project, user name, date range and sort order"""
    project = django_filters.NumberFilter(field_name='project_id')
    global_only = django_filters.BooleanFilter(method='filter_global_only', label='Only project-less logs')
    name = django_filters.CharFilter(method='filter_name', label='User name')
    action = django_filters.CharFilter(field_name='action')
    entity_type = django_filters.CharFilter(field_name='entity_type')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    sort = django_filters.CharFilter(method='filter_sort', label='newest or oldest')

    class Meta:
        model = AuditLog
        fields = ['project', 'name', 'action', 'entity_type', 'date_from', 'date_to', 'sort']

    def filter_global_only(self, queryset, name, value):
        if value:
            return queryset.filter(project__isnull=True)
        return queryset

    def filter_name(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(user__full_name__icontains=value) | Q(user__username__icontains=value)
        )

    def filter_sort(self, queryset, name, value):
        if value == 'oldest':
            return queryset.order_by('created_at', 'id')
        return queryset.order_by('-created_at', '-id')
