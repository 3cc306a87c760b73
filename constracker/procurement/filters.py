import django_filters
from django.db.models import Q
from .models import MaterialRequest


class MaterialRequestFilter(django_filters.FilterSet):
    """Material request list filters"""
    project = django_filters.NumberFilter(field_name='project_id')
    request_type = django_filters.ChoiceFilter(choices=MaterialRequest.REQUEST_TYPE_CHOICES)
    current_stage = django_filters.ChoiceFilter(choices=MaterialRequest.STAGE_CHOICES)
    status = django_filters.ChoiceFilter(choices=MaterialRequest.STATUS_CHOICES)
    priority_level = django_filters.ChoiceFilter(choices=MaterialRequest.PRIORITY_CHOICES)
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    requester = django_filters.CharFilter(method='filter_requester', label='Requester name')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    sort = django_filters.CharFilter(method='filter_sort', label='newest or oldest')

    class Meta:
        model = MaterialRequest
        fields = ['project', 'request_type', 'current_stage', 'status', 'priority_level', 'supplier',
                  'requester', 'date_from', 'date_to', 'sort']

    def filter_requester(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(requested_by__full_name__icontains=value) | Q(requested_by__username__icontains=value)
        )

    def filter_sort(self, queryset, name, value):
        if value == 'oldest':
            return queryset.order_by('created_at', 'id')
        return queryset.order_by('-created_at', '-id')
