import django_filters
from .models import InventoryMovement


class InventoryMovementFilter(django_filters.FilterSet):
    item = django_filters.NumberFilter(field_name='item_id')
    project = django_filters.NumberFilter(field_name='project_id')
    central = django_filters.BooleanFilter(field_name='project', lookup_expr='isnull', label='Only central inventory')
    direction = django_filters.ChoiceFilter(choices=InventoryMovement.DIRECTION_CHOICES)
    source = django_filters.ChoiceFilter(choices=InventoryMovement.SOURCE_CHOICES)
    material_request = django_filters.NumberFilter(field_name='material_request_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = InventoryMovement
        fields = ['item', 'project', 'central', 'direction', 'source', 'material_request', 'date_from', 'date_to']
