import django_filters
from django.db.models import Q
from .models import Item


class ItemFilter(django_filters.FilterSet):
    """Material list filters"""
    search = django_filters.CharFilter(method='filter_search', label='Name or description')
    category = django_filters.NumberFilter(field_name='category_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    unit = django_filters.NumberFilter(field_name='unit_id')
    approval_status = django_filters.ChoiceFilter(choices=Item.APPROVAL_STATUS_CHOICES)
    item_type = django_filters.ChoiceFilter(choices=Item.ITEM_TYPE_CHOICES)
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    sort = django_filters.CharFilter(method='filter_sort', label='name, newest or oldest')

    class Meta:
        model = Item
        fields = ['search', 'category', 'supplier', 'unit', 'approval_status', 'item_type', 'min_price', 'max_price', 'sort']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_sort(self, queryset, name, value):
        if value == 'newest':
            return queryset.order_by('-created_at', '-id')
        if value == 'oldest':
            return queryset.order_by('created_at', 'id')
        return queryset.order_by('name', 'id')
