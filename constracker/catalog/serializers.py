from rest_framework import serializers
from .models import Category, Unit, Supplier, Item


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ['id', 'name', 'abbreviation', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class CategorySerializer(serializers.ModelSerializer):
    units = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.all(), many=True, required=False)
    unit_details = UnitSerializer(source='units', many=True, read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'units', 'unit_details', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'address', 'contact_number', 'email', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ItemSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    unit_name = serializers.CharField(source='unit.name', read_only=True, default=None)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Item
        fields = [
            'id', 'name', 'description', 'price', 'size',
            'category', 'category_name', 'supplier', 'supplier_name', 'unit', 'unit_name',
            'item_type', 'track_condition', 'image_url', 'approval_status',
            'created_by', 'created_by_name', 'created_at', 'updated_at',
        ]
        read_only_fields = ['approval_status', 'created_by', 'created_at', 'updated_at']

    def get_created_by_name(self, obj):
        if not obj.created_by:
            return None
        return obj.created_by.full_name or obj.created_by.username

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value

    def validate(self, attrs):
        category = attrs.get('category', getattr(self.instance, 'category', None))
        unit = attrs.get('unit', getattr(self.instance, 'unit', None))
        if category and unit and category.units.exists() and not category.units.filter(pk=unit.pk).exists():
            raise serializers.ValidationError({'unit': f"Unit '{unit}' is not allowed for category '{category}'"})
        return attrs
