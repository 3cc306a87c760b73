from rest_framework import serializers
from constracker.catalog.models import Item
from .models import Asset


class AssetSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True, default=None)

    class Meta:
        model = Asset
        fields = ['id', 'item', 'item_name', 'serial_number', 'condition_status', 'usage_status',
                  'project', 'project_name', 'last_inspected_at', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_item(self, value):
        if value.item_type != Item.TYPE_ASSET:
            raise serializers.ValidationError("Only catalog items of type 'asset' can be tracked as assets")
        if not value.is_approved:
            raise serializers.ValidationError("Item is still awaiting approval")
        return value

    def validate_serial_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Serial number is required")
        return value


class AssetItemSerializer(serializers.ModelSerializer):
    asset_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Item
        fields = ['id', 'name', 'description', 'category', 'track_condition', 'asset_count']
