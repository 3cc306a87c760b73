from rest_framework import serializers
from constracker.catalog.models import Item
from constracker.projects.models import Project
from .models import InventoryMovement


class InventoryMovementSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True, default=None)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = InventoryMovement
        fields = ['id', 'item', 'item_name', 'project', 'project_name', 'direction', 'quantity', 'source',
                  'material_request', 'created_by', 'created_by_name', 'remarks', 'created_at']
        read_only_fields = fields

    def get_created_by_name(self, obj):
        if not obj.created_by:
            return None
        return obj.created_by.full_name or obj.created_by.username


class InventoryAdjustmentSerializer(serializers.Serializer):
    """Manual correction of one (item, project) balance; a null project is central stock"""
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all())
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all(), allow_null=True, required=False, default=None)
    direction = serializers.ChoiceField(choices=InventoryMovement.DIRECTION_CHOICES)
    quantity = serializers.IntegerField(min_value=1)
    remarks = serializers.CharField(max_length=1000)

    def validate_remarks(self, value):
        if not value.strip():
            raise serializers.ValidationError("Remarks are required for adjustments")
        return value.strip()
