from rest_framework import serializers
from .models import MaterialRequest, MaterialRequestItem, MaterialRequestAction, MaterialDelivery, MaterialVerification


def _name(user):
    if not user:
        return None
    return user.full_name or user.username


class MaterialRequestItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    unit = serializers.CharField(source='item.unit.name', read_only=True, default=None)
    price = serializers.DecimalField(source='item.price', max_digits=12, decimal_places=2, read_only=True)
    pending_quantity = serializers.IntegerField(read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = MaterialRequestItem
        fields = ['id', 'item', 'item_name', 'unit', 'price', 'requested_quantity', 'received_quantity',
                  'accepted_quantity', 'rejected_quantity', 'pending_quantity', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class MaterialRequestSerializer(serializers.ModelSerializer):
    """Request header; list querysets annotate ``item_count`` and ``total_cost``"""
    project_name = serializers.CharField(source='project.name', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    requested_by_name = serializers.SerializerMethodField()
    approved_by_name = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()
    total_cost = serializers.SerializerMethodField()

    class Meta:
        model = MaterialRequest
        fields = ['id', 'project', 'project_name', 'request_type', 'supplier', 'supplier_name',
                  'current_stage', 'status', 'priority_level', 'remarks',
                  'requested_by', 'requested_by_name', 'approved_by', 'approved_by_name', 'approved_at',
                  'item_count', 'total_cost', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_requested_by_name(self, obj):
        return _name(obj.requested_by)

    def get_approved_by_name(self, obj):
        return _name(obj.approved_by)

    def get_item_count(self, obj):
        if hasattr(obj, 'item_total'):
            return obj.item_total
        return obj.items.count()

    def get_total_cost(self, obj):
        if hasattr(obj, 'cost_total'):
            return str(obj.cost_total or 0)
        return str(sum((line.get_line_total() for line in obj.items.select_related('item')), 0))


class RequestLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class MaterialRequestCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField(min_value=1)
    request_type = serializers.ChoiceField(choices=MaterialRequest.REQUEST_TYPE_CHOICES)
    supplier_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    current_stage = serializers.ChoiceField(
        choices=[(stage, stage) for stage in MaterialRequest.CREATE_STAGES],
        default=MaterialRequest.STAGE_REQUESTED,
    )
    priority_level = serializers.ChoiceField(choices=MaterialRequest.PRIORITY_CHOICES, default='normal')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    items = RequestLineInputSerializer(many=True, allow_empty=False)


class RemarksSerializer(serializers.Serializer):
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialDeliverySerializer(serializers.ModelSerializer):
    acknowledged_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MaterialDelivery
        fields = ['id', 'request', 'delivered_by', 'delivery_date', 'delivery_status', 'acknowledged_by',
                  'acknowledged_by_name', 'remarks', 'created_at']
        read_only_fields = ['request', 'acknowledged_by', 'created_at']

    def get_acknowledged_by_name(self, obj):
        return _name(obj.acknowledged_by)


class MaterialRequestActionSerializer(serializers.ModelSerializer):
    performed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MaterialRequestAction
        fields = ['id', 'request', 'action', 'performed_by', 'performed_by_name', 'from_stage', 'to_stage', 'remarks', 'created_at']

    def get_performed_by_name(self, obj):
        return _name(obj.performed_by)


class MaterialVerificationSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='request_item.item.name', read_only=True)
    verified_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MaterialVerification
        fields = ['id', 'request', 'request_item', 'item_name', 'accepted_quantity', 'rejected_quantity',
                  'verified_by', 'verified_by_name', 'remarks', 'created_at']

    def get_verified_by_name(self, obj):
        return _name(obj.verified_by)


class VerificationEntrySerializer(serializers.Serializer):
    mr_item_id = serializers.IntegerField(min_value=1)
    accepted_qty = serializers.IntegerField(min_value=0, default=0)
    rejected_qty = serializers.IntegerField(min_value=0, default=0)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
