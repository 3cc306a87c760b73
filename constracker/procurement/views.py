import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Sum
from constracker.core.exceptions import ValidationError
from constracker.core.permissions import capability, require_capability
from constracker.core.utils import paginate, visible_project_ids
from . import workflow
from .filters import MaterialRequestFilter
from .models import MaterialRequest
from .serializers import (
    MaterialRequestSerializer, MaterialRequestItemSerializer, MaterialRequestCreateSerializer,
    RemarksSerializer, MaterialDeliverySerializer, MaterialRequestActionSerializer,
    MaterialVerificationSerializer, VerificationEntrySerializer,
)

logger = logging.getLogger(__name__)


def _with_totals(queryset):
    line_cost = ExpressionWrapper(
        F('items__requested_quantity') * F('items__item__price'),
        output_field=DecimalField(max_digits=16, decimal_places=2),
    )
    return queryset.annotate(item_total=Count('items', distinct=True), cost_total=Sum(line_cost))


def _remarks(request):
    serializer = RemarksSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Invalid remarks.', errors=serializer.errors)
    return serializer.validated_data['remarks']


def _done(mr, message, http_status=status.HTTP_200_OK):
    mr = MaterialRequest.objects.select_related('project', 'supplier', 'requested_by', 'approved_by').get(pk=mr.pk)
    return Response(
        {'status': 'success', 'message': message, 'request': MaterialRequestSerializer(mr).data},
        status=http_status,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('request.view')])
def material_request_list_create(request):
    """List visible material requests (paginated) or create one"""
    if request.method == 'GET':
        queryset = MaterialRequest.objects.select_related('project', 'supplier', 'requested_by', 'approved_by')
        visible = visible_project_ids(request.user)
        if visible is not None:
            queryset = queryset.filter(project_id__in=visible)

        filterset = MaterialRequestFilter(request.query_params, queryset=_with_totals(queryset).order_by('-created_at', '-id'))
        if not filterset.is_valid():
            raise ValidationError('Invalid request filters.', errors=filterset.errors)

        return Response(paginate(request, filterset.qs, MaterialRequestSerializer))

    require_capability(request.user, 'request.create')
    serializer = MaterialRequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Invalid material request.', errors=serializer.errors)

    data = serializer.validated_data
    mr = workflow.create_request(
        actor=request.user,
        project_id=data['project_id'],
        request_type=data['request_type'],
        supplier_id=data.get('supplier_id'),
        items=[dict(line) for line in data['items']],
        stage=data['current_stage'],
        priority_level=data['priority_level'],
        remarks=data['remarks'],
        http_request=request,
    )
    return _done(mr, 'Material request created', status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('request.view')])
def material_request_detail(request, pk):
    """Header plus lines with their pending quantities"""
    mr = workflow.get_visible_request(request.user, pk)
    mr = MaterialRequest.objects.select_related('project', 'supplier', 'requested_by', 'approved_by').get(pk=mr.pk)
    lines = mr.items.select_related('item', 'item__unit').order_by('id')
    return Response({
        'header': MaterialRequestSerializer(mr).data,
        'items': MaterialRequestItemSerializer(lines, many=True).data,
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('request.create')])
def material_request_submit(request, pk):
    mr = workflow.submit(pk, request.user, _remarks(request), http_request=request)
    return _done(mr, 'Material request submitted')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('request.approve')])
def material_request_approve(request, pk):
    mr = workflow.approve(pk, request.user, _remarks(request), http_request=request)
    return _done(mr, 'Material request approved')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('request.decline')])
def material_request_decline(request, pk):
    mr = workflow.decline(pk, request.user, _remarks(request), http_request=request)
    return _done(mr, 'Material request declined')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('request.order')])
def material_request_order(request, pk):
    mr = workflow.order(pk, request.user, _remarks(request), http_request=request)
    return _done(mr, 'Material request ordered')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('request.view')])
def material_request_deliveries(request, pk):
    """List deliveries or record a new one"""
    if request.method == 'GET':
        mr = workflow.get_visible_request(request.user, pk)
        deliveries = mr.deliveries.select_related('acknowledged_by')
        return Response(MaterialDeliverySerializer(deliveries, many=True).data)

    require_capability(request.user, 'request.deliver')
    serializer = MaterialDeliverySerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Invalid delivery.', errors=serializer.errors)

    data = serializer.validated_data
    mr, delivery = workflow.record_delivery(
        pk, request.user,
        delivered_by=data['delivered_by'],
        delivery_date=data['delivery_date'],
        delivery_status=data['delivery_status'],
        remarks=data.get('remarks', ''),
        http_request=request,
    )
    return Response({
        'status': 'success',
        'message': 'Delivery recorded',
        'delivery': MaterialDeliverySerializer(delivery).data,
        'current_stage': mr.current_stage,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability('request.verify')])
def material_request_verify(request, pk):
    """Accept/reject quantities; the body is a list of entries (or {"items": [...]})"""
    payload = request.data.get('items') if isinstance(request.data, dict) else request.data
    serializer = VerificationEntrySerializer(data=payload, many=True)
    if not serializer.is_valid():
        raise ValidationError('Invalid verification entries.', errors=serializer.errors)

    mr = workflow.verify(pk, request.user, [dict(entry) for entry in serializer.validated_data], http_request=request)
    return _done(mr, 'Verification recorded')


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability('request.review')])
def material_request_review(request, pk):
    mr = workflow.review(pk, request.user, _remarks(request), http_request=request)
    return _done(mr, 'Review recorded', status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('request.view')])
def material_request_actions(request, pk):
    mr = workflow.get_visible_request(request.user, pk)
    actions = mr.actions.select_related('performed_by')
    return Response(MaterialRequestActionSerializer(actions, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('request.view')])
def material_request_verifications(request, pk):
    mr = workflow.get_visible_request(request.user, pk)
    verifications = mr.verifications.select_related('request_item__item', 'verified_by')
    return Response(MaterialVerificationSerializer(verifications, many=True).data)
