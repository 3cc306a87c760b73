import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q
from constracker.catalog.models import Item
from constracker.core.exceptions import ValidationError
from constracker.core.permissions import capability
from constracker.core.utils import create_audit_log, paginate, visible_project_ids
from constracker.projects.utils import get_visible_project
from . import ledger
from .filters import InventoryMovementFilter
from .models import InventoryMovement
from .serializers import InventoryMovementSerializer, InventoryAdjustmentSerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('inventory.view')])
def central_inventory(request):
    """Balances of the central (project-less) inventory"""
    return Response(ledger.balances(None))


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('inventory.view')])
def project_inventory(request, pk):
    """Balances held by one project"""
    project = get_visible_project(request.user, pk)
    return Response({
        'project': {'id': project.pk, 'name': project.name},
        'items': ledger.balances(project),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('inventory.view')])
def movement_list(request):
    """Ledger entries, newest first"""
    queryset = InventoryMovement.objects.select_related('item', 'project', 'created_by').order_by('-created_at', '-id')

    visible = visible_project_ids(request.user)
    if visible is not None:
        queryset = queryset.filter(Q(project__isnull=True) | Q(project_id__in=visible))

    filterset = InventoryMovementFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        raise ValidationError('Invalid movement filters.', errors=filterset.errors)

    return Response(paginate(request, filterset.qs, InventoryMovementSerializer))


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability('inventory.adjust')])
def adjustment_create(request):
    """Post one manual adjustment movement"""
    serializer = InventoryAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Invalid adjustment.', errors=serializer.errors)

    data = serializer.validated_data
    project = data['project']
    with transaction.atomic():
        # Serialises adjustments of the same item so the balance check holds
        item = Item.objects.select_for_update().get(pk=data['item'].pk)
        if data['direction'] == InventoryMovement.DIRECTION_OUT:
            on_hand = ledger.balance(item, project)
            if data['quantity'] > on_hand:
                raise ValidationError(
                    f"Cannot remove {data['quantity']} {item.name}; only {on_hand} on hand."
                )
        movement = ledger.post(
            item=item,
            project=project,
            direction=data['direction'],
            quantity=data['quantity'],
            source=InventoryMovement.SOURCE_ADJUSTMENT,
            user=request.user,
            remarks=data['remarks'],
        )
        create_audit_log(
            request=request,
            action='adjusted',
            entity_type='InventoryMovement',
            object_id=movement.pk,
            object_name=f"adjusted {item.name} {data['direction']} {data['quantity']} ({project.name if project else 'central'})",
            project=project,
        )
    logger.info(f"Inventory adjustment {movement.pk} by user {request.user.pk}")
    return Response(InventoryMovementSerializer(movement).data, status=status.HTTP_201_CREATED)
