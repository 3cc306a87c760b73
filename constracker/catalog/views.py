import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import ProtectedError, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from constracker.core.exceptions import NotFoundError, ValidationError
from constracker.core.permissions import capability, require_capability
from constracker.core.utils import create_audit_log, diff_changes, paginate, snapshot
from .filters import ItemFilter
from .models import Category, Unit, Supplier, Item
from .serializers import CategorySerializer, UnitSerializer, SupplierSerializer, ItemSerializer

logger = logging.getLogger(__name__)

ITEM_AUDIT_FIELDS = ['name', 'description', 'price', 'size', 'category', 'supplier', 'unit', 'item_type', 'track_condition', 'image_url']
CATEGORY_AUDIT_FIELDS = ['name']
UNIT_AUDIT_FIELDS = ['name', 'abbreviation']
SUPPLIER_AUDIT_FIELDS = ['name', 'address', 'contact_number', 'email']


def _delete_with_log(request, instance, entity_type, in_use_message):
    object_id, name = instance.pk, str(instance)
    try:
        with transaction.atomic():
            instance.delete()
            create_audit_log(
                request=request,
                action='delete',
                entity_type=entity_type,
                object_id=object_id,
                object_name=f"deleted {entity_type.lower()} {name}",
            )
    except ProtectedError:
        raise ValidationError(in_use_message)
    return Response(status=status.HTTP_204_NO_CONTENT)


def _lookup_list_create(request, queryset, serializer_class, entity_type):
    """Shared GET/POST handling for categories, units and suppliers"""
    if request.method == 'GET':
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)
        return Response(serializer_class(queryset, many=True).data)

    require_capability(request.user, 'material.manage')
    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            instance = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                entity_type=entity_type,
                object_id=instance.pk,
                object_name=f"created {entity_type.lower()} {instance}",
            )
        return Response(serializer_class(instance).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _lookup_detail(request, instance, serializer_class, entity_type, audit_fields):
    """Shared GET/PUT/PATCH/DELETE handling for categories, units and suppliers"""
    if request.method == 'GET':
        return Response(serializer_class(instance).data)

    require_capability(request.user, 'material.manage')

    if request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(instance, audit_fields)
            with transaction.atomic():
                instance = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type=entity_type,
                    object_id=instance.pk,
                    object_name=f"edited {entity_type.lower()} {instance}",
                    changes=diff_changes(before, snapshot(instance, audit_fields)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    return _delete_with_log(request, instance, entity_type, f"{entity_type} is in use and cannot be deleted.")


# Material views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('material.view')])
def material_list_create(request):
    """
    List materials (paginated) or add one.

    Admins see every material and create approved ones. Everyone else sees
    approved materials plus the pending ones they submitted, and their new
    materials wait for approval.
    """
    if request.method == 'GET':
        queryset = Item.objects.select_related('category', 'supplier', 'unit', 'created_by')
        if not request.user.is_admin:
            queryset = queryset.filter(Q(approval_status=Item.STATUS_APPROVED) | Q(created_by=request.user))

        filterset = ItemFilter(request.query_params, queryset=queryset.order_by('name', 'id'))
        if not filterset.is_valid():
            raise ValidationError('Invalid material filters.', errors=filterset.errors)

        return Response(paginate(request, filterset.qs, ItemSerializer))

    require_capability(request.user, 'material.create')
    serializer = ItemSerializer(data=request.data)
    if serializer.is_valid():
        approval_status = Item.STATUS_APPROVED if request.user.is_admin else Item.STATUS_PENDING
        with transaction.atomic():
            item = serializer.save(created_by=request.user, approval_status=approval_status)
            create_audit_log(
                request=request,
                action='create' if item.is_approved else 'requests',
                entity_type='Item',
                object_id=item.pk,
                object_name=f"{'created' if item.is_approved else 'requested'} material {item.name}",
            )
        logger.info(f"Material {item.pk} created by user {request.user.pk} ({approval_status})")
        return Response(ItemSerializer(item).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('material.view')])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    item = get_object_or_404(Item.objects.select_related('category', 'supplier', 'unit', 'created_by'), pk=pk)

    if request.method == 'GET':
        if not item.is_approved and not request.user.is_admin and item.created_by_id != request.user.pk:
            raise NotFoundError('Material not found.')
        return Response(ItemSerializer(item).data)

    require_capability(request.user, 'material.manage')

    if request.method in ('PUT', 'PATCH'):
        serializer = ItemSerializer(item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(item, ITEM_AUDIT_FIELDS)
            with transaction.atomic():
                item = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type='Item',
                    object_id=item.pk,
                    object_name=f"edited material {item.name}",
                    changes=diff_changes(before, snapshot(item, ITEM_AUDIT_FIELDS)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    return _delete_with_log(request, item, 'Item', 'Material is referenced by requests, assets or inventory and cannot be deleted.')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('material.approve')])
def material_approve(request, pk):
    """Approve a pending material so it can be requested"""
    with transaction.atomic():
        updated = Item.objects.filter(pk=pk, approval_status=Item.STATUS_PENDING).update(
            approval_status=Item.STATUS_APPROVED, updated_at=timezone.now()
        )
        if not updated:
            raise NotFoundError('Material not found or already approved.')
        item = Item.objects.get(pk=pk)
        create_audit_log(
            request=request,
            action='approved',
            entity_type='Item',
            object_id=item.pk,
            object_name=f"approved material {item.name}",
        )
    logger.info(f"Material {pk} approved by user {request.user.pk}")
    return Response(ItemSerializer(item).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, capability('material.manage')])
def material_decline(request, pk):
    """Decline a pending material; the submission is removed"""
    item = Item.objects.filter(pk=pk, approval_status=Item.STATUS_PENDING).first()
    if item is None:
        raise NotFoundError('Material not found or already approved.')

    item_id, name = item.pk, item.name
    remarks = (request.data.get('remarks') or '').strip()
    with transaction.atomic():
        item.delete()
        create_audit_log(
            request=request,
            action='declined',
            entity_type='Item',
            object_id=item_id,
            object_name=f"declined material {name}: {remarks}" if remarks else f"declined material {name}",
        )
    logger.info(f"Material {item_id} declined by user {request.user.pk}")
    return Response({'status': 'success', 'message': f"Material {name} declined"})


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('material.view')])
def category_list_create(request):
    return _lookup_list_create(request, Category.objects.prefetch_related('units'), CategorySerializer, 'Category')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('material.view')])
def category_detail(request, pk):
    category = get_object_or_404(Category, pk=pk)
    return _lookup_detail(request, category, CategorySerializer, 'Category', CATEGORY_AUDIT_FIELDS)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('material.view')])
def category_units(request, pk):
    """Units allowed for items in a category"""
    category = get_object_or_404(Category, pk=pk)
    return Response(UnitSerializer(category.units.all(), many=True).data)


# Unit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('material.view')])
def unit_list_create(request):
    return _lookup_list_create(request, Unit.objects.all(), UnitSerializer, 'Unit')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('material.view')])
def unit_detail(request, pk):
    unit = get_object_or_404(Unit, pk=pk)
    return _lookup_detail(request, unit, UnitSerializer, 'Unit', UNIT_AUDIT_FIELDS)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('material.view')])
def supplier_list_create(request):
    return _lookup_list_create(request, Supplier.objects.all(), SupplierSerializer, 'Supplier')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('material.view')])
def supplier_detail(request, pk):
    supplier = get_object_or_404(Supplier, pk=pk)
    return _lookup_detail(request, supplier, SupplierSerializer, 'Supplier', SUPPLIER_AUDIT_FIELDS)
