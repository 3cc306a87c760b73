import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from constracker.catalog.models import Item
from constracker.core.exceptions import AuthorizationError
from constracker.core.permissions import capability, require_capability
from constracker.core.utils import can_see_project, create_audit_log, diff_changes, paginate, snapshot, visible_project_ids
from .models import Asset
from .serializers import AssetSerializer, AssetItemSerializer

logger = logging.getLogger(__name__)

ASSET_AUDIT_FIELDS = ['item', 'serial_number', 'condition_status', 'usage_status', 'project', 'last_inspected_at']


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('asset.view')])
def asset_list_create(request):
    """List assets (paginated) or register a new one"""
    if request.method == 'GET':
        assets = Asset.objects.select_related('item', 'project')
        visible = visible_project_ids(request.user)
        if visible is not None:
            assets = assets.filter(project_id__in=visible)

        params = request.query_params
        if params.get('project'):
            assets = assets.filter(project_id=params['project'])
        if params.get('item'):
            assets = assets.filter(item_id=params['item'])
        if params.get('usage_status'):
            assets = assets.filter(usage_status=params['usage_status'])
        if params.get('condition_status'):
            assets = assets.filter(condition_status=params['condition_status'])
        search = params.get('search', '').strip()
        if search:
            assets = assets.filter(Q(serial_number__icontains=search) | Q(item__name__icontains=search))

        return Response(paginate(request, assets.order_by('item__name', 'serial_number'), AssetSerializer))

    require_capability(request.user, 'asset.manage')
    serializer = AssetSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            asset = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                entity_type='Asset',
                object_id=asset.pk,
                object_name=f"registered asset {asset}",
                project=asset.project_id,
            )
        return Response(AssetSerializer(asset).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('asset.view')])
def asset_detail(request, pk):
    """Retrieve, update or delete an asset"""
    asset = get_object_or_404(Asset.objects.select_related('item', 'project'), pk=pk)

    if request.method == 'GET':
        if not request.user.is_admin and not (asset.project_id and can_see_project(request.user, asset.project_id)):
            raise AuthorizationError('This asset is not on one of your projects.')
        return Response(AssetSerializer(asset).data)

    require_capability(request.user, 'asset.manage')

    if request.method in ('PUT', 'PATCH'):
        serializer = AssetSerializer(asset, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(asset, ASSET_AUDIT_FIELDS)
            with transaction.atomic():
                asset = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type='Asset',
                    object_id=asset.pk,
                    object_name=f"edited asset {asset}",
                    project=asset.project_id,
                    changes=diff_changes(before, snapshot(asset, ASSET_AUDIT_FIELDS)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    asset_id, name, project_id = asset.pk, str(asset), asset.project_id
    with transaction.atomic():
        asset.delete()
        create_audit_log(
            request=request,
            action='delete',
            entity_type='Asset',
            object_id=asset_id,
            object_name=f"deleted asset {name}",
            project=project_id,
        )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('asset.view')])
def asset_items(request):
    """Approved catalog items that can be tracked as assets"""
    items = (
        Item.objects.filter(item_type=Item.TYPE_ASSET, approval_status=Item.STATUS_APPROVED)
        .annotate(asset_count=Count('assets'))
        .order_by('name')
    )
    return Response(AssetItemSerializer(items, many=True).data)
