import logging
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from constracker.catalog.models import Item
from constracker.core.models import User
from constracker.core.permissions import capability
from constracker.core.utils import visible_project_ids
from constracker.procurement.models import MaterialRequest
from constracker.procurement.serializers import MaterialRequestSerializer
from constracker.projects.models import Project

logger = logging.getLogger(__name__)

RECENT_REQUESTS_DEFAULT = 5
RECENT_REQUESTS_MAX = 50


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('dashboard.view')])
def dashboard_summary(request):
    """Headline counts for the admin dashboard"""
    return Response({
        'projects': {
            'active': Project.objects.filter(status=Project.STATUS_IN_PROGRESS).count(),
            'total': Project.objects.count(),
        },
        'personnel': {
            'online': User.objects.filter(is_active=True, is_online=True).count(),
            'total': User.objects.filter(is_active=True).count(),
        },
        'material_requests': {
            'pending': MaterialRequest.objects.filter(current_stage=MaterialRequest.STAGE_REQUESTED).count(),
            'awaiting_verification': MaterialRequest.objects.filter(
                current_stage__in=MaterialRequest.VERIFIABLE_STAGES
            ).count(),
            'disputed': MaterialRequest.objects.filter(current_stage=MaterialRequest.STAGE_DISPUTED).count(),
        },
        'materials': {
            'pending_approval': Item.objects.filter(approval_status=Item.STATUS_PENDING).count(),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('dashboard.view')])
def project_status(request):
    """Project counts per status"""
    counts = dict(Project.objects.values_list('status').annotate(total=Count('id')).order_by())
    return Response({value: counts.get(value, 0) for value, _ in Project.STATUS_CHOICES})


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('request.view')])
def recent_requests(request):
    """Newest material requests on the caller's projects"""
    try:
        limit = int(request.query_params.get('limit', RECENT_REQUESTS_DEFAULT))
    except (TypeError, ValueError):
        limit = RECENT_REQUESTS_DEFAULT
    limit = min(max(limit, 1), RECENT_REQUESTS_MAX)

    requests_qs = MaterialRequest.objects.select_related('project', 'supplier', 'requested_by', 'approved_by')
    visible = visible_project_ids(request.user)
    if visible is not None:
        requests_qs = requests_qs.filter(project_id__in=visible)

    recent = requests_qs.order_by('-created_at', '-id')[:limit]
    return Response(MaterialRequestSerializer(recent, many=True).data)
