"""Audit logging, project visibility and pagination helpers shared by every app"""
import logging
from decimal import Decimal

from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, entity_type=None, object_id=None,
                     object_name='', project=None, changes=None, user=None):
    """
    Append an audit log entry.

    Must be called inside the caller's ``transaction.atomic()`` block so the
    entry commits or rolls back together with the change it describes.
    Failures propagate to the caller.

    Args:
        request: DRF request (for user and IP) - optional if user is provided
        action: one of AuditLog.ACTION_CHOICES
        entity_type: name of the thing acted upon (e.g. 'MaterialRequest')
        object_id: id of the object
        object_name: text shown in the activity feed
        project: Project (or project id) the entry belongs to; None for global entries
        changes: list of {field, before, after} dicts for edits
        user: optional user override (defaults to request.user)
    """
    if not action or not entity_type or object_id is None:
        raise ValueError(
            f"Audit log requires action, entity_type and object_id "
            f"(got action={action}, entity_type={entity_type}, object_id={object_id})"
        )

    audit_user = user
    if audit_user is None and request is not None and hasattr(request, 'user'):
        audit_user = request.user

    if not transaction.get_connection().in_atomic_block:
        logger.warning(f"Audit log for {entity_type} #{object_id} written outside a transaction")

    project_id = getattr(project, 'pk', project)

    return AuditLog.objects.create(
        user=audit_user if audit_user is not None and audit_user.is_authenticated else None,
        project_id=project_id,
        action=action,
        entity_type=entity_type,
        object_id=str(object_id),
        object_name=(object_name or '')[:255],
        changes=changes or [],
        ip_address=get_client_ip(request) if request else None,
    )


def _plain(value):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if hasattr(value, 'pk'):
        return value.pk
    return str(value)


def snapshot(instance, fields):
    """Plain-value copy of ``fields`` on ``instance`` for later diffing"""
    return {field: _plain(getattr(instance, field)) for field in fields}


def diff_changes(before, after):
    """Turn two snapshots into the [{field, before, after}] list stored on edit logs"""
    return [
        {'field': field, 'before': before.get(field), 'after': after.get(field)}
        for field in after
        if before.get(field) != after.get(field)
    ]


def visible_project_ids(user):
    """
    Project ids ``user`` may see.

    Returns None for admins, meaning "no restriction".
    """
    if user.is_admin:
        return None
    return set(user.assigned_projects.values_list('id', flat=True))


def can_see_project(user, project_id):
    visible = visible_project_ids(user)
    return visible is None or project_id in visible


def paginate(request, queryset, serializer_class, context=None):
    """Teacher-style page envelope: results, count, next, previous, page, page_size, total_pages"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.query_params.get('limit', settings.PAGE_SIZE))
    except (TypeError, ValueError):
        limit = settings.PAGE_SIZE
    limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }
