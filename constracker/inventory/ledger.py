"""
Inventory ledger.

Stock is never stored as a counter. Every change is a new
``InventoryMovement`` row and a balance is computed on read as
``sum(in) - sum(out)`` for an (item, project) pair, where a project of
``None`` is the central inventory.
"""
import logging
from django.db.models import Q, Sum
from constracker.core.exceptions import ValidationError
from .models import InventoryMovement

logger = logging.getLogger(__name__)

DIRECTIONS = {InventoryMovement.DIRECTION_IN, InventoryMovement.DIRECTION_OUT}
SOURCES = {choice for choice, _ in InventoryMovement.SOURCE_CHOICES}


def _pk(value):
    return getattr(value, 'pk', value)


def post(item, project, direction, quantity, source, reference=None, user=None, remarks=''):
    """Append one movement. Callers run this inside their own transaction."""
    if direction not in DIRECTIONS:
        raise ValidationError(f"Unknown movement direction '{direction}'.")
    if source not in SOURCES:
        raise ValidationError(f"Unknown movement source '{source}'.")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError('Movement quantity must be a positive whole number.')

    movement = InventoryMovement.objects.create(
        item_id=_pk(item),
        project_id=_pk(project),
        direction=direction,
        quantity=quantity,
        source=source,
        material_request_id=_pk(reference),
        created_by=user if user is not None and user.is_authenticated else None,
        remarks=remarks or '',
    )
    logger.debug(
        f"Posted {direction} {quantity} of item {movement.item_id} "
        f"to {'project ' + str(movement.project_id) if movement.project_id else 'central'} ({source})"
    )
    return movement


def _totals(queryset):
    return queryset.aggregate(
        total_in=Sum('quantity', filter=Q(direction=InventoryMovement.DIRECTION_IN)),
        total_out=Sum('quantity', filter=Q(direction=InventoryMovement.DIRECTION_OUT)),
    )


def balance(item, project=None):
    """Stock on hand of ``item`` in ``project`` (None for central inventory)"""
    totals = _totals(InventoryMovement.objects.filter(item_id=_pk(item), project_id=_pk(project)))
    return (totals['total_in'] or 0) - (totals['total_out'] or 0)


def balances(project=None):
    """Per-item balances for one scope, ordered by item name"""
    rows = (
        InventoryMovement.objects
        .filter(project_id=_pk(project))
        .values('item_id', 'item__name', 'item__unit__name', 'item__category__name')
        .annotate(
            total_in=Sum('quantity', filter=Q(direction=InventoryMovement.DIRECTION_IN)),
            total_out=Sum('quantity', filter=Q(direction=InventoryMovement.DIRECTION_OUT)),
        )
        .order_by('item__name', 'item_id')
    )
    result = []
    for row in rows:
        total_in = row['total_in'] or 0
        total_out = row['total_out'] or 0
        result.append({
            'item_id': row['item_id'],
            'item_name': row['item__name'],
            'unit': row['item__unit__name'],
            'category': row['item__category__name'],
            'total_in': total_in,
            'total_out': total_out,
            'balance': total_in - total_out,
        })
    return result
