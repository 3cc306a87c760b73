"""
Material request lifecycle.

    DRAFT -> requested -> approved -> ordered -> verifying
          -> partially_verified -> completed | disputed
    requested -> cancelled (decline)

Every function runs its writes in one ``transaction.atomic()`` block and
appends a ``MaterialRequestAction`` and an ``AuditLog`` row in the same
transaction. Stage changes are conditional updates on the expected current
stage; when no row matches the caller gets ``NotFoundError`` instead of a
silent second transition. Input shape and visibility are checked before any
transaction opens. Role checks are done by the calling views.
"""
import logging
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from constracker.catalog.models import Item, Supplier
from constracker.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from constracker.core.utils import can_see_project, create_audit_log
from constracker.inventory import ledger
from constracker.inventory.models import InventoryMovement
from constracker.projects.models import Project
from .models import (
    MaterialRequest, MaterialRequestItem, MaterialRequestAction, MaterialDelivery, MaterialVerification
)

logger = logging.getLogger(__name__)

ENTITY = 'MaterialRequest'


def _label(mr_id):
    return f"MR-{mr_id}"


def _record(mr, actor, action, from_stage, to_stage, audit_action, remarks='', http_request=None, description=None):
    """Append the lifecycle action and the audit entry for one step"""
    MaterialRequestAction.objects.create(
        request=mr,
        action=action,
        performed_by=actor,
        from_stage=from_stage or '',
        to_stage=to_stage or '',
        remarks=remarks or '',
    )
    create_audit_log(
        request=http_request,
        user=actor,
        action=audit_action,
        entity_type=ENTITY,
        object_id=mr.pk,
        object_name=description or f"{audit_action} material request {_label(mr.pk)}",
        project=mr.project_id,
    )


def get_visible_request(actor, mr_id):
    """Load a request the actor may act on; missing -> NotFoundError, foreign project -> AuthorizationError"""
    mr = MaterialRequest.objects.filter(pk=mr_id).first()
    if mr is None:
        raise NotFoundError('Material request not found.')
    if not can_see_project(actor, mr.project_id):
        logger.warning(f"User {actor.pk} denied access to request {mr_id} of project {mr.project_id}")
        raise AuthorizationError('You are not assigned to the project of this request.')
    return mr


def _transition(mr_id, actor, action, from_stage, to_stage, audit_action, remarks='', http_request=None, **fields):
    """Move ``mr_id`` from ``from_stage`` to ``to_stage`` or raise NotFoundError"""
    now = timezone.now()
    with transaction.atomic():
        updated = MaterialRequest.objects.filter(pk=mr_id, current_stage=from_stage).update(
            current_stage=to_stage, updated_at=now, **fields
        )
        if not updated:
            logger.warning(f"Request {mr_id} {action} refused: not in stage '{from_stage}'")
            raise NotFoundError(f"Material request not found or no longer '{from_stage}'.")
        mr = MaterialRequest.objects.get(pk=mr_id)
        _record(mr, actor, action, from_stage, to_stage, audit_action, remarks, http_request)
    logger.info(f"request {mr_id} {to_stage} by user {actor.pk}")
    return mr


def _clean_lines(lines):
    """Normalise ``[{item_id, quantity}]`` and check the catalog entries"""
    if not lines:
        raise ValidationError('At least one item is required.')

    quantities = {}
    for line in lines:
        item_id = line.get('item_id')
        quantity = line.get('quantity')
        if item_id is None:
            raise ValidationError('Every line needs an item_id.')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"Quantity for item {item_id} must be a positive whole number.")
        if item_id in quantities:
            raise ValidationError(f"Item {item_id} is listed more than once.")
        quantities[item_id] = quantity

    items = {item.pk: item for item in Item.objects.filter(pk__in=quantities)}
    missing = [pk for pk in quantities if pk not in items]
    if missing:
        raise ValidationError(f"Unknown items: {missing}")
    unapproved = [item.name for item in items.values() if not item.is_approved]
    if unapproved:
        raise ValidationError(f"Materials awaiting approval cannot be requested: {', '.join(unapproved)}")
    return [(items[pk], quantity) for pk, quantity in quantities.items()]


def create_request(actor, project_id, request_type, items, supplier_id=None, stage=MaterialRequest.STAGE_REQUESTED,
                   priority_level='normal', remarks='', http_request=None):
    """Insert a request header with its lines in ``requested`` or ``DRAFT`` stage"""
    if stage not in MaterialRequest.CREATE_STAGES:
        raise ValidationError(f"New requests start as 'requested' or 'DRAFT', not '{stage}'.")
    if request_type not in dict(MaterialRequest.REQUEST_TYPE_CHOICES):
        raise ValidationError(f"Unknown request type '{request_type}'.")
    if not project_id:
        raise ValidationError('Project is required.')

    project = Project.objects.filter(pk=project_id).first()
    if project is None:
        raise ValidationError(f"Project {project_id} does not exist.")
    if not can_see_project(actor, project.pk):
        raise AuthorizationError('You can only request materials for your own projects.')

    supplier = None
    if request_type == MaterialRequest.TYPE_SUPPLIER:
        if not supplier_id:
            raise ValidationError('Supplier is required for supplier requests.')
        supplier = Supplier.objects.filter(pk=supplier_id).first()
        if supplier is None:
            raise ValidationError(f"Supplier {supplier_id} does not exist.")
    elif supplier_id:
        raise ValidationError('Main inventory requests cannot name a supplier.')

    lines = _clean_lines(items)

    with transaction.atomic():
        mr = MaterialRequest.objects.create(
            requested_by=actor,
            project=project,
            request_type=request_type,
            supplier=supplier,
            current_stage=stage,
            status=MaterialRequest.STATUS_PENDING,
            priority_level=priority_level or 'normal',
            remarks=remarks or '',
        )
        MaterialRequestItem.objects.bulk_create([
            MaterialRequestItem(request=mr, item=item, requested_quantity=quantity)
            for item, quantity in lines
        ])
        audit_action = 'requests' if stage == MaterialRequest.STAGE_REQUESTED else 'create'
        _record(
            mr, actor, 'create', '', stage, audit_action, remarks, http_request,
            description=f"{'requested materials' if audit_action == 'requests' else 'drafted material request'} {_label(mr.pk)} for {project.name}",
        )
    logger.info(f"request {mr.pk} created as {stage} by user {actor.pk} ({len(lines)} items)")
    return mr


def submit(mr_id, actor, remarks='', http_request=None):
    """DRAFT -> requested, by the requester or an admin"""
    mr = get_visible_request(actor, mr_id)
    if mr.requested_by_id != actor.pk and not actor.is_admin:
        raise AuthorizationError('Only the requester can submit a draft.')
    return _transition(
        mr_id, actor, 'submit', MaterialRequest.STAGE_DRAFT, MaterialRequest.STAGE_REQUESTED, 'submitted',
        remarks, http_request,
    )


def approve(mr_id, actor, remarks='', http_request=None):
    get_visible_request(actor, mr_id)
    return _transition(
        mr_id, actor, 'approve', MaterialRequest.STAGE_REQUESTED, MaterialRequest.STAGE_APPROVED, 'approved',
        remarks, http_request,
        status=MaterialRequest.STATUS_APPROVED, approved_by=actor, approved_at=timezone.now(),
    )


def decline(mr_id, actor, remarks='', http_request=None):
    """requested -> cancelled; the reason lives on the decline action, the requester's remarks stay"""
    get_visible_request(actor, mr_id)
    return _transition(
        mr_id, actor, 'decline', MaterialRequest.STAGE_REQUESTED, MaterialRequest.STAGE_CANCELLED, 'declined',
        remarks, http_request,
        status=MaterialRequest.STATUS_REJECTED,
    )


def order(mr_id, actor, remarks='', http_request=None):
    get_visible_request(actor, mr_id)
    return _transition(
        mr_id, actor, 'order', MaterialRequest.STAGE_APPROVED, MaterialRequest.STAGE_ORDERED, 'ordered',
        remarks, http_request,
    )


def record_delivery(mr_id, actor, delivered_by, delivery_date, delivery_status, remarks='', http_request=None):
    """
    Record goods arriving. The first delivery moves ``ordered`` to
    ``verifying``; later deliveries against a request still being verified
    are recorded without a stage change. No inventory is posted here.
    """
    if not (delivered_by or '').strip():
        raise ValidationError('delivered_by is required.')
    if delivery_status not in dict(MaterialDelivery.STATUS_CHOICES):
        raise ValidationError(f"Delivery status must be 'partial' or 'complete', not '{delivery_status}'.")
    if delivery_date is None:
        raise ValidationError('delivery_date is required.')
    get_visible_request(actor, mr_id)

    with transaction.atomic():
        from_stage = MaterialRequest.STAGE_ORDERED
        updated = MaterialRequest.objects.filter(pk=mr_id, current_stage=MaterialRequest.STAGE_ORDERED).update(
            current_stage=MaterialRequest.STAGE_VERIFYING, updated_at=timezone.now()
        )
        if updated:
            mr = MaterialRequest.objects.get(pk=mr_id)
        else:
            mr = MaterialRequest.objects.select_for_update().filter(
                pk=mr_id, current_stage__in=MaterialRequest.VERIFIABLE_STAGES
            ).first()
            if mr is None:
                logger.warning(f"Request {mr_id} delivery refused: not ordered")
                raise NotFoundError('Material request not found or not awaiting delivery.')
            from_stage = mr.current_stage

        delivery = MaterialDelivery.objects.create(
            request=mr,
            delivered_by=delivered_by.strip(),
            delivery_date=delivery_date,
            delivery_status=delivery_status,
            acknowledged_by=actor,
            remarks=remarks or '',
        )
        _record(
            mr, actor, 'delivery', from_stage, mr.current_stage, 'delivered', remarks, http_request,
            description=f"recorded {delivery_status} delivery for {_label(mr.pk)}",
        )
    logger.info(f"request {mr_id} delivery {delivery.pk} ({delivery_status}) by user {actor.pk}")
    return mr, delivery


def _as_count(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative whole number.")
    return value


def _clean_entries(entries):
    """Shape checks for a verification batch; returns only the non-zero entries"""
    if not entries:
        raise ValidationError('At least one verification entry is required.')

    cleaned = []
    seen = set()
    for entry in entries:
        mr_item_id = entry.get('mr_item_id')
        if mr_item_id is None:
            raise ValidationError('Every entry needs an mr_item_id.')
        if mr_item_id in seen:
            raise ValidationError(f"Request item {mr_item_id} is listed more than once.")
        seen.add(mr_item_id)
        accepted = _as_count(entry.get('accepted_qty', 0), 'accepted_qty')
        rejected = _as_count(entry.get('rejected_qty', 0), 'rejected_qty')
        if accepted or rejected:
            cleaned.append({
                'mr_item_id': mr_item_id,
                'accepted_qty': accepted,
                'rejected_qty': rejected,
                'remarks': (entry.get('remarks') or '').strip(),
            })

    if not cleaned:
        raise ValidationError('Nothing to verify: every quantity is zero.')
    return cleaned


def derive_stage(lines):
    """
    Stage implied by the cumulative totals of a request's lines.

    Every line fully accounted for -> ``completed`` when nothing was
    rejected, ``disputed`` otherwise. Anything less -> ``partially_verified``.
    """
    lines = list(lines)
    if lines and all(line.received_quantity >= line.requested_quantity for line in lines):
        if any(line.rejected_quantity for line in lines):
            return MaterialRequest.STAGE_DISPUTED
        return MaterialRequest.STAGE_COMPLETED
    return MaterialRequest.STAGE_PARTIALLY_VERIFIED


def _recount(line):
    """Rebuild a line's running totals from its verification history"""
    totals = line.verifications.aggregate(accepted=Sum('accepted_quantity'), rejected=Sum('rejected_quantity'))
    line.accepted_quantity = totals['accepted'] or 0
    line.rejected_quantity = totals['rejected'] or 0
    line.received_quantity = line.accepted_quantity + line.rejected_quantity
    line.save(update_fields=['accepted_quantity', 'rejected_quantity', 'received_quantity'])


def verify(mr_id, actor, entries, http_request=None):
    """
    Accept/reject delivered quantities line by line.

    The request row and every touched line are locked for the whole
    transaction. Accepted units are posted to the project's ledger; for
    main-inventory requests the same quantity is then taken out of central
    stock. Any invalid entry rolls the whole batch back.
    """
    cleaned = _clean_entries(entries)
    get_visible_request(actor, mr_id)

    with transaction.atomic():
        mr = MaterialRequest.objects.select_for_update().filter(
            pk=mr_id, current_stage__in=MaterialRequest.VERIFIABLE_STAGES
        ).first()
        if mr is None:
            logger.warning(f"Request {mr_id} verification refused: not awaiting verification")
            raise NotFoundError('Material request not found or not awaiting verification.')
        from_stage = mr.current_stage

        lines = {
            line.pk: line
            for line in MaterialRequestItem.objects.select_for_update().select_related('item').filter(
                request=mr, pk__in=[entry['mr_item_id'] for entry in cleaned]
            )
        }

        source = (
            InventoryMovement.SOURCE_MAIN_INVENTORY
            if mr.request_type == MaterialRequest.TYPE_MAIN_INVENTORY
            else InventoryMovement.SOURCE_SUPPLIER
        )
        for entry in cleaned:
            line = lines.get(entry['mr_item_id'])
            if line is None:
                raise ValidationError(f"Item {entry['mr_item_id']} does not belong to {_label(mr.pk)}.")
            accepted, rejected = entry['accepted_qty'], entry['rejected_qty']
            if accepted + rejected > line.pending_quantity:
                raise ValidationError(
                    f"{line.item.name}: {accepted + rejected} exceeds the pending quantity of {line.pending_quantity}."
                )

            MaterialVerification.objects.create(
                request=mr,
                request_item=line,
                accepted_quantity=accepted,
                rejected_quantity=rejected,
                verified_by=actor,
                remarks=entry['remarks'],
            )
            _recount(line)

            if accepted:
                ledger.post(line.item, mr.project_id, InventoryMovement.DIRECTION_IN, accepted, source,
                            reference=mr, user=actor, remarks=f"Verified for {_label(mr.pk)}")
                if source == InventoryMovement.SOURCE_MAIN_INVENTORY:
                    ledger.post(line.item, None, InventoryMovement.DIRECTION_OUT, accepted, source,
                                reference=mr, user=actor, remarks=f"Transferred to {_label(mr.pk)}")

        to_stage = derive_stage(MaterialRequestItem.objects.filter(request=mr))
        MaterialRequest.objects.filter(pk=mr.pk).update(current_stage=to_stage, updated_at=timezone.now())
        mr.current_stage = to_stage

        summary = '; '.join(
            f"{lines[e['mr_item_id']].item.name}: +{e['accepted_qty']} / -{e['rejected_qty']}" for e in cleaned
        )
        _record(
            mr, actor, 'verify', from_stage, to_stage, 'verified', summary, http_request,
            description=f"verified delivery for {_label(mr.pk)} ({to_stage})",
        )
    logger.info(f"request {mr_id} verified by user {actor.pk}: {from_stage} -> {to_stage}")
    return mr


def review(mr_id, actor, remarks, http_request=None):
    """Remarks-only entry on a verified request; the stage does not change"""
    remarks = (remarks or '').strip()
    if not remarks:
        raise ValidationError('Review remarks are required.')
    get_visible_request(actor, mr_id)

    with transaction.atomic():
        mr = MaterialRequest.objects.select_for_update().filter(
            pk=mr_id, current_stage__in=MaterialRequest.REVIEWABLE_STAGES
        ).first()
        if mr is None:
            logger.warning(f"Request {mr_id} review refused: not verified")
            raise NotFoundError('Material request not found or not yet verified.')
        _record(mr, actor, 'review', mr.current_stage, mr.current_stage, 'reviewed', remarks, http_request)
    logger.info(f"request {mr_id} reviewed by user {actor.pk}")
    return mr
