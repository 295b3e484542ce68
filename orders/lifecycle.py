"""Order lifecycle: status transitions, cost totals and their side effects.

Entry points (:func:`create_order`, :func:`update_order`, :func:`delete_order`)
each run as one locked transaction over the order and its collection row.
Notifications and audit entries are scheduled for after commit.
"""

import logging

from django.db import IntegrityError
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from accounts.models import Client
from core.conf import workshop_setting
from core.db import check_version, locked_transaction
from core.events import send_on_commit
from core.exceptions import ConcurrencyConflict, Conflict
from core.money import money
from core.numbering import ORDER_PREFIX, next_number

from .collections import adjust_collection_counters
from .models import Order, OrderCollection, OrderStatus
from .signals import order_created, order_deleted, order_updated

logger = logging.getLogger(__name__)

PRODUCTION_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY_FOR_FITTING,
    OrderStatus.FITTING_DONE,
    OrderStatus.COMPLETED,
]
TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def _build_transitions():
    table = {}
    for index, status in enumerate(PRODUCTION_SEQUENCE):
        if status in TERMINAL_STATUSES:
            table[status] = frozenset()
        else:
            # Stages may be skipped, never revisited.
            table[status] = frozenset(PRODUCTION_SEQUENCE[index + 1:]) | {OrderStatus.CANCELLED}
    table[OrderStatus.CANCELLED] = frozenset()
    return table


ALLOWED_TRANSITIONS = _build_transitions()

COST_FIELDS = ('labor_cost', 'material_cost')
DESCRIPTIVE_FIELDS = (
    'garment_type',
    'garment_description',
    'style_notes',
    'quantity',
    'progress_notes',
    'deadline',
)
UPDATABLE_FIELDS = COST_FIELDS + DESCRIPTIVE_FIELDS


def transition_allowed(current: str, target: str) -> bool:
    """Same-status resubmission is always allowed (it is a no-op)."""
    if current == target:
        return True
    if not workshop_setting('STRICT_TRANSITIONS'):
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def order_total(labor_cost, material_cost):
    return money(labor_cost) + money(material_cost or 0)


def _locked_order(order_id, tailor):
    order = (
        Order.objects.select_for_update(of=('self',))
        .select_related('client')
        .filter(pk=order_id, tailor=tailor)
        .first()
    )
    if order is None:
        raise NotFound('Order not found.')
    return order


def _enter_status(order, status, now):
    """Stamp the timestamps that belong to ``status``."""
    if status == OrderStatus.IN_PROGRESS and not order.started_at:
        order.started_at = now
    if status == OrderStatus.COMPLETED:
        order.completed_at = now


def create_order(*, tailor, client_id, labor_cost, material_cost=None, collection_id=None, actor=None, **fields):
    """Create a PENDING order; joining a collection bumps its ``total_orders``."""
    unknown = set(fields) - set(DESCRIPTIVE_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be set here.' for name in sorted(unknown)})

    with locked_transaction():
        client = Client.objects.filter(pk=client_id, tailor=tailor).first()
        if client is None:
            raise NotFound('Client not found.')
        if collection_id and not OrderCollection.objects.filter(pk=collection_id, tailor=tailor).exists():
            raise NotFound('Collection not found.')

        order = Order(
            tailor=tailor,
            client=client,
            collection_id=collection_id,
            order_number=next_number(Order, 'order_number', ORDER_PREFIX, tailor=tailor),
            status=OrderStatus.PENDING,
            labor_cost=money(labor_cost),
            material_cost=None if material_cost is None else money(material_cost),
            total_amount=order_total(labor_cost, material_cost),
            **fields,
        )
        try:
            order.save()
        except IntegrityError as exc:
            raise ConcurrencyConflict('Order number already taken by a concurrent request. Please retry.') from exc

        adjust_collection_counters(collection_id, None, order.status)
        send_on_commit(order_created, sender=Order, order=order, actor=actor)

    logger.info('Created order %s for client %s', order.order_number, client.pk)
    return order


def update_order(order_id, *, tailor, actor=None, status=None, version=None, **changes):
    """Apply an order update: optional new status, cost fields and descriptive fields.

    Resubmitting the current status with no other change is a no-op: no
    timestamp, counter, notification or audit side effect fires.
    """
    if status is not None and status not in OrderStatus.values:
        raise ValidationError({'status': f'"{status}" is not a valid order status.'})
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be updated.' for name in sorted(unknown)})

    with locked_transaction():
        order = _locked_order(order_id, tailor)
        check_version(order, version)

        previous_status = order.status
        status_changed = status is not None and status != previous_status
        if status_changed and not transition_allowed(previous_status, status):
            logger.info('Rejected order %s transition %s -> %s', order.order_number, previous_status, status)
            raise Conflict(f'Cannot move an order from {previous_status} to {status}.')

        changed_fields = []
        for field, value in changes.items():
            if field == 'labor_cost' and value is None:
                raise ValidationError({'labor_cost': 'Labor cost cannot be empty.'})
            if field in COST_FIELDS and value is not None:
                value = money(value)
            if getattr(order, field) != value:
                setattr(order, field, value)
                changed_fields.append(field)

        if any(field in changes for field in COST_FIELDS):
            # Merged view: an untouched cost keeps its stored value.
            total = order_total(order.labor_cost, order.material_cost)
            if total != order.total_amount:
                order.total_amount = total
                changed_fields.append('total_amount')

        if status_changed:
            _enter_status(order, status, timezone.now())
            order.status = status
            changed_fields.append('status')

        if not changed_fields:
            return order

        order.version += 1
        order.save()

        if status_changed:
            adjust_collection_counters(order.collection_id, previous_status, status)
            logger.info('Order %s moved %s -> %s', order.order_number, previous_status, status)

        send_on_commit(
            order_updated,
            sender=Order,
            order=order,
            actor=actor,
            previous_status=previous_status,
            status_changed=status_changed,
            changed_fields=changed_fields,
        )
    return order


def delete_order(order_id, *, tailor, actor=None):
    """Delete an order that owns no payments, releasing its collection slot."""
    with locked_transaction():
        order = _locked_order(order_id, tailor)
        payment_count = order.payments.count()
        if payment_count > 0:
            raise Conflict(
                f'Cannot delete order with {payment_count} payment(s). Consider cancelling instead.'
            )

        collection_id, status, order_number = order.collection_id, order.status, order.order_number
        order.delete()
        adjust_collection_counters(collection_id, status, None)
        send_on_commit(
            order_deleted,
            sender=Order,
            order_id=order_id,
            order_number=order_number,
            actor=actor,
            status=status,
        )
    logger.info('Deleted order %s', order_number)
