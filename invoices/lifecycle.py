"""Invoice lifecycle: totals, status transitions and timestamp stamping."""

import logging

from django.db import IntegrityError
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from accounts.models import Client
from core.conf import workshop_setting
from core.db import check_version, locked_transaction
from core.events import send_on_commit
from core.exceptions import ConcurrencyConflict, Conflict
from core.numbering import INVOICE_PREFIX, next_number
from orders.models import Order

from .models import Invoice, InvoiceItem, InvoiceStatus
from .signals import invoice_sent, invoice_updated
from .tax import calculate_invoice

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED})

ALLOWED_TRANSITIONS = {
    InvoiceStatus.DRAFT: frozenset({
        InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.SENT: frozenset({
        InvoiceStatus.VIEWED, InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.VIEWED: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.VIEWED, InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}

# Each is set once, on first entry to its status.
TIMESTAMP_FIELDS = {
    InvoiceStatus.SENT: 'sent_at',
    InvoiceStatus.VIEWED: 'viewed_at',
    InvoiceStatus.PAID: 'paid_at',
}

DESCRIPTIVE_FIELDS = ('notes', 'terms_conditions', 'due_date')


def transition_allowed(current: str, target: str) -> bool:
    if current == target:
        return True
    if not workshop_setting('STRICT_TRANSITIONS'):
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def apply_items(invoice, items):
    """Replace the invoice's items and rewrite all derived totals together.

    The invoice row must already be saved; the caller saves the totals.
    """
    calculation = calculate_invoice(items)
    invoice.subtotal = calculation.subtotal
    invoice.vat_amount = calculation.vat_amount
    invoice.nhil_amount = calculation.nhil_amount
    invoice.getfund_amount = calculation.getfund_amount
    invoice.total_amount = calculation.total_amount

    InvoiceItem.objects.filter(invoice=invoice).delete()
    InvoiceItem.objects.bulk_create([
        InvoiceItem(invoice=invoice, position=position, **line.as_dict())
        for position, line in enumerate(calculation.items, start=1)
    ])
    return calculation


def _locked_invoice(invoice_id, tailor):
    invoice = (
        Invoice.objects.select_for_update(of=('self',))
        .select_related('client')
        .filter(pk=invoice_id, tailor=tailor)
        .first()
    )
    if invoice is None:
        raise NotFound('Invoice not found.')
    return invoice


def create_invoice(*, tailor, client_id, items, order_id=None, actor=None, **fields):
    """Create a DRAFT invoice with totals computed from ``items``."""
    unknown = set(fields) - set(DESCRIPTIVE_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be set here.' for name in sorted(unknown)})
    if not items:
        raise ValidationError({'items': 'At least one item is required.'})

    with locked_transaction():
        client = Client.objects.filter(pk=client_id, tailor=tailor).first()
        if client is None:
            raise NotFound('Client not found.')
        order = None
        if order_id:
            order = Order.objects.filter(pk=order_id, tailor=tailor).first()
            if order is None:
                raise NotFound('Order not found.')
            if order.client_id != client.pk:
                raise ValidationError({'order': 'Order does not belong to this client.'})

        invoice = Invoice(
            tailor=tailor,
            client=client,
            order=order,
            invoice_number=next_number(Invoice, 'invoice_number', INVOICE_PREFIX, tailor=tailor),
            status=InvoiceStatus.DRAFT,
            **fields,
        )
        try:
            invoice.save()
        except IntegrityError as exc:
            raise ConcurrencyConflict('Invoice number already taken by a concurrent request. Please retry.') from exc
        apply_items(invoice, items)
        invoice.save(update_fields=['subtotal', 'vat_amount', 'nhil_amount', 'getfund_amount', 'total_amount'])

    logger.info('Created invoice %s (%s) for client %s', invoice.invoice_number, invoice.total_amount, client.pk)
    return invoice


def update_invoice(invoice_id, *, tailor, actor=None, status=None, items=None, version=None, **changes):
    """Apply an invoice update.

    When ``items`` is given the totals are recomputed before the status change
    is evaluated. Re-entering the current status changes nothing. Entering
    SENT for the first time notifies the client with the formatted total.
    """
    if status is not None and status not in InvoiceStatus.values:
        raise ValidationError({'status': f'"{status}" is not a valid invoice status.'})
    unknown = set(changes) - set(DESCRIPTIVE_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be updated.' for name in sorted(unknown)})

    with locked_transaction():
        invoice = _locked_invoice(invoice_id, tailor)
        check_version(invoice, version)

        previous_status = invoice.status
        status_changed = status is not None and status != previous_status
        if status_changed and not transition_allowed(previous_status, status):
            logger.info('Rejected invoice %s transition %s -> %s', invoice.invoice_number, previous_status, status)
            raise Conflict(f'Cannot move an invoice from {previous_status} to {status}.')

        changed_fields = []
        if items is not None:
            apply_items(invoice, items)
            changed_fields.append('items')

        for field, value in changes.items():
            if getattr(invoice, field) != value:
                setattr(invoice, field, value)
                changed_fields.append(field)

        first_send = False
        if status_changed:
            stamp = TIMESTAMP_FIELDS.get(status)
            if stamp and getattr(invoice, stamp) is None:
                setattr(invoice, stamp, timezone.now())
                first_send = status == InvoiceStatus.SENT
            invoice.status = status
            changed_fields.append('status')

        if not changed_fields:
            return invoice

        invoice.version += 1
        invoice.save()

        send_on_commit(
            invoice_updated,
            sender=Invoice,
            invoice=invoice,
            actor=actor,
            previous_status=previous_status,
            status_changed=status_changed,
            changed_fields=changed_fields,
        )
        if first_send:
            send_on_commit(invoice_sent, sender=Invoice, invoice=invoice, actor=actor)
        if status_changed:
            logger.info('Invoice %s moved %s -> %s', invoice.invoice_number, previous_status, status)
    return invoice


def delete_invoice(invoice_id, *, tailor, actor=None):
    """Delete a DRAFT invoice; any other status is rejected."""
    with locked_transaction():
        invoice = _locked_invoice(invoice_id, tailor)
        if invoice.status != InvoiceStatus.DRAFT:
            raise Conflict('Only draft invoices can be deleted.')
        if invoice.payments.exists():
            raise Conflict('Invoice has recorded payments and cannot be deleted.')
        number = invoice.invoice_number
        invoice.delete()
    logger.info('Deleted draft invoice %s', number)
