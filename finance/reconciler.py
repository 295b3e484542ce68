"""Payment reconciliation.

Recording a COMPLETED payment increments the ``paid_amount`` running total of
the order and/or invoice it is applied to, under a row lock. The running totals
are never rebuilt on the hot path; :func:`recompute_paid_amount` and
:func:`repair_paid_amount` rebuild them from the payment rows for audits and
the ``reconcile_balances`` command.

A settled balance never changes an order or invoice status on its own.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError
from django.db.models import DecimalField, F, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from accounts.models import Client
from core.conf import workshop_setting
from core.db import locked_transaction
from core.events import send_on_commit
from core.exceptions import ConcurrencyConflict, Conflict
from core.money import ZERO, money, to_decimal
from core.numbering import PAYMENT_PREFIX, next_number
from invoices.models import Invoice
from orders.models import Order

from .models import REFERENCE_REQUIRED_METHODS, Payment, PaymentMethod, PaymentStatus
from .signals import payment_recorded, payment_status_changed

logger = logging.getLogger(__name__)

DETAIL_FIELDS = ('mobile_number', 'bank_name', 'account_number', 'notes')


def _validated_amount(amount) -> Decimal:
    try:
        value = money(to_decimal(amount))
    except (TypeError, ValueError):
        raise ValidationError({'amount': 'A valid amount is required.'})
    if value <= ZERO:
        raise ValidationError({'amount': 'Amount must be greater than zero.'})
    return value


def validate_payment_input(amount, method, transaction_id=None, status=PaymentStatus.COMPLETED):
    """Reject malformed payment input before anything is written."""
    value = _validated_amount(amount)
    if method not in PaymentMethod.values:
        raise ValidationError({'method': f'"{method}" is not a valid payment method.'})
    if status not in (PaymentStatus.COMPLETED, PaymentStatus.PENDING):
        raise ValidationError({'status': 'A payment can only be recorded as COMPLETED or PENDING.'})
    if (method in REFERENCE_REQUIRED_METHODS or status == PaymentStatus.PENDING) and not transaction_id:
        raise ValidationError({'transaction_id': 'A transaction reference is required for this payment method.'})
    return value


def _check_overpayment(target) -> None:
    tolerance = to_decimal(workshop_setting('OVERPAYMENT_TOLERANCE'))
    if target.paid_amount > target.total_amount + tolerance:
        logger.warning(
            'Overpayment on %s %s: paid %s against total %s',
            target._meta.model_name, target.pk, target.paid_amount, target.total_amount,
        )


def _credit(payment, order=None, invoice=None) -> None:
    """Add a COMPLETED payment to the running totals of the locked order/invoice."""
    for target in (order, invoice):
        if target is None:
            continue
        target.paid_amount = target.paid_amount + payment.amount
        target.version += 1
        target.save(update_fields=['paid_amount', 'version', 'updated_at'])
        _check_overpayment(target)
        logger.info(
            'Credited %s to %s %s (paid %s of %s)',
            payment.amount, target._meta.model_name, target.pk, target.paid_amount, target.total_amount,
        )


def _locked(model, pk, tailor, label):
    row = model.objects.select_for_update(of=('self',)).filter(pk=pk, tailor=tailor).first()
    if row is None:
        raise NotFound(f'{label} not found.')
    return row


def _locked_targets(payment):
    """Lock the order and invoice a payment applies to, in a fixed order."""
    order = Order.objects.select_for_update().get(pk=payment.order_id) if payment.order_id else None
    invoice = Invoice.objects.select_for_update().get(pk=payment.invoice_id) if payment.invoice_id else None
    return order, invoice


def record_payment(
    *,
    tailor,
    client_id,
    amount,
    method=PaymentMethod.CASH,
    order_id=None,
    invoice_id=None,
    transaction_id=None,
    status=PaymentStatus.COMPLETED,
    paid_at=None,
    actor=None,
    **details,
):
    """Record a payment for a client and credit the order/invoice it is applied to.

    PENDING payments (gateway charges awaiting their result) are stored but
    credit nothing until :func:`apply_gateway_result` completes them.
    """
    unknown = set(details) - set(DETAIL_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be set here.' for name in sorted(unknown)})
    value = validate_payment_input(amount, method, transaction_id, status)
    transaction_id = transaction_id or None

    with locked_transaction():
        client = Client.objects.filter(pk=client_id, tailor=tailor).first()
        if client is None:
            raise NotFound('Client not found.')

        order = _locked(Order, order_id, tailor, 'Order') if order_id else None
        invoice = _locked(Invoice, invoice_id, tailor, 'Invoice') if invoice_id else None
        if order is not None and order.client_id != client.pk:
            raise ValidationError({'order': 'Order does not belong to this client.'})
        if invoice is not None:
            if invoice.client_id != client.pk:
                raise ValidationError({'invoice': 'Invoice does not belong to this client.'})
            if order is not None and invoice.order_id and invoice.order_id != order.pk:
                raise ValidationError({'invoice': 'Invoice belongs to a different order.'})

        if transaction_id and Payment.objects.filter(transaction_id=transaction_id).exists():
            raise Conflict(f'A payment with transaction reference {transaction_id} already exists.')

        payment = Payment(
            tailor=tailor,
            client=client,
            order=order,
            invoice=invoice,
            payment_number=next_number(Payment, 'payment_number', PAYMENT_PREFIX, tailor=tailor),
            amount=value,
            method=method,
            status=status,
            transaction_id=transaction_id,
            paid_at=paid_at or timezone.now(),
            **details,
        )
        try:
            payment.save()
        except IntegrityError as exc:
            raise ConcurrencyConflict('Payment could not be numbered or referenced uniquely. Please retry.') from exc

        if payment.counts_towards_balance:
            _credit(payment, order, invoice)
            send_on_commit(payment_recorded, sender=Payment, payment=payment, actor=actor)

    logger.info(
        'Recorded %s payment %s of %s via %s for client %s',
        payment.status, payment.payment_number, payment.amount, payment.method, client.pk,
    )
    return payment


def _settle(payment, succeeded: bool, paid_at=None, actor=None):
    """Move a locked PENDING payment to COMPLETED (crediting it) or FAILED."""
    previous_status = payment.status
    if succeeded:
        payment.status = PaymentStatus.COMPLETED
        payment.paid_at = paid_at or timezone.now()
        payment.save(update_fields=['status', 'paid_at'])
        order, invoice = _locked_targets(payment)
        _credit(payment, order, invoice)
        send_on_commit(payment_recorded, sender=Payment, payment=payment, actor=actor)
    else:
        payment.status = PaymentStatus.FAILED
        payment.save(update_fields=['status'])
    send_on_commit(
        payment_status_changed, sender=Payment, payment=payment, actor=actor, previous_status=previous_status,
    )
    logger.info('Payment %s moved %s -> %s', payment.payment_number, previous_status, payment.status)
    return payment


def _locked_payment(payment_id, tailor):
    payment = Payment.objects.select_for_update().filter(pk=payment_id, tailor=tailor).first()
    if payment is None:
        raise NotFound('Payment not found.')
    return payment


def complete_payment(payment_id, *, tailor, paid_at=None, actor=None):
    with locked_transaction():
        payment = _locked_payment(payment_id, tailor)
        if payment.status != PaymentStatus.PENDING:
            raise Conflict(f'Payment {payment.payment_number} is already {payment.status}.')
        return _settle(payment, True, paid_at, actor)


def fail_payment(payment_id, *, tailor, actor=None):
    with locked_transaction():
        payment = _locked_payment(payment_id, tailor)
        if payment.status != PaymentStatus.PENDING:
            raise Conflict(f'Payment {payment.payment_number} is already {payment.status}.')
        return _settle(payment, False, actor=actor)


def apply_gateway_result(reference, *, succeeded, amount=None, paid_at=None, order_id=None,
                         method=PaymentMethod.PAYSTACK, actor=None):
    """Reconcile a payment gateway's verdict for ``reference`` into the data model.

    Idempotent per reference: a payment already COMPLETED or FAILED is returned
    unchanged. A PENDING payment is completed (and only then credited) or
    failed. A successful charge with no local payment creates a COMPLETED one
    against ``order_id``. Returns ``(payment, applied)``; ``payment`` is
    ``None`` when a failed charge has nothing to attach to.
    """
    if not reference:
        raise ValidationError({'reference': 'A transaction reference is required.'})

    with locked_transaction():
        payment = Payment.objects.select_for_update().filter(transaction_id=reference).first()

        if payment is not None:
            if payment.status != PaymentStatus.PENDING:
                logger.info('Gateway result for %s already applied (%s)', reference, payment.status)
                return payment, False
            if succeeded and amount is not None:
                confirmed = _validated_amount(amount)
                if confirmed != payment.amount:
                    logger.warning(
                        'Gateway amount %s differs from pending payment %s amount %s; using gateway amount',
                        confirmed, payment.payment_number, payment.amount,
                    )
                    payment.amount = confirmed
                    payment.save(update_fields=['amount'])
            return _settle(payment, succeeded, paid_at, actor), True

        if not succeeded:
            logger.info('Failed gateway charge %s has no local payment; nothing to apply', reference)
            return None, False

        if not order_id:
            raise ValidationError({'order': 'An order is required to record an unmatched gateway payment.'})
        order = Order.objects.filter(pk=order_id).select_related('tailor').first()
        if order is None:
            raise NotFound('Order not found.')

        payment = record_payment(
            tailor=order.tailor,
            client_id=order.client_id,
            amount=amount,
            method=method,
            order_id=order.pk,
            transaction_id=reference,
            paid_at=paid_at,
            actor=actor,
            notes=f'{method} payment: {reference}',
        )
        return payment, True


def _completed_total(**lookup) -> Decimal:
    total = Payment.objects.filter(status=PaymentStatus.COMPLETED, **lookup).aggregate(total=Sum('amount'))['total']
    return money(total or ZERO)


def recompute_paid_amount(order_id) -> Decimal:
    """Sum of the order's COMPLETED payments. Reads only."""
    return _completed_total(order_id=order_id)


def recompute_invoice_paid_amount(invoice_id) -> Decimal:
    return _completed_total(invoice_id=invoice_id)


def repair_paid_amount(target, fix: bool = False):
    """Compare ``target.paid_amount`` with the sum of its payments.

    ``target`` is an :class:`~orders.models.Order` or
    :class:`~invoices.models.Invoice`. With ``fix`` the row is locked and the
    computed sum written back. Returns ``(stored, computed)``.
    """
    model = type(target)
    lookup = {'order_id': target.pk} if model is Order else {'invoice_id': target.pk}

    with locked_transaction():
        row = model.objects.select_for_update().get(pk=target.pk) if fix else model.objects.get(pk=target.pk)
        stored = row.paid_amount
        computed = _completed_total(**lookup)
        if stored != computed:
            logger.warning('%s %s paid_amount drifted: stored=%s computed=%s', model.__name__, row.pk, stored, computed)
            if fix:
                row.paid_amount = computed
                row.version += 1
                row.save(update_fields=['paid_amount', 'version', 'updated_at'])
    return stored, computed


def drifted(model):
    """Rows of ``model`` (Order or Invoice) whose ``paid_amount`` differs from their payments."""
    computed = Coalesce(
        Sum('payments__amount', filter=Q(payments__status=PaymentStatus.COMPLETED)),
        Value(ZERO),
        output_field=DecimalField(max_digits=12, decimal_places=2),
    )
    return model.objects.annotate(computed_paid=computed).exclude(paid_amount=F('computed_paid')).order_by('pk')
