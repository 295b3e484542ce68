"""Receivers wiring domain events to notifications and the audit trail.

Registered in ``NotificationsConfig.ready``. Events are dispatched with
``send_robust`` after commit, so each receiver fails independently.
"""

from django.dispatch import receiver

from core.money import format_currency
from finance.signals import payment_recorded, payment_status_changed
from invoices.signals import invoice_sent, invoice_updated
from orders.signals import order_created, order_deleted, order_updated

from .models import NotificationKind
from .services import log_audit, notify


def _actor_id(actor):
    return getattr(actor, 'pk', None)


@receiver(order_updated, dispatch_uid='notify_order_status_changed')
def notify_order_status_changed(sender, order, status_changed, **kwargs):
    if not status_changed:
        return
    notify(
        NotificationKind.ORDER_STATUS_CHANGED,
        order.client.contact,
        {
            'order_number': order.order_number,
            'client_name': order.client.name,
            'status': order.status,
            'status_display': order.get_status_display(),
        },
        owner=order.tailor,
    )


@receiver(order_updated, dispatch_uid='audit_order_updated')
def audit_order_updated(sender, order, actor, previous_status, changed_fields, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='UPDATE_ORDER',
        resource='Order',
        resource_id=order.pk,
        details={'from': previous_status, 'to': order.status, 'changedFields': list(changed_fields)},
    )


@receiver(order_created, dispatch_uid='audit_order_created')
def audit_order_created(sender, order, actor, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='CREATE_ORDER',
        resource='Order',
        resource_id=order.pk,
        details={'orderNumber': order.order_number, 'totalAmount': str(order.total_amount)},
    )


@receiver(order_deleted, dispatch_uid='audit_order_deleted')
def audit_order_deleted(sender, order_id, order_number, actor, status, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='DELETE_ORDER',
        resource='Order',
        resource_id=order_id,
        details={'orderNumber': order_number, 'status': status},
    )


@receiver(invoice_sent, dispatch_uid='notify_invoice_sent')
def notify_invoice_sent(sender, invoice, **kwargs):
    notify(
        NotificationKind.INVOICE_SENT,
        invoice.client.contact,
        {
            'invoice_number': invoice.invoice_number,
            'client_name': invoice.client.name,
            'total': format_currency(invoice.total_amount),
        },
        owner=invoice.tailor,
    )


@receiver(invoice_updated, dispatch_uid='audit_invoice_updated')
def audit_invoice_updated(sender, invoice, actor, previous_status, changed_fields, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='UPDATE_INVOICE',
        resource='Invoice',
        resource_id=invoice.pk,
        details={'from': previous_status, 'to': invoice.status, 'changedFields': list(changed_fields)},
    )


@receiver(payment_recorded, dispatch_uid='notify_payment_received')
def notify_payment_received(sender, payment, **kwargs):
    notify(
        NotificationKind.PAYMENT_RECEIVED,
        payment.client.contact,
        {
            'payment_number': payment.payment_number,
            'client_name': payment.client.name,
            'amount': format_currency(payment.amount),
        },
        owner=payment.tailor,
    )


@receiver(payment_recorded, dispatch_uid='audit_payment_recorded')
def audit_payment_recorded(sender, payment, actor, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='CREATE_PAYMENT',
        resource='Payment',
        resource_id=payment.pk,
        details={
            'paymentNumber': payment.payment_number,
            'amount': str(payment.amount),
            'method': payment.method,
            'orderId': payment.order_id,
            'invoiceId': payment.invoice_id,
        },
    )


@receiver(payment_status_changed, dispatch_uid='audit_payment_status_changed')
def audit_payment_status_changed(sender, payment, actor, previous_status, **kwargs):
    log_audit(
        actor_id=_actor_id(actor),
        action='UPDATE_PAYMENT',
        resource='Payment',
        resource_id=payment.pk,
        details={'from': previous_status, 'to': payment.status},
    )
