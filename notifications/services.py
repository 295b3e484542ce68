"""The notification and audit collaborators.

:func:`notify` stores the in-app notification and hands SMS/e-mail to the
transports enabled in the owner's preferences. :func:`log_audit` appends to
the audit trail. Both are called from signal receivers after commit.
"""

import logging

from django.utils import timezone

from .models import AuditLog, Notification, NotificationKind

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES = {
    NotificationKind.ORDER_STATUS_CHANGED: (
        'Order {order_number} is now {status_display}',
        'Hi {client_name}! Your order {order_number} is now {status_display}.',
    ),
    NotificationKind.INVOICE_SENT: (
        'Invoice {invoice_number} sent',
        'Hi {client_name}! Invoice {invoice_number} for {total} has been sent to you.',
    ),
    NotificationKind.PAYMENT_RECEIVED: (
        'Payment {payment_number} received',
        'Hi {client_name}! We received your payment of {amount}. Thank you!',
    ),
}


def render(kind, template_data: dict):
    title, message = MESSAGE_TEMPLATES[kind]
    return title.format(**template_data), message.format(**template_data)


def notify(kind, recipient_contact: dict, template_data: dict, owner=None):
    """Send a ``kind`` notification to ``recipient_contact``.

    ``owner`` is the workshop account the notification is filed under; its
    ``notify_sms``/``notify_email`` preferences select the outbound channels.
    """
    title, message = render(kind, template_data)
    contact = recipient_contact or {}
    sms = bool(owner is not None and owner.notify_sms and contact.get('phone'))
    email = bool(owner is not None and owner.notify_email and contact.get('email'))

    notification = None
    if owner is not None:
        notification = Notification.objects.create(
            user=owner,
            kind=kind,
            title=title,
            message=message,
            recipient=contact,
            data=template_data,
            sms_requested=sms,
            email_requested=email,
        )
    logger.info('Notification %s to %s (sms=%s, email=%s): %s', kind, contact.get('name'), sms, email, title)
    return notification


def log_audit(*, actor_id, action: str, resource: str, resource_id=None, details=None):
    entry = AuditLog.objects.create(
        user_id=actor_id,
        action=action,
        resource=resource,
        resource_id='' if resource_id is None else str(resource_id),
        details=details or {},
    )
    logger.debug('Audit %s %s %s by %s', action, resource, resource_id, actor_id)
    return entry


def mark_read(user, notification_ids=None) -> int:
    """Mark the user's unread notifications as read (all of them by default)."""
    unread = Notification.objects.filter(user=user, is_read=False)
    if notification_ids is not None:
        unread = unread.filter(pk__in=notification_ids)
    return unread.update(is_read=True, read_at=timezone.now())
