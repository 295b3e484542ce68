"""Signals fired after an order change commits.

Receivers (see ``notifications.signals``) send client notifications and write
the audit trail. They are dispatched with ``send_robust`` after commit, so a
failing receiver never affects the stored order.
"""

from django.dispatch import Signal

# kwargs: order, actor, previous_status, status_changed, changed_fields
order_updated = Signal()

# kwargs: order, actor
order_created = Signal()

# kwargs: order_id, order_number, actor, status
order_deleted = Signal()
