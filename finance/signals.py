"""Signals fired after a payment change commits."""

from django.dispatch import Signal

# kwargs: payment, actor
payment_recorded = Signal()

# kwargs: payment, actor, previous_status
payment_status_changed = Signal()
