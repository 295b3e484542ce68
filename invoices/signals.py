"""Signals fired after an invoice change commits."""

from django.dispatch import Signal

# kwargs: invoice, actor
invoice_sent = Signal()

# kwargs: invoice, actor, previous_status, status_changed, changed_fields
invoice_updated = Signal()
