"""Database models for invoices and their line items."""

from decimal import Decimal

from django.conf import settings
from django.db import models


class InvoiceStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    SENT = 'SENT', 'Sent'
    VIEWED = 'VIEWED', 'Viewed'
    PAID = 'PAID', 'Paid'
    OVERDUE = 'OVERDUE', 'Overdue'
    CANCELLED = 'CANCELLED', 'Cancelled'


class Invoice(models.Model):
    """Billing document for a client, optionally tied to one order.

    ``subtotal``, the three levies and ``total_amount`` are derived from the
    items by :func:`invoices.tax.calculate_invoice` and always written together.
    """

    tailor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='invoices')
    client = models.ForeignKey('accounts.Client', on_delete=models.CASCADE, related_name='invoices')
    order = models.ForeignKey(
        'orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices'
    )

    invoice_number = models.CharField(max_length=32)
    status = models.CharField(max_length=12, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    vat_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    nhil_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    getfund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    notes = models.TextField(blank=True, default='')
    terms_conditions = models.TextField(blank=True, default='')
    due_date = models.DateField(null=True, blank=True)

    sent_at = models.DateTimeField(null=True, blank=True)
    viewed_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        constraints = [
            models.UniqueConstraint(fields=['tailor', 'invoice_number'], name='unique_invoice_number_per_tailor'),
        ]
        indexes = [
            models.Index(fields=['tailor', 'status'], name='invoice_tailor_status_idx'),
            models.Index(fields=['client', 'created_at'], name='invoice_client_created_idx'),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} - {self.client}"

    @property
    def balance(self) -> Decimal:
        return self.total_amount - self.paid_amount


class InvoiceItem(models.Model):
    """One line of an invoice; ``amount`` is ``quantity * unit_price``."""

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField()
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['invoice', 'position'], name='unique_item_position_per_invoice'),
        ]

    def __str__(self):
        return f"{self.description} x{self.quantity}"
