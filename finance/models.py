"""Database models for payments."""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class PaymentMethod(models.TextChoices):
    CASH = 'CASH', 'Cash'
    MOBILE_MONEY_MTN = 'MOBILE_MONEY_MTN', 'MTN Mobile Money'
    MOBILE_MONEY_VODAFONE = 'MOBILE_MONEY_VODAFONE', 'Vodafone Cash'
    MOBILE_MONEY_AIRTELTIGO = 'MOBILE_MONEY_AIRTELTIGO', 'AirtelTigo Money'
    BANK_TRANSFER = 'BANK_TRANSFER', 'Bank transfer'
    PAYSTACK = 'PAYSTACK', 'Paystack'


# Methods reconciled against an external reference.
REFERENCE_REQUIRED_METHODS = frozenset({
    PaymentMethod.MOBILE_MONEY_MTN,
    PaymentMethod.MOBILE_MONEY_VODAFONE,
    PaymentMethod.MOBILE_MONEY_AIRTELTIGO,
    PaymentMethod.PAYSTACK,
})


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    COMPLETED = 'COMPLETED', 'Completed'
    FAILED = 'FAILED', 'Failed'


class Payment(models.Model):
    """Money received from a client, optionally against an order and/or invoice.

    Payments are never deleted. Only COMPLETED payments count towards an
    order's or invoice's ``paid_amount``; once COMPLETED the amount and the
    associations are frozen (see :mod:`finance.reconciler`).
    """

    tailor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payments')
    client = models.ForeignKey('accounts.Client', on_delete=models.PROTECT, related_name='payments')
    order = models.ForeignKey(
        'orders.Order', on_delete=models.PROTECT, null=True, blank=True, related_name='payments'
    )
    invoice = models.ForeignKey(
        'invoices.Invoice', on_delete=models.PROTECT, null=True, blank=True, related_name='payments'
    )

    payment_number = models.CharField(max_length=32)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=30, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED)
    transaction_id = models.CharField(max_length=100, null=True, blank=True, unique=True)

    mobile_number = models.CharField(max_length=20, blank=True, default='')
    bank_name = models.CharField(max_length=100, blank=True, default='')
    account_number = models.CharField(max_length=50, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    paid_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-paid_at']
        constraints = [
            models.UniqueConstraint(fields=['tailor', 'payment_number'], name='unique_payment_number_per_tailor'),
            models.CheckConstraint(condition=models.Q(amount__gt=Decimal('0')), name='payment_amount_positive'),
        ]
        indexes = [
            models.Index(fields=['tailor', 'paid_at'], name='payment_tailor_paid_idx'),
            models.Index(fields=['order', 'status'], name='payment_order_status_idx'),
            models.Index(fields=['invoice', 'status'], name='payment_invoice_status_idx'),
        ]

    def __str__(self):
        return f"{self.payment_number} ({self.amount} {self.get_status_display()})"

    @property
    def counts_towards_balance(self) -> bool:
        return self.status == PaymentStatus.COMPLETED
