"""Database models for garment orders and order collections."""

from decimal import Decimal

from django.conf import settings
from django.db import models


class OrderStatus(models.TextChoices):
    """Production lifecycle of an order."""

    PENDING = 'PENDING', 'Pending'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    IN_PROGRESS = 'IN_PROGRESS', 'In progress'
    READY_FOR_FITTING = 'READY_FOR_FITTING', 'Ready for fitting'
    FITTING_DONE = 'FITTING_DONE', 'Fitting done'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class GarmentType(models.TextChoices):
    KABA_AND_SLIT = 'KABA_AND_SLIT', 'Kaba and slit'
    DASHIKI = 'DASHIKI', 'Dashiki'
    SMOCK_BATAKARI = 'SMOCK_BATAKARI', 'Smock / Batakari'
    KAFTAN = 'KAFTAN', 'Kaftan'
    AGBADA = 'AGBADA', 'Agbada'
    COMPLET = 'COMPLET', 'Complet'
    KENTE_CLOTH = 'KENTE_CLOTH', 'Kente cloth'
    BOUBOU = 'BOUBOU', 'Boubou'
    SUIT = 'SUIT', 'Suit'
    DRESS = 'DRESS', 'Dress'
    SHIRT = 'SHIRT', 'Shirt'
    TROUSERS = 'TROUSERS', 'Trousers'
    SKIRT = 'SKIRT', 'Skirt'
    BLOUSE = 'BLOUSE', 'Blouse'
    OTHER = 'OTHER', 'Other'


class OrderCollection(models.Model):
    """A named batch of orders (e.g. a seasonal run) with progress counters.

    ``total_orders`` and ``completed_orders`` are maintained by
    :func:`orders.collections.adjust_collection_counters` on every accepted
    order transition; they are not recomputed from a scan on the hot path.
    """

    tailor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='order_collections')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    total_orders = models.PositiveIntegerField(default=0)
    completed_orders = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Order Collection"
        verbose_name_plural = "Order Collections"

    def __str__(self):
        return f"{self.name} ({self.completed_orders}/{self.total_orders})"


class Order(models.Model):
    """A unit of garment work for one client."""

    tailor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    client = models.ForeignKey('accounts.Client', on_delete=models.CASCADE, related_name='orders')
    collection = models.ForeignKey(
        OrderCollection, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders'
    )

    order_number = models.CharField(max_length=32)
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)

    garment_type = models.CharField(max_length=20, choices=GarmentType.choices, default=GarmentType.OTHER)
    garment_description = models.TextField(blank=True, default='')
    style_notes = models.TextField(blank=True, default='')
    quantity = models.PositiveIntegerField(default=1)
    progress_notes = models.TextField(blank=True, default='')

    material_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    labor_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    deadline = models.DateField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        constraints = [
            models.UniqueConstraint(fields=['tailor', 'order_number'], name='unique_order_number_per_tailor'),
        ]
        indexes = [
            models.Index(fields=['tailor', 'status'], name='order_tailor_status_idx'),
            models.Index(fields=['tailor', 'created_at'], name='order_tailor_created_idx'),
            models.Index(fields=['client', 'created_at'], name='order_client_created_idx'),
        ]

    def __str__(self):
        return f"Order {self.order_number} - {self.client}"

    @property
    def balance(self) -> Decimal:
        """Amount still owed. Non-positive means settled (or overpaid)."""
        return self.total_amount - self.paid_amount
