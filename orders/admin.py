"""Django admin configuration for orders and collections."""

from django.contrib import admin
from . import lifecycle
from .models import Order, OrderCollection
from finance.models import Payment


class PaymentInline(admin.TabularInline):
    """Payments recorded against the order (read-only)."""

    model = Payment
    extra = 0
    can_delete = False
    # Payments come from the payment endpoints, never from the order page.
    max_num = 0
    fields = ('payment_number', 'amount', 'method', 'status', 'transaction_id', 'paid_at')
    readonly_fields = fields


class OrderInline(admin.TabularInline):
    """Orders inside a collection (read-only)."""

    model = Order
    extra = 0
    can_delete = False
    max_num = 0
    fields = ('order_number', 'client', 'status', 'total_amount', 'paid_amount')
    readonly_fields = fields


@admin.register(OrderCollection)
class OrderCollectionAdmin(admin.ModelAdmin):
    """Admin configuration for order collections."""

    list_display = ('id', 'name', 'tailor', 'total_orders', 'completed_orders', 'created_at')
    search_fields = ('name', 'tailor__username')
    readonly_fields = ('total_orders', 'completed_orders')
    inlines = [OrderInline]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin configuration for orders.

    Money, status and membership fields are read-only here; edits go through
    the API so the lifecycle rules and side effects apply. Deletion is routed
    through the lifecycle so collection counters follow.
    """

    list_display = ('order_number', 'client', 'status', 'total_amount', 'paid_amount', 'deadline', 'created_at')
    list_filter = ('status', 'garment_type', 'created_at')
    search_fields = ('order_number', 'client__name', 'tailor__username')
    readonly_fields = (
        'order_number', 'tailor', 'client', 'collection', 'status',
        'labor_cost', 'material_cost', 'total_amount', 'paid_amount',
        'started_at', 'completed_at', 'version', 'created_at', 'updated_at',
    )
    inlines = [PaymentInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.payments.exists():
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        lifecycle.delete_order(obj.pk, tailor=obj.tailor, actor=request.user)

    def delete_queryset(self, request, queryset):
        for order in queryset.select_related('tailor'):
            lifecycle.delete_order(order.pk, tailor=order.tailor, actor=request.user)
