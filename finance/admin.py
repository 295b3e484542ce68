"""Django admin configuration for payments."""

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Payments are financial records: viewable, never edited or deleted here."""

    list_display = ('payment_number', 'get_client', 'get_order', 'amount', 'method', 'status', 'paid_at')
    list_filter = ('status', 'method', 'paid_at')
    search_fields = ('payment_number', 'transaction_id', 'client__name', 'order__order_number')
    date_hierarchy = 'paid_at'

    def get_client(self, obj):
        return obj.client.name
    get_client.short_description = 'Client'

    def get_order(self, obj):
        return obj.order.order_number if obj.order_id else '-'
    get_order.short_description = 'Order'

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False
