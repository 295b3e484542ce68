"""DRF serializers for finance APIs."""

from decimal import Decimal

from rest_framework import serializers

from .models import Payment, PaymentMethod, PaymentStatus


class PaymentSerializer(serializers.ModelSerializer):
    """Read representation of a payment.

    Exposes human-readable method/status labels and the order/invoice numbers.
    """

    client_name = serializers.ReadOnlyField(source='client.name')
    order_number = serializers.ReadOnlyField(source='order.order_number')
    invoice_number = serializers.ReadOnlyField(source='invoice.invoice_number')
    method_display = serializers.CharField(source='get_method_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id',
            'payment_number',
            'client',
            'client_name',
            'order',
            'order_number',
            'invoice',
            'invoice_number',
            'amount',
            'method',
            'method_display',
            'status',
            'status_display',
            'transaction_id',
            'mobile_number',
            'bank_name',
            'account_number',
            'notes',
            'paid_at',
            'created_at',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    client = serializers.IntegerField()
    order = serializers.IntegerField(required=False, allow_null=True)
    invoice = serializers.IntegerField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    status = serializers.ChoiceField(
        choices=[PaymentStatus.COMPLETED, PaymentStatus.PENDING], default=PaymentStatus.COMPLETED
    )
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    mobile_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    bank_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    account_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    paid_at = serializers.DateTimeField(required=False, allow_null=True)


class GatewayResultSerializer(serializers.Serializer):
    """A gateway's verdict for one charge reference."""

    reference = serializers.CharField(max_length=100)
    succeeded = serializers.BooleanField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    paid_at = serializers.DateTimeField(required=False, allow_null=True)
    order = serializers.IntegerField(required=False, allow_null=True)
