"""DRF serializers for invoice APIs."""

from decimal import Decimal

from rest_framework import serializers

from .models import Invoice, InvoiceItem, InvoiceStatus


class InvoiceItemSerializer(serializers.ModelSerializer):
    """Stored line item."""

    class Meta:
        model = InvoiceItem
        fields = ['position', 'description', 'quantity', 'unit_price', 'amount']
        read_only_fields = fields


class LineItemInputSerializer(serializers.Serializer):
    """Line item as submitted. ``amount`` is accepted but recomputed."""

    description = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class InvoiceSerializer(serializers.ModelSerializer):
    """Read representation of an invoice with items and derived balance."""

    items = InvoiceItemSerializer(many=True, read_only=True)
    client_name = serializers.ReadOnlyField(source='client.name')
    order_number = serializers.ReadOnlyField(source='order.order_number')
    balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id',
            'invoice_number',
            'client',
            'client_name',
            'order',
            'order_number',
            'status',
            'items',
            'subtotal',
            'vat_amount',
            'nhil_amount',
            'getfund_amount',
            'total_amount',
            'paid_amount',
            'balance',
            'notes',
            'terms_conditions',
            'due_date',
            'sent_at',
            'viewed_at',
            'paid_at',
            'version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    client = serializers.IntegerField()
    order = serializers.IntegerField(required=False, allow_null=True)
    items = LineItemInputSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms_conditions = serializers.CharField(required=False, allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class InvoiceUpdateSerializer(serializers.Serializer):
    """Input for an invoice update; ``version`` guards against stale writes."""

    status = serializers.ChoiceField(choices=InvoiceStatus.choices, required=False)
    items = LineItemInputSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms_conditions = serializers.CharField(required=False, allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    version = serializers.IntegerField(min_value=1, required=False)
