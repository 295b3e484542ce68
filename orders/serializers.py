"""DRF serializers for orders APIs."""

from decimal import Decimal

from rest_framework import serializers

from .models import GarmentType, Order, OrderCollection, OrderStatus

_MONEY = dict(max_digits=12, decimal_places=2, min_value=Decimal('0'))


class OrderSerializer(serializers.ModelSerializer):
    """Read representation of an order with its derived balance."""

    client_name = serializers.ReadOnlyField(source='client.name')
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    collection_name = serializers.ReadOnlyField(source='collection.name')
    balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'client',
            'client_name',
            'collection',
            'collection_name',
            'status',
            'status_display',
            'garment_type',
            'garment_description',
            'style_notes',
            'quantity',
            'progress_notes',
            'material_cost',
            'labor_cost',
            'total_amount',
            'paid_amount',
            'balance',
            'deadline',
            'started_at',
            'completed_at',
            'version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    """Input for a new order. Totals are always computed server-side."""

    client = serializers.IntegerField()
    collection = serializers.IntegerField(required=False, allow_null=True)
    garment_type = serializers.ChoiceField(choices=GarmentType.choices, default=GarmentType.OTHER)
    garment_description = serializers.CharField(required=False, allow_blank=True)
    style_notes = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    labor_cost = serializers.DecimalField(**_MONEY)
    material_cost = serializers.DecimalField(required=False, allow_null=True, **_MONEY)
    deadline = serializers.DateField(required=False, allow_null=True)


class OrderUpdateSerializer(serializers.Serializer):
    """Input for an order update; every field is optional.

    ``version`` is the version the caller last read. When supplied, a stale
    value is rejected instead of overwriting a concurrent change.
    """

    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    garment_type = serializers.ChoiceField(choices=GarmentType.choices, required=False)
    garment_description = serializers.CharField(required=False, allow_blank=True)
    style_notes = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False)
    progress_notes = serializers.CharField(required=False, allow_blank=True)
    labor_cost = serializers.DecimalField(required=False, **_MONEY)
    material_cost = serializers.DecimalField(required=False, allow_null=True, **_MONEY)
    deadline = serializers.DateField(required=False, allow_null=True)
    version = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        if 'total_amount' in self.initial_data:
            raise serializers.ValidationError({'total_amount': 'Total is derived from labor and material costs.'})
        return attrs


class OrderCollectionSerializer(serializers.ModelSerializer):
    """Collections with read-only progress counters."""

    class Meta:
        model = OrderCollection
        fields = ['id', 'name', 'description', 'total_orders', 'completed_orders', 'created_at']
        read_only_fields = ['id', 'total_orders', 'completed_orders', 'created_at']
