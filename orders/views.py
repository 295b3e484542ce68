"""Orders API views.

The update endpoint is the entry point into the order lifecycle; all state
changes go through :mod:`orders.lifecycle`.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsWorkshopOwner
from finance.reconciler import recompute_paid_amount

from . import lifecycle
from .models import Order, OrderCollection
from .serializers import (
    OrderCollectionSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    OrderUpdateSerializer,
)


class OrderViewSet(viewsets.ModelViewSet):
    """Order API endpoints for the authenticated workshop.

    Orders belonging to another workshop are indistinguishable from missing
    ones (404).
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, IsWorkshopOwner]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'client', 'collection', 'garment_type']
    search_fields = ['order_number', 'client__name']
    ordering_fields = ['created_at', 'deadline', 'total_amount']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            Order.objects.filter(tailor=self.request.user)
            .select_related('client', 'collection')
        )

    def create(self, request, *args, **kwargs):
        payload = OrderCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)

        order = lifecycle.create_order(
            tailor=request.user,
            actor=request.user,
            client_id=data.pop('client'),
            collection_id=data.pop('collection', None),
            labor_cost=data.pop('labor_cost'),
            material_cost=data.pop('material_cost', None),
            **data,
        )
        return Response(self.get_serializer(order).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        order = self.get_object()
        payload = OrderUpdateSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)

        order = lifecycle.update_order(
            order.pk,
            tailor=request.user,
            actor=request.user,
            status=data.pop('status', None),
            version=data.pop('version', None),
            **data,
        )
        return Response(self.get_serializer(order).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        order = self.get_object()
        lifecycle.delete_order(order.pk, tailor=request.user, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'], url_path='paid-amount-audit')
    def paid_amount_audit(self, request, pk=None):
        """Compare the running ``paid_amount`` with the sum of completed payments."""
        order = self.get_object()
        recomputed = recompute_paid_amount(order.pk)
        return Response({
            'order': order.pk,
            'paid_amount': order.paid_amount,
            'recomputed_paid_amount': recomputed,
            'drift': order.paid_amount - recomputed,
        })


class OrderCollectionViewSet(mixins.CreateModelMixin,
                             mixins.ListModelMixin,
                             mixins.RetrieveModelMixin,
                             mixins.UpdateModelMixin,
                             viewsets.GenericViewSet):
    """Collections of orders. Counters are read-only and move with their orders."""

    serializer_class = OrderCollectionSerializer
    filter_backends = [filters.OrderingFilter]
    ordering = ['-created_at']

    def get_queryset(self):
        return OrderCollection.objects.filter(tailor=self.request.user)

    def perform_create(self, serializer):
        serializer.save(tailor=self.request.user)
