"""Payment API views.

Payments are append-only: they can be listed, recorded and settled, never
edited or deleted.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsWorkshopOwner

from . import reconciler
from .models import Payment
from .serializers import GatewayResultSerializer, PaymentCreateSerializer, PaymentSerializer


class PaymentViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """Payments of the authenticated workshop."""

    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsWorkshopOwner]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['client', 'order', 'invoice', 'method', 'status']
    search_fields = ['payment_number', 'transaction_id', 'client__name']
    ordering_fields = ['paid_at', 'amount']
    ordering = ['-paid_at']

    def get_queryset(self):
        return (
            Payment.objects.filter(tailor=self.request.user)
            .select_related('client', 'order', 'invoice')
        )

    def create(self, request, *args, **kwargs):
        payload = PaymentCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)

        payment = reconciler.record_payment(
            tailor=request.user,
            actor=request.user,
            client_id=data.pop('client'),
            order_id=data.pop('order', None),
            invoice_id=data.pop('invoice', None),
            amount=data.pop('amount'),
            method=data.pop('method'),
            status=data.pop('status'),
            transaction_id=data.pop('transaction_id', None),
            paid_at=data.pop('paid_at', None),
            **data,
        )
        return Response(self.get_serializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        payment = self.get_object()
        payment = reconciler.complete_payment(payment.pk, tailor=request.user, actor=request.user)
        return Response(self.get_serializer(payment).data)

    @action(detail=True, methods=['post'])
    def fail(self, request, pk=None):
        payment = self.get_object()
        payment = reconciler.fail_payment(payment.pk, tailor=request.user, actor=request.user)
        return Response(self.get_serializer(payment).data)

    @action(detail=False, methods=['post'], url_path='gateway-result', permission_classes=[IsAdminUser])
    def gateway_result(self, request):
        """Apply a verified gateway verdict. Staff only; signature checks happen upstream."""
        payload = GatewayResultSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        payment, applied = reconciler.apply_gateway_result(
            data['reference'],
            succeeded=data['succeeded'],
            amount=data.get('amount'),
            paid_at=data.get('paid_at'),
            order_id=data.get('order'),
            actor=request.user,
        )
        return Response({
            'applied': applied,
            'payment': PaymentSerializer(payment).data if payment is not None else None,
        })
