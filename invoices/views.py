"""Invoice API views.

Creation, updates and deletion go through :mod:`invoices.lifecycle`.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsWorkshopOwner

from . import lifecycle
from .models import Invoice
from .serializers import InvoiceCreateSerializer, InvoiceSerializer, InvoiceUpdateSerializer
from .tax import calculate_invoice, days_until_due, tax_breakdown_lines


class InvoiceViewSet(viewsets.ModelViewSet):
    """Invoice endpoints for the authenticated workshop."""

    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated, IsWorkshopOwner]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'client', 'order']
    search_fields = ['invoice_number', 'client__name']
    ordering_fields = ['created_at', 'due_date', 'total_amount']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            Invoice.objects.filter(tailor=self.request.user)
            .select_related('client', 'order')
            .prefetch_related('items')
        )

    def _fresh(self, invoice):
        return self.get_queryset().get(pk=invoice.pk)

    def create(self, request, *args, **kwargs):
        payload = InvoiceCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)

        invoice = lifecycle.create_invoice(
            tailor=request.user,
            actor=request.user,
            client_id=data.pop('client'),
            order_id=data.pop('order', None),
            items=data.pop('items'),
            **data,
        )
        return Response(self.get_serializer(self._fresh(invoice)).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        invoice = self.get_object()
        payload = InvoiceUpdateSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)

        invoice = lifecycle.update_invoice(
            invoice.pk,
            tailor=request.user,
            actor=request.user,
            status=data.pop('status', None),
            items=data.pop('items', None),
            version=data.pop('version', None),
            **data,
        )
        return Response(self.get_serializer(self._fresh(invoice)).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        invoice = self.get_object()
        lifecycle.delete_invoice(invoice.pk, tailor=request.user, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'], url_path='tax-breakdown')
    def tax_breakdown(self, request, pk=None):
        """Display lines for the invoice's tax breakdown plus due-date status."""
        invoice = self.get_object()
        calculation = calculate_invoice(invoice.items.all())
        return Response({
            'lines': tax_breakdown_lines(calculation),
            'days_until_due': days_until_due(invoice.due_date),
        })
