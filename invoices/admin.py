"""Django admin configuration for invoices."""

from django.contrib import admin, messages
from django.utils.html import format_html, format_html_join

from . import lifecycle
from .models import Invoice, InvoiceItem, InvoiceStatus


class InvoiceItemInline(admin.TabularInline):
    """Line items (read-only; totals are derived from them)."""

    model = InvoiceItem
    extra = 0
    can_delete = False
    max_num = 0
    readonly_fields = ('position', 'description', 'quantity', 'unit_price', 'amount')


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Admin configuration for invoices."""

    list_display = ('invoice_number', 'get_client', 'status', 'get_total', 'due_date', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('invoice_number', 'client__name', 'order__order_number')
    inlines = [InvoiceItemInline]

    readonly_fields = (
        'invoice_number', 'status', 'subtotal', 'vat_amount', 'nhil_amount', 'getfund_amount',
        'total_amount', 'paid_amount', 'sent_at', 'viewed_at', 'paid_at', 'version', 'get_tax_summary',
    )

    def get_client(self, obj):
        return obj.client.name
    get_client.short_description = 'Client'

    def get_total(self, obj):
        return f"GH₵ {obj.total_amount}"
    get_total.short_description = 'Total'

    # Render the levy breakdown safely (escape all dynamic values).
    def get_tax_summary(self, obj):
        rows = format_html_join(
            '',
            '<tr>'
            '<td style="padding: 6px; border: 1px solid #ddd;">{}</td>'
            '<td style="padding: 6px; border: 1px solid #ddd; text-align: right;">{}</td>'
            '</tr>',
            (
                ('Subtotal', obj.subtotal),
                ('VAT (15%)', obj.vat_amount),
                ('NHIL (2.5%)', obj.nhil_amount),
                ('GETFUND (2.5%)', obj.getfund_amount),
                ('Total', obj.total_amount),
            ),
        )
        return format_html(
            '<table style="border-collapse: collapse; border:1px solid #ccc;"><tbody>{}</tbody></table>',
            rows,
        )
    get_tax_summary.short_description = 'Tax summary'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and (obj.status != InvoiceStatus.DRAFT or obj.payments.exists()):
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        lifecycle.delete_invoice(obj.pk, tailor=obj.tailor, actor=request.user)

    def delete_queryset(self, request, queryset):
        drafts = queryset.filter(status=InvoiceStatus.DRAFT, payments__isnull=True).select_related('tailor')
        skipped = queryset.count() - drafts.count()
        for invoice in drafts:
            lifecycle.delete_invoice(invoice.pk, tailor=invoice.tailor, actor=request.user)
        if skipped:
            self.message_user(
                request,
                f"{skipped} invoice(s) kept: only drafts without payments can be deleted.",
                level=messages.WARNING,
                fail_silently=True,
            )
