"""Django admin configuration for notifications and the audit trail."""

from django.contrib import admin

from .models import AuditLog, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'kind', 'sms_requested', 'email_requested', 'is_read', 'created_at')
    list_filter = ('kind', 'is_read', 'created_at')
    search_fields = ('title', 'message', 'user__username')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Append-only audit trail."""

    list_display = ('action', 'resource', 'resource_id', 'user', 'created_at')
    list_filter = ('action', 'resource')
    search_fields = ('resource_id', 'user__username')
    readonly_fields = ('user', 'action', 'resource', 'resource_id', 'details', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
