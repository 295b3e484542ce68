"""Database models for in-app notifications and the audit trail."""

from django.conf import settings
from django.db import models


class NotificationKind(models.TextChoices):
    ORDER_STATUS_CHANGED = 'ORDER_STATUS_CHANGED', 'Order status changed'
    INVOICE_SENT = 'INVOICE_SENT', 'Invoice sent'
    PAYMENT_RECEIVED = 'PAYMENT_RECEIVED', 'Payment received'


class Notification(models.Model):
    """A message about one of the workshop's clients.

    The row is the in-app copy; ``sms_requested``/``email_requested`` record
    which outbound channels were handed to the transports.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    kind = models.CharField(max_length=30, choices=NotificationKind.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    recipient = models.JSONField(default=dict, blank=True)
    data = models.JSONField(default=dict, blank=True)
    sms_requested = models.BooleanField(default=False)
    email_requested = models.BooleanField(default=False)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.get_kind_display()}: {self.title}"


class AuditLog(models.Model):
    """One accepted mutation: who did what to which resource."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs'
    )
    action = models.CharField(max_length=50)
    resource = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=64, blank=True, default='')
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['resource', 'resource_id'], name='audit_resource_idx'),
            models.Index(fields=['user', 'created_at'], name='audit_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.resource} {self.resource_id}"
