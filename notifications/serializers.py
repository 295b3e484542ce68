"""DRF serializers for notifications and audit entries."""

from rest_framework import serializers

from .models import AuditLog, Notification


class NotificationSerializer(serializers.ModelSerializer):
    kind_display = serializers.CharField(source='get_kind_display', read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'kind', 'kind_display', 'title', 'message', 'recipient', 'data',
            'sms_requested', 'email_requested', 'is_read', 'read_at', 'created_at',
        ]
        read_only_fields = fields


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ['id', 'action', 'resource', 'resource_id', 'details', 'created_at']
        read_only_fields = fields
