from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Notification with the pickup order and store it belongs to."""

    type_display = serializers.CharField(source='get_type_display', read_only=True)
    store = serializers.CharField(source='order.store.code', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            'id', 'type', 'type_display', 'order', 'store', 'title', 'message',
            'data', 'is_read', 'created_at', 'read_at'
        ]
        read_only_fields = ['id', 'type', 'order', 'title', 'message', 'data', 'created_at']
