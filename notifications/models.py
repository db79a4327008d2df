from django.db import models
from django.conf import settings


class Notification(models.Model):
    """
    In-app notification model for user notifications.
    Pickup lifecycle events are recorded here for the order's customer and
    linked to the order, so an order's history can be read back.
    """

    class Type(models.TextChoices):
        ORDER_RECEIVED = 'ORDER_RECEIVED', 'Order Received'
        PICKUP_PREPARING = 'PICKUP_PREPARING', 'Pickup Preparing'
        PICKUP_READY = 'PICKUP_READY', 'Pickup Ready'
        PICKUP_REMINDER = 'PICKUP_REMINDER', 'Pickup Reminder'
        PICKUP_CANCELLED = 'PICKUP_CANCELLED', 'Pickup Cancelled'
        PICKUP_EXPIRED = 'PICKUP_EXPIRED', 'Pickup Expired'
        GENERAL = 'GENERAL', 'General'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    order = models.ForeignKey(
        'pickup.PickupOrder',
        on_delete=models.CASCADE,
        related_name='notifications',
        blank=True,
        null=True
    )
    type = models.CharField(
        max_length=30,
        choices=Type.choices,
        default=Type.GENERAL
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(
        blank=True,
        null=True,
        help_text='Optional JSON data for notification context'
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read', '-created_at'], name='notif_user_unread_idx'),
            models.Index(fields=['user', 'type'], name='notif_user_type_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.title}"

    def mark_as_read(self):
        """Mark notification as read."""
        from django.utils import timezone
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
