from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class PickupOrderQuerySet(models.QuerySet):

    def live(self):
        return self.filter(status__in=PickupOrder.LIVE_STATUSES)

    def overdue(self, now=None):
        """Live orders whose pickup window has passed."""
        return self.live().filter(expires_at__lt=now or timezone.now())

    def with_effective_status(self, status, now=None):
        """
        Filter by status with expiry applied: live orders past ``expires_at``
        count as expired rather than as their stored status.
        """
        now = now or timezone.now()
        if status == PickupOrder.Status.EXPIRED:
            return self.filter(
                Q(status=PickupOrder.Status.EXPIRED) |
                Q(status__in=PickupOrder.LIVE_STATUSES, expires_at__lt=now)
            )
        if status in PickupOrder.LIVE_STATUSES:
            return self.filter(status=status, expires_at__gte=now)
        return self.filter(status=status)


class PickupOrder(models.Model):
    """
    Customer order collected at a store counter.

    The status only moves along ``TRANSITIONS``; ``picked_up``, ``cancelled``
    and ``expired`` are terminal. Expiry is a predicate on ``expires_at``
    and may be ahead of the stored status until the order is touched again
    or the periodic sweep runs.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PREPARING = 'preparing', 'Preparing'
        READY = 'ready', 'Ready'
        PICKED_UP = 'picked_up', 'Picked Up'
        CANCELLED = 'cancelled', 'Cancelled'
        EXPIRED = 'expired', 'Expired'

    LIVE_STATUSES = (Status.PENDING, Status.PREPARING, Status.READY)
    TERMINAL_STATUSES = (Status.PICKED_UP, Status.CANCELLED, Status.EXPIRED)
    # statuses that still hold a seat in their scheduled slot
    SLOT_HOLDING_STATUSES = (Status.PENDING, Status.PREPARING, Status.READY, Status.EXPIRED)

    TRANSITIONS = {
        'pending': {'preparing', 'ready', 'cancelled', 'expired'},
        'preparing': {'ready', 'cancelled', 'expired'},
        'ready': {'picked_up', 'cancelled', 'expired'},
        'picked_up': set(),
        'cancelled': set(),
        'expired': set(),
    }

    id = models.CharField(max_length=64, primary_key=True, editable=False)
    pickup_code = models.CharField(max_length=16, db_index=True, editable=False)
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='pickup_orders')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='pickup_orders'
    )

    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=30)
    customer_email = models.EmailField()
    customer_id_document = models.CharField(max_length=64, blank=True, null=True)

    scheduled_time = models.DateTimeField(blank=True, null=True)
    preparation_time_minutes = models.PositiveIntegerField()
    actual_ready_time = models.DateTimeField(blank=True, null=True)
    picked_up_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(blank=True, null=True)
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    order_received_notified = models.BooleanField(default=False)
    preparing_notified = models.BooleanField(default=False)
    ready_notified = models.BooleanField(default=False)
    reminder_sent = models.BooleanField(default=False)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()
    expires_at = models.DateTimeField()

    objects = PickupOrderQuerySet.as_manager()

    class Meta:
        db_table = 'pickup_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store', 'scheduled_time'], name='pickup_store_slot_idx'),
            models.Index(fields=['user', '-created_at'], name='pickup_user_created_idx'),
            models.Index(fields=['status'], name='pickup_status_idx'),
            models.Index(fields=['expires_at'], name='pickup_expires_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['pickup_code'],
                condition=Q(status__in=['pending', 'preparing', 'ready']),
                name='unique_live_pickup_code'
            ),
            models.CheckConstraint(
                condition=Q(expires_at__gt=models.F('created_at')),
                name='pickup_expires_after_creation'
            ),
        ]

    def __str__(self):
        return f"{self.id} [{self.pickup_code}] - {self.status}"

    @property
    def is_live(self):
        return self.status in self.LIVE_STATUSES

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def is_expired(self, now=None):
        """Past ``expires_at`` (or already stored as expired)."""
        if self.status == self.Status.EXPIRED:
            return True
        if not self.is_live:
            return False
        return (now or timezone.now()) > self.expires_at

    def effective_status(self, now=None):
        if self.is_expired(now):
            return self.Status.EXPIRED
        return self.status

    def can_transition_to(self, status):
        return status in self.TRANSITIONS[self.status]

    @property
    def notifications_sent(self):
        return {
            'order_received': self.order_received_notified,
            'preparing': self.preparing_notified,
            'ready': self.ready_notified,
            'reminder_sent': self.reminder_sent,
        }

    @staticmethod
    def expiry_for(created_at):
        hours = getattr(settings, 'PICKUP_ORDER_TTL_HOURS', 24)
        return created_at + timedelta(hours=hours)


class PickupOrderItem(models.Model):
    """Line item supplied by the cart; prices are trusted as given."""

    order = models.ForeignKey(PickupOrder, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    product_id = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    notes = models.CharField(max_length=255, blank=True, null=True)

    class Meta:
        db_table = 'pickup_order_items'
        ordering = ['order', 'position']

    def __str__(self):
        return f"{self.order_id} - {self.product_id} x {self.quantity}"
