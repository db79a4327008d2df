"""
Signals for notifications app.
Listens for pickup lifecycle events and creates notifications.
"""
import logging

from django.db import DatabaseError
from django.dispatch import receiver

from pickup.signals import pickup_status_changed
from .utils import PICKUP_EVENTS, notify_pickup_event

logger = logging.getLogger(__name__)


@receiver(pickup_status_changed)
def dispatch_pickup_notification(sender, order, previous, status, **kwargs):
    """Notify the customer when their pickup order changes status."""
    if status == 'picked_up' or status not in PICKUP_EVENTS:
        return
    # the order change is already committed
    try:
        notify_pickup_event(order, status)
    except DatabaseError:
        logger.exception(f"Could not record '{status}' notification for pickup order {order.pk}")
