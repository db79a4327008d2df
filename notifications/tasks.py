"""
Celery tasks for notifications app.
"""
from datetime import timedelta
from celery import shared_task
from django.utils import timezone
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


def orders_due_for_reminder(now=None):
    """Ready, unexpired orders that have been waiting past the reminder delay."""
    from pickup.models import PickupOrder

    now = now or timezone.now()
    waited = timedelta(minutes=settings.PICKUP_REMINDER_AFTER_MINUTES)
    return (
        PickupOrder.objects
        .with_effective_status(PickupOrder.Status.READY, now=now)
        .filter(reminder_sent=False, actual_ready_time__lte=now - waited)
        .select_related('store', 'user')
    )


@shared_task(bind=True)
def send_pickup_reminders(self):
    """
    Remind customers about ready orders they have not collected yet.
    """
    from notifications.utils import notify_pickup_event

    sent = 0
    for order in orders_due_for_reminder():
        if notify_pickup_event(order, 'reminder') is not None:
            sent += 1

    logger.info(f"Sent {sent} pickup reminders")
    return sent
