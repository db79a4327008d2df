"""
Celery tasks for pickup orders.
"""
from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def expire_overdue_orders(self):
    """
    Persist the expired status for live orders past their pickup window.
    """
    from pickup import ledger

    count = ledger.expire_overdue_orders()
    logger.info(f"Expiration sweep finished, {count} orders expired")
    return count
