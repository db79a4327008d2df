"""
Utility functions for notifications.
"""
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.conf import settings
import logging

logger = logging.getLogger(__name__)

# Lifecycle event -> (notification type, write-once flag on the order)
PICKUP_EVENTS = {
    'pending': ('ORDER_RECEIVED', 'order_received_notified'),
    'preparing': ('PICKUP_PREPARING', 'preparing_notified'),
    'ready': ('PICKUP_READY', 'ready_notified'),
    'reminder': ('PICKUP_REMINDER', 'reminder_sent'),
    'cancelled': ('PICKUP_CANCELLED', None),
    'expired': ('PICKUP_EXPIRED', None),
}


def pickup_message(order, event):
    """Title and body for a pickup lifecycle notification."""
    store = order.store.name
    if event == 'pending':
        return (
            'Pickup Order Received',
            f'We received your order {order.pk} for pickup at {store}. '
            f'Estimated preparation time: {order.preparation_time_minutes} minutes.'
        )
    if event == 'preparing':
        return 'Preparing Your Order', f'{store} is preparing your order {order.pk}.'
    if event == 'ready':
        return (
            'Order Ready for Pickup',
            f'Your order {order.pk} is ready at {store}. Show pickup code {order.pickup_code} at the counter.'
        )
    if event == 'reminder':
        return (
            'Your Order Is Waiting',
            f'Your order {order.pk} is still waiting at {store}. '
            f'Pick it up before {order.expires_at:%Y-%m-%d %H:%M} with code {order.pickup_code}.'
        )
    if event == 'cancelled':
        return 'Pickup Order Cancelled', f'Your pickup order {order.pk} at {store} was cancelled.'
    return 'Pickup Order Expired', f'Your pickup order {order.pk} at {store} expired before it was collected.'


def send_pickup_email(order, subject, message):
    """Send a pickup notification e-mail to the order's customer."""
    if not order.customer_email:
        return

    body = f"""
Hello {order.customer_name},

{message}

Best regards,
{settings.PICKUP_STORE_BRAND} Team
"""

    try:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[order.customer_email],
            fail_silently=False,
        )
        logger.info(f"Pickup email '{subject}' sent to {order.customer_email}")
    except Exception as e:
        logger.error(f"Failed to send pickup email to {order.customer_email}: {e}")


def send_sms_notification(phone_number, message):
    """
    Send SMS notification through the TextBelt gateway.
    Disabled unless PICKUP_SMS_ENABLED is set.
    """
    if not phone_number or not settings.PICKUP_SMS_ENABLED:
        return False

    try:
        import requests

        response = requests.post(
            settings.PICKUP_SMS_GATEWAY_URL,
            data={
                'phone': phone_number,
                'message': message,
                'key': settings.PICKUP_SMS_GATEWAY_KEY,
            },
            timeout=10
        )

        result = response.json()
        if result.get('success'):
            logger.info(f"SMS sent to {phone_number}")
            return True
        else:
            logger.warning(f"TextBelt SMS failed: {result.get('error')}")
    except Exception as e:
        logger.error(f"Failed to send SMS to {phone_number}: {e}")

    return False


def create_notification(user, notification_type, title, message, data=None, order=None):
    """Helper function to create a notification."""
    from notifications.models import Notification

    return Notification.objects.create(
        user=user,
        order=order,
        type=notification_type,
        title=title,
        message=message,
        data=data
    )


def mark_flag_sent(order, flag):
    """
    Set a write-once notification flag.
    Returns False when another worker already set it.
    """
    from pickup.models import PickupOrder

    updated = PickupOrder.objects.filter(pk=order.pk, **{flag: False}).update(**{flag: True})
    setattr(order, flag, True)
    return bool(updated)


def notify_pickup_event(order, event):
    """
    Record a pickup lifecycle notification for the customer and deliver it.

    Events guarded by a flag fire at most once per order. The flag and the
    notification row are written in one transaction, so a failed insert
    leaves the flag unset.
    """
    notification_type, flag = PICKUP_EVENTS[event]
    title, message = pickup_message(order, event)

    try:
        with transaction.atomic():
            if flag and not mark_flag_sent(order, flag):
                return None
            notification = create_notification(
                user=order.user,
                notification_type=notification_type,
                title=title,
                message=message,
                order=order,
                data={
                    'order_id': order.pk,
                    'store_code': order.store.code,
                    'status': order.status,
                    'pickup_code': order.pickup_code if event in ('ready', 'reminder') else None,
                }
            )
    except DatabaseError:
        if flag:
            setattr(order, flag, False)
        raise

    send_pickup_email(order, title, message)
    if event == 'ready':
        send_sms_notification(order.customer_phone, message)

    return notification
