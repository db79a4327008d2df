"""
Tests for pickup notifications: lifecycle dispatch, write-once flags, reminders and the API.
"""
from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.utils import timezone
from rest_framework import status

from notifications.models import Notification
from notifications.tasks import orders_due_for_reminder, send_pickup_reminders
from notifications.utils import mark_flag_sent, notify_pickup_event, send_sms_notification
from pickup import ledger
from pickup.exceptions import OrderExpired
from pickup.models import PickupOrder


def notification_types(user):
    return list(
        Notification.objects.filter(user=user).order_by('id').values_list('type', flat=True)
    )


# ============== Dispatch Tests ==============

@pytest.mark.django_db
class TestPickupNotifications:
    """Notifications follow the order lifecycle"""

    def test_order_received(self, pickup_order, customer_user, mailoutbox):
        pickup_order.refresh_from_db()

        assert notification_types(customer_user) == [Notification.Type.ORDER_RECEIVED]
        assert pickup_order.order_received_notified
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['ana@example.com']
        assert mailoutbox[0].subject == 'Pickup Order Received'

    def test_received_notification_hides_code(self, pickup_order, customer_user):
        notification = Notification.objects.get(user=customer_user)

        assert notification.data['order_id'] == pickup_order.pk
        assert notification.data['store_code'] == 'store_001'
        assert notification.data['pickup_code'] is None

    def test_ready_notification_carries_code(self, ready_order, customer_user, mailoutbox):
        notification = Notification.objects.get(user=customer_user, type=Notification.Type.PICKUP_READY)

        assert notification.data['pickup_code'] == ready_order.pickup_code
        assert ready_order.pickup_code in notification.message
        assert ready_order.pickup_code in mailoutbox[-1].body

    def test_ready_without_preparing(self, ready_order):
        ready_order.refresh_from_db()

        assert ready_order.order_received_notified
        assert ready_order.ready_notified
        assert not ready_order.preparing_notified
        assert not ready_order.reminder_sent

    def test_full_lifecycle(self, pickup_order, customer_user):
        ledger.start_preparing(pickup_order.pk)
        ledger.mark_ready(pickup_order.pk)
        ledger.mark_picked_up(pickup_order.pk)

        assert notification_types(customer_user) == [
            Notification.Type.ORDER_RECEIVED,
            Notification.Type.PICKUP_PREPARING,
            Notification.Type.PICKUP_READY,
        ]

    def test_cancelled(self, pickup_order, customer_user):
        ledger.cancel_order(pickup_order.pk)
        ledger.cancel_order(pickup_order.pk)

        assert notification_types(customer_user).count(Notification.Type.PICKUP_CANCELLED) == 1

    def test_expired(self, create_pickup_order, customer_user):
        order = create_pickup_order(now=timezone.now() - timedelta(hours=30))

        with pytest.raises(OrderExpired):
            ledger.mark_ready(order.pk)

        assert Notification.Type.PICKUP_EXPIRED in notification_types(customer_user)

    def test_expired_by_periodic_sweep(self, create_pickup_order, customer_user, customer2_user):
        earlier = timezone.now() - timedelta(hours=30)
        first = create_pickup_order(now=earlier)
        second = create_pickup_order(now=earlier, user=customer2_user)
        create_pickup_order()

        assert ledger.expire_overdue_orders() == 2

        expired = Notification.objects.filter(type=Notification.Type.PICKUP_EXPIRED)
        assert expired.count() == 2
        assert {n.order_id for n in expired} == {first.pk, second.pk}
        assert notification_types(customer2_user)[-1] == Notification.Type.PICKUP_EXPIRED

    def test_failed_insert_leaves_flag_unset(self, create_pickup_order, customer_user, monkeypatch):
        monkeypatch.setattr(
            'notifications.utils.create_notification',
            mock.Mock(side_effect=DatabaseError('notifications table unavailable'))
        )

        order = create_pickup_order()

        assert not order.order_received_notified
        order.refresh_from_db()
        assert order.status == PickupOrder.Status.PENDING
        assert not order.order_received_notified
        assert not Notification.objects.filter(user=customer_user).exists()

        monkeypatch.undo()
        assert notify_pickup_event(order, 'pending') is not None
        order.refresh_from_db()
        assert order.order_received_notified

    def test_failed_insert_does_not_fail_the_request(self, customer_client, store, monkeypatch):
        monkeypatch.setattr(
            'notifications.utils.create_notification',
            mock.Mock(side_effect=DatabaseError('notifications table unavailable'))
        )
        payload = {
            'store': 'store_001',
            'items': [{'product_id': 'prod_1', 'quantity': 1, 'price': '10.00'}],
            'customer_info': {'name': 'Ana García', 'phone': '5512345678', 'email': 'ana@example.com'},
            'total': '10.00',
        }

        response = customer_client.post('/api/pickup/orders/', payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert PickupOrder.objects.filter(pk=response.data['id']).exists()

    def test_sms_disabled_by_default(self):
        with mock.patch('requests.post') as post:
            assert send_sms_notification('5512345678', 'hola') is False
        post.assert_not_called()

    def test_sms_sent_when_ready(self, pickup_order, settings):
        settings.PICKUP_SMS_ENABLED = True
        response = mock.Mock()
        response.json.return_value = {'success': True}

        with mock.patch('requests.post', return_value=response) as post:
            ledger.mark_ready(pickup_order.pk)

        post.assert_called_once()
        assert post.call_args.kwargs['data']['phone'] == '5512345678'
        assert pickup_order.pickup_code in post.call_args.kwargs['data']['message']

    def test_sms_failure_is_not_fatal(self, settings):
        settings.PICKUP_SMS_ENABLED = True
        response = mock.Mock()
        response.json.return_value = {'success': False, 'error': 'Out of quota'}

        with mock.patch('requests.post', return_value=response):
            assert send_sms_notification('5512345678', 'hola') is False


# ============== Flag Tests ==============

@pytest.mark.django_db
class TestNotificationFlags:
    """Flags are written once"""

    def test_event_fires_once(self, ready_order, customer_user):
        assert notify_pickup_event(ready_order, 'ready') is None

        assert notification_types(customer_user).count(Notification.Type.PICKUP_READY) == 1

    def test_stale_instance_cannot_resend(self, pickup_order):
        stale = PickupOrder.objects.get(pk=pickup_order.pk)
        fresh = PickupOrder.objects.get(pk=pickup_order.pk)

        assert mark_flag_sent(fresh, 'reminder_sent')
        assert not stale.reminder_sent
        assert not mark_flag_sent(stale, 'reminder_sent')
        assert stale.reminder_sent


# ============== Reminder Tests ==============

@pytest.mark.django_db
class TestPickupReminders:
    """Reminders for orders waiting at the counter"""

    def test_due_orders(self, create_pickup_order):
        waiting = create_pickup_order()
        ledger.mark_ready(waiting.pk, now=timezone.now() - timedelta(hours=3))
        fresh = create_pickup_order()
        ledger.mark_ready(fresh.pk)
        create_pickup_order()

        assert list(orders_due_for_reminder()) == [waiting]

    def test_send_reminders_once(self, create_pickup_order, customer_user, mailoutbox):
        order = create_pickup_order()
        ledger.mark_ready(order.pk, now=timezone.now() - timedelta(hours=3))

        assert send_pickup_reminders() == 1
        assert send_pickup_reminders() == 0

        order.refresh_from_db()
        assert order.reminder_sent
        assert notification_types(customer_user).count(Notification.Type.PICKUP_REMINDER) == 1
        assert mailoutbox[-1].subject == 'Your Order Is Waiting'

    def test_expired_orders_not_reminded(self, create_pickup_order):
        order = create_pickup_order(now=timezone.now() - timedelta(hours=30))
        PickupOrder.objects.filter(pk=order.pk).update(
            status=PickupOrder.Status.READY,
            actual_ready_time=timezone.now() - timedelta(hours=29),
        )

        assert send_pickup_reminders() == 0


# ============== Notification API Tests ==============

@pytest.mark.django_db
class TestNotificationAPI:
    """Notification endpoints"""

    def test_list_own_notifications(self, customer_client, customer2_client, pickup_order):
        response = customer_client.get('/api/notifications/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        result = response.data['results'][0]
        assert result['type'] == Notification.Type.ORDER_RECEIVED
        assert result['order'] == pickup_order.pk
        assert result['store'] == 'store_001'

        response = customer2_client.get('/api/notifications/')
        assert response.data['count'] == 0

    def test_filter_by_type(self, customer_client, ready_order):
        response = customer_client.get('/api/notifications/', {'type': 'PICKUP_READY'})

        assert response.data['count'] == 1

    def test_filter_by_order_and_store(self, customer_client, create_pickup_order, store2):
        first = create_pickup_order()
        ledger.mark_ready(first.pk)
        create_pickup_order(store_id='store_002')

        response = customer_client.get('/api/notifications/', {'order': first.pk})
        assert response.data['count'] == 2
        assert {n['order'] for n in response.data['results']} == {first.pk}

        response = customer_client.get('/api/notifications/', {'store': 'store_002'})
        assert response.data['count'] == 1
        assert response.data['results'][0]['store'] == 'store_002'

    def test_filter_unread(self, customer_client, ready_order, customer_user):
        Notification.objects.filter(user=customer_user, type=Notification.Type.ORDER_RECEIVED).update(is_read=True)

        response = customer_client.get('/api/notifications/', {'is_read': 'false'})

        assert response.data['count'] == 1
        assert response.data['results'][0]['type'] == Notification.Type.PICKUP_READY

    def test_unread_count_and_mark_read(self, customer_client, ready_order, customer_user):
        response = customer_client.get('/api/notifications/unread-count/')
        assert response.data['unread_count'] == 2

        notification = Notification.objects.filter(user=customer_user).first()
        response = customer_client.patch(f'/api/notifications/{notification.pk}/read/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_read'] is True

        response = customer_client.get('/api/notifications/unread-count/')
        assert response.data['unread_count'] == 1

    def test_cannot_read_other_users_notifications(self, customer2_client, pickup_order, customer_user):
        notification = Notification.objects.get(user=customer_user)

        response = customer2_client.patch(f'/api/notifications/{notification.pk}/read/')

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestOrderNotificationHistory:
    """Lifecycle history of one pickup order"""

    def test_owner_sees_history_in_order(self, customer_client, pickup_order):
        ledger.start_preparing(pickup_order.pk)
        ledger.mark_ready(pickup_order.pk)

        response = customer_client.get(f'/api/notifications/orders/{pickup_order.pk}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'ready'
        assert [n['type'] for n in response.data['notifications']] == [
            Notification.Type.ORDER_RECEIVED,
            Notification.Type.PICKUP_PREPARING,
            Notification.Type.PICKUP_READY,
        ]

    def test_only_that_orders_notifications(self, customer_client, create_pickup_order):
        first = create_pickup_order()
        create_pickup_order()

        response = customer_client.get(f'/api/notifications/orders/{first.pk}/')

        assert len(response.data['notifications']) == 1
        assert response.data['notifications'][0]['order'] == first.pk

    def test_store_staff_sees_history(self, staff_client, ready_order):
        response = staff_client.get(f'/api/notifications/orders/{ready_order.pk}/')

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['notifications']) == 2

    def test_other_customer_and_other_store_forbidden(self, customer2_client, staff2_client, pickup_order):
        url = f'/api/notifications/orders/{pickup_order.pk}/'

        assert customer2_client.get(url).status_code == status.HTTP_403_FORBIDDEN
        assert staff2_client.get(url).status_code == status.HTTP_403_FORBIDDEN

    def test_overdue_order_reported_expired(self, customer_client, create_pickup_order):
        order = create_pickup_order(now=timezone.now() - timedelta(hours=30))

        response = customer_client.get(f'/api/notifications/orders/{order.pk}/')

        assert response.data['status'] == 'expired'

    def test_unknown_order(self, customer_client):
        response = customer_client.get('/api/notifications/orders/pickup_missing/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
