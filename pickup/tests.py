"""
Tests for the pickup ledger: creation, slots, lifecycle, expiry and code checks.
"""
import threading
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.db import IntegrityError, connection, connections, transaction
from django.utils import timezone
from rest_framework import status

from conftest import local_datetime
from pickup import ledger
from pickup.exceptions import (
    CapacityExceeded,
    InvalidPickupCode,
    InvalidTransition,
    OrderExpired,
    OrderNotFound,
    PickupError,
    SlotUnavailable,
    StoreNotFound,
    StoreUnavailable,
)
from pickup.models import PickupOrder
from pickup.slots import available_slots, check_slot, count_booked, slot_start
from stores.hours import weekday_name

Status = PickupOrder.Status


@pytest.fixture
def notify(monkeypatch):
    """Replace the notification dispatcher so flags stay untouched"""
    dispatcher = mock.Mock(return_value=None)
    monkeypatch.setattr('notifications.signals.notify_pickup_event', dispatcher)
    return dispatcher


def slot_of(slots, time):
    return next(slot for slot in slots if slot.time == time)


def fill_slot(create_pickup_order, scheduled_time, count):
    return [create_pickup_order(scheduled_time=scheduled_time) for _ in range(count)]


# ============== Estimate Tests ==============

@pytest.mark.django_db
class TestEstimateTime:

    @pytest.mark.parametrize('item_count,minutes', [
        (0, 30),
        (1, 30),
        (5, 30),
        (6, 32),
        (10, 40),
    ])
    def test_two_minutes_per_item_beyond_five(self, store, item_count, minutes):
        assert ledger.estimate_time('store_001', item_count) == minutes

    def test_capped_at_max_pickup_hours(self, store):
        store.estimated_pickup_minutes = 50
        store.max_pickup_hours = 1
        store.save()

        assert ledger.estimate_time(store, 20) == 60

    def test_unknown_store(self, db):
        with pytest.raises(StoreNotFound):
            ledger.estimate_time('store_404', 3)


# ============== Create Tests ==============

@pytest.mark.django_db
class TestCreateOrder:
    """Order creation"""

    def test_creates_pending_order(self, create_pickup_order, customer_user, notify):
        now = timezone.now()
        order = create_pickup_order(notes='Bolsa extra', now=now)

        assert order.status == Status.PENDING
        assert order.id.startswith('pickup_')
        assert order.user == customer_user
        assert order.store.code == 'store_001'
        assert order.customer_name == 'Ana García'
        assert order.total == Decimal('211.00')
        assert order.notes == 'Bolsa extra'
        assert order.scheduled_time is None
        assert order.created_at == now
        assert order.expires_at == now + timedelta(hours=24)

    def test_preparation_time_from_item_count(self, create_pickup_order, notify):
        items = [{'product_id': f'prod_{i}', 'quantity': 1, 'price': Decimal('10.00')} for i in range(6)]

        order = create_pickup_order(items=items)

        assert order.preparation_time_minutes == 32

    def test_pickup_code_format(self, pickup_order):
        assert len(pickup_order.pickup_code) == 8
        assert pickup_order.pickup_code.isalnum()
        assert pickup_order.pickup_code == pickup_order.pickup_code.upper()

    def test_items_keep_their_order(self, pickup_order):
        items = list(pickup_order.items.all())

        assert [item.product_id for item in items] == ['prod_1', 'prod_2']
        assert items[1].notes == 'sin cebolla'
        assert items[0].price == Decimal('45.50')

    def test_no_flags_set_by_the_ledger(self, create_pickup_order, notify):
        order = create_pickup_order()
        order.refresh_from_db()

        assert order.notifications_sent == {
            'order_received': False,
            'preparing': False,
            'ready': False,
            'reminder_sent': False,
        }

    def test_signals_order_received(self, create_pickup_order, notify):
        order = create_pickup_order()

        notify.assert_called_once_with(order, 'pending')

    def test_unknown_store(self, create_pickup_order):
        with pytest.raises(StoreNotFound):
            create_pickup_order(store_id='store_404')
        assert PickupOrder.objects.count() == 0

    def test_store_without_pickup(self, create_pickup_order, closed_store):
        with pytest.raises(StoreUnavailable):
            create_pickup_order(store_id='store_999')
        assert PickupOrder.objects.count() == 0


# ============== Pickup Code Tests ==============

@pytest.mark.django_db
class TestPickupCodes:
    """Pickup codes are unique among live orders"""

    def test_codes_unique_across_many_orders(self, create_pickup_order, notify):
        orders = [create_pickup_order() for _ in range(1000)]

        assert len({order.pickup_code for order in orders}) == 1000

    def test_collision_generates_another_code(self, create_pickup_order, monkeypatch, notify):
        generator = mock.Mock(side_effect=['AAAA0000', 'AAAA0000', 'BBBB1111'])
        monkeypatch.setattr('pickup.ledger.generate_pickup_code', generator)

        first = create_pickup_order()
        second = create_pickup_order()

        assert first.pickup_code == 'AAAA0000'
        assert second.pickup_code == 'BBBB1111'
        assert generator.call_count == 3

    def test_retired_code_can_be_reissued(self, create_pickup_order, monkeypatch, notify):
        monkeypatch.setattr('pickup.ledger.generate_pickup_code', mock.Mock(return_value='AAAA0000'))

        first = create_pickup_order()
        ledger.cancel_order(first.pk)
        second = create_pickup_order()

        assert second.pickup_code == 'AAAA0000'
        assert PickupOrder.objects.live().filter(pickup_code='AAAA0000').count() == 1

    def test_gives_up_after_max_attempts(self, create_pickup_order, monkeypatch, notify, settings):
        settings.PICKUP_CODE_MAX_ATTEMPTS = 3
        generator = mock.Mock(return_value='AAAA0000')
        monkeypatch.setattr('pickup.ledger.generate_pickup_code', generator)
        create_pickup_order()

        with pytest.raises(PickupError):
            create_pickup_order()
        assert generator.call_count == 4
        assert PickupOrder.objects.count() == 1

    def test_database_rejects_duplicate_live_code(self, pickup_order):
        duplicate = PickupOrder(
            id='pickup_duplicate',
            pickup_code=pickup_order.pickup_code,
            store=pickup_order.store,
            user=pickup_order.user,
            customer_name='Otro',
            customer_phone='5500000000',
            customer_email='otro@example.com',
            preparation_time_minutes=30,
            total=Decimal('1.00'),
            created_at=pickup_order.created_at,
            updated_at=pickup_order.created_at,
            expires_at=pickup_order.expires_at,
        )

        with pytest.raises(IntegrityError), transaction.atomic():
            duplicate.save(force_insert=True)


# ============== Slot Tests ==============

@pytest.mark.django_db
class TestSlots:
    """Hourly slot capacity"""

    def test_slots_cover_opening_hours(self, store, future_day):
        slots = available_slots('store_001', future_day)

        assert [slot.time for slot in slots] == [f'{hour:02d}:00' for hour in range(8, 22)]
        assert all(slot.available and slot.booked == 0 and slot.capacity == 10 for slot in slots)
        assert slots[0].start == local_datetime(future_day, 8)

    def test_closed_day_has_no_slots(self, store, future_day):
        store.opening_hours[weekday_name(future_day)] = {'open': '08:00', 'close': '22:00', 'closed': True}
        store.save()

        assert available_slots(store, future_day) == []

    def test_midnight_close(self, store, future_day):
        store.opening_hours[weekday_name(future_day)] = {'open': '20:00', 'close': '24:00'}

        slots = available_slots(store, future_day)

        assert [slot.time for slot in slots] == ['20:00', '21:00', '22:00', '23:00']

    def test_overnight_hours_have_no_slots(self, store, future_day):
        store.opening_hours[weekday_name(future_day)] = {'open': '22:00', 'close': '02:00'}

        assert available_slots(store, future_day) == []

    def test_started_slots_unavailable_today(self, store, future_day):
        now = local_datetime(future_day, 12, 30)

        slots = available_slots(store, future_day, now=now)

        assert not slot_of(slots, '08:00').available
        assert not slot_of(slots, '12:00').available
        assert slot_of(slots, '13:00').available

    def test_booked_counts_slot_orders(self, store, create_pickup_order, future_day, notify):
        create_pickup_order(scheduled_time=local_datetime(future_day, 10, 15))
        create_pickup_order(scheduled_time=local_datetime(future_day, 10, 45))
        create_pickup_order(scheduled_time=local_datetime(future_day, 11, 0))
        create_pickup_order()

        slots = available_slots('store_001', future_day)

        assert slot_of(slots, '10:00').booked == 2
        assert slot_of(slots, '11:00').booked == 1
        assert count_booked(store, local_datetime(future_day, 10)) == 2

    def test_full_slot_becomes_unavailable(self, create_pickup_order, future_day, notify):
        fill_slot(create_pickup_order, local_datetime(future_day, 10, 15), 10)

        slot = slot_of(available_slots('store_001', future_day), '10:00')

        assert slot.booked == 10
        assert not slot.available

    def test_create_rejected_when_full(self, create_pickup_order, future_day, notify):
        fill_slot(create_pickup_order, local_datetime(future_day, 10, 15), 10)

        with pytest.raises(CapacityExceeded):
            create_pickup_order(scheduled_time=local_datetime(future_day, 10, 50))
        assert PickupOrder.objects.count() == 10

    def test_cancel_frees_a_seat(self, create_pickup_order, future_day, notify):
        orders = fill_slot(create_pickup_order, local_datetime(future_day, 10, 15), 10)

        ledger.cancel_order(orders[0].pk)
        slot = slot_of(available_slots('store_001', future_day), '10:00')

        assert slot.booked == 9
        assert slot.available
        create_pickup_order(scheduled_time=local_datetime(future_day, 10, 30))

    def test_picked_up_orders_do_not_hold_seats(self, create_pickup_order, future_day, notify):
        order = create_pickup_order(scheduled_time=local_datetime(future_day, 10, 15))
        ledger.mark_ready(order.pk)
        ledger.mark_picked_up(order.pk)

        assert slot_of(available_slots('store_001', future_day), '10:00').booked == 0

    def test_expired_orders_hold_seats(self, create_pickup_order, future_day, notify):
        created = timezone.now() - timedelta(hours=25)
        create_pickup_order(scheduled_time=local_datetime(future_day, 10, 15), now=created)

        assert ledger.expire_overdue_orders() == 1
        assert slot_of(available_slots('store_001', future_day), '10:00').booked == 1

    def test_outside_opening_hours(self, create_pickup_order, future_day):
        with pytest.raises(SlotUnavailable):
            create_pickup_order(scheduled_time=local_datetime(future_day, 23, 15))

    def test_started_slot_rejected(self, store, future_day):
        with pytest.raises(SlotUnavailable) as exc_info:
            check_slot(store, local_datetime(future_day, 9, 30), now=local_datetime(future_day, 12))
        assert not isinstance(exc_info.value, CapacityExceeded)

    def test_past_day_rejected(self, create_pickup_order):
        last_week = timezone.localdate() - timedelta(days=7)

        with pytest.raises(SlotUnavailable):
            create_pickup_order(scheduled_time=local_datetime(last_week, 10))
        assert PickupOrder.objects.count() == 0

    def test_slot_on_earlier_day_rejected(self, store, future_day):
        next_day = future_day + timedelta(days=1)

        with pytest.raises(SlotUnavailable):
            check_slot(store, local_datetime(future_day, 21), now=local_datetime(next_day, 9))

    def test_cannot_reschedule_into_the_past(self, pickup_order):
        yesterday = timezone.localdate() - timedelta(days=1)

        with pytest.raises(SlotUnavailable):
            ledger.update_order(pickup_order.pk, scheduled_time=local_datetime(yesterday, 12))
        pickup_order.refresh_from_db()
        assert pickup_order.scheduled_time is None

    def test_slot_start(self, future_day):
        assert slot_start(local_datetime(future_day, 10, 59)) == local_datetime(future_day, 10)


# ============== Concurrency Tests ==============

def run_in_parallel(count, target):
    """Run ``target(index)`` in ``count`` threads started together; return results or errors"""
    barrier = threading.Barrier(count)
    results = []
    results_lock = threading.Lock()

    def worker(index):
        try:
            barrier.wait()
            outcome = target(index)
        except Exception as e:
            outcome = e
        finally:
            connections.close_all()
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    connection.vendor != 'postgresql',
    reason='SQLite ignores SELECT ... FOR UPDATE; run with POSTGRES_DB set'
)
class TestConcurrentBooking:
    """Parallel creates against one store"""

    def test_slot_never_overbooked(self, store, create_pickup_order, future_day):
        store.slot_capacity = 3
        store.save()
        scheduled_time = local_datetime(future_day, 10, 15)

        results = run_in_parallel(8, lambda index: create_pickup_order(scheduled_time=scheduled_time))

        created = [r for r in results if isinstance(r, PickupOrder)]
        rejected = [r for r in results if not isinstance(r, PickupOrder)]
        assert len(created) == 3
        assert len(rejected) == 5
        assert all(isinstance(error, CapacityExceeded) for error in rejected)
        assert count_booked(store, local_datetime(future_day, 10)) == 3

    def test_codes_unique_under_parallel_creates(self, store, create_pickup_order):
        results = run_in_parallel(20, lambda index: create_pickup_order())

        assert all(isinstance(r, PickupOrder) for r in results)
        codes = set(PickupOrder.objects.live().values_list('pickup_code', flat=True))
        assert len(codes) == 20


# ============== Lifecycle Tests ==============

@pytest.mark.django_db
class TestLifecycle:
    """Status transitions"""

    def test_full_lifecycle(self, pickup_order):
        now = timezone.now()

        order = ledger.start_preparing(pickup_order.pk, now=now)
        assert order.status == Status.PREPARING

        order = ledger.mark_ready(pickup_order.pk, now=now + timedelta(minutes=20))
        assert order.status == Status.READY
        assert order.actual_ready_time == now + timedelta(minutes=20)

        order = ledger.mark_picked_up(pickup_order.pk, now=now + timedelta(minutes=40))
        assert order.status == Status.PICKED_UP
        assert order.picked_up_at == now + timedelta(minutes=40)
        assert order.updated_at == now + timedelta(minutes=40)

    def test_ready_without_preparing_step(self, pickup_order):
        """Orders that need no preparation go from pending to the counter"""
        assert ledger.mark_ready(pickup_order.pk).status == Status.READY

    def test_transition_table_covers_every_status(self):
        assert set(PickupOrder.TRANSITIONS) == set(Status.values)
        assert PickupOrder.TRANSITIONS['pending'] == {'preparing', 'ready', 'cancelled', 'expired'}
        for terminal in PickupOrder.TERMINAL_STATUSES:
            assert PickupOrder.TRANSITIONS[terminal] == set()

    def test_cannot_pick_up_pending_order(self, pickup_order):
        with pytest.raises(InvalidTransition) as exc_info:
            ledger.mark_picked_up(pickup_order.pk)

        assert exc_info.value.current == Status.PENDING
        assert exc_info.value.target == Status.PICKED_UP
        pickup_order.refresh_from_db()
        assert pickup_order.status == Status.PENDING

    def test_ready_cannot_go_back_to_preparing(self, ready_order):
        with pytest.raises(InvalidTransition):
            ledger.start_preparing(ready_order.pk)

    def test_cannot_cancel_picked_up_order(self, ready_order):
        ledger.mark_picked_up(ready_order.pk)

        with pytest.raises(InvalidTransition):
            ledger.cancel_order(ready_order.pk)

    def test_cancel_ready_order(self, ready_order):
        order = ledger.cancel_order(ready_order.pk)

        assert order.status == Status.CANCELLED
        assert order.cancelled_at is not None

    def test_cancel_is_idempotent(self, pickup_order):
        first = ledger.cancel_order(pickup_order.pk)
        second = ledger.cancel_order(pickup_order.pk, now=timezone.now() + timedelta(hours=1))

        assert second.status == Status.CANCELLED
        assert second.cancelled_at == first.cancelled_at

    def test_cancelled_is_terminal(self, pickup_order):
        ledger.cancel_order(pickup_order.pk)

        with pytest.raises(InvalidTransition):
            ledger.update_order(pickup_order.pk, status=Status.PENDING)

    def test_unknown_order(self, db):
        with pytest.raises(OrderNotFound):
            ledger.mark_ready('pickup_missing')

    def test_update_notes(self, pickup_order):
        order = ledger.update_order(pickup_order.pk, notes='Recoge su hermana')

        assert order.notes == 'Recoge su hermana'
        assert order.status == Status.PENDING

    def test_update_rejects_other_fields(self, pickup_order):
        with pytest.raises(ValueError):
            ledger.update_order(pickup_order.pk, total=Decimal('0.00'))

    def test_reschedule_checks_capacity(self, create_pickup_order, future_day, notify):
        fill_slot(create_pickup_order, local_datetime(future_day, 11, 0), 10)
        order = create_pickup_order(scheduled_time=local_datetime(future_day, 10, 0))

        with pytest.raises(CapacityExceeded):
            ledger.update_order(order.pk, scheduled_time=local_datetime(future_day, 11, 30))

        order = ledger.update_order(order.pk, scheduled_time=local_datetime(future_day, 12, 30))
        assert order.scheduled_time == local_datetime(future_day, 12, 30)

    def test_reschedule_within_full_slot(self, create_pickup_order, future_day, notify):
        orders = fill_slot(create_pickup_order, local_datetime(future_day, 11, 0), 10)

        order = ledger.update_order(orders[0].pk, scheduled_time=local_datetime(future_day, 11, 45))

        assert order.scheduled_time == local_datetime(future_day, 11, 45)

    def test_cannot_reschedule_terminal_order(self, pickup_order, future_day):
        ledger.cancel_order(pickup_order.pk)

        with pytest.raises(InvalidTransition):
            ledger.update_order(pickup_order.pk, scheduled_time=local_datetime(future_day, 10))

    def test_mark_ready_leaves_notification_flags_alone(self, notify, create_pickup_order):
        order = ledger.mark_ready(create_pickup_order().pk)
        order.refresh_from_db()

        assert not order.order_received_notified
        assert not order.preparing_notified
        assert not order.ready_notified

    def test_status_change_signalled(self, pickup_order, notify):
        order = ledger.start_preparing(pickup_order.pk)

        notify.assert_called_once_with(order, 'preparing')

    def test_notes_change_not_signalled(self, pickup_order, notify):
        ledger.update_order(pickup_order.pk, notes='Sin bolsa')

        notify.assert_not_called()


# ============== Expiry Tests ==============

@pytest.mark.django_db
class TestExpiry:
    """Pickup windows"""

    @pytest.fixture
    def created(self):
        return timezone.now() - timedelta(hours=30)

    @pytest.fixture
    def old_order(self, create_pickup_order, created):
        return create_pickup_order(now=created)

    def test_expiry_predicate(self, pickup_order):
        created = pickup_order.created_at

        assert not pickup_order.is_expired(created + timedelta(hours=23))
        assert not pickup_order.is_expired(pickup_order.expires_at)
        assert pickup_order.is_expired(created + timedelta(hours=24, seconds=1))
        assert pickup_order.effective_status(created + timedelta(hours=25)) == Status.EXPIRED

    def test_terminal_orders_do_not_expire(self, pickup_order):
        order = ledger.cancel_order(pickup_order.pk)

        assert not order.is_expired(order.expires_at + timedelta(days=1))
        assert order.effective_status(order.expires_at + timedelta(days=1)) == Status.CANCELLED

    def test_transition_on_overdue_order_expires_it(self, old_order):
        with pytest.raises(OrderExpired):
            ledger.mark_ready(old_order.pk)

        old_order.refresh_from_db()
        assert old_order.status == Status.EXPIRED

    def test_cancel_overdue_order(self, old_order):
        with pytest.raises(OrderExpired):
            ledger.cancel_order(old_order.pk)

        with pytest.raises(InvalidTransition):
            ledger.cancel_order(old_order.pk)

    def test_orders_with_status_applies_expiry(self, old_order, pickup_order):
        expired = ledger.orders_with_status(Status.EXPIRED)
        pending = ledger.orders_with_status(Status.PENDING)

        assert list(expired) == [old_order]
        assert list(pending) == [pickup_order]

    def test_orders_with_unknown_status(self, db):
        with pytest.raises(ValueError):
            ledger.orders_with_status('lost')

    def test_expire_overdue_orders(self, old_order, pickup_order):
        assert ledger.expire_overdue_orders() == 1

        old_order.refresh_from_db()
        pickup_order.refresh_from_db()
        assert old_order.status == Status.EXPIRED
        assert pickup_order.status == Status.PENDING
        assert ledger.expire_overdue_orders() == 0

    def test_sweep_signals_each_expired_order(self, notify, old_order, pickup_order):
        ledger.expire_overdue_orders()

        expired_calls = [call for call in notify.call_args_list if call.args[1] == 'expired']
        assert expired_calls == [mock.call(old_order, 'expired')]

    def test_expire_task(self, old_order):
        from pickup.tasks import expire_overdue_orders

        assert expire_overdue_orders() == 1


# ============== Verify Code Tests ==============

@pytest.mark.django_db
class TestVerifyCode:
    """Counter code checks"""

    def test_ready_order_verifies(self, ready_order):
        assert ledger.verify_code(ready_order.pickup_code) == ready_order

    def test_case_and_whitespace_insensitive(self, ready_order):
        code = f'  {ready_order.pickup_code.lower()} '

        assert ledger.verify_code(code) == ready_order

    def test_pending_order_does_not_verify(self, pickup_order):
        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(pickup_order.pickup_code)

    def test_preparing_order_does_not_verify(self, pickup_order):
        ledger.start_preparing(pickup_order.pk)

        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(pickup_order.pickup_code)

    def test_picked_up_order_does_not_verify(self, ready_order):
        ledger.mark_picked_up(ready_order.pk)

        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(ready_order.pickup_code)

    def test_cancelled_order_does_not_verify(self, ready_order):
        ledger.cancel_order(ready_order.pk)

        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(ready_order.pickup_code)

    def test_overdue_ready_order_does_not_verify(self, ready_order):
        later = ready_order.expires_at + timedelta(seconds=1)

        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(ready_order.pickup_code, now=later)

    def test_overdue_ready_order_reported_to_staff(self, ready_order):
        later = ready_order.expires_at + timedelta(seconds=1)

        with pytest.raises(OrderExpired):
            ledger.verify_code(ready_order.pickup_code, report_expired=True, now=later)

    def test_unknown_and_empty_codes(self, ready_order):
        with pytest.raises(InvalidPickupCode):
            ledger.verify_code('ZZZZ9999')
        with pytest.raises(InvalidPickupCode):
            ledger.verify_code('   ')


# ============== Scenario Tests ==============

@pytest.mark.django_db
class TestPickupScenario:

    def test_order_to_counter(self, create_pickup_order, future_day):
        items = [{'product_id': f'prod_{i}', 'quantity': 1, 'price': Decimal('20.00')} for i in range(6)]
        order = create_pickup_order(
            items=items,
            total=Decimal('120.00'),
            scheduled_time=local_datetime(future_day, 18, 10)
        )
        assert order.preparation_time_minutes == 32
        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(order.pickup_code)

        ledger.mark_ready(order.pk)
        assert ledger.verify_code(order.pickup_code).pk == order.pk
        assert slot_of(available_slots('store_001', future_day), '18:00').booked == 1

        ledger.mark_picked_up(order.pk)
        with pytest.raises(InvalidPickupCode):
            ledger.verify_code(order.pickup_code)
        assert slot_of(available_slots('store_001', future_day), '18:00').booked == 0

    def test_orders_for_user_and_store(self, create_pickup_order, customer2_user, store2):
        mine = create_pickup_order()
        theirs = create_pickup_order(user=customer2_user, store_id='store_002')

        assert list(ledger.orders_for_user(customer2_user)) == [theirs]
        assert list(ledger.orders_for_store('store_001')) == [mine]
        with pytest.raises(StoreNotFound):
            ledger.orders_for_store('store_404')


# ============== API Tests ==============

@pytest.fixture
def order_payload():
    return {
        'store': 'store_001',
        'items': [
            {'product_id': 'prod_1', 'quantity': 2, 'price': '45.50'},
            {'product_id': 'prod_2', 'quantity': 1, 'price': '120.00'},
        ],
        'customer_info': {
            'name': 'Ana García',
            'phone': '5512345678',
            'email': 'ana@example.com',
        },
        'total': '211.00',
    }


@pytest.mark.django_db
class TestPickupOrderAPI:
    """Pickup order endpoints"""

    def test_create_order(self, customer_client, customer_user, store, order_payload):
        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'pending'
        assert response.data['store'] == 'store_001'
        assert response.data['user'] == customer_user.pk
        assert response.data['preparation_time_minutes'] == 30
        assert response.data['pickup_code'] is None
        assert len(response.data['items']) == 2
        assert PickupOrder.objects.get(pk=response.data['id']).pickup_code

    def test_create_requires_items(self, customer_client, store, order_payload):
        order_payload['items'] = []

        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_unknown_store(self, customer_client, store, order_payload):
        order_payload['store'] = 'store_404'

        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_in_full_slot(self, customer_client, create_pickup_order, future_day, order_payload):
        fill_slot(create_pickup_order, local_datetime(future_day, 10, 15), 10)
        order_payload['scheduled_time'] = local_datetime(future_day, 10, 40).isoformat()

        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'fully booked' in response.data['error']

    def test_create_outside_hours(self, customer_client, store, future_day, order_payload):
        order_payload['scheduled_time'] = local_datetime(future_day, 6, 0).isoformat()

        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_create_in_past_slot(self, customer_client, store, order_payload):
        last_week = timezone.localdate() - timedelta(days=7)
        order_payload['scheduled_time'] = local_datetime(last_week, 10, 0).isoformat()

        response = customer_client.post('/api/pickup/orders/', order_payload, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert not PickupOrder.objects.exists()

    def test_customer_lists_own_orders(self, customer_client, create_pickup_order, customer2_user):
        mine = create_pickup_order()
        create_pickup_order(user=customer2_user)

        response = customer_client.get('/api/pickup/orders/')

        assert response.status_code == status.HTTP_200_OK
        assert [o['id'] for o in response.data['results']] == [mine.pk]

    def test_staff_lists_store_orders(self, staff_client, staff2_client, create_pickup_order):
        order = create_pickup_order()

        response = staff_client.get('/api/pickup/orders/')
        assert [o['id'] for o in response.data['results']] == [order.pk]
        assert response.data['results'][0]['pickup_code'] == order.pickup_code

        response = staff2_client.get('/api/pickup/orders/')
        assert response.data['results'] == []

    def test_filter_by_status(self, admin_client, create_pickup_order):
        pending = create_pickup_order()
        ready = ledger.mark_ready(create_pickup_order().pk)

        response = admin_client.get('/api/pickup/orders/', {'status': 'ready'})

        assert [o['id'] for o in response.data['results']] == [ready.pk]
        assert pending.pk not in [o['id'] for o in response.data['results']]

    def test_retrieve_permissions(self, customer_client, customer2_client, staff_client, pickup_order):
        url = f'/api/pickup/orders/{pickup_order.pk}/'

        assert customer_client.get(url).status_code == status.HTTP_200_OK
        assert staff_client.get(url).status_code == status.HTTP_200_OK
        assert customer2_client.get(url).status_code == status.HTTP_403_FORBIDDEN

    def test_code_visible_to_customer_once_ready(self, customer_client, ready_order):
        response = customer_client.get(f'/api/pickup/orders/{ready_order.pk}/')

        assert response.data['status'] == 'ready'
        assert response.data['pickup_code'] == ready_order.pickup_code

    def test_staff_marks_ready(self, staff_client, pickup_order):
        response = staff_client.post(f'/api/pickup/orders/{pickup_order.pk}/ready/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'ready'
        assert response.data['actual_ready_time'] is not None

    def test_customer_cannot_mark_ready(self, customer_client, pickup_order):
        response = customer_client.post(f'/api/pickup/orders/{pickup_order.pk}/ready/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_other_store_staff_cannot_mark_ready(self, staff2_client, pickup_order):
        response = staff2_client.post(f'/api/pickup/orders/{pickup_order.pk}/ready/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_preparing_then_picked_up(self, staff_client, pickup_order):
        base = f'/api/pickup/orders/{pickup_order.pk}'

        assert staff_client.post(f'{base}/preparing/').data['status'] == 'preparing'
        assert staff_client.post(f'{base}/picked-up/').status_code == status.HTTP_409_CONFLICT
        assert staff_client.post(f'{base}/ready/').status_code == status.HTTP_200_OK
        assert staff_client.post(f'{base}/picked-up/').data['status'] == 'picked_up'

    def test_owner_cancels(self, customer_client, pickup_order):
        response = customer_client.post(f'/api/pickup/orders/{pickup_order.pk}/cancel/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'cancelled'

    def test_other_customer_cannot_cancel(self, customer2_client, pickup_order):
        response = customer2_client.post(f'/api/pickup/orders/{pickup_order.pk}/cancel/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cancel_after_pickup(self, customer_client, staff_client, ready_order):
        ledger.mark_picked_up(ready_order.pk)
        url = f'/api/pickup/orders/{ready_order.pk}/cancel/'

        response = customer_client.post(url)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'This pickup order can no longer be changed'

        response = staff_client.post(url)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'picked_up' in response.data['error']

    def test_transition_on_overdue_order(self, staff_client, pickup_order):
        now = timezone.now()
        PickupOrder.objects.filter(pk=pickup_order.pk).update(
            created_at=now - timedelta(days=2),
            expires_at=now - timedelta(days=1),
        )

        response = staff_client.post(f'/api/pickup/orders/{pickup_order.pk}/ready/')

        assert response.status_code == status.HTTP_410_GONE

    def test_unknown_order(self, staff_client):
        response = staff_client.post('/api/pickup/orders/pickup_missing/ready/')

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestVerifyCodeAPI:
    """Counter verification endpoint"""

    def test_verify_ready_order(self, staff_client, ready_order):
        response = staff_client.post('/api/pickup/verify/', {'code': ready_order.pickup_code.lower()})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == ready_order.pk

    def test_verify_pending_order(self, staff_client, pickup_order):
        response = staff_client.post('/api/pickup/verify/', {'code': pickup_order.pickup_code})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Invalid pickup code'

    def test_verify_expired_order(self, staff_client, ready_order):
        now = timezone.now()
        PickupOrder.objects.filter(pk=ready_order.pk).update(
            created_at=now - timedelta(days=2),
            expires_at=now - timedelta(days=1),
        )

        response = staff_client.post('/api/pickup/verify/', {'code': ready_order.pickup_code})

        assert response.status_code == status.HTTP_410_GONE

    def test_other_store_staff(self, staff2_client, ready_order):
        response = staff2_client.post('/api/pickup/verify/', {'code': ready_order.pickup_code})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_customer_cannot_verify(self, customer_client, ready_order):
        response = customer_client.post('/api/pickup/verify/', {'code': ready_order.pickup_code})

        assert response.status_code == status.HTTP_403_FORBIDDEN
