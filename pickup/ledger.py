"""
Pickup order ledger: creation, status transitions, expiry and code checks.

This is the only place that creates ``PickupOrder`` rows or changes their
status. Every mutating call locks the rows it touches inside
``transaction.atomic()``:

* ``create_order`` locks the store row, so checking a slot's capacity and
  inserting the order cannot interleave with another booking for the same
  store.
* transitions lock the order row.

Expiry is evaluated lazily. Before any transition the order is checked
against ``expires_at``; an overdue order is stored as ``expired`` and the
call fails with :class:`OrderExpired`.
"""
import logging
import secrets
import string

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from stores.models import Store
from stores.utils import get_store
from .exceptions import (
    InvalidPickupCode,
    InvalidTransition,
    OrderExpired,
    OrderNotFound,
    PickupError,
    StoreNotFound,
    StoreUnavailable,
)
from .models import PickupOrder, PickupOrderItem
from .signals import pickup_status_changed
from .slots import check_slot, slot_start

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
ORDER_ID_ALPHABET = string.ascii_lowercase + string.digits
UPDATABLE_FIELDS = {'status', 'notes', 'scheduled_time'}
ITEMS_INCLUDED_IN_BASE_TIME = 5
MINUTES_PER_EXTRA_ITEM = 2

Status = PickupOrder.Status


def generate_order_id(now):
    suffix = ''.join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(9))
    return f"pickup_{int(now.timestamp() * 1000)}_{suffix}"


def generate_pickup_code(length=None):
    length = length or getattr(settings, 'PICKUP_CODE_LENGTH', 8)
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def issue_pickup_code():
    """A fresh code not held by any live order."""
    attempts = getattr(settings, 'PICKUP_CODE_MAX_ATTEMPTS', 10)
    for _ in range(attempts):
        code = generate_pickup_code()
        if not PickupOrder.objects.live().filter(pickup_code=code).exists():
            return code
        logger.warning("Pickup code collision, generating another one")
    raise PickupError('Could not issue a unique pickup code')


def normalize_code(code):
    return (code or '').strip().upper()


def estimate_time(store_id, item_count):
    """Preparation minutes: baseline plus two per item beyond five, capped."""
    store = get_store(store_id)
    extra = max(0, (item_count - ITEMS_INCLUDED_IN_BASE_TIME) * MINUTES_PER_EXTRA_ITEM)
    return min(store.estimated_pickup_minutes + extra, store.max_pickup_hours * 60)


def get_order(order_id):
    try:
        return PickupOrder.objects.select_related('store', 'user').get(pk=order_id)
    except PickupOrder.DoesNotExist:
        raise OrderNotFound(order_id)


def _lock_store(store_id):
    lookup = {'pk': store_id.pk} if isinstance(store_id, Store) else {'code': store_id}
    try:
        return Store.objects.select_for_update().get(**lookup)
    except Store.DoesNotExist:
        raise StoreNotFound(store_id)


def _lock_order(order_id):
    try:
        return PickupOrder.objects.select_for_update().get(pk=order_id)
    except PickupOrder.DoesNotExist:
        raise OrderNotFound(order_id)


def _notify(order, previous):
    pickup_status_changed.send(
        sender=PickupOrder, order=order, previous=previous, status=order.status
    )


def _insert_order(store_id, user, items, customer_info, total, scheduled_time, notes, now):
    with transaction.atomic():
        store = _lock_store(store_id)
        if not (store.is_active and store.pickup_available):
            raise StoreUnavailable(f'{store.name} does not accept pickup orders')
        if scheduled_time is not None:
            check_slot(store, scheduled_time, now=now)

        order = PickupOrder.objects.create(
            id=generate_order_id(now),
            pickup_code=issue_pickup_code(),
            store=store,
            user=user,
            customer_name=customer_info['name'],
            customer_phone=customer_info['phone'],
            customer_email=customer_info['email'],
            customer_id_document=customer_info.get('id_document'),
            scheduled_time=scheduled_time,
            preparation_time_minutes=estimate_time(store, len(items)),
            status=Status.PENDING,
            notes=notes,
            total=total,
            created_at=now,
            updated_at=now,
            expires_at=PickupOrder.expiry_for(now),
        )
        PickupOrderItem.objects.bulk_create([
            PickupOrderItem(
                order=order,
                position=position,
                product_id=item['product_id'],
                quantity=item['quantity'],
                price=item['price'],
                notes=item.get('notes'),
            )
            for position, item in enumerate(items)
        ])
    return order


def create_order(store_id, user, items, customer_info, total,
                 scheduled_time=None, notes=None, now=None):
    """
    Create a pending pickup order.

    ``items`` are ``{product_id, quantity, price, notes?}`` mappings and
    ``customer_info`` holds ``name``, ``phone``, ``email`` and optionally
    ``id_document``. ``total`` is stored as given.

    Raises StoreNotFound, StoreUnavailable, SlotUnavailable or
    CapacityExceeded.
    """
    items = list(items)
    now = now or timezone.now()
    attempts = getattr(settings, 'PICKUP_CODE_MAX_ATTEMPTS', 10)

    for attempt in range(1, attempts + 1):
        try:
            order = _insert_order(
                store_id, user, items, customer_info, total, scheduled_time, notes, now
            )
            break
        except IntegrityError:
            # a concurrent create took the same live code
            if attempt == attempts:
                raise
            logger.warning("Pickup order insert conflicted (attempt %s), retrying", attempt)

    logger.info(
        "Pickup order %s created at %s for user %s (code %s, slot %s)",
        order.pk, order.store.code, order.user_id, order.pickup_code,
        order.scheduled_time.isoformat() if order.scheduled_time else 'asap'
    )
    _notify(order, None)
    return order


def _expire_if_due(order, now):
    if order.is_live and now > order.expires_at:
        order.status = Status.EXPIRED
        order.updated_at = now
        order.save(update_fields=['status', 'updated_at'])
        return True
    return False


def _apply_status(order, target, now):
    if not order.can_transition_to(target):
        logger.warning(
            "Rejected pickup order %s transition %s -> %s", order.pk, order.status, target
        )
        raise InvalidTransition(order, target)

    order.status = target
    if target == Status.READY:
        order.actual_ready_time = now
    elif target == Status.PICKED_UP:
        order.picked_up_at = now
    elif target == Status.CANCELLED:
        order.cancelled_at = now


def update_order(order_id, now=None, **changes):
    """
    Apply a partial update to an order and refresh ``updated_at``.

    Only ``status``, ``notes`` and ``scheduled_time`` may change. A status
    change must follow ``PickupOrder.TRANSITIONS``; moving to another slot
    re-checks that slot's capacity under the store lock.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update pickup order field(s): {', '.join(sorted(unknown))}")

    now = now or timezone.now()
    target = changes.get('status')
    expired = False

    with transaction.atomic():
        order = _lock_order(order_id)
        previous = order.status

        if target == Status.CANCELLED and order.status == Status.CANCELLED:
            return order
        if _expire_if_due(order, now):
            expired = True
        else:
            if target is not None:
                _apply_status(order, target, now)

            if 'scheduled_time' in changes:
                scheduled_time = changes['scheduled_time']
                if not order.is_live:
                    raise InvalidTransition(order, order.status)
                if scheduled_time is not None and (
                    order.scheduled_time is None or
                    slot_start(scheduled_time) != slot_start(order.scheduled_time)
                ):
                    check_slot(_lock_store(order.store), scheduled_time, now=now)
                order.scheduled_time = scheduled_time

            if 'notes' in changes:
                order.notes = changes['notes']

            order.updated_at = now
            order.save()

    if expired:
        logger.info("Pickup order %s expired at %s", order.pk, order.expires_at.isoformat())
        _notify(order, previous)
        raise OrderExpired(order)

    if order.status != previous:
        logger.info("Pickup order %s moved %s -> %s", order.pk, previous, order.status)
        _notify(order, previous)
    return order


def start_preparing(order_id, now=None):
    return update_order(order_id, status=Status.PREPARING, now=now)


def mark_ready(order_id, now=None):
    """
    Move an order to ``ready`` and stamp ``actual_ready_time``.

    Notification flags are left to the notification dispatcher, which sets
    ``ready_notified`` once it has recorded the event.
    """
    return update_order(order_id, status=Status.READY, now=now)


def mark_picked_up(order_id, now=None):
    return update_order(order_id, status=Status.PICKED_UP, now=now)


def cancel_order(order_id, now=None):
    """Cancel a live order. Cancelling a cancelled order is a no-op."""
    return update_order(order_id, status=Status.CANCELLED, now=now)


def verify_code(code, report_expired=False, now=None):
    """
    Return the ready order holding ``code``.

    Any other situation (unknown code, not ready yet, collected, cancelled
    or expired) raises :class:`InvalidPickupCode`, so the caller cannot tell
    them apart. Staff tooling may pass ``report_expired`` to get
    :class:`OrderExpired` for a ready order whose window has passed.
    """
    normalized = normalize_code(code)
    if not normalized:
        raise InvalidPickupCode()

    order = (
        PickupOrder.objects
        .select_related('store', 'user')
        .filter(pickup_code=normalized, status=Status.READY)
        .first()
    )
    if order is None:
        raise InvalidPickupCode()
    if order.is_expired(now):
        if report_expired:
            raise OrderExpired(order)
        raise InvalidPickupCode()
    return order


def orders_for_user(user):
    return PickupOrder.objects.filter(user=user).select_related('store')


def orders_for_store(store_id):
    return PickupOrder.objects.filter(store=get_store(store_id)).select_related('store')


def orders_with_status(status, now=None):
    if status not in Status.values:
        raise ValueError(f'Unknown pickup status: {status}')
    return PickupOrder.objects.with_effective_status(status, now=now).select_related('store')


def expire_overdue_orders(now=None):
    """
    Store ``expired`` on every live order past its window.

    Each order is saved on its own so the expired notification goes out the
    same way as for an order that expires when it is next touched.
    """
    now = now or timezone.now()
    expired = []
    with transaction.atomic():
        for order in PickupOrder.objects.overdue(now).select_for_update():
            previous = order.status
            order.status = Status.EXPIRED
            order.updated_at = now
            order.save(update_fields=['status', 'updated_at'])
            expired.append((order, previous))

    for order, previous in expired:
        logger.info("Pickup order %s expired at %s", order.pk, order.expires_at.isoformat())
        _notify(order, previous)
    if expired:
        logger.info("Expired %s overdue pickup orders", len(expired))
    return len(expired)
