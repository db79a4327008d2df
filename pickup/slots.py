"""
Hourly pickup slots and their capacity accounting.

A slot is the one-hour bucket ``[h:00, h+1:00)`` of a store's day. Every
order scheduled inside the bucket holds a seat unless it was cancelled or
picked up. Callers that book a seat must hold the store row lock (see
``ledger.create_order``) so that counting and inserting cannot interleave.
"""
import datetime
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

from django.utils import timezone

from stores.hours import day_hours, parse_hhmm
from stores.utils import get_store
from .exceptions import CapacityExceeded, SlotUnavailable
from .models import PickupOrder

SLOT_LENGTH = datetime.timedelta(hours=1)


@dataclass(frozen=True)
class PickupTimeSlot:
    time: str
    available: bool
    capacity: int
    booked: int
    start: datetime.datetime


def slot_start(scheduled_time: datetime.datetime) -> datetime.datetime:
    """Start of the slot containing ``scheduled_time``, in local time."""
    local = timezone.localtime(scheduled_time)
    return local.replace(minute=0, second=0, microsecond=0)


def _local_datetime(day: datetime.date, hour: int) -> datetime.datetime:
    naive = datetime.datetime.combine(day, datetime.time()) + datetime.timedelta(hours=hour)
    return timezone.make_aware(naive)


def booked_by_hour(store, day: datetime.date) -> Counter:
    """Seats taken per local hour of ``day``."""
    day_start = _local_datetime(day, 0)
    scheduled = (
        PickupOrder.objects
        .filter(
            store=store,
            scheduled_time__gte=day_start,
            scheduled_time__lt=_local_datetime(day, 24),
        )
        .filter(status__in=PickupOrder.SLOT_HOLDING_STATUSES)
        .values_list('scheduled_time', flat=True)
    )
    return Counter(timezone.localtime(value).hour for value in scheduled)


def count_booked(store, start: datetime.datetime) -> int:
    return (
        PickupOrder.objects
        .filter(store=store, scheduled_time__gte=start, scheduled_time__lt=start + SLOT_LENGTH)
        .filter(status__in=PickupOrder.SLOT_HOLDING_STATUSES)
        .count()
    )


def available_slots(store_id, day: datetime.date,
                    now: Optional[datetime.datetime] = None) -> List[PickupTimeSlot]:
    """
    Bookable hourly slots for ``store_id`` on ``day``.

    Slots run from the opening hour up to (not including) the closing hour.
    A slot is unavailable when it has already started today or when its
    booked count reached the store's capacity. ``booked`` is reported
    either way.
    """
    store = get_store(store_id)
    hours = day_hours(store, day)
    if hours.closed:
        return []

    now = now or timezone.now()
    is_today = day == timezone.localdate(now)
    open_hour = parse_hhmm(hours.open) // 60
    close_hour = parse_hhmm(hours.close) // 60
    capacity = store.slot_capacity
    booked = booked_by_hour(store, day)

    slots = []
    for hour in range(open_hour, close_hour):
        start = _local_datetime(day, hour)
        is_past = is_today and start <= now
        slots.append(PickupTimeSlot(
            time=f'{hour:02d}:00',
            available=not is_past and booked[hour] < capacity,
            capacity=capacity,
            booked=booked[hour],
            start=start,
        ))
    return slots


def check_slot(store, scheduled_time: datetime.datetime,
               now: Optional[datetime.datetime] = None) -> PickupTimeSlot:
    """
    Validate that one more order fits into the slot of ``scheduled_time``.

    Raises :class:`SlotUnavailable` when the store is closed at that hour or
    the slot already started (on any earlier day too), and
    :class:`CapacityExceeded` when it is full.
    """
    now = now or timezone.now()
    start = slot_start(scheduled_time)
    if start <= now:
        raise SlotUnavailable()
    for slot in available_slots(store, start.date(), now=now):
        if slot.start != start:
            continue
        if slot.booked >= slot.capacity:
            raise CapacityExceeded()
        if not slot.available:
            raise SlotUnavailable()
        return slot
    raise SlotUnavailable()
