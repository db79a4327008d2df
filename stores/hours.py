"""
Opening-hours evaluation for stores.

Times are wall-clock ``HH:MM`` strings. A close time numerically earlier
than the open time (``22:00``-``02:00``) is treated as closing after
midnight, so the window is stretched past 1440 minutes. Only the record of
the instant's own weekday is consulted: at 01:00 the previous evening's
late window is not taken into account.
"""
import datetime
from typing import NamedTuple, Optional

from django.utils import timezone

from pickup.exceptions import StoreNotFound
from .models import WEEKDAYS
from .utils import get_store

MINUTES_PER_DAY = 24 * 60


class DayHours(NamedTuple):
    open: Optional[str]
    close: Optional[str]
    closed: bool


def parse_hhmm(value) -> int:
    """``"HH:MM"`` -> minutes since midnight. ``"24:00"`` is end of day."""
    if not isinstance(value, str):
        raise ValueError(f'Invalid time: {value!r}')
    hour, sep, minute = value.partition(':')
    if not sep or not hour.isdigit() or not minute.isdigit() or len(minute) != 2:
        raise ValueError(f'Invalid time: {value!r}')
    hour, minute = int(hour), int(minute)
    if minute > 59 or hour > 24 or (hour == 24 and minute):
        raise ValueError(f'Invalid time: {value!r}')
    return hour * 60 + minute


def weekday_name(day: datetime.date) -> str:
    # date.weekday() is Monday=0; the hours table is keyed Sunday-first
    return WEEKDAYS[(day.weekday() + 1) % 7]


def day_hours(store, day: datetime.date) -> DayHours:
    entry = (store.opening_hours or {}).get(weekday_name(day))
    if not entry or entry.get('closed'):
        return DayHours(None, None, True)
    return DayHours(entry['open'], entry['close'], False)


def is_open(store, instant: datetime.datetime) -> bool:
    hours = day_hours(store, instant.date())
    if hours.closed:
        return False

    current = instant.hour * 60 + instant.minute
    open_minutes = parse_hhmm(hours.open)
    close_minutes = parse_hhmm(hours.close)
    if close_minutes < open_minutes:
        close_minutes += MINUTES_PER_DAY

    return open_minutes <= current <= close_minutes


def is_store_open(store_id, instant: Optional[datetime.datetime] = None) -> bool:
    """Like :func:`is_open` but by store code; unknown stores are closed."""
    try:
        store = get_store(store_id)
    except StoreNotFound:
        return False
    if instant is None:
        instant = timezone.localtime()
    elif timezone.is_aware(instant):
        instant = timezone.localtime(instant)
    return is_open(store, instant)
