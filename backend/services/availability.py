"""Bookable slot computation.

Turns a provider's weekly availability into the clock times a client can book
on one calendar day. Everything here is a pure function over already-loaded
data; reading bookings and availability rows is the caller's job.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from backend.core import config
from backend.core.exceptions import InvalidInputError


PERIODS = ('morning', 'afternoon', 'evening')

# Catalogue used when anchors are not derived from configured hours.
PERIOD_ANCHORS = {
    'morning': (time(9, 0), time(10, 30)),
    'afternoon': (time(13, 0), time(14, 30), time(16, 0)),
    'evening': (time(17, 30), time(19, 0)),
}

# Bounds of each period when striding configured hours.
PERIOD_WINDOWS = {
    'morning': (time(9, 0), time(12, 0)),
    'afternoon': (time(12, 0), time(17, 0)),
    'evening': (time(17, 0), time(21, 0)),
}

WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
BLOCKING_STATUSES = frozenset({'confirmed', 'emergency'})


@dataclass(frozen=True)
class Slot:
    time: str
    formatted: str
    available: bool = True


@dataclass(frozen=True)
class BookedInterval:
    time: str
    duration: int | None = None
    status: str = 'confirmed'


def parse_target_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidInputError(f'Invalid date: {value!r}. Expected YYYY-MM-DD.')


def parse_clock_time(value: time | str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        hours, minutes = value.strip().split(':')
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError):
        raise InvalidInputError(f'Invalid time: {value!r}. Expected HH:MM.') from None


def format_clock_time(value: time) -> str:
    hour = value.hour % 12 or 12
    period = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour}:{value.minute:02d} {period}'


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def intervals_overlap(a: int, b: int, c: int, d: int) -> bool:
    """Half-open [a, b) and [c, d) overlap."""
    return a < d and c < b


def _lookup_day(availability: Mapping, weekday: str) -> Mapping | None:
    for key, value in availability.items():
        if isinstance(key, str) and key.strip().lower() == weekday:
            return value
    return None


def _stride(start: int, end: int, step: int, duration: int | None) -> list[int]:
    anchors = []
    current = start
    while current < end:
        if duration is None or current + duration <= end:
            anchors.append(current)
        current += step
    return anchors


def expand_anchors(
    day: Mapping,
    *,
    mode: str = 'fixed',
    interval_minutes: int = 30,
    service_duration: int | None = None,
) -> list[int]:
    """Anchor start times, in minutes after midnight, for one day's settings."""
    enabled = [period for period in PERIODS if day.get(period)]
    if not enabled:
        return []

    if mode == 'fixed':
        return sorted({to_minutes(anchor) for period in enabled for anchor in PERIOD_ANCHORS[period]})

    if mode != 'range':
        raise InvalidInputError(f'Unknown slot mode: {mode!r}.')
    if interval_minutes <= 0:
        raise InvalidInputError('Slot interval must be a positive number of minutes.')

    day_start = to_minutes(parse_clock_time(day['start'])) if day.get('start') else 0
    day_end = to_minutes(parse_clock_time(day['end'])) if day.get('end') else 24 * 60

    anchors: set[int] = set()
    for period in enabled:
        window_start, window_end = (to_minutes(bound) for bound in PERIOD_WINDOWS[period])
        start = max(window_start, day_start)
        end = min(window_end, day_end)
        if start < end:
            anchors.update(_stride(start, end, interval_minutes, service_duration))
    return sorted(anchors)


def _blocked_intervals(bookings: Iterable) -> list[tuple[int, int]]:
    intervals = []
    for booking in bookings:
        status = _field(booking, 'status') or 'confirmed'
        if status not in BLOCKING_STATUSES:
            continue
        try:
            start = to_minutes(parse_clock_time(_field(booking, 'time')))
        except InvalidInputError:
            continue
        try:
            duration = int(_field(booking, 'duration') or config.DEFAULT_BOOKING_DURATION_MINUTES)
        except (TypeError, ValueError):
            continue
        if duration <= 0:
            continue
        intervals.append((start, start + duration))
    return intervals


def _field(record, name: str):
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def compute_available_slots(
    availability: Mapping,
    target_date: date | datetime | str,
    existing_bookings: Iterable = (),
    service_duration: int | None = None,
    *,
    now: datetime | None = None,
    mode: str = 'fixed',
    interval_minutes: int = 30,
) -> list[Slot]:
    """Collision-free slots for ``target_date``, ascending by time.

    ``availability`` maps weekday names to ``{'morning': bool, 'afternoon': bool,
    'evening': bool}`` with optional ``start``/``end`` clock times. Bookings may be
    mappings, ORM rows or :class:`BookedInterval`; only confirmed and emergency
    bookings take time away.
    """
    slot_date = parse_target_date(target_date)

    if service_duration is not None and service_duration <= 0:
        raise InvalidInputError('Service duration must be a positive number of minutes.')

    day = _lookup_day(availability or {}, WEEKDAY_NAMES[slot_date.weekday()])
    if not day:
        return []

    anchors = expand_anchors(
        day,
        mode=mode,
        interval_minutes=interval_minutes,
        service_duration=service_duration,
    )
    if not anchors:
        return []

    length = service_duration or config.DEFAULT_BOOKING_DURATION_MINUTES
    blocked = _blocked_intervals(existing_bookings)

    cutoff = None
    if now is not None and now.date() == slot_date:
        cutoff = now.hour * 60 + now.minute

    slots = []
    for start in anchors:
        end = start + length
        if cutoff is not None and start <= cutoff:
            continue
        if any(intervals_overlap(start, end, taken_start, taken_end) for taken_start, taken_end in blocked):
            continue
        clock = (datetime.min + timedelta(minutes=start)).time()
        slots.append(Slot(time=clock.strftime('%H:%M'), formatted=format_clock_time(clock)))

    return slots


def availability_from_rows(rows: Iterable) -> dict[str, dict]:
    """Calculator mapping from stored weekly availability rows."""
    availability = {}
    for row in rows:
        availability[row.weekday] = {
            'morning': bool(row.morning),
            'afternoon': bool(row.afternoon),
            'evening': bool(row.evening),
            'start': row.start_time,
            'end': row.end_time,
        }
    return availability
