from __future__ import annotations

from datetime import date, datetime, time, timedelta

SLOT_MINUTES = 15
SLOT_MS = SLOT_MINUTES * 60 * 1000
SLOTS_PER_HOUR = 60 // SLOT_MINUTES
DAY_MS = 24 * 60 * 60 * 1000

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def to_millis(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def from_millis(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000)


def as_date(day: date | datetime | int) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return from_millis(day).date()


def start_of_day(day: date | datetime | int) -> int:
    return to_millis(datetime.combine(as_date(day), time.min))


def end_of_day(day: date | datetime | int) -> int:
    """Last millisecond of the local calendar day."""
    next_day = datetime.combine(as_date(day) + timedelta(days=1), time.min)
    return to_millis(next_day) - 1


def day_slots(day: date | datetime | int, start_hour: int, end_hour: int) -> list[int]:
    """Slot-start timestamps for ``day`` from ``start_hour:00``.

    When ``end_hour <= start_hour`` the range wraps past midnight, so
    ``(22, 4)`` gives six hours and equal bounds give a full 96-slot day.
    Slots are spaced by absolute quarter hours from the first one.
    """
    if not 0 <= start_hour <= 23:
        raise ValueError(f"start_hour must be within 0..23, got {start_hour}")
    if not 0 <= end_hour <= 24:
        raise ValueError(f"end_hour must be within 0..24, got {end_hour}")

    duration_hours = end_hour - start_hour
    if duration_hours <= 0:
        duration_hours += 24

    first = to_millis(datetime.combine(as_date(day), time(hour=start_hour)))
    return [first + index * SLOT_MS for index in range(duration_hours * SLOTS_PER_HOUR)]


def slot_start(timestamp: int) -> int:
    moment = from_millis(timestamp)
    floored = moment.replace(
        minute=moment.minute - moment.minute % SLOT_MINUTES,
        second=0,
        microsecond=0,
    )
    return to_millis(floored)


def is_slot_aligned(timestamp: int) -> bool:
    return slot_start(timestamp) == timestamp


def current_slot_timestamp(now: datetime | None = None) -> int:
    return slot_start(to_millis(now or datetime.now()))


def format_time(timestamp: int) -> str:
    return from_millis(timestamp).strftime("%H:%M")


def format_date_title(day: date | datetime, today: date | None = None) -> str:
    value = as_date(day)
    if value == (today or date.today()):
        return "Today"
    return f"{_WEEKDAYS[value.weekday()]}, {_MONTHS[value.month - 1]} {value.day}"
