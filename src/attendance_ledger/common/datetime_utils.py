from __future__ import annotations

from datetime import date, datetime, timedelta

from ..core.exceptions import ValidationError

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def count_business_days(start: date, end: date) -> int:
    """Monday-Friday days in [start, end], both ends included."""

    if end < start:
        return 0

    total = (end - start).days + 1
    full_weeks, remainder = divmod(total, 7)
    count = full_weeks * 5
    first = start.weekday()
    for offset in range(remainder):
        if (first + offset) % 7 < 5:
            count += 1
    return count


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a <= end_b and start_b <= end_a


def format_duration(delta: timedelta) -> str:
    minutes_total = max(int(delta.total_seconds() // 60), 0)
    hours, minutes = divmod(minutes_total, 60)
    return f"{hours}h {minutes}m"
