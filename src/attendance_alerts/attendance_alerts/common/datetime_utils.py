from __future__ import annotations

import calendar
from datetime import date, datetime, time

from ..core.exceptions import ValidationError

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM (24h) into time; raises ValidationError on garbage."""
    v = (value or "").strip()
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")


def weekday_index(name: str) -> int:
    """'monday' -> 0 ... 'sunday' -> 6."""
    key = (name or "").strip().lower()
    if key not in WEEKDAYS:
        raise ValidationError(f"Invalid weekday: {name!r}")
    return WEEKDAYS.index(key)


def clamp_day(year: int, month: int, day: int) -> date:
    """date(year, month, day) with day clamped to the month's length."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(int(day), last))


def add_months(value: date, months: int, *, anchor_day: int | None = None) -> date:
    """Shift by calendar months, keeping ``anchor_day`` (or value.day) where the month allows."""
    total = value.year * 12 + (value.month - 1) + int(months)
    year, month = divmod(total, 12)
    return clamp_day(year, month + 1, anchor_day or value.day)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
