"""Next-run computation for schedule entries.

Occurrences are anchored to the entry's hour:minute (and weekday or day of
month), never to the moment the previous run finished, so late runs do not
drift the schedule.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import add_months, clamp_day, parse_hhmm
from ..core.enums import RecurrenceKind
from ..core.exceptions import ValidationError

MAX_ADVANCE_STEPS = 24

_PERIODS = {
    RecurrenceKind.DAILY: timedelta(days=1),
    RecurrenceKind.WEEKLY: timedelta(days=7),
}


def validate_anchor(recurrence: RecurrenceKind, anchor_day: Optional[int], anchor_time: str) -> Optional[int]:
    """Check the anchor fits the recurrence; returns the normalized day."""
    parse_hhmm(anchor_time)
    if recurrence == RecurrenceKind.DAILY:
        return None
    if anchor_day is None:
        raise ValidationError(f"{recurrence.value} schedules need an anchor day")
    day = int(anchor_day)
    if recurrence == RecurrenceKind.WEEKLY and not 0 <= day <= 6:
        raise ValidationError("Weekly anchor day must be 0 (Monday) to 6 (Sunday)")
    if recurrence == RecurrenceKind.MONTHLY and not 1 <= day <= 31:
        raise ValidationError("Monthly anchor day must be 1 to 31")
    return day


def advance(recurrence: RecurrenceKind, start: datetime, now: datetime, *, anchor_day: Optional[int] = None) -> datetime:
    """First occurrence strictly after ``now``, stepping from ``start``.

    Daily and weekly entries skip whole periods arithmetically; monthly
    entries jump by the month difference and then step at most a few times.
    """
    if start > now:
        return start

    period = _PERIODS.get(recurrence)
    if period is not None:
        skipped = (now - start) // period + 1
        return start + period * skipped

    day = anchor_day or start.day
    months = (now.year - start.year) * 12 + (now.month - start.month)
    candidate = datetime.combine(add_months(start.date(), months, anchor_day=day), start.time())
    for _ in range(MAX_ADVANCE_STEPS):
        if candidate > now:
            return candidate
        months += 1
        candidate = datetime.combine(add_months(start.date(), months, anchor_day=day), start.time())
    raise RuntimeError(f"Could not advance monthly schedule from {start} past {now}")


def initial_next_run(
    recurrence: RecurrenceKind,
    anchor_day: Optional[int],
    anchor_time: str,
    now: datetime,
) -> datetime:
    at = parse_hhmm(anchor_time)
    today = now.date()

    if recurrence == RecurrenceKind.DAILY:
        candidate = datetime.combine(today, at)
    elif recurrence == RecurrenceKind.WEEKLY:
        days_ahead = (int(anchor_day) - today.weekday()) % 7
        candidate = datetime.combine(today + timedelta(days=days_ahead), at)
    else:
        candidate = datetime.combine(clamp_day(today.year, today.month, int(anchor_day)), at)

    return advance(recurrence, candidate, now, anchor_day=anchor_day)


def next_run_after(
    recurrence: RecurrenceKind,
    anchor_day: Optional[int],
    anchor_time: str,
    previous: Optional[datetime],
    now: datetime,
) -> datetime:
    """Recompute ``next_run`` after a firing at ``now``.

    Steps forward from the previous scheduled occurrence when there is one so
    the anchor is kept; an entry many periods overdue lands on the nearest
    future occurrence.
    """
    if previous is None:
        return initial_next_run(recurrence, anchor_day, anchor_time, now)
    at = parse_hhmm(anchor_time)
    start = datetime.combine(previous.date(), at)
    if recurrence == RecurrenceKind.MONTHLY and anchor_day:
        start = datetime.combine(clamp_day(previous.year, previous.month, int(anchor_day)), at)
    return advance(recurrence, start, now, anchor_day=anchor_day)
