# conciergeops/domain/recurrence.py
from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Optional

FREQUENCIES = ("weekly", "biweekly", "monthly")
TASK_TYPES = ("check_in", "check_out", "cleaning", "intervention", "emergency")
TASK_STATUSES = ("todo", "in_progress", "done", "cancelled")
PRIORITIES = ("low", "normal", "high", "urgent")

BIWEEKLY_DAYS = 14
AUTO_NOTE_PREFIX = "[auto-recurrence]"


def parse_scheduled_time(value: str) -> time:
    """
    'HH:MM' -> time. Raises ValueError on anything else.
    """
    s = (value or "").strip()
    parts = s.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"scheduled_time must be HH:MM, got {value!r}")
    hh, mm = int(parts[0]), int(parts[1])
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        raise ValueError(f"scheduled_time out of range: {value!r}")
    return time(hh, mm)


def effective_day_of_month(day_of_month: int, year: int, month: int) -> int:
    """
    Clamp to the last day of the month: 31 fires on Apr 30, 30 fires on Feb 28/29.
    """
    last = calendar.monthrange(year, month)[1]
    return min(int(day_of_month), last)


def weekday_number(d: date) -> int:
    """0=Sunday, 1=Monday .. 6=Saturday."""
    return d.isoweekday() % 7


def generated_on(last_generated_at: Optional[datetime], today: date) -> bool:
    return last_generated_at is not None and last_generated_at.date() == today


def is_due(
    *,
    frequency: str,
    day_of_week: Optional[int],
    day_of_month: Optional[int],
    last_generated_at: Optional[datetime],
    now: datetime,
) -> bool:
    """
    Due-ness for one template at `now` (UTC).

    weekly/monthly depend only on today's calendar date; biweekly depends only
    on the elapsed whole days since the last generation. The same-day guard
    (generated_on) is applied by the caller before this.
    """
    today = now.date()
    freq = (frequency or "").strip().lower()

    if freq == "weekly":
        return day_of_week is not None and weekday_number(today) == int(day_of_week)

    if freq == "monthly":
        if day_of_month is None:
            return False
        return today.day == effective_day_of_month(day_of_month, today.year, today.month)

    if freq == "biweekly":
        if last_generated_at is None:
            return True
        return (now - last_generated_at).days >= BIWEEKLY_DAYS

    return False


def occurrence_at(today: date, scheduled_time: str) -> datetime:
    return datetime.combine(today, parse_scheduled_time(scheduled_time))


def auto_notes(notes: Optional[str]) -> str:
    n = (notes or "").strip()
    return f"{AUTO_NOTE_PREFIX} {n}" if n else AUTO_NOTE_PREFIX
