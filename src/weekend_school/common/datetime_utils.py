from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterator

from ..core.enums import WeekDay
from ..core.exceptions import ValidationError

_WEEKDAY_BY_INDEX = {5: WeekDay.SATURDAY, 6: WeekDay.SUNDAY}
_INDEX_BY_WEEKDAY = {v: k for k, v in _WEEKDAY_BY_INDEX.items()}


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError("Invalid date format (YYYY-MM-DD)")


def parse_hhmm(value: str) -> time:
    """Parse session time-of-day strings such as '09:00'."""
    return datetime.strptime(value.strip()[:5], "%H:%M").time()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def weekday_of(day: date) -> WeekDay | None:
    """Weekend day for a calendar date, or None on weekdays."""
    return _WEEKDAY_BY_INDEX.get(day.weekday())


def iter_weekdays(start: date, end: date, weekday: WeekDay) -> Iterator[date]:
    """Yield every date in [start, end] that falls on `weekday`."""
    offset = (_INDEX_BY_WEEKDAY[weekday] - start.weekday()) % 7
    current = start + timedelta(days=offset)
    while current <= end:
        yield current
        current += timedelta(days=7)


def month_bounds(today: date) -> tuple[date, date]:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def months_before(today: date, months: int) -> date:
    year = today.year
    month = today.month - months
    while month <= 0:
        month += 12
        year -= 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def resolve_range(
    start: str | None,
    end: str | None,
    *,
    today: date,
    required: bool = False,
) -> tuple[date, date]:
    """Turn optional startDate/endDate query values into a validated range.

    Missing values default to the calendar month containing `today`.
    """

    if required and (not start or not end):
        raise ValidationError("Start date and end date are required")

    default_start, default_end = month_bounds(today)
    start_d = parse_iso_date(start) if start else default_start
    end_d = parse_iso_date(end) if end else default_end
    if start_d > end_d:
        raise ValidationError("Start date must be before end date")
    return start_d, end_d
