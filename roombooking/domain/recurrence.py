"""Expansion of recurrence rules into concrete calendar dates."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Union

from roombooking.domain.models import RecurrenceType


_FIXED_STEPS = {
    RecurrenceType.DAILY: timedelta(days=1),
    RecurrenceType.WEEKLY: timedelta(days=7),
    RecurrenceType.BIWEEKLY: timedelta(days=14),
}


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _next_occurrence(current: date, recurrence_type: RecurrenceType) -> date:
    if recurrence_type is RecurrenceType.MONTHLY:
        return add_months(current, 1)
    return current + _FIXED_STEPS[recurrence_type]


def expand_recurrence(
    start_date: date,
    end_date: date,
    recurrence_type: Union[RecurrenceType, str],
) -> list[date]:
    """Return every occurrence from ``start_date`` through ``end_date`` inclusive.

    Each step is taken from the previous occurrence, so a monthly series that
    starts on the 31st settles on the shortest month-end it passes through.
    An end date before the start date yields an empty list.
    """
    if isinstance(start_date, datetime) or isinstance(end_date, datetime):
        raise TypeError("expand_recurrence expects date values, not datetimes")
    cadence = RecurrenceType(recurrence_type)

    dates: list[date] = []
    current = start_date
    while current <= end_date:
        dates.append(current)
        try:
            current = _next_occurrence(current, cadence)
        except (OverflowError, ValueError):
            # stepping past the last representable date ends the series
            break
    return dates


def materialize(day: date, start_time: time, end_time: time) -> tuple[datetime, datetime]:
    """Combine a calendar date with template times, seconds zeroed."""
    return (
        datetime.combine(day, start_time.replace(second=0, microsecond=0)),
        datetime.combine(day, end_time.replace(second=0, microsecond=0)),
    )
