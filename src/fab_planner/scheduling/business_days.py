"""Business-day date arithmetic.

Two forms are exposed:

* ``add_business_days`` moves a signed number of working days; a zero offset
  is the identity, not a snap-to-working-day.
* ``add_working_days`` is the duration form used when dating tasks and
  stages: a start on a non-working day is first moved to the next working
  day, sub-day durations end on that day, longer ones advance
  ``floor(duration)`` working days.

Both walk one calendar day at a time and refuse calendars without any
enabled weekday instead of looping forever.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, TypeVar

from ..schemas import CompanyCalendar
from .calendar import is_working_day, next_working_day, normalize_holidays, validate_calendar

D = TypeVar("D", date, datetime)

_ONE_DAY = timedelta(days=1)


def _walk(start: D, steps: int, calendar: CompanyCalendar, holidays: frozenset[date]) -> D:
    step = _ONE_DAY if steps > 0 else -_ONE_DAY
    remaining = abs(steps)
    current = start
    while remaining > 0:
        current = current + step
        if is_working_day(current, calendar, holidays):
            remaining -= 1
    return current


def add_business_days(
    start_date: D,
    delta_days: int,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> D:
    if delta_days != int(delta_days):
        raise ValueError(f"delta_days must be a whole number of days, got {delta_days!r}")
    delta = int(delta_days)
    if delta == 0:
        return start_date
    cal = calendar if calendar is not None else CompanyCalendar.default()
    validate_calendar(cal)
    return _walk(start_date, delta, cal, normalize_holidays(holidays))


def add_working_days(
    start_date: D,
    duration_days: float,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> D:
    if duration_days < 0:
        raise ValueError(f"duration_days must be >= 0, got {duration_days!r}")
    cal = calendar if calendar is not None else CompanyCalendar.default()
    validate_calendar(cal)
    hs = normalize_holidays(holidays)

    adjusted = start_date
    if not is_working_day(adjusted, cal, hs):
        adjusted = next_working_day(adjusted, cal, hs)

    if duration_days < 1:
        return adjusted
    # fractional remainder does not move the date
    return _walk(adjusted, math.floor(duration_days), cal, hs)


def business_days_between(
    start: date | datetime,
    end: date | datetime,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> int:
    """Working days in (start, end]; negative when end precedes start."""
    cal = calendar if calendar is not None else CompanyCalendar.default()
    s = start.date() if isinstance(start, datetime) else start
    e = end.date() if isinstance(end, datetime) else end
    if s == e:
        return 0
    sign = 1 if e > s else -1
    lo, hi = (s, e) if sign > 0 else (e, s)
    hs = normalize_holidays(holidays)
    count = 0
    cur = lo + _ONE_DAY
    while cur <= hi:
        if is_working_day(cur, cal, hs):
            count += 1
        cur += _ONE_DAY
    return sign * count
