"""Working-day test against a weekly template and an injected holiday set."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

import pandas as pd

from ..schemas import WEEKDAYS, CompanyCalendar

logger = logging.getLogger("fab_planner.calendar")


class CalendarConfigError(ValueError):
    """Calendar cannot be used for date walking (e.g. no enabled weekday)."""


def as_calendar(calendar: CompanyCalendar | Mapping[str, Any] | None) -> CompanyCalendar:
    if calendar is None:
        return CompanyCalendar.default()
    if isinstance(calendar, CompanyCalendar):
        return calendar
    return CompanyCalendar.model_validate(dict(calendar))


def _as_date(d: date | datetime | pd.Timestamp) -> date:
    if isinstance(d, datetime):
        return d.date()
    return d


def normalize_holidays(holidays: Iterable[Any] | None) -> frozenset[date]:
    """Holidays as a set of calendar days; strings and timestamps are accepted, time of day dropped."""
    if holidays is None:
        return frozenset()
    out: set[date] = set()
    for h in holidays:
        if h is None:
            continue
        if isinstance(h, str):
            ts = pd.to_datetime(h, errors="coerce")
            if pd.isna(ts):
                raise ValueError(f"holiday: cannot parse date {h!r}")
            out.add(ts.date())
        else:
            out.add(_as_date(h))
    return frozenset(out)


def warn_missing_weekdays(calendar: CompanyCalendar) -> list[str]:
    """Log and return the weekdays the calendar has no entry for (they count as non-working)."""
    missing = [WEEKDAYS[i] for i in range(7) if calendar.day(i) is None]
    if missing:
        logger.warning("calendar has no entry for %s; treating as non-working", ", ".join(missing))
    return missing


def validate_calendar(calendar: CompanyCalendar) -> None:
    warn_missing_weekdays(calendar)
    if not calendar.working_weekdays():
        raise CalendarConfigError("calendar has no enabled weekday; business-day arithmetic cannot converge")


def is_working_day(d: date | datetime, calendar: CompanyCalendar, holidays: Iterable[Any] | None = None) -> bool:
    day = _as_date(d)
    weekday = day.weekday()
    wd = calendar.day(weekday)
    if wd is None:
        return False
    if not wd.enabled:
        return False
    if holidays is not None:
        hs = holidays if isinstance(holidays, frozenset) else normalize_holidays(holidays)
        if day in hs:
            return False
    return True


def next_working_day(d: date | datetime, calendar: CompanyCalendar, holidays: Iterable[Any] | None = None):
    """First working day strictly after d (time of day kept)."""
    validate_calendar(calendar)
    hs = normalize_holidays(holidays)
    nxt = d + timedelta(days=1)
    while not is_working_day(nxt, calendar, hs):
        nxt = nxt + timedelta(days=1)
    return nxt
