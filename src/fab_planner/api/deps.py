# src/fab_planner/api/deps.py
from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache

from .. import config
from ..ingest.loader import load_calendar, load_holidays
from ..schemas import CompanyCalendar


@lru_cache(maxsize=1)
def configured_holidays() -> frozenset[date]:
    if not config.HOLIDAYS_FILE:
        return frozenset()
    hs = load_holidays(config.HOLIDAYS_FILE)
    logging.getLogger("fab_planner.api").info("Loaded %d holidays from %s", len(hs), config.HOLIDAYS_FILE)
    return hs


@lru_cache(maxsize=1)
def configured_calendar() -> CompanyCalendar:
    if not config.CALENDAR_FILE:
        return CompanyCalendar.default()
    return load_calendar(config.CALENDAR_FILE)


def resolve_calendar(calendar: CompanyCalendar | None) -> CompanyCalendar:
    return calendar if calendar is not None else configured_calendar()


def resolve_holidays(holidays: list[date] | None) -> frozenset[date]:
    """Holidays sent with the request win over the configured file."""
    if holidays:
        return frozenset(holidays)
    return configured_holidays()
