from __future__ import annotations

import math
from datetime import date, datetime, time
from typing import Any, Iterable, Sequence

from ..schemas import CompanyCalendar, LeadTimeBadge, Stage, StagePlanning
from .business_days import add_working_days

# (upper bound inclusive, category, color)
LEAD_TIME_BANDS = (
    (7, "short", "green"),
    (21, "medium", "yellow"),
)
DAYS_LABEL = "dias"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def calculate_lead_time(plan: Sequence[Stage]) -> int:
    """Sum of stage durations in days (no calendar effects), rounded to the nearest day."""
    if not plan:
        return 0
    total = sum((s.duration_days or 0) for s in plan)
    return _round_half_up(total)


def classify_lead_time(days: int) -> LeadTimeBadge:
    if days <= 0:
        return LeadTimeBadge(days=0, category="undefined", color=None, label="-")
    for upper, category, color in LEAD_TIME_BANDS:
        if days <= upper:
            return LeadTimeBadge(days=days, category=category, color=color, label=f"{days} {DAYS_LABEL}")
    return LeadTimeBadge(days=days, category="long", color="red", label=f"{days} {DAYS_LABEL}")


def validate_plan(plan: Sequence[Stage]) -> None:
    seen: set[str] = set()
    dupes: list[str] = []
    for s in plan:
        if s.stage_name in seen:
            dupes.append(s.stage_name)
        seen.add(s.stage_name)
        if s.duration_days is not None and s.duration_days < 0:
            raise ValueError(f"stage {s.stage_name!r}: negative duration {s.duration_days}")
    if dupes:
        raise ValueError(f"plan: duplicate stage names {sorted(set(dupes))}")


def schedule_stages(
    plan: Sequence[Stage],
    start_date: date | datetime,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
    responsible: dict[str, str] | None = None,
) -> list[StagePlanning]:
    """Date the stages back to back: each stage starts on the day the previous one ends."""
    validate_plan(plan)
    cursor = start_date if isinstance(start_date, datetime) else datetime.combine(start_date, time.min)
    out: list[StagePlanning] = []
    for s in plan:
        days = float(s.duration_days or 0)
        end = add_working_days(cursor, days, calendar, holidays)
        out.append(StagePlanning(
            stage_name=s.stage_name,
            days=days,
            start_date=cursor,
            end_date=end,
            responsible=(responsible or {}).get(s.stage_name, ""),
        ))
        cursor = end
    return out
