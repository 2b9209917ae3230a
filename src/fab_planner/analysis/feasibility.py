"""Delivery feasibility: stage durations inflated by sector workload.

Stage demand is consolidated across items by taking the largest
``duration_days * quantity`` per stage (the heaviest item dominates a shared
stage). Each stage is stretched by a factor picked from its workload band,
bottleneck stages are treated as running back to back, and the total is
compared against the days left until the requested delivery date.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Sequence

from ..schemas import CalculatorItem, CompanyCalendar, FeasibilityResult, StageAnalysis
from ..scheduling.business_days import add_business_days
from .workload import StaticWorkloadProvider, WorkloadProvider

logger = logging.getLogger("fab_planner.feasibility")

DEFAULT_WORKLOAD = 0.5  # factor 1.0: stage runs at nominal speed

# name, lower bound (inclusive), upper bound, factor at lower, factor at upper
WORKLOAD_BANDS = (
    ("critical", 0.9, 1.0, 2.5, 3.5),
    ("overloaded", 0.8, 0.9, 1.8, 2.5),
    ("high", 0.7, 0.8, 1.3, 1.8),
    ("normal", 0.5, 0.7, 1.0, 1.3),
    ("low", 0.0, 0.5, 0.8, 1.0),
)
HIGH_BAND_BOTTLENECK_ABOVE = 0.75
BOTTLENECK_SPILLOVER = 1.2

BASE_CONFIDENCE = 90
WORKLOAD_PENALTY = 60
BOTTLENECK_PENALTY = 25
INVIABLE_PENALTY = 30
TIGHT_MARGIN = 0.2
TIGHT_MARGIN_PENALTY = 20
WIDE_MARGIN = 0.5
WIDE_MARGIN_BONUS = 10
CONFIDENCE_MIN, CONFIDENCE_MAX = 5, 95


def _ceil_days(x: float) -> int:
    # round first so 1.3 * 10 == 13.000000000000002 stays 13
    return int(math.ceil(round(x, 6)))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _as_day(d: date | datetime) -> date:
    return d.date() if isinstance(d, datetime) else d


def workload_band(workload: float) -> tuple[str, float, bool]:
    """(band name, adjustment factor, bottleneck flag) for a workload fraction."""
    w = min(1.0, max(0.0, float(workload)))
    for name, lo, hi, f_lo, f_hi in WORKLOAD_BANDS:
        if w >= lo:
            factor = f_lo + (w - lo) / (hi - lo) * (f_hi - f_lo)
            if name in ("critical", "overloaded"):
                bottleneck = True
            elif name == "high":
                bottleneck = w > HIGH_BAND_BOTTLENECK_ABOVE
            else:
                bottleneck = False
            return name, factor, bottleneck
    raise AssertionError("unreachable: bands cover [0, 1]")


def adjustment_factor(workload: float) -> float:
    return workload_band(workload)[1]


def consolidate_stage_load(items: Sequence[CalculatorItem]) -> dict[str, float]:
    loads: dict[str, float] = {}
    for item in items:
        if item.quantity <= 0:
            raise ValueError(f"item {item.product_id!r}: quantity must be > 0")
        for stage in item.stages:
            d = stage.duration_days or 0
            if d < 0:
                raise ValueError(f"item {item.product_id!r}, stage {stage.stage_name!r}: negative duration")
            demand = d * item.quantity
            if stage.stage_name not in loads or demand > loads[stage.stage_name]:
                loads[stage.stage_name] = demand
    return loads


def total_adjusted_lead_time(analysis: Sequence[StageAnalysis]) -> int:
    if not analysis:
        return 0
    bottleneck = [a.adjusted_duration for a in analysis if a.bottleneck]
    others = [a.adjusted_duration for a in analysis if not a.bottleneck]
    if not bottleneck:
        return max(others)
    spill = _ceil_days(BOTTLENECK_SPILLOVER * max(others)) if others else 0
    return max(sum(bottleneck), spill)


def confidence_score(
    avg_workload: float, n_bottlenecks: int, available_days: int, total: int, viable: bool | None = None
) -> int:
    """Confidence in percent; ``viable`` defaults to ``available_days >= total``."""
    if viable is None:
        viable = available_days >= total
    score = BASE_CONFIDENCE - avg_workload * WORKLOAD_PENALTY - BOTTLENECK_PENALTY * n_bottlenecks
    if not viable:
        score -= INVIABLE_PENALTY
    elif total > 0:
        margin = (available_days - total) / total
        if margin < TIGHT_MARGIN:
            score -= TIGHT_MARGIN_PENALTY
        elif margin > WIDE_MARGIN:
            score += WIDE_MARGIN_BONUS
    return _round_half_up(min(CONFIDENCE_MAX, max(CONFIDENCE_MIN, score)))


def calculate_feasibility(
    items: Sequence[CalculatorItem],
    sector_workload: Mapping[str, float] | WorkloadProvider,
    requested_delivery_date: date | datetime,
    today: date | datetime | None = None,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
    use_business_days: bool = False,
) -> FeasibilityResult:
    """Estimate whether the requested delivery date can be met.

    ``today`` defaults to the current date; pass it explicitly for
    reproducible results. With ``use_business_days`` the suggested date is
    counted in working days of ``calendar``/``holidays`` instead of
    calendar days.
    """
    day0 = _as_day(today) if today is not None else date.today()
    requested = _as_day(requested_delivery_date)
    available_days = (requested - day0).days

    loads = consolidate_stage_load(items)
    provider = sector_workload if isinstance(sector_workload, WorkloadProvider) else StaticWorkloadProvider(sector_workload)
    workload = provider.get_workload(list(loads)) if loads else {}

    analysis: list[StageAnalysis] = []
    for stage_name, load in loads.items():
        w = workload.get(stage_name)
        if w is None:
            logger.debug("no workload for stage %s, assuming %.2f", stage_name, DEFAULT_WORKLOAD)
            w = DEFAULT_WORKLOAD
        w = min(1.0, max(0.0, float(w)))
        _, factor, bottleneck = workload_band(w)
        analysis.append(StageAnalysis(
            stage_name=stage_name,
            original_duration=load,
            adjusted_duration=_ceil_days(load * factor),
            workload=w,
            adjustment_factor=round(factor, 4),
            bottleneck=bottleneck,
        ))

    total = total_adjusted_lead_time(analysis)
    if use_business_days:
        suggested = add_business_days(day0, total, calendar, holidays)
    else:
        suggested = day0 + timedelta(days=total)

    is_viable = True if not analysis else available_days >= total
    avg_workload = sum(a.workload for a in analysis) / len(analysis) if analysis else 0.0
    n_bottlenecks = sum(1 for a in analysis if a.bottleneck)
    confidence = confidence_score(avg_workload, n_bottlenecks, available_days, total, is_viable)

    if n_bottlenecks:
        logger.info(
            "feasibility: %d bottleneck stage(s) %s, lead time %d days, viable=%s",
            n_bottlenecks, [a.stage_name for a in analysis if a.bottleneck], total, is_viable,
        )
    return FeasibilityResult(
        is_viable=is_viable,
        suggested_date=suggested,
        analysis=analysis,
        total_adjusted_lead_time=total,
        confidence=confidence,
    )
