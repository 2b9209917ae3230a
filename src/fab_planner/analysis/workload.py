"""Sources of per-stage workload (utilization fraction in [0, 1]).

The feasibility estimator only sees a ``WorkloadProvider``; where the numbers
come from is up to the caller: a fixed mapping, a seeded simulation, or the
load implied by already planned stages.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, time
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np
import pandas as pd

from ..schemas import CompanyCalendar
from ..scheduling.business_days import business_days_between
from ..scheduling.calendar import normalize_holidays

logger = logging.getLogger("fab_planner.workload")

STAGE_PLAN_COLUMNS = ["stage", "start_date", "end_date", "weight"]


@runtime_checkable
class WorkloadProvider(Protocol):
    def get_workload(self, stage_names: Sequence[str]) -> dict[str, float]:
        ...


def _clip01(v: Any) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(x):
        return 0.0
    return min(1.0, max(0.0, x))


class StaticWorkloadProvider:
    """Fixed mapping; stages it does not know are left out."""

    def __init__(self, workload: Mapping[str, float]):
        self._workload = {str(k): _clip01(v) for k, v in workload.items()}

    def get_workload(self, stage_names: Sequence[str]) -> dict[str, float]:
        return {s: self._workload[s] for s in stage_names if s in self._workload}


class SimulatedWorkloadProvider:
    """Uniform random utilization per stage. Same seed, same numbers."""

    def __init__(self, low: float = 0.3, high: float = 1.0, seed: int | None = None):
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError(f"simulated workload range must satisfy 0 <= low <= high <= 1, got [{low}, {high}]")
        self.low = low
        self.high = high
        self._rng = np.random.default_rng(seed)

    def get_workload(self, stage_names: Sequence[str]) -> dict[str, float]:
        values = self._rng.uniform(self.low, self.high, size=len(stage_names))
        return {s: round(float(v), 2) for s, v in zip(stage_names, values)}


# ---------- load from planned stages ----------

def stage_plans_frame(stage_plans: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Normalize planned stages to columns stage, start_date, end_date, weight."""
    df = stage_plans.copy() if isinstance(stage_plans, pd.DataFrame) else pd.DataFrame(list(stage_plans))
    if df.empty:
        return pd.DataFrame(columns=STAGE_PLAN_COLUMNS)
    missing = {"stage", "start_date", "end_date"} - set(df.columns)
    if missing:
        raise ValueError(f"stage plans: missing columns: {sorted(missing)}")
    if "weight" not in df.columns:
        df["weight"] = 1.0
    df["stage"] = df["stage"].astype(str).str.strip()
    df["start_date"] = pd.to_datetime(df["start_date"], errors="coerce")
    df["end_date"] = pd.to_datetime(df["end_date"], errors="coerce")
    df["weight"] = pd.to_numeric(df["weight"], errors="coerce").fillna(0.0).astype(float)
    df = df[df["start_date"].notna() & df["end_date"].notna() & (df["stage"] != "")]
    return df[STAGE_PLAN_COLUMNS].reset_index(drop=True)


def compute_daily_stage_loads(stage_plans: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Spread each planned stage's weight evenly over its calendar days.

    Returns df: stage, work_date (midnight), load
    """
    df = stage_plans_frame(stage_plans)
    if df.empty:
        return pd.DataFrame(columns=["stage", "work_date", "load"])

    records = []
    for r in df.itertuples(index=False):
        start = r.start_date.normalize()
        end = max(r.end_date.normalize(), start)
        days = pd.date_range(start, end, freq="D")
        # a stage ending on a later day is not worked on its end day
        if len(days) > 1 and r.end_date == r.end_date.normalize():
            days = days[:-1]
        share = r.weight / len(days)
        for d in days:
            records.append((r.stage, d, share))

    return (
        pd.DataFrame(records, columns=["stage", "work_date", "load"])
        .groupby(["stage", "work_date"], as_index=False)["load"].sum()
    )


class OccupationWorkloadProvider:
    """Utilization implied by planned stages inside a date window.

    capacity_per_day is the load a stage can absorb per calendar day, either
    one number for every stage or a per-stage mapping.
    """

    def __init__(
        self,
        stage_plans: pd.DataFrame | Iterable[Mapping[str, Any]],
        capacity_per_day: float | Mapping[str, float],
        window_start: date | datetime,
        window_end: date | datetime,
    ):
        self.loads = compute_daily_stage_loads(stage_plans)
        self.capacity_per_day = capacity_per_day
        self.window_start = pd.Timestamp(window_start).normalize()
        self.window_end = pd.Timestamp(window_end).normalize()
        if self.window_end < self.window_start:
            raise ValueError("occupation window ends before it starts")

    def _capacity(self, stage: str) -> float:
        if isinstance(self.capacity_per_day, Mapping):
            return float(self.capacity_per_day.get(stage, 0.0))
        return float(self.capacity_per_day)

    def get_workload(self, stage_names: Sequence[str]) -> dict[str, float]:
        n_days = (self.window_end - self.window_start).days + 1
        in_window = self.loads[
            (self.loads["work_date"] >= self.window_start) & (self.loads["work_date"] <= self.window_end)
        ]
        by_stage = in_window.groupby("stage")["load"].sum().to_dict() if not in_window.empty else {}
        out: dict[str, float] = {}
        for s in stage_names:
            cap = self._capacity(s) * n_days
            if cap <= 0:
                logger.warning("stage %s has no capacity configured; reporting it as fully loaded", s)
                out[s] = 1.0
                continue
            out[s] = _clip01(by_stage.get(s, 0.0) / cap)
        return out


# ---------- monthly occupation report ----------

def occupation_status(percent: float, warning_threshold: float = 70) -> str:
    if percent > 100:
        return "critical"
    if percent >= warning_threshold:
        return "warning"
    if percent < 30:
        return "low"
    return "normal"


def _overlap_days(s1: pd.Timestamp, e1: pd.Timestamp, s2: pd.Timestamp, e2: pd.Timestamp) -> int:
    latest_start = max(s1, s2)
    earliest_end = min(e1, e2)
    secs = max(0.0, (earliest_end - latest_start).total_seconds())
    return math.ceil(secs / 86400)


def monthly_occupation(
    stage_plans: pd.DataFrame | Iterable[Mapping[str, Any]],
    start_month: date | datetime,
    n_months: int = 6,
    capacity_per_month: float = 80000.0,
    warning_threshold: float = 70,
    calendar: CompanyCalendar | None = None,
    holidays: Iterable[Any] | None = None,
) -> pd.DataFrame:
    """Occupation per month and stage.

    Each planned stage contributes weight * overlap_days / duration_days to every
    month it touches. Returns df: month ("MM/YYYY"), month_start, working_days,
    stage, total_weight, percent_occupation, status
    """
    if capacity_per_month <= 0:
        raise ValueError("capacity_per_month must be > 0")
    df = stage_plans_frame(stage_plans)
    stages = sorted(df["stage"].unique()) if not df.empty else []
    first = pd.Timestamp(datetime.combine(
        (start_month.date() if isinstance(start_month, datetime) else start_month).replace(day=1), time.min
    ))
    months = [first + pd.DateOffset(months=k) for k in range(n_months)]
    hs = normalize_holidays(holidays)
    working_days = {
        m: business_days_between(
            m.date() - timedelta(days=1), (m + pd.DateOffset(months=1)).date() - timedelta(days=1), calendar, hs
        )
        for m in months
    }

    totals: dict[tuple[pd.Timestamp, str], float] = {(m, s): 0.0 for m in months for s in stages}
    for r in df.itertuples(index=False):
        duration = max(1, round((r.end_date - r.start_date).total_seconds() / 86400))
        for m in months:
            m_end = m + pd.DateOffset(months=1) - timedelta(milliseconds=1)
            if r.start_date <= m_end and m <= r.end_date:
                overlap = _overlap_days(r.start_date, r.end_date, m, m_end)
                totals[(m, r.stage)] += r.weight * overlap / duration

    rows = []
    for (m, s), w in totals.items():
        pct = int(math.floor(w / capacity_per_month * 100 + 0.5))
        rows.append({
            "month": m.strftime("%m/%Y"),
            "month_start": m.date(),
            "working_days": working_days[m],
            "stage": s,
            "total_weight": w,
            "percent_occupation": pct,
            "status": occupation_status(pct, warning_threshold),
        })
    cols = ["month", "month_start", "working_days", "stage", "total_weight", "percent_occupation", "status"]
    return pd.DataFrame(rows, columns=cols)
