# src/fab_planner/api/routers/feasibility.py
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ... import config
from ...analysis.feasibility import calculate_feasibility
from ...analysis.workload import SimulatedWorkloadProvider
from ...schemas import CalculatorItem, CompanyCalendar, FeasibilityResult
from ..deps import resolve_calendar, resolve_holidays

router = APIRouter(prefix="/feasibility", tags=["feasibility"])


class FeasibilityRequest(BaseModel):
    items: List[CalculatorItem] = Field(default_factory=list)
    # stage -> utilization in [0, 1]; when omitted a simulated workload is used
    sector_workload: Optional[Dict[str, float]] = None
    requested_delivery_date: date
    today: Optional[date] = None
    use_business_days: bool = False
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


@router.post("", response_model=FeasibilityResult)
def feasibility(req: FeasibilityRequest):
    workload = req.sector_workload
    if workload is None:
        workload = SimulatedWorkloadProvider(seed=config.WORKLOAD_SEED)
    try:
        return calculate_feasibility(
            req.items,
            workload,
            req.requested_delivery_date,
            today=req.today,
            calendar=resolve_calendar(req.calendar),
            holidays=resolve_holidays(req.holidays),
            use_business_days=req.use_business_days,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/simulated-workload")
def simulated_workload(
    stages: List[str] = Query(default=[]),
    seed: Optional[int] = None,
    low: float = 0.3,
    high: float = 1.0,
):
    try:
        provider = SimulatedWorkloadProvider(low=low, high=high, seed=seed if seed is not None else config.WORKLOAD_SEED)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return provider.get_workload(stages)
