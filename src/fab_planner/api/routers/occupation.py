# src/fab_planner/api/routers/occupation.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ... import config
from ...analysis.workload import monthly_occupation
from ...schemas import CompanyCalendar, MonthlyOccupation, PlannedStage
from ..deps import resolve_calendar, resolve_holidays

router = APIRouter(prefix="/occupation", tags=["occupation"])


class OccupationRequest(BaseModel):
    stage_plans: List[PlannedStage] = Field(default_factory=list)
    start_month: date
    n_months: int = Field(default=6, ge=1, le=36)
    # defaults come from FAB_PLANNER_MONTHLY_CAPACITY_KG / FAB_PLANNER_WARNING_THRESHOLD
    capacity_per_month: Optional[float] = Field(default=None, gt=0)
    warning_threshold: Optional[float] = None
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


@router.post("", response_model=List[MonthlyOccupation])
def occupation(req: OccupationRequest):
    try:
        df = monthly_occupation(
            [p.model_dump() for p in req.stage_plans],
            req.start_month,
            n_months=req.n_months,
            capacity_per_month=req.capacity_per_month or config.MONTHLY_CAPACITY_KG,
            warning_threshold=req.warning_threshold if req.warning_threshold is not None else config.WARNING_THRESHOLD,
            calendar=resolve_calendar(req.calendar),
            holidays=resolve_holidays(req.holidays),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return df.to_dict(orient="records")
