# src/fab_planner/api/routers/plans.py
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ...schemas import CompanyCalendar, LeadTimeBadge, Stage, StagePlanning
from ...scheduling.lead_time import calculate_lead_time, classify_lead_time, schedule_stages
from ..deps import resolve_calendar, resolve_holidays

router = APIRouter(prefix="/plans", tags=["plans"])


class LeadTimeRequest(BaseModel):
    stages: List[Stage] = Field(default_factory=list)


class LeadTimeResponse(BaseModel):
    lead_time_days: int
    badge: LeadTimeBadge


class ScheduleRequest(BaseModel):
    stages: List[Stage]
    start_date: datetime
    responsible: Dict[str, str] = Field(default_factory=dict)
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


@router.post("/lead-time", response_model=LeadTimeResponse)
def lead_time(req: LeadTimeRequest):
    days = calculate_lead_time(req.stages)
    return LeadTimeResponse(lead_time_days=days, badge=classify_lead_time(days))


@router.post("/schedule", response_model=List[StagePlanning])
def schedule(req: ScheduleRequest):
    try:
        return schedule_stages(
            req.stages,
            req.start_date,
            resolve_calendar(req.calendar),
            resolve_holidays(req.holidays),
            responsible=req.responsible,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
