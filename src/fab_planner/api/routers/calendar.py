# src/fab_planner/api/routers/calendar.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ...schemas import CompanyCalendar
from ...scheduling.business_days import add_business_days, add_working_days
from ...scheduling.calendar import CalendarConfigError, is_working_day, warn_missing_weekdays
from ..deps import resolve_calendar, resolve_holidays

router = APIRouter(prefix="/calendar", tags=["calendar"])


class CalendarContext(BaseModel):
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


class WorkingDayRequest(CalendarContext):
    day: date


class AddBusinessDaysRequest(CalendarContext):
    start_date: datetime
    days: int


class AddWorkingDaysRequest(CalendarContext):
    start_date: datetime
    duration_days: float = Field(ge=0)


@router.post("/working-day")
def working_day(req: WorkingDayRequest):
    cal = resolve_calendar(req.calendar)
    warn_missing_weekdays(cal)
    return {"day": req.day, "is_working_day": is_working_day(req.day, cal, resolve_holidays(req.holidays))}


@router.post("/add-business-days")
def add_business_days_ep(req: AddBusinessDaysRequest):
    try:
        result = add_business_days(req.start_date, req.days, resolve_calendar(req.calendar), resolve_holidays(req.holidays))
    except CalendarConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"start_date": req.start_date, "days": req.days, "result": result}


@router.post("/add-working-days")
def add_working_days_ep(req: AddWorkingDaysRequest):
    try:
        result = add_working_days(
            req.start_date, req.duration_days, resolve_calendar(req.calendar), resolve_holidays(req.holidays)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"start_date": req.start_date, "duration_days": req.duration_days, "result": result}
