# src/fab_planner/api/routers/assignments.py
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ...schemas import CompanyCalendar, DependencyIssue, TaskAssignment
from ...scheduling.dependencies import (
    DependencyCycleError,
    toggle_dependency,
    update_dependent_dates,
    validate_assignments,
)
from ..deps import resolve_calendar, resolve_holidays

router = APIRouter(prefix="/assignments", tags=["assignments"])
logger = logging.getLogger("fab_planner.api")


class PropagateRequest(BaseModel):
    assignments: List[TaskAssignment]
    changed_id: str
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


class ToggleRequest(BaseModel):
    assignments: List[TaskAssignment]
    assignment_id: str
    enabled: bool
    predecessor_id: Optional[str] = None
    calendar: Optional[CompanyCalendar] = None
    holidays: List[date] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    assignments: List[TaskAssignment]


@router.post("/propagate", response_model=List[TaskAssignment])
def propagate(req: PropagateRequest):
    try:
        return update_dependent_dates(
            req.assignments, req.changed_id, resolve_calendar(req.calendar), resolve_holidays(req.holidays)
        )
    except DependencyCycleError as e:
        logger.warning("propagation refused: %s", e)
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/toggle-dependency", response_model=List[TaskAssignment])
def toggle(req: ToggleRequest):
    try:
        return toggle_dependency(
            req.assignments,
            req.assignment_id,
            req.enabled,
            predecessor_id=req.predecessor_id,
            calendar=resolve_calendar(req.calendar),
            holidays=resolve_holidays(req.holidays),
        )
    except DependencyCycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/validate", response_model=List[DependencyIssue])
def validate(req: ValidateRequest):
    return validate_assignments(req.assignments)
