from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


# ---------- calendar ----------

class WorkingHours(BaseModel):
    start: str
    end: str


class WorkingDay(BaseModel):
    enabled: bool = False
    hours: list[WorkingHours] = Field(default_factory=list)


class CompanyCalendar(BaseModel):
    """Weekly template. A weekday left as None is malformed and counts as disabled."""
    monday: Optional[WorkingDay] = None
    tuesday: Optional[WorkingDay] = None
    wednesday: Optional[WorkingDay] = None
    thursday: Optional[WorkingDay] = None
    friday: Optional[WorkingDay] = None
    saturday: Optional[WorkingDay] = None
    sunday: Optional[WorkingDay] = None

    @classmethod
    def default(cls) -> "CompanyCalendar":
        def shift() -> WorkingDay:
            return WorkingDay(
                enabled=True,
                hours=[WorkingHours(start="08:00", end="12:00"), WorkingHours(start="13:00", end="17:00")],
            )

        return cls(
            monday=shift(), tuesday=shift(), wednesday=shift(), thursday=shift(), friday=shift(),
            saturday=WorkingDay(enabled=False), sunday=WorkingDay(enabled=False),
        )

    def day(self, weekday: int) -> Optional[WorkingDay]:
        return getattr(self, WEEKDAYS[weekday])

    def working_weekdays(self) -> list[int]:
        return [i for i in range(7) if (d := self.day(i)) is not None and d.enabled]


# ---------- plans / tasks ----------

class Stage(BaseModel):
    stage_name: str
    duration_days: Optional[float] = Field(default=None, ge=0)


class StagePlanning(BaseModel):
    stage_name: str
    days: float
    start_date: datetime
    end_date: datetime
    responsible: str = ""


class LeadTimeBadge(BaseModel):
    days: int
    category: str  # undefined | short | medium | long
    color: Optional[str] = None
    label: str


class Task(BaseModel):
    id: str
    name: str
    description: str = ""
    color: str = ""
    order: int = 0


class TaskUpdate(BaseModel):
    timestamp: datetime
    progress: float
    notes: Optional[str] = None


class TaskAssignment(BaseModel):
    id: str
    order_id: str
    task_id: str
    duration: float = Field(gt=0)
    start_date: datetime
    end_date: datetime
    progress: float = Field(default=0, ge=0, le=100)
    depends_on: list[str] = Field(default_factory=list)
    responsible_email: str = ""
    updates: list[TaskUpdate] = Field(default_factory=list)


class DependencyIssue(BaseModel):
    assignment_id: str
    kind: str  # missing_dependency | self_dependency | cycle | invalid_duration
    message: str


# ---------- feasibility ----------

class CalculatorItem(BaseModel):
    product_id: str
    quantity: float = Field(gt=0)
    stages: list[Stage] = Field(default_factory=list)


class StageAnalysis(BaseModel):
    stage_name: str
    original_duration: float
    adjusted_duration: int
    workload: float
    adjustment_factor: float
    bottleneck: bool


class FeasibilityResult(BaseModel):
    is_viable: bool
    suggested_date: date
    analysis: list[StageAnalysis]
    total_adjusted_lead_time: int
    confidence: int = Field(ge=0, le=100)

    @property
    def bottlenecks(self) -> list[StageAnalysis]:
        return [a for a in self.analysis if a.bottleneck]


# ---------- occupation ----------

class PlannedStage(BaseModel):
    stage: str
    start_date: datetime
    end_date: datetime
    weight: float = Field(default=1.0, ge=0)


class MonthlyOccupation(BaseModel):
    month: str  # MM/YYYY
    month_start: date
    working_days: int
    stage: str
    total_weight: float
    percent_occupation: int
    status: str  # critical | warning | normal | low
