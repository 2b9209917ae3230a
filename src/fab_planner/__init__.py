"""Business-day scheduling and production-feasibility engine."""
from .analysis.feasibility import calculate_feasibility
from .analysis.workload import (
    OccupationWorkloadProvider,
    SimulatedWorkloadProvider,
    StaticWorkloadProvider,
    WorkloadProvider,
)
from .scheduling.business_days import add_business_days, add_working_days
from .scheduling.calendar import CalendarConfigError, is_working_day
from .scheduling.dependencies import DependencyCycleError, toggle_dependency, update_dependent_dates
from .scheduling.lead_time import calculate_lead_time, classify_lead_time, schedule_stages

__all__ = [
    "CalendarConfigError",
    "DependencyCycleError",
    "OccupationWorkloadProvider",
    "SimulatedWorkloadProvider",
    "StaticWorkloadProvider",
    "WorkloadProvider",
    "add_business_days",
    "add_working_days",
    "calculate_feasibility",
    "calculate_lead_time",
    "classify_lead_time",
    "is_working_day",
    "schedule_stages",
    "toggle_dependency",
    "update_dependent_dates",
]
