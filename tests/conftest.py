"""Shared fixtures for the fab_planner test suite."""
from datetime import datetime

import pytest

from fab_planner import config
from fab_planner.schemas import CompanyCalendar, TaskAssignment


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of FAB_PLANNER_* settings in the environment."""
    from fab_planner.api import deps

    monkeypatch.setattr(config, "HOLIDAYS_FILE", None)
    monkeypatch.setattr(config, "CALENDAR_FILE", None)
    monkeypatch.setattr(config, "MONTHLY_CAPACITY_KG", 80000.0)
    monkeypatch.setattr(config, "WARNING_THRESHOLD", 70.0)
    deps.configured_holidays.cache_clear()
    deps.configured_calendar.cache_clear()


@pytest.fixture
def calendar() -> CompanyCalendar:
    return CompanyCalendar.default()


@pytest.fixture
def make_assignment():
    """Factory for TaskAssignment with a few defaults filled in."""

    def _make(
        aid: str,
        start: datetime,
        end: datetime,
        duration: float = 1,
        depends_on: list[str] | None = None,
        task_id: str | None = None,
    ) -> TaskAssignment:
        return TaskAssignment(
            id=aid,
            order_id="OP-1",
            task_id=task_id or f"task-{aid}",
            duration=duration,
            start_date=start,
            end_date=end,
            depends_on=depends_on or [],
        )

    return _make
