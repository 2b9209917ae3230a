"""Tests for the workload-adjusted feasibility estimator."""
import logging
from datetime import date

import pytest

from fab_planner.analysis.feasibility import (
    adjustment_factor,
    calculate_feasibility,
    confidence_score,
    consolidate_stage_load,
    total_adjusted_lead_time,
    workload_band,
)
from fab_planner.analysis.workload import SimulatedWorkloadProvider, StaticWorkloadProvider
from fab_planner.schemas import CalculatorItem, CompanyCalendar, Stage, StageAnalysis

TODAY = date(2024, 1, 1)


def item(product_id: str, quantity: float, *stages) -> CalculatorItem:
    return CalculatorItem(
        product_id=product_id,
        quantity=quantity,
        stages=[Stage(stage_name=n, duration_days=d) for n, d in stages],
    )


def analysis(name: str, adjusted: int, bottleneck: bool) -> StageAnalysis:
    return StageAnalysis(
        stage_name=name,
        original_duration=adjusted,
        adjusted_duration=adjusted,
        workload=0.5,
        adjustment_factor=1.0,
        bottleneck=bottleneck,
    )


def test_overloaded_welding_is_a_bottleneck() -> None:
    res = calculate_feasibility([item("P1", 1, ("Solda", 10))], {"Solda": 0.95}, date(2024, 3, 1), today=TODAY)

    solda = res.analysis[0]
    assert 2.5 <= solda.adjustment_factor <= 3.5
    assert solda.adjustment_factor == pytest.approx(3.0)
    assert solda.bottleneck
    assert solda.adjusted_duration == 30
    assert res.total_adjusted_lead_time == 30
    assert res.suggested_date == date(2024, 1, 31)
    assert res.is_viable
    assert res.confidence == 18
    assert [b.stage_name for b in res.bottlenecks] == ["Solda"]


@pytest.mark.parametrize(
    "w, band, factor, bottleneck",
    [
        (0.0, "low", 0.8, False),
        (0.25, "low", 0.9, False),
        (0.5, "normal", 1.0, False),
        (0.6, "normal", 1.15, False),
        (0.7, "high", 1.3, False),
        (0.75, "high", 1.55, False),
        (0.76, "high", 1.6, True),
        (0.8, "overloaded", 1.8, True),
        (0.9, "critical", 2.5, True),
        (1.0, "critical", 3.5, True),
        (1.7, "critical", 3.5, True),
        (-0.2, "low", 0.8, False),
    ],
)
def test_workload_bands(w: float, band: str, factor: float, bottleneck: bool) -> None:
    name, f, b = workload_band(w)
    assert name == band
    assert f == pytest.approx(factor)
    assert b is bottleneck
    assert adjustment_factor(w) == pytest.approx(factor)


def test_factor_never_decreases_with_workload() -> None:
    factors = [adjustment_factor(i / 100) for i in range(101)]
    assert factors == sorted(factors)


def test_shared_stage_takes_heaviest_item() -> None:
    loads = consolidate_stage_load([
        item("P1", 2, ("Corte", 3), ("Solda", 1)),
        item("P2", 1, ("Corte", 4), ("Pintura", 2)),
    ])
    assert loads == {"Corte": 6, "Solda": 2, "Pintura": 2}
    assert list(loads) == ["Corte", "Solda", "Pintura"]


def test_stage_without_workload_runs_at_nominal_speed() -> None:
    res = calculate_feasibility([item("P1", 1, ("Montagem", 4))], {}, date(2024, 2, 1), today=TODAY)
    a = res.analysis[0]
    assert a.workload == 0.5
    assert a.adjustment_factor == 1.0
    assert a.adjusted_duration == 4


def test_float_products_do_not_round_up() -> None:
    res = calculate_feasibility([item("P1", 10, ("Corte", 1))], {"Corte": 0.7}, date(2024, 2, 1), today=TODAY)
    assert res.analysis[0].adjusted_duration == 13


def test_bottlenecks_run_back_to_back() -> None:
    assert total_adjusted_lead_time([analysis("A", 10, True), analysis("B", 7, True), analysis("C", 5, False)]) == 17
    assert total_adjusted_lead_time([analysis("A", 10, True), analysis("C", 30, False)]) == 36
    assert total_adjusted_lead_time([analysis("A", 4, False), analysis("B", 9, False)]) == 9
    assert total_adjusted_lead_time([]) == 0


def test_mixed_plan_total() -> None:
    res = calculate_feasibility(
        [item("P1", 1, ("Solda", 10), ("Pintura", 30))],
        {"Solda": 0.95, "Pintura": 0.5},
        date(2024, 6, 1),
        today=TODAY,
    )
    assert res.total_adjusted_lead_time == 36
    assert res.suggested_date == date(2024, 2, 6)


def test_request_too_close_is_not_viable() -> None:
    res = calculate_feasibility([item("P1", 1, ("Solda", 10))], {"Solda": 0.95}, date(2024, 1, 10), today=TODAY)
    assert not res.is_viable
    assert res.confidence == 5


def test_no_items_is_always_viable() -> None:
    res = calculate_feasibility([], {"Solda": 0.99}, date(2023, 12, 1), today=TODAY)
    assert res.is_viable
    assert res.analysis == []
    assert res.total_adjusted_lead_time == 0
    assert res.suggested_date == TODAY
    assert 5 <= res.confidence <= 95
    assert res.confidence == 90


@pytest.mark.parametrize("w", [0.0, 0.3, 0.55, 0.78, 0.85, 0.99, 1.0])
@pytest.mark.parametrize("requested", [date(2024, 1, 2), date(2024, 2, 1), date(2025, 1, 1)])
def test_confidence_stays_in_bounds(w: float, requested: date) -> None:
    res = calculate_feasibility(
        [item("P1", 3, ("Corte", 2), ("Solda", 5)), item("P2", 1, ("Solda", 8))],
        {"Corte": w, "Solda": w},
        requested,
        today=TODAY,
    )
    assert 5 <= res.confidence <= 95


def test_confidence_margins() -> None:
    assert confidence_score(0.5, 0, 100, 50) == 70  # wide margin bonus
    assert confidence_score(0.0, 0, 100, 50) == 95
    assert confidence_score(1.0, 3, 10, 50) == 5
    assert confidence_score(0.5, 0, 55, 50) == 40  # tight margin
    assert confidence_score(0.5, 0, 70, 50) == 60
    assert confidence_score(0.5, 0, 40, 50) == 30  # inviable
    assert confidence_score(0.5, 0, -12, 0) == 30
    assert confidence_score(0.5, 0, -12, 0, viable=True) == 60


def test_same_inputs_same_result() -> None:
    items = [item("P1", 2, ("Corte", 2), ("Solda", 3))]
    first = calculate_feasibility(items, SimulatedWorkloadProvider(seed=11), date(2024, 2, 1), today=TODAY)
    second = calculate_feasibility(items, SimulatedWorkloadProvider(seed=11), date(2024, 2, 1), today=TODAY)
    assert first == second


def test_provider_is_accepted() -> None:
    res = calculate_feasibility(
        [item("P1", 1, ("Solda", 2))], StaticWorkloadProvider({"Solda": 0.85}), date(2024, 2, 1), today=TODAY
    )
    assert res.analysis[0].workload == 0.85
    assert res.analysis[0].bottleneck


def test_business_day_mode(calendar: CompanyCalendar) -> None:
    items = [item("P1", 1, ("Corte", 3))]
    friday = date(2024, 3, 1)
    by_calendar = calculate_feasibility(items, {"Corte": 0.5}, date(2024, 3, 20), today=friday)
    by_business = calculate_feasibility(
        items, {"Corte": 0.5}, date(2024, 3, 20), today=friday, calendar=calendar, use_business_days=True
    )
    assert by_calendar.suggested_date == date(2024, 3, 4)
    assert by_business.suggested_date == date(2024, 3, 6)
    with_holiday = calculate_feasibility(
        items, {"Corte": 0.5}, date(2024, 3, 20), today=friday,
        calendar=calendar, holidays=[date(2024, 3, 5)], use_business_days=True,
    )
    assert with_holiday.suggested_date == date(2024, 3, 7)


def test_invalid_items_are_rejected() -> None:
    with pytest.raises(ValueError):
        item("P1", 0, ("Corte", 1))
    with pytest.raises(ValueError):
        item("P1", 1, ("Corte", -2))


def test_bottlenecks_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="fab_planner.feasibility")
    calculate_feasibility([item("P1", 1, ("Solda", 10))], {"Solda": 0.95}, date(2024, 3, 1), today=TODAY)
    assert any("bottleneck" in r.getMessage() for r in caplog.records)


def test_zero_length_plan_past_due_is_penalized() -> None:
    res = calculate_feasibility([item("P1", 1, ("Corte", 0))], {"Corte": 0.5}, date(2023, 12, 20), today=TODAY)
    assert res.total_adjusted_lead_time == 0
    assert not res.is_viable
    assert res.confidence == 30
