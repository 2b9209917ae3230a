"""Tests for the Excel/Gantt report."""
from datetime import date, datetime

import pandas as pd

from fab_planner.analysis.feasibility import calculate_feasibility
from fab_planner.export.report import assignments_frame, export_excel, feasibility_frame
from fab_planner.schemas import CalculatorItem, Stage
from fab_planner.scheduling.lead_time import schedule_stages


def _result():
    items = [CalculatorItem(
        product_id="P1",
        quantity=1,
        stages=[Stage(stage_name="Corte", duration_days=2), Stage(stage_name="Solda", duration_days=10)],
    )]
    return calculate_feasibility(items, {"Corte": 0.4, "Solda": 0.95}, date(2024, 3, 1), today=date(2024, 1, 1))


def test_feasibility_frame_columns() -> None:
    df = feasibility_frame(_result())
    assert df["stage_name"].tolist() == ["Corte", "Solda"]
    assert df["bottleneck"].tolist() == [False, True]


def test_assignments_frame_drops_timezone(make_assignment) -> None:
    a = make_assignment(
        "A", pd.Timestamp("2024-03-04 08:00", tz="UTC").to_pydatetime(),
        pd.Timestamp("2024-03-05 08:00", tz="UTC").to_pydatetime(), depends_on=["Z"],
    )
    df = assignments_frame([a])
    assert df.loc[0, "start_date"].tzinfo is None
    assert df.loc[0, "depends_on"] == "Z"


def test_export_writes_all_sheets(tmp_path, make_assignment) -> None:
    assignments = [
        make_assignment("A", datetime(2024, 3, 4), datetime(2024, 3, 6), duration=2),
        make_assignment("B", datetime(2024, 3, 6), datetime(2024, 3, 7), depends_on=["A"]),
    ]
    stages = schedule_stages([Stage(stage_name="Corte", duration_days=2)], date(2024, 3, 4))

    out, png = export_excel(
        tmp_path / "out" / "report.xlsx",
        feasibility=_result(),
        assignments=assignments,
        stages=stages,
        requested_date=date(2024, 3, 1),
    )

    sheets = pd.read_excel(out, sheet_name=None, engine="openpyxl")
    assert set(sheets) == {"Summary", "Analysis", "Assignments", "Stages"}
    assert sheets["Assignments"]["id"].tolist() == ["A", "B"]
    assert png is not None and png.endswith("report_gantt.png")
    assert (tmp_path / "out" / "report_gantt.png").exists()


def test_export_without_bars_has_no_gantt(tmp_path) -> None:
    out, png = export_excel(tmp_path / "only_kpi.xlsx", feasibility=_result())
    assert png is None
    assert set(pd.read_excel(out, sheet_name=None, engine="openpyxl")) == {"Summary", "Analysis"}
