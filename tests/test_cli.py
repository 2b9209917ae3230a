"""Tests for the command-line entry point."""
import pytest

from fab_planner.cli import main


def test_add_days(capsys: pytest.CaptureFixture) -> None:
    main(["add-days", "--start", "2024-01-01", "--days", "5"])
    assert capsys.readouterr().out.strip() == "2024-01-08"


def test_add_days_with_holiday_file(tmp_path, capsys: pytest.CaptureFixture) -> None:
    holidays = tmp_path / "holidays.csv"
    holidays.write_text("date\n2024-01-01\n", encoding="utf-8")
    main(["add-days", "--start", "2023-12-29", "--days", "1", "--holidays", str(holidays)])
    assert capsys.readouterr().out.strip() == "2024-01-02"


def test_lead_time(tmp_path, capsys: pytest.CaptureFixture) -> None:
    stages = tmp_path / "stages.csv"
    stages.write_text("product,stage,days\nP1,Corte,2\nP1,Solda,3\nP1,Pintura,1\nP2,Montagem,30\n", encoding="utf-8")
    main(["lead-time", "--stages", str(stages)])
    out = capsys.readouterr().out.splitlines()
    assert out == ["P1: 6 dias (short)", "P2: 30 dias (long)"]


def test_feasibility_with_report(tmp_path, capsys: pytest.CaptureFixture) -> None:
    stages = tmp_path / "stages.csv"
    stages.write_text("product,stage,days\nP1,Solda,10\n", encoding="utf-8")
    items = tmp_path / "items.csv"
    items.write_text("product,quantity\nP1,1\n", encoding="utf-8")
    workload = tmp_path / "workload.csv"
    workload.write_text("stage,workload\nSolda,95%\n", encoding="utf-8")
    report = tmp_path / "report.xlsx"

    main([
        "feasibility", "--stages", str(stages), "--items", str(items), "--workload", str(workload),
        "--requested", "2024-03-01", "--today", "2024-01-01", "--out", str(report),
    ])

    out = capsys.readouterr().out
    assert "Solda: 10 -> 30 days (workload 95%) [BOTTLENECK]" in out
    assert "Suggested date: 2024-01-31" in out
    assert "Viable: yes" in out
    assert report.exists()


def test_unknown_command_exits() -> None:
    with pytest.raises(SystemExit):
        main(["bogus"])


def test_occupation(tmp_path, capsys: pytest.CaptureFixture) -> None:
    plans = tmp_path / "planned.csv"
    plans.write_text("stage,start,end,weight\nSolda,2024-01-21,2024-02-10,40000\n", encoding="utf-8")
    main(["occupation", "--plans", str(plans), "--start", "2024-01-01", "--months", "2", "--capacity", "20000"])
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "01/2024 Solda: 110% (critical, 23 working days)",
        "02/2024 Solda: 90% (warning, 21 working days)",
    ]


def test_closed_calendar_is_reported_without_traceback(tmp_path, capsys: pytest.CaptureFixture) -> None:
    cal = tmp_path / "calendar.csv"
    cal.write_text("day,enabled\nmonday,no\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["add-days", "--start", "2024-01-01", "--days", "1", "--calendar", str(cal)])
    assert exc.value.code == 1
    err = capsys.readouterr().err
    assert "error: calendar has no enabled weekday" in err
    assert "Traceback" not in err


def test_bad_stage_table_is_reported(tmp_path, capsys: pytest.CaptureFixture) -> None:
    stages = tmp_path / "stages.csv"
    stages.write_text("foo,bar\n1,2\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["lead-time", "--stages", str(stages)])
    assert exc.value.code == 1
    assert "missing required columns" in capsys.readouterr().err

    with pytest.raises(SystemExit) as exc:
        main(["lead-time", "--stages", str(tmp_path / "absent.csv")])
    assert exc.value.code == 1
