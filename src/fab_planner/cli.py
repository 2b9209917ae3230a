import argparse
from datetime import date, datetime

from . import config
from .analysis.feasibility import calculate_feasibility
from .analysis.workload import SimulatedWorkloadProvider, monthly_occupation
from .export.report import export_excel
from .ingest.loader import (
    load_calculator_items,
    load_calendar,
    load_holidays,
    load_planned_stages,
    load_stage_plans,
    load_workload,
)
from .schemas import CompanyCalendar
from .scheduling.business_days import add_business_days
from .scheduling.lead_time import calculate_lead_time, classify_lead_time


def _date(s: str) -> date:
    return datetime.strptime(s, "%Y-%m-%d").date()


def _calendar_and_holidays(args):
    cal_path = args.calendar or config.CALENDAR_FILE
    hol_path = args.holidays or config.HOLIDAYS_FILE
    calendar = load_calendar(cal_path) if cal_path else CompanyCalendar.default()
    holidays = load_holidays(hol_path) if hol_path else frozenset()
    return calendar, holidays


def cmd_add_days(args) -> None:
    calendar, holidays = _calendar_and_holidays(args)
    result = add_business_days(args.start, args.days, calendar, holidays)
    print(result.isoformat())


def cmd_lead_time(args) -> None:
    plans = load_stage_plans(args.stages)
    for product_id, stages in plans.items():
        days = calculate_lead_time(stages)
        badge = classify_lead_time(days)
        print(f"{product_id or '-'}: {badge.label} ({badge.category})")


def cmd_feasibility(args) -> None:
    calendar, holidays = _calendar_and_holidays(args)
    plans = load_stage_plans(args.stages)
    items = load_calculator_items(args.items, plans)
    if args.workload:
        workload = load_workload(args.workload)
    else:
        workload = SimulatedWorkloadProvider(seed=args.seed if args.seed is not None else config.WORKLOAD_SEED)
    res = calculate_feasibility(
        items,
        workload,
        args.requested,
        today=args.today,
        calendar=calendar,
        holidays=holidays,
        use_business_days=args.business_days,
    )
    for a in res.analysis:
        flag = " [BOTTLENECK]" if a.bottleneck else ""
        print(f"{a.stage_name}: {a.original_duration:g} -> {a.adjusted_duration} days (workload {a.workload:.0%}){flag}")
    print(f"Adjusted lead time: {res.total_adjusted_lead_time} days")
    print(f"Suggested date: {res.suggested_date.isoformat()}")
    print(f"Viable: {'yes' if res.is_viable else 'no'} (confidence {res.confidence}%)")
    if args.out:
        out_xlsx, gantt_png = export_excel(args.out, feasibility=res, requested_date=args.requested)
        print("Exported:", out_xlsx, "Gantt:", gantt_png)


def cmd_occupation(args) -> None:
    calendar, holidays = _calendar_and_holidays(args)
    plans = load_planned_stages(args.plans)
    df = monthly_occupation(
        plans,
        args.start,
        n_months=args.months,
        capacity_per_month=args.capacity if args.capacity is not None else config.MONTHLY_CAPACITY_KG,
        warning_threshold=args.threshold if args.threshold is not None else config.WARNING_THRESHOLD,
        calendar=calendar,
        holidays=holidays,
    )
    for r in df.itertuples(index=False):
        print(f"{r.month} {r.stage}: {r.percent_occupation}% ({r.status}, {r.working_days} working days)")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fab Planner CLI")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    def calendar_opts(p):
        p.add_argument("--calendar", help="weekly calendar table (.xlsx/.csv)")
        p.add_argument("--holidays", help="holiday table (.xlsx/.csv)")

    add_p = sub.add_parser("add-days", help="Add a signed number of business days to a date")
    add_p.add_argument("--start", required=True, type=_date)
    add_p.add_argument("--days", required=True, type=int)
    calendar_opts(add_p)
    add_p.set_defaults(func=cmd_add_days)

    lt_p = sub.add_parser("lead-time", help="Lead time per product from a stage table")
    lt_p.add_argument("--stages", required=True)
    lt_p.set_defaults(func=cmd_lead_time)

    fz_p = sub.add_parser("feasibility", help="Stage table + items + workload -> delivery feasibility")
    fz_p.add_argument("--stages", required=True)
    fz_p.add_argument("--items", required=True)
    fz_p.add_argument("--workload", help="stage workload table; simulated when omitted")
    fz_p.add_argument("--requested", required=True, type=_date)
    fz_p.add_argument("--today", type=_date, default=None)
    fz_p.add_argument("--seed", type=int, default=None)
    fz_p.add_argument("--business-days", action="store_true")
    fz_p.add_argument("--out", default=None, help="write an Excel report")
    calendar_opts(fz_p)
    fz_p.set_defaults(func=cmd_feasibility)

    oc_p = sub.add_parser("occupation", help="Monthly occupation per stage from dated stage plans")
    oc_p.add_argument("--plans", required=True)
    oc_p.add_argument("--start", required=True, type=_date, help="any day of the first month")
    oc_p.add_argument("--months", type=int, default=6)
    oc_p.add_argument("--capacity", type=float, default=None, help="kg per month")
    oc_p.add_argument("--threshold", type=float, default=None, help="warning threshold (percent)")
    calendar_opts(oc_p)
    oc_p.set_defaults(func=cmd_occupation)

    args = parser.parse_args(argv)
    config.configure_logging(args.log_level)
    try:
        args.func(args)
    except (ValueError, FileNotFoundError) as e:
        parser.exit(1, f"{parser.prog}: error: {e}\n")


if __name__ == "__main__":
    main()
