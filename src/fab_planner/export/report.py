from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from ..schemas import FeasibilityResult, StagePlanning, TaskAssignment  # noqa: E402


def feasibility_frame(result: FeasibilityResult) -> pd.DataFrame:
    return pd.DataFrame(
        [a.model_dump() for a in result.analysis],
        columns=["stage_name", "original_duration", "adjusted_duration", "workload", "adjustment_factor", "bottleneck"],
    )


def assignments_frame(assignments: Sequence[TaskAssignment]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": a.id,
                "order_id": a.order_id,
                "task_id": a.task_id,
                "duration": a.duration,
                "start_date": pd.Timestamp(a.start_date).tz_localize(None) if a.start_date.tzinfo else a.start_date,
                "end_date": pd.Timestamp(a.end_date).tz_localize(None) if a.end_date.tzinfo else a.end_date,
                "progress": a.progress,
                "depends_on": ", ".join(a.depends_on),
                "responsible_email": a.responsible_email,
            }
            for a in assignments
        ],
        columns=["id", "order_id", "task_id", "duration", "start_date", "end_date", "progress", "depends_on", "responsible_email"],
    )


def stages_frame(stages: Sequence[StagePlanning]) -> pd.DataFrame:
    return pd.DataFrame(
        [s.model_dump() for s in stages],
        columns=["stage_name", "days", "start_date", "end_date", "responsible"],
    )


def _gantt_png(bars: pd.DataFrame, label_col: str, out_png: str) -> str | None:
    """Simplified Gantt (first 200 bars), days from the earliest start on the x axis."""
    if bars.empty:
        return None
    head = bars.sort_values("start_date").head(200).reset_index(drop=True)
    base = pd.to_datetime(head["start_date"]).min()
    fig, ax = plt.subplots(figsize=(10, max(3, 0.4 * len(head) + 1)))
    for i, r in head.iterrows():
        start_delta = (pd.to_datetime(r["start_date"]) - base).total_seconds() / 86400.0
        dur_d = (pd.to_datetime(r["end_date"]) - pd.to_datetime(r["start_date"])).total_seconds() / 86400.0
        ax.broken_barh([(start_delta, max(dur_d, 0.2))], (i * 0.9, 0.8))
    ax.set_yticks([i * 0.9 + 0.4 for i in range(len(head))])
    ax.set_yticklabels(head[label_col].astype(str).tolist())
    ax.invert_yaxis()
    ax.set_xlabel("Days from first start")
    ax.set_title("Gantt (simplified)")
    plt.tight_layout()
    fig.savefig(out_png, dpi=150)
    plt.close(fig)
    return out_png


def export_excel(
    out_path: str | Path,
    feasibility: FeasibilityResult | None = None,
    assignments: Sequence[TaskAssignment] | None = None,
    stages: Sequence[StagePlanning] | None = None,
    requested_date=None,
) -> tuple[str, str | None]:
    """Write the workbook; returns (xlsx path, gantt png path or None)."""
    out_path = str(out_path)
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)

    df_asg = assignments_frame(assignments or [])
    df_st = stages_frame(stages or [])
    gantt_png = None
    if not df_asg.empty:
        gantt_png = _gantt_png(df_asg, "task_id", out_path.replace(".xlsx", "_gantt.png"))
    elif not df_st.empty:
        gantt_png = _gantt_png(df_st, "stage_name", out_path.replace(".xlsx", "_gantt.png"))

    with pd.ExcelWriter(out_path, engine="xlsxwriter", datetime_format="yyyy-mm-dd hh:mm") as writer:
        workbook = writer.book
        kpi_sheet = workbook.add_worksheet("Summary")
        writer.sheets["Summary"] = kpi_sheet
        row = 0
        if feasibility is not None:
            kpi = [
                ("Viable", "yes" if feasibility.is_viable else "no"),
                ("Suggested date", feasibility.suggested_date.isoformat()),
                ("Adjusted lead time (days)", int(feasibility.total_adjusted_lead_time)),
                ("Confidence (%)", int(feasibility.confidence)),
                ("# bottleneck stages", len(feasibility.bottlenecks)),
            ]
            if requested_date is not None:
                kpi.insert(1, ("Requested date", str(requested_date)))
            for label, value in kpi:
                kpi_sheet.write(row, 0, label)
                kpi_sheet.write(row, 1, value)
                row += 1

            df_an = feasibility_frame(feasibility)
            df_an.to_excel(writer, sheet_name="Analysis", index=False)
            ws = writer.sheets["Analysis"]
            red = workbook.add_format({"bg_color": "#FECACA"})
            for i, bottleneck in enumerate(df_an["bottleneck"].tolist(), start=1):
                if bottleneck:
                    ws.set_row(i, None, red)

        if not df_asg.empty:
            df_asg.to_excel(writer, sheet_name="Assignments", index=False)
            kpi_sheet.write(row, 0, "# assignments")
            kpi_sheet.write(row, 1, int(len(df_asg)))
            row += 1
        if not df_st.empty:
            df_st.to_excel(writer, sheet_name="Stages", index=False)

        if gantt_png:
            kpi_sheet.insert_image(row + 1, 0, gantt_png, {"x_scale": 0.8, "y_scale": 0.8})

    return out_path, gantt_png
