# src/fab_planner/ingest/loader.py
from __future__ import annotations

import re
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, Set

import pandas as pd

from ..schemas import WEEKDAYS, CalculatorItem, CompanyCalendar, Stage, WorkingDay, WorkingHours
from ..analysis.workload import stage_plans_frame
from ..scheduling.calendar import normalize_holidays

# ===================== Header synonyms (lowercase) =====================

HOLIDAY_SYNONYMS: Dict[str, Set[str]] = {
    "date": {"date", "holiday", "holidays", "data", "feriado", "feriados", "dia"},
    "name": {"name", "description", "descrição", "descricao", "nome"},
}

CALENDAR_SYNONYMS: Dict[str, Set[str]] = {
    "day": {"day", "weekday", "dia", "dia da semana", "dia_semana"},
    "enabled": {"enabled", "working", "active", "ativo", "habilitado", "útil", "util"},
    "start": {"start", "from", "início", "inicio", "entrada"},
    "end": {"end", "to", "fim", "término", "termino", "saída", "saida"},
}

STAGE_SYNONYMS: Dict[str, Set[str]] = {
    "product_id": {"product_id", "product", "item", "item_id", "produto", "código", "codigo"},
    "stage_name": {"stage_name", "stage", "etapa", "processo", "setor"},
    "duration_days": {"duration_days", "duration", "days", "dias", "prazo", "prazo (dias)"},
    "order": {"order", "sequence", "seq", "ordem", "sequência", "sequencia"},
}

ITEM_SYNONYMS: Dict[str, Set[str]] = {
    "product_id": {"product_id", "product", "item", "item_id", "produto", "código", "codigo"},
    "quantity": {"quantity", "qty", "quantidade", "qtd", "qtde"},
}

WORKLOAD_SYNONYMS: Dict[str, Set[str]] = {
    "stage_name": {"stage_name", "stage", "sector", "etapa", "setor"},
    "workload": {"workload", "utilization", "load", "carga", "ocupação", "ocupacao", "utilização", "utilizacao"},
}

WEEKDAY_SYNONYMS: Dict[str, Set[str]] = {
    "monday": {"monday", "mon", "segunda", "segunda-feira", "seg"},
    "tuesday": {"tuesday", "tue", "terça", "terca", "terça-feira", "terca-feira", "ter"},
    "wednesday": {"wednesday", "wed", "quarta", "quarta-feira", "qua"},
    "thursday": {"thursday", "thu", "quinta", "quinta-feira", "qui"},
    "friday": {"friday", "fri", "sexta", "sexta-feira", "sex"},
    "saturday": {"saturday", "sat", "sábado", "sabado", "sab"},
    "sunday": {"sunday", "sun", "domingo", "dom"},
}

_TRUE = {"1", "true", "yes", "y", "sim", "s", "x"}

# ===================== Helpers =====================

def _read_table(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if p.suffix.lower() == ".csv":
        return pd.read_csv(p, dtype=object)
    return pd.read_excel(p, engine="openpyxl", dtype=object)


def _rename_by_synonyms(df: pd.DataFrame, synonyms: dict[str, Set[str]]) -> pd.DataFrame:
    lower_map = {str(c).strip().lower(): c for c in df.columns}
    rename = {}
    for canon, syns in synonyms.items():
        for s in syns:
            if s in lower_map:
                rename[lower_map[s]] = canon
                break
    return df.rename(columns=rename)


def _require(df: pd.DataFrame, cols: list[str], what: str, original_cols: list) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"{what}: missing required columns {missing}. Found: {original_cols}")


def _clean_text(v) -> str:
    s = str(v).strip()
    if not s or s.lower() in {"nan", "none", "null"}:
        return ""
    if s.endswith(".0") and s[:-2].isdigit():
        s = s[:-2]
    return s


def _as_bool(v) -> bool:
    if isinstance(v, bool):
        return v
    return _clean_text(v).lower() in _TRUE


def _weekday_key(v) -> str | None:
    s = _clean_text(v).lower()
    if s.isdigit() and 0 <= int(s) <= 6:  # 0 = monday
        return WEEKDAYS[int(s)]
    for canon, syns in WEEKDAY_SYNONYMS.items():
        if s in syns:
            return canon
    return None


def _hhmm(v) -> str:
    s = _clean_text(v)
    m = re.match(r"^(\d{1,2}):(\d{2})", s)
    if not m:
        return s
    return f"{int(m.group(1)):02d}:{m.group(2)}"

# --------------------- Holidays ---------------------

def load_holidays(path: str | Path) -> frozenset[date]:
    df = _read_table(path)
    df = _rename_by_synonyms(df, HOLIDAY_SYNONYMS)
    col = "date" if "date" in df.columns else df.columns[0]
    values = pd.to_datetime(df[col], errors="coerce", dayfirst=False)
    bad = df.loc[values.isna() & df[col].notna(), col].tolist()
    if bad:
        raise ValueError(f"holidays: cannot parse dates {bad[:5]}")
    return normalize_holidays(ts.date() for ts in values.dropna())

# --------------------- Calendar ---------------------

def load_calendar(path: str | Path) -> CompanyCalendar:
    """One row per weekday and working window; weekdays absent from the table stay undefined."""
    df = _read_table(path)
    original_cols = list(df.columns)
    df = _rename_by_synonyms(df, CALENDAR_SYNONYMS)
    _require(df, ["day", "enabled"], "calendar", original_cols)

    days: dict[str, WorkingDay] = {}
    for r in df.itertuples(index=False):
        key = _weekday_key(r.day)
        if key is None:
            raise ValueError(f"calendar: unknown weekday {r.day!r}")
        wd = days.setdefault(key, WorkingDay(enabled=False))
        wd.enabled = wd.enabled or _as_bool(r.enabled)
        start = _hhmm(getattr(r, "start", "")) if "start" in df.columns else ""
        end = _hhmm(getattr(r, "end", "")) if "end" in df.columns else ""
        if start and end:
            wd.hours.append(WorkingHours(start=start, end=end))
    return CompanyCalendar(**days)

# --------------------- Stage plans ---------------------

def load_stage_plans(path: str | Path) -> dict[str, list[Stage]]:
    """product_id -> ordered stages. Without a product column every row goes under ''."""
    df = _read_table(path)
    original_cols = list(df.columns)
    df = _rename_by_synonyms(df, STAGE_SYNONYMS)
    _require(df, ["stage_name"], "stage plan", original_cols)

    if "product_id" not in df.columns:
        df["product_id"] = ""
    if "duration_days" in df.columns:
        df["duration_days"] = pd.to_numeric(df["duration_days"], errors="coerce")
    else:
        df["duration_days"] = None
    df["product_id"] = df["product_id"].map(_clean_text)
    df["stage_name"] = df["stage_name"].map(_clean_text)
    df = df[df["stage_name"] != ""].copy()
    if "order" in df.columns:
        df["order"] = pd.to_numeric(df["order"], errors="coerce")
        df = df.sort_values(["product_id", "order"], kind="stable")

    plans: dict[str, list[Stage]] = defaultdict(list)
    for r in df.itertuples(index=False):
        d = None if pd.isna(r.duration_days) else float(r.duration_days)
        if d is not None and d < 0:
            raise ValueError(f"stage plan: negative duration for {r.product_id!r}/{r.stage_name!r}")
        plans[r.product_id].append(Stage(stage_name=r.stage_name, duration_days=d))
    return dict(plans)

# --------------------- Calculator items ---------------------

def load_calculator_items(path: str | Path, plans: dict[str, list[Stage]]) -> list[CalculatorItem]:
    df = _read_table(path)
    original_cols = list(df.columns)
    df = _rename_by_synonyms(df, ITEM_SYNONYMS)
    _require(df, ["product_id", "quantity"], "items", original_cols)

    df["product_id"] = df["product_id"].map(_clean_text)
    df["quantity"] = pd.to_numeric(df["quantity"], errors="coerce")
    df = df[(df["product_id"] != "") & (df["quantity"] > 0)]

    unknown = sorted(set(df["product_id"]) - set(plans))
    if unknown:
        raise ValueError(f"items: no stage plan for products {unknown[:5]}")
    return [
        CalculatorItem(product_id=r.product_id, quantity=float(r.quantity), stages=plans[r.product_id])
        for r in df.itertuples(index=False)
    ]

# --------------------- Workload ---------------------

def load_workload(path: str | Path) -> dict[str, float]:
    """stage -> fraction in [0, 1]. A column holding values above 1 is read as percent."""
    df = _read_table(path)
    original_cols = list(df.columns)
    df = _rename_by_synonyms(df, WORKLOAD_SYNONYMS)
    _require(df, ["stage_name", "workload"], "workload", original_cols)

    df["stage_name"] = df["stage_name"].map(_clean_text)
    w = pd.to_numeric(df["workload"].astype(str).str.rstrip("%").str.replace(",", ".", regex=False), errors="coerce")
    if (w > 1).any():
        w = w / 100.0
    df["workload"] = w.clip(0.0, 1.0)
    df = df[(df["stage_name"] != "") & df["workload"].notna()]
    return dict(zip(df["stage_name"], df["workload"].astype(float)))

# --------------------- Planned stages (occupation) ---------------------

PLANNED_STAGE_SYNONYMS: Dict[str, Set[str]] = {
    "stage": {"stage", "stage_name", "etapa", "setor", "sector"},
    "start_date": {"start_date", "start", "início", "inicio", "data início", "data inicio"},
    "end_date": {"end_date", "end", "fim", "término", "termino", "data fim"},
    "weight": {"weight", "weight_kg", "kg", "peso", "peso (kg)"},
}


def load_planned_stages(path: str | Path) -> pd.DataFrame:
    """Dated stage plans for the occupation report: stage, start_date, end_date, weight."""
    df = _read_table(path)
    original_cols = list(df.columns)
    df = _rename_by_synonyms(df, PLANNED_STAGE_SYNONYMS)
    _require(df, ["stage", "start_date", "end_date"], "planned stages", original_cols)
    if "weight" in df.columns:
        df["weight"] = pd.to_numeric(
            df["weight"].astype(str).str.replace(",", ".", regex=False), errors="coerce"
        )
    df["stage"] = df["stage"].map(_clean_text)
    return stage_plans_frame(df)
