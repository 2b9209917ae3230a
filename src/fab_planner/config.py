# src/fab_planner/config.py
from __future__ import annotations

import logging
import os


# ---- Config -----------------------------------------------------------------
def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger("fab_planner.config").warning(
            "Ignoring %s=%r: not a number, using %s", name, raw, default
        )
        return default


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger("fab_planner.config").warning("Ignoring %s=%r: not an integer", name, raw)
        return None


LOG_LEVEL = os.getenv("FAB_PLANNER_LOG_LEVEL", "INFO").strip().upper()

# optional tables used by the CLI/API when the caller passes none
HOLIDAYS_FILE = os.getenv("FAB_PLANNER_HOLIDAYS_FILE") or None
CALENDAR_FILE = os.getenv("FAB_PLANNER_CALENDAR_FILE") or None

# occupation report: capacity in kg per month and the warning band (percent)
MONTHLY_CAPACITY_KG = _env_float("FAB_PLANNER_MONTHLY_CAPACITY_KG", 80000.0)
WARNING_THRESHOLD = _env_float("FAB_PLANNER_WARNING_THRESHOLD", 70.0)

WORKLOAD_SEED = _env_int("FAB_PLANNER_WORKLOAD_SEED")


# ---- Logging ----------------------------------------------------------------
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Root logging setup for CLI/API processes. The library itself adds no handlers."""
    lvl = (level or LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, lvl, logging.INFO), format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
