"""Write dispatch results to CSV files.

Three output files are produced per run:

1. ``{name}_{scenario}_dispatch.csv`` – One row per reported hour.
2. ``{name}_{scenario}_daily.csv``    – One row per day.
3. ``{name}_comparison.csv``          – One row per compared scenario.

Power values are in kW (equal to kWh over one hour), state of charge in kWh,
prices per kWh and costs in the price currency.  None values are written as
empty strings.

Public API
----------
write_dispatch_csv       – Write the hourly dispatch table.
write_daily_summary_csv  – Write one cost/energy row per day.
write_comparison_csv     – Write one row per scenario of a sweep.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from household_dispatch.config.defaults import CSV_DELIMITER, CSV_TIMESTAMP_FORMAT
from household_dispatch.dispatch.types import DayResult
from household_dispatch.optimization.scenario_sweep import SweepResult
from household_dispatch.output.formatting import fmt_currency, fmt_float, fmt_price

logger = logging.getLogger(__name__)

DISPATCH_COLUMNS: list[str] = [
    "timestamp",
    "import_kw",
    "export_kw",
    "battery_kw",
    "pv_kw",
    "pv_available_kw",
    "uncontrolled_load_kw",
    "battery_kwh",
    "import_price",
    "export_price",
]

DAILY_COLUMNS: list[str] = [
    "day",
    "battery_kwh_at_sod",
    "battery_kwh_at_eod",
    "import_kwh",
    "export_kwh",
    "pv_used_kwh",
    "curtailed_pv_kwh",
    "cost",
    "cost_uncontrolled_load",
    "savings",
]

COMPARISON_COLUMNS: list[str] = [
    "scenario",
    "battery_kw",
    "battery_kwh",
    "pv_kw",
    "n_days",
    "first_day",
    "last_day",
    "import_kwh",
    "export_kwh",
    "pv_used_kwh",
    "curtailed_pv_kwh",
    "total_cost",
    "baseline_cost",
    "savings",
    "is_best",
]


# ---------------------------------------------------------------------------
# Hourly dispatch CSV
# ---------------------------------------------------------------------------


def write_dispatch_csv(path: Path | str, results: list[DayResult]) -> None:
    """Write the reported hours of every day in *results*.

    Parameters
    ----------
    path:
        Destination file path.
    results:
        Day results in chronological order.
    """
    rows = []
    for result in results:
        for h, ts in enumerate(result.timestamps):
            rows.append({
                "timestamp": ts.strftime(CSV_TIMESTAMP_FORMAT),
                "import_kw": fmt_float(float(result.import_kw[h])),
                "export_kw": fmt_float(float(result.export_kw[h])),
                "battery_kw": fmt_float(float(result.battery_kw[h])),
                "pv_kw": fmt_float(float(result.pv_kw[h])),
                "pv_available_kw": fmt_float(float(result.pv_available_kw[h])),
                "uncontrolled_load_kw": fmt_float(float(result.uncontrolled_load_kw[h])),
                "battery_kwh": fmt_float(float(result.battery_kwh[h])),
                "import_price": fmt_price(float(result.import_price[h])),
                "export_price": fmt_price(float(result.export_price[h])),
            })

    _write_rows(path, rows, DISPATCH_COLUMNS)
    logger.info("Wrote dispatch CSV (%d rows): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Daily summary CSV
# ---------------------------------------------------------------------------


def write_daily_summary_csv(path: Path | str, results: list[DayResult]) -> None:
    """Write one row per day with energy totals and costs."""
    rows = []
    for result in results:
        rows.append({
            "day": result.day.day_name,
            "battery_kwh_at_sod": fmt_float(result.battery_kwh_at_sod),
            "battery_kwh_at_eod": fmt_float(result.battery_kwh_at_eod),
            "import_kwh": fmt_float(float(result.import_kw.sum())),
            "export_kwh": fmt_float(float(result.export_kw.sum())),
            "pv_used_kwh": fmt_float(float(result.pv_kw.sum())),
            "curtailed_pv_kwh": fmt_float(result.curtailed_pv_kwh),
            "cost": fmt_currency(result.cost.total),
            "cost_uncontrolled_load": fmt_currency(result.cost.only_uncontrolled_load),
            "savings": fmt_currency(result.cost.savings),
        })

    _write_rows(path, rows, DAILY_COLUMNS)
    logger.info("Wrote daily summary CSV (%d rows): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Comparison CSV
# ---------------------------------------------------------------------------


def write_comparison_csv(path: Path | str, sweep: SweepResult) -> None:
    """Write one row per scenario, in the sweep's (name) order."""
    rows = []
    for outcome in sweep.outcomes:
        s = outcome.summary
        rows.append({
            "scenario": outcome.name,
            "battery_kw": fmt_float(outcome.spec.battery_kw),
            "battery_kwh": fmt_float(outcome.spec.battery_kwh),
            "pv_kw": fmt_float(outcome.spec.pv_kw),
            "n_days": str(s.n_days),
            "first_day": s.first_day or "",
            "last_day": s.last_day or "",
            "import_kwh": fmt_float(s.import_kwh),
            "export_kwh": fmt_float(s.export_kwh),
            "pv_used_kwh": fmt_float(s.pv_used_kwh),
            "curtailed_pv_kwh": fmt_float(s.curtailed_pv_kwh),
            "total_cost": fmt_currency(s.total_cost),
            "baseline_cost": fmt_currency(s.baseline_cost),
            "savings": fmt_currency(s.savings),
            "is_best": str(outcome.is_best).lower(),
        })

    _write_rows(path, rows, COMPARISON_COLUMNS)
    logger.info("Wrote comparison CSV (%d scenario(s)): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Internal helper
# ---------------------------------------------------------------------------


def _write_rows(path: Path | str, rows: list[dict], columns: list[str]) -> None:
    """Write pre-formatted row dicts to *path*, creating parent directories.

    An empty *rows* list produces a header-only file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame(rows, columns=columns)
    frame.to_csv(path, sep=CSV_DELIMITER, index=False)
