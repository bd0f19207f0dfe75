"""Dispatch engine: solve consecutive days, chaining battery state of charge.

For each day window the engine builds the LP
(:func:`~household_dispatch.dispatch.model.build_day_model`), solves it
(:class:`~household_dispatch.dispatch.solver.LinprogSolver`) and extracts the
reported 24 hours
(:func:`~household_dispatch.dispatch.extractor.extract_day_result`).

The only state carried between days is the battery energy at the end of the
day, which becomes the start-of-day energy of the next day.  Days are
therefore solved strictly in order.  A failing day raises and stops the run;
no default dispatch is substituted.

Public API
----------
RunSummary     – Aggregates over a run of day results.
solve_day      – Build, solve and extract one day.
iter_dispatch  – Lazily solve a sequence of days with SoC carry-over.
run_dispatch   – Materialise :func:`iter_dispatch` into a list.
summarize_run  – Aggregate a list of day results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import numpy as np

from household_dispatch.dispatch.extractor import extract_day_result
from household_dispatch.dispatch.model import ModelOptions, build_day_model
from household_dispatch.dispatch.solver import LinprogSolver
from household_dispatch.dispatch.types import DayResult, DayWindow, SystemSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunSummary:
    """Aggregated results of a multi-day run.

    All costs in currency, all energies in kWh.
    """

    n_days: int
    first_day: str | None
    last_day: str | None
    total_cost: float
    baseline_cost: float
    """Cost of the uncontrolled load alone (no battery, PV or export)."""
    import_kwh: float
    export_kwh: float
    pv_used_kwh: float
    curtailed_pv_kwh: float
    battery_kwh_at_start: float
    battery_kwh_at_end: float

    @property
    def savings(self) -> float:
        """Baseline cost minus optimised cost."""
        return self.baseline_cost - self.total_cost


# ---------------------------------------------------------------------------
# Day and run solving
# ---------------------------------------------------------------------------


def solve_day(
    window: DayWindow,
    spec: SystemSpec,
    options: ModelOptions | None = None,
    solver: LinprogSolver | None = None,
) -> DayResult:
    """Build, solve and extract the dispatch for one day.

    Raises
    ------
    InsufficientHorizonError
        If the window has fewer than 24 records.
    ModelInfeasibleError, SolverFailureError
        If the LP cannot be solved to optimality.
    """
    solver = solver or LinprogSolver()
    model = build_day_model(window, spec, options)
    solution = solver.solve(model, spec=spec, window=window)
    return extract_day_result(window, spec, model, solution)


def iter_dispatch(
    windows: Iterable[DayWindow],
    spec: SystemSpec,
    options: ModelOptions | None = None,
    solver: LinprogSolver | None = None,
) -> Iterator[DayResult]:
    """Solve *windows* in order, carrying end-of-day charge to the next day.

    Parameters
    ----------
    windows:
        Consecutive day windows (may be a lazy iterator).
    spec:
        System configuration.  ``spec.battery_kwh_at_sod`` is the charge at
        the start of the first day.
    options:
        Model formulation switches.
    solver:
        Solver adapter; a default :class:`LinprogSolver` when omitted.

    Yields
    ------
    DayResult
        One result per window, in input order.
    """
    solver = solver or LinprogSolver()
    day_spec = spec
    for window in windows:
        result = solve_day(window, day_spec, options, solver)
        yield result
        day_spec = day_spec.with_start_of_day(result.battery_kwh_at_eod)


def run_dispatch(
    windows: Iterable[DayWindow],
    spec: SystemSpec,
    options: ModelOptions | None = None,
    solver: LinprogSolver | None = None,
) -> list[DayResult]:
    """Solve all *windows* and return the ordered list of day results.

    See :func:`iter_dispatch`.  Errors propagate unmodified at the first
    failing day.
    """
    results = list(iter_dispatch(windows, spec, options, solver))
    if results:
        summary = summarize_run(results)
        logger.info(
            "Dispatch run %s .. %s (%d days): cost=%.2f baseline=%.2f "
            "savings=%.2f curtailed=%.1f kWh",
            summary.first_day,
            summary.last_day,
            summary.n_days,
            summary.total_cost,
            summary.baseline_cost,
            summary.savings,
            summary.curtailed_pv_kwh,
        )
    return results


def summarize_run(results: list[DayResult]) -> RunSummary:
    """Aggregate day results into a :class:`RunSummary`."""
    if not results:
        return RunSummary(
            n_days=0,
            first_day=None,
            last_day=None,
            total_cost=0.0,
            baseline_cost=0.0,
            import_kwh=0.0,
            export_kwh=0.0,
            pv_used_kwh=0.0,
            curtailed_pv_kwh=0.0,
            battery_kwh_at_start=0.0,
            battery_kwh_at_end=0.0,
        )
    return RunSummary(
        n_days=len(results),
        first_day=results[0].day.day_name,
        last_day=results[-1].day.day_name,
        total_cost=float(sum(r.cost.total for r in results)),
        baseline_cost=float(sum(r.cost.only_uncontrolled_load for r in results)),
        import_kwh=float(sum(np.sum(r.import_kw) for r in results)),
        export_kwh=float(sum(np.sum(r.export_kw) for r in results)),
        pv_used_kwh=float(sum(np.sum(r.pv_kw) for r in results)),
        curtailed_pv_kwh=float(sum(r.curtailed_pv_kwh for r in results)),
        battery_kwh_at_start=results[0].battery_kwh_at_sod,
        battery_kwh_at_end=results[-1].battery_kwh_at_eod,
    )
