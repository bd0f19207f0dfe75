"""Compare independent system scenarios over the same day windows.

Each scenario (e.g. a different battery size) is a complete, independent
multi-day dispatch run: days within a scenario are chained through the
battery state of charge and run sequentially, while scenarios share no state
and are evaluated in parallel worker processes.

Public API
----------
ScenarioRun     – Name + system spec of one scenario.
ScenarioOutcome – Day results and summary of one scenario.
SweepResult     – All outcomes, sorted by name, plus the cheapest one.
run_scenarios   – Main entry point.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field

from household_dispatch.config.defaults import DEFAULT_MAX_WORKERS, LP_SOLVER_METHOD
from household_dispatch.dispatch.engine import RunSummary, run_dispatch, summarize_run
from household_dispatch.dispatch.model import ModelOptions
from household_dispatch.dispatch.solver import LinprogSolver
from household_dispatch.dispatch.types import DayResult, DayWindow, SystemSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScenarioRun:
    """One scenario to evaluate."""

    name: str
    spec: SystemSpec


@dataclass
class ScenarioOutcome:
    """Result of one scenario run."""

    name: str
    spec: SystemSpec
    summary: RunSummary
    results: list[DayResult] = field(repr=False)
    is_best: bool = False


@dataclass
class SweepResult:
    """All scenario outcomes, sorted by name."""

    outcomes: list[ScenarioOutcome]
    best: ScenarioOutcome | None

    def get(self, name: str) -> ScenarioOutcome:
        """Return the outcome named *name*.

        Raises
        ------
        KeyError
            If no scenario has that name.
        """
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        available = ", ".join(o.name for o in self.outcomes)
        raise KeyError(f"Scenario '{name}' not found. Available scenarios: {available}")


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


def _evaluate_scenario(
    args: tuple[ScenarioRun, list[DayWindow], ModelOptions, str],
) -> ScenarioOutcome:
    """Run one scenario (top-level so it can be pickled for worker processes)."""
    run, windows, options, solver_method = args
    results = run_dispatch(windows, run.spec, options, LinprogSolver(solver_method))
    return ScenarioOutcome(
        name=run.name,
        spec=run.spec,
        summary=summarize_run(results),
        results=results,
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_scenarios(
    windows: list[DayWindow],
    runs: list[ScenarioRun],
    options: ModelOptions | None = None,
    solver_method: str = LP_SOLVER_METHOD,
    max_workers: int | None = DEFAULT_MAX_WORKERS,
) -> SweepResult:
    """Evaluate every scenario in *runs* over the same *windows*.

    Parameters
    ----------
    windows:
        Materialised day windows shared by all scenarios.
    runs:
        Scenarios to evaluate; names must be unique.
    options:
        Model formulation switches applied to every scenario.
    solver_method:
        ``linprog`` method for the solver adapter.
    max_workers:
        Number of worker processes.  ``1`` runs every scenario in-process
        (simpler for debugging and tests); ``None`` uses the CPU count.

    Returns
    -------
    SweepResult
        Outcomes sorted by name; ``best`` is the lowest total cost.

    Raises
    ------
    ValueError
        If scenario names are not unique.
    DispatchError
        The first error raised by any scenario, unmodified.
    """
    names = [r.name for r in runs]
    if len(set(names)) != len(names):
        raise ValueError(f"Scenario names must be unique, got {names}")

    options = options or ModelOptions()
    worker_args = [(run, windows, options, solver_method) for run in runs]
    logger.info(
        "Scenario sweep: %d scenario(s) over %d day(s)", len(runs), len(windows)
    )

    outcomes: list[ScenarioOutcome] = []
    if max_workers == 1:
        outcomes = [_evaluate_scenario(a) for a in worker_args]
    else:
        with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(_evaluate_scenario, a): a for a in worker_args}
            for future in concurrent.futures.as_completed(futures):
                outcomes.append(future.result())

    # Deterministic output order regardless of completion order
    outcomes.sort(key=lambda o: o.name)

    best: ScenarioOutcome | None = None
    for outcome in outcomes:
        if best is None or outcome.summary.total_cost < best.summary.total_cost:
            best = outcome

    if best is not None:
        best.is_best = True
        logger.info(
            "Cheapest scenario: '%s' (cost=%.2f, savings vs. baseline=%.2f)",
            best.name,
            best.summary.total_cost,
            best.summary.savings,
        )
    return SweepResult(outcomes=outcomes, best=best)
