"""Tests for optimization/scenario_sweep.py.

Uses the three-day arbitrage pattern (two complete 48-hour windows) so each
scenario solves in well under a second.
"""

from __future__ import annotations

import pytest

from household_dispatch.dispatch.chunker import chunk_days
from household_dispatch.dispatch.engine import run_dispatch
from household_dispatch.dispatch.errors import ModelInfeasibleError
from household_dispatch.dispatch.model import ModelOptions
from household_dispatch.optimization.scenario_sweep import (
    ScenarioRun,
    SweepResult,
    run_scenarios,
)

ATOL = 1e-4


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def windows(arbitrage_records):
    return chunk_days(arbitrage_records)


@pytest.fixture
def runs(make_spec) -> list[ScenarioRun]:
    return [
        ScenarioRun(
            "with_battery",
            make_spec(battery_kw=5.0, battery_kwh=5.0, pv_kw=0.0,
                      max_import_kw=10.0, max_export_kw=10.0),
        ),
        ScenarioRun(
            "no_battery",
            make_spec(battery_kw=0.0, battery_kwh=0.0, pv_kw=0.0,
                      max_import_kw=10.0, max_export_kw=10.0),
        ),
    ]


@pytest.fixture
def sweep(windows, runs) -> SweepResult:
    return run_scenarios(windows, runs, max_workers=1)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class TestSweepOutcomes:
    def test_outcomes_sorted_by_name(self, sweep):
        assert [o.name for o in sweep.outcomes] == ["no_battery", "with_battery"]

    def test_every_scenario_covers_all_windows(self, sweep, windows):
        for outcome in sweep.outcomes:
            assert outcome.summary.n_days == len(windows)
            assert [r.day.day_name for r in outcome.results] == [
                w.day_name for w in windows
            ]

    def test_matches_direct_run(self, sweep, windows, runs):
        direct = run_dispatch(windows, runs[0].spec)
        outcome = sweep.get("with_battery")
        assert outcome.summary.total_cost == pytest.approx(
            sum(r.cost.total for r in direct), abs=ATOL
        )

    def test_no_battery_costs_nothing_without_load(self, sweep):
        assert sweep.get("no_battery").summary.total_cost == pytest.approx(0.0, abs=ATOL)

    def test_spec_kept_on_outcome(self, sweep, runs):
        assert sweep.get("with_battery").spec is runs[0].spec


class TestBestScenario:
    def test_cheapest_scenario_is_best(self, sweep):
        assert sweep.best is not None
        assert sweep.best.name == "with_battery"
        assert sweep.best.summary.total_cost < 0.0

    def test_only_best_is_flagged(self, sweep):
        flags = {o.name: o.is_best for o in sweep.outcomes}
        assert flags == {"no_battery": False, "with_battery": True}

    def test_empty_runs_have_no_best(self, windows):
        result = run_scenarios(windows, [], max_workers=1)
        assert result.outcomes == []
        assert result.best is None


class TestSweepErrors:
    def test_duplicate_names_raise(self, windows, runs):
        with pytest.raises(ValueError, match="unique"):
            run_scenarios(windows, [runs[0], runs[0]], max_workers=1)

    def test_get_unknown_name_raises(self, sweep):
        with pytest.raises(KeyError, match="not found"):
            sweep.get("huge_battery")

    def test_dispatch_error_propagates(self, make_records, make_spec):
        records = make_records(48, consumption=0.0, import_price=0.3, export_price=0.1, pv=1.0)
        spec = make_spec(battery_kw=0.0, battery_kwh=0.0, pv_kw=10.0, max_export_kw=2.0)
        with pytest.raises(ModelInfeasibleError):
            run_scenarios(
                chunk_days(records),
                [ScenarioRun("capped", spec)],
                options=ModelOptions(allow_curtailment=False),
                max_workers=1,
            )


class TestParallelExecution:
    def test_worker_processes_match_in_process(self, windows, runs, sweep):
        parallel = run_scenarios(windows, runs, max_workers=2)
        assert [o.name for o in parallel.outcomes] == [o.name for o in sweep.outcomes]
        for a, b in zip(parallel.outcomes, sweep.outcomes):
            assert a.summary.total_cost == pytest.approx(b.summary.total_cost, abs=ATOL)
        assert parallel.best.name == sweep.best.name

    def test_results_from_workers_are_read_only(self, windows, runs):
        parallel = run_scenarios(windows, runs, max_workers=2)
        for outcome in parallel.outcomes:
            for result in outcome.results:
                assert not result.import_kw.flags.writeable
                assert not result.battery_kwh.flags.writeable
        with pytest.raises(ValueError):
            parallel.outcomes[0].results[0].import_kw[0] = 1.0

    def test_worker_error_reaches_caller(self, make_records, make_spec):
        records = make_records(48, consumption=0.0, import_price=0.3, export_price=0.1, pv=1.0)
        spec = make_spec(battery_kw=0.0, battery_kwh=0.0, pv_kw=10.0, max_export_kw=2.0)
        with pytest.raises(ModelInfeasibleError):
            run_scenarios(
                chunk_days(records),
                [ScenarioRun("capped", spec), ScenarioRun("capped_too", spec)],
                options=ModelOptions(allow_curtailment=False),
                max_workers=2,
            )
