"""CLI entrypoint and orchestrator for the household dispatch optimiser.

Execution flow
--------------
1.  Load & validate scenario JSON.
2.  Load the hourly consumption / spot price CSV.
3.  Load the PVWatts yield curve (saved response or live API call).
4.  Derive tariffs and build hourly dispatch records.
5.  Chunk the records into day windows.
6.  Dispatch the base system and every comparison variant (parallel sweep).
7.  Write output CSVs.
8.  Print summary to stdout.

Usage
-----
    python -m household_dispatch.main --scenario scenarios/home.json
    python -m household_dispatch.main --scenario home.json --workers 1
    python -m household_dispatch.main --scenario home.json --dry-run
    python -m household_dispatch.main --scenario home.json -v
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import jsonschema

from household_dispatch.config.defaults import BASE_SCENARIO_NAME, PVWATTS_API_KEY_ENV
from household_dispatch.config.loader import ScenarioConfig, load_scenario
from household_dispatch.dispatch.chunker import chunk_days
from household_dispatch.dispatch.errors import DispatchError
from household_dispatch.market.consumption_loader import load_consumption_csv
from household_dispatch.market.ingest import build_hourly_records
from household_dispatch.optimization.scenario_sweep import (
    ScenarioRun,
    SweepResult,
    run_scenarios,
)
from household_dispatch.output.csv_writer import (
    write_comparison_csv,
    write_daily_summary_csv,
    write_dispatch_csv,
)
from household_dispatch.pv.pvwatts_client import (
    PVWattsClient,
    PVWattsError,
    load_pvwatts_json,
)
from household_dispatch.pv.yield_curve import YieldCurve

logger = logging.getLogger(__name__)

# Errors reported to the user with exit code 1 instead of a traceback
_USER_ERRORS = (
    DispatchError,
    FileNotFoundError,
    ValueError,
    PVWattsError,
    jsonschema.ValidationError,
)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    p = argparse.ArgumentParser(
        prog="python -m household_dispatch.main",
        description="Household PV + battery cost-minimising dispatch",
    )
    p.add_argument(
        "--scenario",
        required=True,
        metavar="PATH",
        help="Path to scenario JSON file.",
    )
    p.add_argument(
        "--output",
        metavar="DIR",
        default=None,
        help="Output directory (overrides scenario JSON setting).",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="N",
        help="Worker processes for the scenario sweep (default: CPU count).",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable DEBUG logging.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate JSON and inputs, then exit without dispatching.",
    )
    return p


# ---------------------------------------------------------------------------
# Yield curve
# ---------------------------------------------------------------------------


def _load_yield_curve(scenario: ScenarioConfig) -> YieldCurve:
    """Return the yield curve from a saved response or the PVWatts API."""
    saved = scenario.pvwatts_json_path
    if saved is not None:
        logger.info("Loading PVWatts response: %s", saved)
        return load_pvwatts_json(saved)

    site = dict(scenario.pvwatts_site)
    key_env = site.pop("api_key_env", PVWATTS_API_KEY_ENV)
    api_key = os.environ.get(key_env)
    if not api_key:
        raise PVWattsError(
            f"No PVWatts API key: set the environment variable '{key_env}' "
            "or use 'inputs.pvwatts_json' instead."
        )
    logger.info(
        "Fetching PVWatts yield: lat=%.4f, lon=%.4f, tilt=%.1f°, azimuth=%.1f°",
        site["latitude"],
        site["longitude"],
        site["tilt_deg"],
        site["azimuth_deg"],
    )
    return PVWattsClient(api_key=api_key).fetch_yield_curve(**site)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def run(args: argparse.Namespace) -> int:
    """Execute the full scenario run.

    Parameters
    ----------
    args:
        Parsed CLI arguments.

    Returns
    -------
    int
        Exit code (0 = success, 1 = error).
    """
    # ------------------------------------------------------------------
    # Steps 1-5: Inputs
    # ------------------------------------------------------------------
    logger.info("Loading scenario: %s", args.scenario)
    try:
        scenario = load_scenario(args.scenario)
        consumption = load_consumption_csv(scenario.consumption_csv_path)
        yield_curve = _load_yield_curve(scenario)
        records = build_hourly_records(consumption, yield_curve, scenario.tariff_config())
        options = scenario.model_options()
        windows = chunk_days(records, options.horizon_hours)
    except _USER_ERRORS as exc:
        logger.error("Failed to prepare inputs: %s", exc)
        return 1

    if args.dry_run:
        print(
            f"Dry run: scenario '{scenario.name}' validated successfully "
            f"({len(records)} hours, {len(windows)} day window(s))."
        )
        return 0

    if not windows:
        logger.error(
            "No complete day windows: %d hourly record(s) are fewer than the "
            "%d-hour horizon starting at a UTC midnight.",
            len(records),
            options.horizon_hours,
        )
        return 1

    # ------------------------------------------------------------------
    # Step 6: Dispatch all scenarios
    # ------------------------------------------------------------------
    runs = [ScenarioRun(name, spec) for name, spec in scenario.variant_specs().items()]
    try:
        sweep = run_scenarios(
            windows,
            runs,
            options=options,
            solver_method=scenario.solver_method,
            max_workers=args.workers,
        )
    except _USER_ERRORS as exc:
        logger.error("Dispatch failed: %s", exc)
        return 1

    # ------------------------------------------------------------------
    # Step 7: Write output CSVs
    # ------------------------------------------------------------------
    output_base = Path(args.output) if args.output else Path(scenario.output_dir)
    output_dir = output_base / scenario.name
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Output directory: %s", output_dir)

    for outcome in sweep.outcomes:
        prefix = f"{scenario.name}_{outcome.name}"
        if scenario.write_hourly:
            write_dispatch_csv(output_dir / f"{prefix}_dispatch.csv", outcome.results)
        write_daily_summary_csv(output_dir / f"{prefix}_daily.csv", outcome.results)
    write_comparison_csv(output_dir / f"{scenario.name}_comparison.csv", sweep)

    # ------------------------------------------------------------------
    # Step 8: Print summary
    # ------------------------------------------------------------------
    _print_summary(scenario.name, sweep)

    return 0


def _print_summary(scenario_name: str, sweep: SweepResult) -> None:
    """Print a concise result summary to stdout."""
    base = sweep.get(BASE_SCENARIO_NAME).summary
    print()
    print("=" * 60)
    print(f"  Scenario: {scenario_name}")
    print("=" * 60)
    print(f"  Days dispatched:       {base.n_days} ({base.first_day} … {base.last_day})")
    print(f"  Grid import:           {base.import_kwh:,.1f} kWh")
    print(f"  Grid export:           {base.export_kwh:,.1f} kWh")
    print(f"  PV used:               {base.pv_used_kwh:,.1f} kWh")
    print(f"  PV curtailed:          {base.curtailed_pv_kwh:,.1f} kWh")
    print()
    print(f"  Cost (optimised):      {base.total_cost:,.2f}")
    print(f"  Cost (load only):      {base.baseline_cost:,.2f}")
    print(f"  Savings:               {base.savings:,.2f}")

    if len(sweep.outcomes) > 1:
        print()
        for outcome in sweep.outcomes:
            marker = "*" if outcome.is_best else " "
            print(
                f"  {marker} {outcome.name:<20} "
                f"{outcome.spec.battery_kw:>6.1f} kW / {outcome.spec.battery_kwh:>6.1f} kWh"
                f"   cost {outcome.summary.total_cost:>12,.2f}"
            )

    print("=" * 60)
    print()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the scenario."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
