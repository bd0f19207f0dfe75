"""Shared pytest fixtures for the household_dispatch test suite.

All fixtures provide synthetic, deterministic data so tests run without real
PVWatts API calls or large CSV files.

Reference arbitrage day (used by ``arbitrage_records``)
-------------------------------------------------------
No load, no PV, battery 5 kW / 5 kWh starting empty, grid limits 10 kW.
Import and export price are equal and repeat every day:

  hour  0      : 0.10
  hour 12      : 1.00
  other hours  : 0.50

Within the reported day the optimum fills the battery (5 kWh) during hours
1-11 at 0.50 and empties it at hour 12 at 1.00, so hour 12 shows a net
export of 5 kW and the day cost is below the (zero) load-only cost.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from household_dispatch.dispatch.types import HourlyRecord, SystemSpec

START = datetime(2025, 3, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def _per_hour(value, n_hours: int) -> np.ndarray:
    """Expand a scalar, a 24-hour daily pattern or a full series to *n_hours*."""
    arr = np.atleast_1d(np.asarray(value, dtype=float))
    if arr.size == 1:
        return np.full(n_hours, float(arr[0]))
    if arr.size == 24:
        return np.resize(arr, n_hours)
    assert arr.size == n_hours, f"expected 1, 24 or {n_hours} values, got {arr.size}"
    return arr


def build_records(
    n_hours: int,
    start: datetime = START,
    consumption=1.0,
    import_price=0.30,
    export_price=0.05,
    pv=0.0,
) -> list[HourlyRecord]:
    """Return *n_hours* contiguous hourly records starting at *start*."""
    load = _per_hour(consumption, n_hours)
    imp = _per_hour(import_price, n_hours)
    exp = _per_hour(export_price, n_hours)
    pv_norm = _per_hour(pv, n_hours)
    return [
        HourlyRecord(
            timestamp=start + timedelta(hours=h),
            consumption_kwh=float(load[h]),
            import_price=float(imp[h]),
            export_price=float(exp[h]),
            pv_normalized_kw=float(pv_norm[h]),
        )
        for h in range(n_hours)
    ]


@pytest.fixture
def make_records():
    """Factory fixture wrapping :func:`build_records`."""
    return build_records


@pytest.fixture
def make_spec():
    """Factory for :class:`SystemSpec` with small household defaults."""

    def _make(
        battery_kw: float = 5.0,
        battery_kwh: float = 10.0,
        battery_kwh_at_sod: float = 0.0,
        pv_kw: float = 8.0,
        max_import_kw: float = 11.0,
        max_export_kw: float = 11.0,
    ) -> SystemSpec:
        return SystemSpec(
            battery_kw=battery_kw,
            battery_kwh=battery_kwh,
            battery_kwh_at_sod=battery_kwh_at_sod,
            pv_kw=pv_kw,
            max_import_kw=max_import_kw,
            max_export_kw=max_export_kw,
        )

    return _make


# ---------------------------------------------------------------------------
# Daily profiles
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pv_profile_24h() -> np.ndarray:
    """Normalised PV yield (kW per kW) using a half-sine over hours 6-18.

    Peak of 0.8 at solar noon (hour 12); zero outside daylight.
    """
    hours = np.arange(24)
    return np.where(
        (hours >= 6) & (hours <= 18),
        0.8 * np.sin(np.pi * (hours - 6) / 12),
        0.0,
    )


@pytest.fixture
def sample_load_profile_24h() -> np.ndarray:
    """Household load (kWh per hour) with morning and evening peaks."""
    load = np.full(24, 0.4)
    load[6:9] = 1.2
    load[17:22] = 1.8
    return load


@pytest.fixture
def sample_price_profile_24h() -> np.ndarray:
    """Import price per kWh: cheap at night, expensive in the evening."""
    price = np.full(24, 0.30)
    price[0:6] = 0.15
    price[17:21] = 0.60
    return price


@pytest.fixture
def arbitrage_records() -> list[HourlyRecord]:
    """Three days of the reference arbitrage pattern (see module docstring)."""
    price = np.full(24, 0.5)
    price[0] = 0.1
    price[12] = 1.0
    return build_records(
        72, consumption=0.0, import_price=price, export_price=price, pv=0.0
    )


# ---------------------------------------------------------------------------
# Scenario config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_scenario_dict() -> dict:
    """A complete, valid scenario using a saved PVWatts response."""
    return {
        "scenario": {
            "name": "test_home",
            "output": {"directory": "output", "write_hourly": True},
        },
        "system": {
            "battery_kw": 5.0,
            "battery_kwh": 10.0,
            "initial_soc_kwh": 2.0,
            "pv_kw": 8.0,
            "max_import_kw": 11.0,
            "max_export_kw": 11.0,
        },
        "tariff": {
            "grid_fee_fixed": 0.20,
            "grid_fee_spot_fraction": 0.0561,
            "energy_tax": 0.535,
            "export_remuneration": 0.0,
            "export_includes_vat": True,
        },
        "model": {"horizon_hours": 48, "allow_curtailment": True, "solver_method": "highs"},
        "inputs": {
            "consumption_csv": "consumption.csv",
            "pvwatts_json": "pvwatts.json",
        },
        "comparison": [
            {"name": "no_battery", "battery_kw": 0.0, "battery_kwh": 0.0},
            {"name": "large", "battery_kw": 10.0, "battery_kwh": 20.0},
        ],
    }


@pytest.fixture
def sample_pvwatts_response() -> dict:
    """Minimal PVWatts v8 response: 8760 hours, 500 W from 10:00 to 14:00."""
    ac = [500.0 if 10 <= h % 24 < 14 else 0.0 for h in range(8760)]
    return {
        "inputs": {"system_capacity": "1", "timeframe": "hourly"},
        "errors": [],
        "warnings": [],
        "version": "8.0.0",
        "station_info": {
            "lat": 55.75,
            "lon": 13.25,
            "city": "LUND",
            "distance": 1200,
        },
        "outputs": {"ac": ac, "ac_annual": sum(ac) / 1000.0},
    }
