"""Value types shared by the dispatch engine.

Unit conventions
----------------

========  ==============  ==================================================
Quantity  Unit            Notes
========  ==============  ==================================================
Energy    kWh             Consumption, state of charge, curtailed PV
Power     kW              Import/export/battery/PV per hour (= kWh per hour)
Price     currency/kWh    Import and export tariffs, already fully resolved
PV yield  kW per kW       Normalised AC output of 1 kW installed nameplate
========  ==============  ==================================================

All timestamps are timezone-aware UTC datetimes.  Naive datetimes are
interpreted as UTC.

Public API
----------
HourlyRecord – One clock hour of exogenous input.
DayWindow    – One UTC calendar day plus its lookahead horizon.
SystemSpec   – Physical configuration of the household system.
DayCost      – Day-level cost aggregates.
DayResult    – Solved dispatch for one day (24 reported hours).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import numpy as np

from household_dispatch.config.defaults import (
    HOURS_PER_DAY,
    LP_FEASIBILITY_TOLERANCE,
    MAX_HORIZON_HOURS,
    SECONDS_PER_HOUR,
)
from household_dispatch.dispatch.errors import MisalignedSeriesError

_ONE_HOUR = timedelta(seconds=SECONDS_PER_HOUR)


def to_utc(ts: datetime) -> datetime:
    """Return *ts* as a tz-aware UTC datetime (naive values are taken as UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_midnight(ts: datetime) -> datetime:
    """Return the UTC midnight that starts the calendar day containing *ts*."""
    return to_utc(ts).replace(hour=0, minute=0, second=0, microsecond=0)


def is_day_boundary(ts: datetime) -> bool:
    """``True`` if *ts* falls exactly on a UTC midnight."""
    return to_utc(ts) == utc_midnight(ts)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HourlyRecord:
    """Exogenous inputs for one clock hour."""

    timestamp: datetime
    consumption_kwh: float
    import_price: float
    export_price: float
    pv_normalized_kw: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))


@dataclass(frozen=True)
class DayWindow:
    """A UTC calendar day and the horizon of records modelled for it.

    The first ``HOURS_PER_DAY`` records are reported; any further records
    (up to ``MAX_HORIZON_HOURS`` in total) are lookahead only.

    Raises
    ------
    MisalignedSeriesError
        If the records do not start at *day*, are not hourly spaced, or the
        horizon is empty or longer than ``MAX_HORIZON_HOURS``.
    """

    day: datetime
    records: tuple[HourlyRecord, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", to_utc(self.day))
        object.__setattr__(self, "records", tuple(self.records))

        if not is_day_boundary(self.day):
            raise MisalignedSeriesError(
                f"DayWindow day {self.day.isoformat()} is not a UTC midnight."
            )
        if not self.records:
            raise MisalignedSeriesError(
                f"DayWindow {self.day_name} has no records."
            )
        if len(self.records) > MAX_HORIZON_HOURS:
            raise MisalignedSeriesError(
                f"DayWindow {self.day_name} has {len(self.records)} records; "
                f"the horizon is limited to {MAX_HORIZON_HOURS} hours."
            )
        if self.records[0].timestamp != self.day:
            raise MisalignedSeriesError(
                f"DayWindow {self.day_name} starts at "
                f"{self.records[0].timestamp.isoformat()}, expected "
                f"{self.day.isoformat()}."
            )
        for h in range(1, len(self.records)):
            expected = self.day + h * _ONE_HOUR
            if self.records[h].timestamp != expected:
                raise MisalignedSeriesError(
                    f"DayWindow {self.day_name}: record {h} has timestamp "
                    f"{self.records[h].timestamp.isoformat()}, expected "
                    f"{expected.isoformat()} (series must be gap-free and hourly)."
                )

    @property
    def day_name(self) -> str:
        """ISO date of the window, e.g. ``"2025-03-27"``."""
        return self.day.strftime("%Y-%m-%d")

    @property
    def horizon_hours(self) -> int:
        """Number of records available in the horizon."""
        return len(self.records)


@dataclass(frozen=True)
class SystemSpec:
    """Physical configuration of the household system.

    Attributes
    ----------
    battery_kw:
        Battery inverter power limit (kW), applied to charge and discharge.
    battery_kwh:
        Usable battery energy capacity (kWh).
    battery_kwh_at_sod:
        Battery energy at the start of the day (kWh).  The orchestrator
        derives a new snapshot per day with :meth:`with_start_of_day`.
    pv_kw:
        Installed PV nameplate capacity (kW).
    max_import_kw:
        Grid connection import limit (kW).
    max_export_kw:
        Grid connection export limit (kW).  0 disables export.
    """

    battery_kw: float
    battery_kwh: float
    battery_kwh_at_sod: float
    pv_kw: float
    max_import_kw: float
    max_export_kw: float

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            if f.name == "battery_kwh_at_sod":
                continue
            value = getattr(self, f.name)
            # Written so that NaN fails as well
            if not value >= 0.0:
                raise ValueError(f"SystemSpec.{f.name} must be >= 0, got {value}")
        # Carried-over charge comes from the solver and may overshoot the
        # limits by numerical noise.
        if not self.battery_kwh_at_sod >= -LP_FEASIBILITY_TOLERANCE:
            raise ValueError(
                f"SystemSpec.battery_kwh_at_sod must be >= 0, "
                f"got {self.battery_kwh_at_sod}"
            )
        if self.battery_kwh_at_sod > self.battery_kwh + LP_FEASIBILITY_TOLERANCE:
            raise ValueError(
                f"SystemSpec.battery_kwh_at_sod ({self.battery_kwh_at_sod}) "
                f"exceeds battery_kwh ({self.battery_kwh})."
            )

    def with_start_of_day(self, battery_kwh_at_sod: float) -> SystemSpec:
        """Return a copy with a new start-of-day battery energy."""
        return dataclasses.replace(self, battery_kwh_at_sod=battery_kwh_at_sod)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayCost:
    """Cost aggregates for one reported day (currency)."""

    total: float
    """Import cost net of export revenue under the optimised dispatch."""

    only_uncontrolled_load: float
    """Cost of buying the whole load at the import price (no battery/PV/export)."""

    @property
    def savings(self) -> float:
        """Baseline cost minus optimised cost."""
        return self.only_uncontrolled_load - self.total


_SERIES_FIELDS: tuple[str, ...] = (
    "import_kw",
    "export_kw",
    "battery_kw",
    "pv_kw",
    "pv_available_kw",
    "uncontrolled_load_kw",
    "battery_kwh",
    "import_price",
    "export_price",
)


def _readonly(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class DayResult:
    """Solved dispatch for one day.

    All series have length ``HOURS_PER_DAY`` and are read-only numpy arrays.
    """

    day: DayWindow
    timestamps: tuple[datetime, ...]
    import_kw: np.ndarray
    export_kw: np.ndarray
    battery_kw: np.ndarray
    """Battery power per hour; positive = discharge."""
    pv_kw: np.ndarray
    """PV power delivered after curtailment."""
    pv_available_kw: np.ndarray
    """PV power available before curtailment."""
    uncontrolled_load_kw: np.ndarray
    battery_kwh: np.ndarray
    """State of charge per hour."""
    import_price: np.ndarray
    export_price: np.ndarray
    battery_kwh_at_sod: float
    battery_kwh_at_eod: float
    curtailed_pv_kwh: float
    cost: DayCost
    model_text: str = dataclasses.field(repr=False)
    solver_output: str = dataclasses.field(repr=False)

    def __post_init__(self) -> None:
        for name in _SERIES_FIELDS:
            arr = _readonly(getattr(self, name))
            if arr.shape != (HOURS_PER_DAY,):
                raise ValueError(
                    f"DayResult.{name} must have length {HOURS_PER_DAY}, "
                    f"got shape {arr.shape}"
                )
            object.__setattr__(self, name, arr)
        object.__setattr__(self, "timestamps", tuple(self.timestamps))

    def __reduce__(self):
        # Rebuild through __init__ so unpickled series are read-only again
        return (type(self), tuple(getattr(self, f.name) for f in dataclasses.fields(self)))
