"""Load metered consumption and spot prices from a CSV file.

Expected columns
----------------

===============  ========  ================================================
Column           Required  Meaning
===============  ========  ================================================
timestamp        yes       Start of the hour, ISO 8601 (offset or UTC)
consumption_kwh  yes       Metered household consumption in that hour
spot_price       yes       Spot price excluding VAT (currency/kWh)
spot_vat         no        VAT portion of the spot price (0 when absent)
===============  ========  ================================================

Rows must be strictly hourly and ordered.  All error messages name the
column or row that caused the problem.

Public API
----------
ConsumptionData       – Parsed hourly series.
load_consumption_csv  – Load and validate the CSV.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from household_dispatch.config.defaults import CSV_DELIMITER, SECONDS_PER_HOUR

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = ("timestamp", "consumption_kwh", "spot_price")
OPTIONAL_VAT_COLUMN: str = "spot_vat"


@dataclass
class ConsumptionData:
    """Hourly consumption and spot prices.

    Attributes
    ----------
    timestamps:
        UTC hour starts.
    consumption_kwh, spot_price, spot_vat:
        Arrays aligned with *timestamps*.
    """

    timestamps: pd.DatetimeIndex
    consumption_kwh: np.ndarray
    spot_price: np.ndarray
    spot_vat: np.ndarray

    @property
    def n_hours(self) -> int:
        return len(self.timestamps)


def load_consumption_csv(path: str | Path) -> ConsumptionData:
    """Load and validate an hourly consumption / spot price CSV.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    ValueError
        When a column is missing, a value is NaN or negative consumption, a
        timestamp cannot be parsed, or rows are not strictly hourly.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Consumption CSV file not found: '{path}'. "
            "Check the 'inputs.consumption_csv' path in the scenario JSON."
        )

    logger.debug("Loading consumption CSV from '%s'", path)
    try:
        df = pd.read_csv(path, sep=CSV_DELIMITER)
    except Exception as exc:
        raise ValueError(f"Failed to parse consumption CSV '{path}': {exc}") from exc

    _check_required_columns(df, path)
    value_cols = [c for c in REQUIRED_COLUMNS if c != "timestamp"]
    if OPTIONAL_VAT_COLUMN in df.columns:
        value_cols.append(OPTIONAL_VAT_COLUMN)
    _check_no_nan(df, path, value_cols)

    try:
        timestamps = pd.DatetimeIndex(pd.to_datetime(df["timestamp"], utc=True))
    except (ValueError, TypeError) as exc:
        raise ValueError(
            f"Consumption CSV '{path}' has unparseable timestamps: {exc}"
        ) from exc
    _check_hourly(timestamps, path)

    consumption = df["consumption_kwh"].to_numpy(dtype=float)
    if np.any(consumption < 0.0):
        first = int(np.argmax(consumption < 0.0))
        raise ValueError(
            f"Consumption CSV '{path}' has negative consumption at row {first}."
        )

    if OPTIONAL_VAT_COLUMN in df.columns:
        vat = df[OPTIONAL_VAT_COLUMN].to_numpy(dtype=float)
    else:
        vat = np.zeros(len(df))

    data = ConsumptionData(
        timestamps=timestamps,
        consumption_kwh=consumption,
        spot_price=df["spot_price"].to_numpy(dtype=float),
        spot_vat=vat,
    )
    logger.info(
        "Loaded consumption CSV '%s': %d hours, %s .. %s",
        path,
        data.n_hours,
        timestamps[0].isoformat() if data.n_hours else "-",
        timestamps[-1].isoformat() if data.n_hours else "-",
    )
    return data


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_required_columns(df: pd.DataFrame, path: Path) -> None:
    """Raise ValueError listing all missing columns."""
    available = set(df.columns)
    missing = [c for c in REQUIRED_COLUMNS if c not in available]
    if missing:
        raise ValueError(
            f"Consumption CSV '{path}' is missing required column(s): "
            f"{missing}. Available columns: {sorted(available)}."
        )


def _check_no_nan(df: pd.DataFrame, path: Path, columns: list[str]) -> None:
    """Raise ValueError naming each column that contains NaN values."""
    nan_cols = []
    for col in columns:
        if df[col].isna().any():
            n_nan = int(df[col].isna().sum())
            first_idx = int(df[col].isna().idxmax())
            nan_cols.append(f"'{col}' ({n_nan} NaN value(s), first at row {first_idx})")
    if nan_cols:
        raise ValueError(
            f"Consumption CSV '{path}' contains NaN values in: "
            f"{'; '.join(nan_cols)}. No missing values are allowed."
        )


def _check_hourly(timestamps: pd.DatetimeIndex, path: Path) -> None:
    """Raise ValueError at the first step that is not exactly one hour."""
    if len(timestamps) < 2:
        return
    steps = timestamps[1:] - timestamps[:-1]
    bad = np.nonzero(np.asarray(steps != pd.Timedelta(seconds=SECONDS_PER_HOUR)))[0]
    if len(bad):
        row = int(bad[0]) + 1
        raise ValueError(
            f"Consumption CSV '{path}' is not strictly hourly: row {row} "
            f"({timestamps[row].isoformat()}) follows "
            f"{timestamps[row - 1].isoformat()}."
        )
