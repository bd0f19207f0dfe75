"""Normalised PV yield lookup by calendar date and hour.

A yield curve holds one full year of hourly AC output for 1 kW of installed
nameplate capacity (kW per kW), indexed from 1 January 00:00 UTC.  Values are
resolved by explicit calendar ``(month, day, hour)`` rather than by a flat
hour-of-year offset, so a curve built for one year can be applied to any
other year:

- an 8 784-hour (leap-year) curve resolves every date directly;
- an 8 760-hour curve has no 29 February; that date resolves to the same
  hour on 28 February.

Negative output (inverter night-time consumption) is clipped to zero.

Public API
----------
YieldCurve – Calendar-resolved normalised yield lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

import numpy as np

from household_dispatch.config.defaults import HOURS_PER_LEAP_YEAR, HOURS_PER_YEAR
from household_dispatch.dispatch.types import to_utc

logger = logging.getLogger(__name__)

_LEAP_REFERENCE_YEAR = 2024
_COMMON_REFERENCE_YEAR = 2023


class YieldCurve:
    """Full-year hourly normalised PV yield.

    Parameters
    ----------
    values:
        Hourly output in kW per installed kW, length 8 760 or 8 784.

    Raises
    ------
    ValueError
        If the length is wrong or any value is not finite.
    """

    def __init__(self, values: Iterable[float]) -> None:
        arr = np.array(list(values), dtype=float)
        if arr.shape not in ((HOURS_PER_YEAR,), (HOURS_PER_LEAP_YEAR,)):
            raise ValueError(
                f"Yield curve must have {HOURS_PER_YEAR} or {HOURS_PER_LEAP_YEAR} "
                f"hourly values, got shape {arr.shape}."
            )
        if not np.all(np.isfinite(arr)):
            first = int(np.argmax(~np.isfinite(arr)))
            raise ValueError(
                f"Yield curve contains a non-finite value at hour index {first}."
            )
        n_negative = int(np.sum(arr < 0.0))
        if n_negative:
            logger.debug("Clipping %d negative yield value(s) to zero", n_negative)
        self._values = np.clip(arr, 0.0, None)
        self._values.setflags(write=False)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the hourly values."""
        return self._values

    @property
    def is_leap(self) -> bool:
        return len(self._values) == HOURS_PER_LEAP_YEAR

    @property
    def annual_yield_kwh_per_kw(self) -> float:
        """Specific annual yield (kWh per installed kW)."""
        return float(np.sum(self._values))

    def index_for(self, ts: datetime) -> int:
        """Return the curve index for the UTC hour containing *ts*."""
        ts = to_utc(ts)
        month, day = ts.month, ts.day
        if self.is_leap:
            ref_year = _LEAP_REFERENCE_YEAR
        else:
            ref_year = _COMMON_REFERENCE_YEAR
            if (month, day) == (2, 29):
                day = 28
        day_of_year = (date(ref_year, month, day) - date(ref_year, 1, 1)).days
        return day_of_year * 24 + ts.hour

    def at(self, ts: datetime) -> float:
        """Normalised yield for the UTC hour containing *ts*."""
        return float(self._values[self.index_for(ts)])

    def lookup(self, timestamps: Iterable[datetime]) -> np.ndarray:
        """Normalised yield for each of *timestamps*."""
        return np.array([self.at(ts) for ts in timestamps], dtype=float)
