"""Partition an hourly series into UTC calendar-day windows.

Each emitted :class:`DayWindow` starts at a UTC midnight and carries a horizon
of ``horizon_hours`` consecutive records: 24 reported hours followed by
lookahead hours that let the optimiser see the next day's prices and PV.

Only days with a full horizon are emitted.  With the default 48-hour horizon
the last day of a series is therefore never emitted on its own; it is only
seen as lookahead of the day before.

Public API
----------
iter_day_windows – Lazily yield day windows (restartable).
chunk_days       – Materialise all day windows into a list.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from household_dispatch.config.defaults import (
    DEFAULT_HORIZON_HOURS,
    HOURS_PER_DAY,
    MAX_HORIZON_HOURS,
)
from household_dispatch.dispatch.errors import MisalignedSeriesError
from household_dispatch.dispatch.types import DayWindow, HourlyRecord, is_day_boundary

logger = logging.getLogger(__name__)


def _first_boundary_index(records: Sequence[HourlyRecord]) -> int:
    """Index of the first record that starts exactly at a UTC midnight."""
    for i, record in enumerate(records):
        if is_day_boundary(record.timestamp):
            return i
    raise MisalignedSeriesError(
        f"None of the {len(records)} hourly record(s) starts at a UTC day "
        "boundary (00:00)."
    )


def iter_day_windows(
    records: Sequence[HourlyRecord],
    horizon_hours: int = DEFAULT_HORIZON_HOURS,
) -> Iterator[DayWindow]:
    """Yield one :class:`DayWindow` per UTC calendar day.

    Parameters
    ----------
    records:
        Ordered, gap-free, hourly-spaced records.
    horizon_hours:
        Records per window (24 reported + lookahead), in
        ``[HOURS_PER_DAY, MAX_HORIZON_HOURS]``.

    Yields
    ------
    DayWindow
        Consecutive days, starting at the first midnight in *records* and
        ending at the latest day for which *horizon_hours* records remain.

    Raises
    ------
    MisalignedSeriesError
        If no record starts at a day boundary, or a window is not contiguous.
    ValueError
        If *horizon_hours* is out of range.
    """
    if not HOURS_PER_DAY <= horizon_hours <= MAX_HORIZON_HOURS:
        raise ValueError(
            f"horizon_hours must be in [{HOURS_PER_DAY}, {MAX_HORIZON_HOURS}], "
            f"got {horizon_hours}"
        )

    start = _first_boundary_index(records)
    offset = start
    while offset + horizon_hours <= len(records):
        horizon = records[offset : offset + horizon_hours]
        yield DayWindow(day=horizon[0].timestamp, records=tuple(horizon))
        offset += HOURS_PER_DAY


def chunk_days(
    records: Sequence[HourlyRecord],
    horizon_hours: int = DEFAULT_HORIZON_HOURS,
) -> list[DayWindow]:
    """Return all day windows of *records* as a list.

    See :func:`iter_day_windows` for parameters and errors.
    """
    windows = list(iter_day_windows(records, horizon_hours=horizon_hours))
    if windows:
        logger.info(
            "Chunked %d hourly records into %d day(s): %s .. %s (horizon %d h)",
            len(records),
            len(windows),
            windows[0].day_name,
            windows[-1].day_name,
            horizon_hours,
        )
    else:
        logger.info(
            "Chunked %d hourly records into 0 days (fewer than %d hours after "
            "the first midnight)",
            len(records),
            horizon_hours,
        )
    return windows
