"""Map a solved day model back into physical series and day-level costs.

Only hours ``0 .. 23`` are read from the solution; lookahead hours are
dropped.  PV availability is recomputed from the day window rather than read
back from the solver, so the uncurtailed reference series does not depend on
solver output.

Cost accounting per reported hour ``h``::

    cost.total                  += import_h · import_price_h - export_h · export_price_h
    cost.only_uncontrolled_load += load_h · import_price_h
    curtailed_pv_kwh            += pv_available_h - pv_used_h

Public API
----------
extract_day_result – Build a :class:`DayResult` from a solved model.
"""

from __future__ import annotations

import logging

import numpy as np

from household_dispatch.config.defaults import HOURS_PER_DAY
from household_dispatch.dispatch.errors import (
    InsufficientHorizonError,
    SolverFailureError,
)
from household_dispatch.dispatch.model import (
    ROLE_BATTERY,
    ROLE_EXPORT,
    ROLE_IMPORT,
    ROLE_PV_USED,
    ROLE_SOC,
    LPModel,
    var_name,
)
from household_dispatch.dispatch.solver import Solution
from household_dispatch.dispatch.types import DayCost, DayResult, DayWindow, SystemSpec

logger = logging.getLogger(__name__)


def _series(
    solution: Solution,
    role: str,
    model: LPModel,
    spec: SystemSpec,
    window: DayWindow,
) -> np.ndarray:
    """Read ``<role>_h0 .. <role>_h23`` from *solution*."""
    try:
        return np.array(
            [solution[var_name(role, h)] for h in range(HOURS_PER_DAY)], dtype=float
        )
    except KeyError as exc:
        raise SolverFailureError(
            f"Solution for {model.name} has no value for variable {exc}",
            model_text=model.render_lp(),
            spec=spec,
            window=window,
        ) from exc


def extract_day_result(
    window: DayWindow,
    spec: SystemSpec,
    model: LPModel,
    solution: Solution,
) -> DayResult:
    """Build the :class:`DayResult` for one solved day.

    Parameters
    ----------
    window:
        The day window the model was built from.
    spec:
        The system spec snapshot the model was built from.
    model:
        The solved model (its LP text is kept on the result).
    solution:
        Optimal solution returned by the solver adapter.

    Returns
    -------
    DayResult

    Raises
    ------
    InsufficientHorizonError
        If *window* has fewer than 24 records.
    SolverFailureError
        If the solution lacks a variable for a reported hour.
    """
    if window.horizon_hours < HOURS_PER_DAY:
        raise InsufficientHorizonError(window.day, window.horizon_hours, HOURS_PER_DAY)

    reported = window.records[:HOURS_PER_DAY]

    import_kw = _series(solution, ROLE_IMPORT, model, spec, window)
    export_kw = _series(solution, ROLE_EXPORT, model, spec, window)
    battery_kw = _series(solution, ROLE_BATTERY, model, spec, window)
    pv_kw = _series(solution, ROLE_PV_USED, model, spec, window)
    battery_kwh = _series(solution, ROLE_SOC, model, spec, window)

    load = np.array([r.consumption_kwh for r in reported], dtype=float)
    import_price = np.array([r.import_price for r in reported], dtype=float)
    export_price = np.array([r.export_price for r in reported], dtype=float)
    pv_available_kw = np.array(
        [r.pv_normalized_kw * spec.pv_kw for r in reported], dtype=float
    )

    curtailed_pv_kwh = 0.0
    total = 0.0
    only_uncontrolled_load = 0.0
    for h in range(HOURS_PER_DAY):
        curtailed_pv_kwh += pv_available_kw[h] - pv_kw[h]
        total += import_kw[h] * import_price[h] - export_kw[h] * export_price[h]
        only_uncontrolled_load += load[h] * import_price[h]

    result = DayResult(
        day=window,
        timestamps=tuple(r.timestamp for r in reported),
        import_kw=import_kw,
        export_kw=export_kw,
        battery_kw=battery_kw,
        pv_kw=pv_kw,
        pv_available_kw=pv_available_kw,
        uncontrolled_load_kw=load,
        battery_kwh=battery_kwh,
        import_price=import_price,
        export_price=export_price,
        battery_kwh_at_sod=spec.battery_kwh_at_sod,
        battery_kwh_at_eod=float(battery_kwh[HOURS_PER_DAY - 1]),
        curtailed_pv_kwh=float(curtailed_pv_kwh),
        cost=DayCost(
            total=float(total), only_uncontrolled_load=float(only_uncontrolled_load)
        ),
        model_text=model.render_lp(),
        solver_output=solution.raw_output,
    )

    logger.debug(
        "Day %s: cost=%.4f baseline=%.4f curtailed=%.3f kWh SoC %.3f -> %.3f kWh",
        window.day_name,
        total,
        only_uncontrolled_load,
        curtailed_pv_kwh,
        spec.battery_kwh_at_sod,
        result.battery_kwh_at_eod,
    )
    return result
