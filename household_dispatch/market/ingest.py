"""Join consumption, tariffs and PV yield into dispatch input records.

This is the only place where raw feed data is turned into
:class:`~household_dispatch.dispatch.types.HourlyRecord` values.  Every field
is fully resolved here: tariffs via :mod:`household_dispatch.market.tariff`
and PV yield via :class:`~household_dispatch.pv.yield_curve.YieldCurve`
calendar lookup.  The dispatch engine performs no backfill of its own.

Public API
----------
build_hourly_records – Build the ordered record sequence for the engine.
"""

from __future__ import annotations

import logging

from household_dispatch.dispatch.types import HourlyRecord
from household_dispatch.market.consumption_loader import ConsumptionData
from household_dispatch.market.tariff import TariffConfig, export_tariff, import_tariff
from household_dispatch.pv.yield_curve import YieldCurve

logger = logging.getLogger(__name__)


def build_hourly_records(
    consumption: ConsumptionData,
    yield_curve: YieldCurve,
    tariff: TariffConfig,
) -> list[HourlyRecord]:
    """Return one :class:`HourlyRecord` per hour of *consumption*.

    Parameters
    ----------
    consumption:
        Validated hourly consumption and spot prices.
    yield_curve:
        Normalised PV yield, resolved per record by calendar date and hour.
    tariff:
        Tariff components used to derive import and export prices.

    Returns
    -------
    list[HourlyRecord]
        Records in timestamp order.
    """
    import_prices = import_tariff(consumption.spot_price, consumption.spot_vat, tariff)
    export_prices = export_tariff(consumption.spot_price, consumption.spot_vat, tariff)

    records: list[HourlyRecord] = []
    for i, ts in enumerate(consumption.timestamps):
        hour = ts.to_pydatetime()
        records.append(
            HourlyRecord(
                timestamp=hour,
                consumption_kwh=float(consumption.consumption_kwh[i]),
                import_price=float(import_prices[i]),
                export_price=float(export_prices[i]),
                pv_normalized_kw=yield_curve.at(hour),
            )
        )

    logger.info(
        "Built %d hourly records (yield curve %d h, %.0f kWh/kW per year)",
        len(records),
        len(yield_curve),
        yield_curve.annual_yield_kwh_per_kw,
    )
    return records
