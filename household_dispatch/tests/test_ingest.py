"""Tests for household_dispatch.market.ingest (CSV + tariff + yield → records)."""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

from household_dispatch.dispatch.chunker import chunk_days
from household_dispatch.market.consumption_loader import ConsumptionData
from household_dispatch.market.ingest import build_hourly_records
from household_dispatch.market.tariff import TariffConfig
from household_dispatch.pv.yield_curve import YieldCurve


@pytest.fixture
def consumption() -> ConsumptionData:
    timestamps = pd.date_range("2024-02-28T00:00:00Z", periods=72, freq="h")
    return ConsumptionData(
        timestamps=timestamps,
        consumption_kwh=np.full(72, 0.8),
        spot_price=np.linspace(0.0, 1.0, 72),
        spot_vat=np.linspace(0.0, 0.25, 72),
    )


@pytest.fixture
def curve() -> YieldCurve:
    # Day-of-year encoded in the value so calendar lookups are visible
    values = np.repeat(np.arange(365, dtype=float) / 1000.0, 24)
    return YieldCurve(values)


class TestBuildHourlyRecords:
    def test_one_record_per_hour(self, consumption, curve):
        records = build_hourly_records(consumption, curve, TariffConfig())
        assert len(records) == 72
        assert records[0].timestamp == datetime(2024, 2, 28, tzinfo=timezone.utc)
        assert records[0].timestamp.tzinfo is not None

    def test_prices_derived_from_tariff(self, consumption, curve):
        cfg = TariffConfig(
            grid_fee_fixed=0.1, grid_fee_spot_fraction=0.0, energy_tax=0.2,
            export_remuneration=0.0, export_includes_vat=False,
        )
        records = build_hourly_records(consumption, curve, cfg)
        r = records[10]
        spot = consumption.spot_price[10]
        vat = consumption.spot_vat[10]
        assert r.import_price == pytest.approx(spot + vat + 0.3)
        assert r.export_price == pytest.approx(spot)
        assert r.consumption_kwh == pytest.approx(0.8)

    def test_yield_resolved_by_calendar(self, consumption, curve):
        records = build_hourly_records(consumption, curve, TariffConfig())
        # 28 Feb is day-of-year 58; 29 Feb falls back to 28 Feb; 1 Mar is 59
        assert records[0].pv_normalized_kw == pytest.approx(0.058)
        assert records[24].pv_normalized_kw == pytest.approx(0.058)
        assert records[48].pv_normalized_kw == pytest.approx(0.059)

    def test_records_chunk_cleanly(self, consumption, curve):
        windows = chunk_days(build_hourly_records(consumption, curve, TariffConfig()))
        assert [w.day_name for w in windows] == ["2024-02-28", "2024-02-29"]
