"""Unit tests for household_dispatch.dispatch.extractor."""

from __future__ import annotations

import numpy as np
import pytest

from household_dispatch.dispatch.errors import InsufficientHorizonError, SolverFailureError
from household_dispatch.dispatch.extractor import extract_day_result
from household_dispatch.dispatch.model import build_day_model, var_name
from household_dispatch.dispatch.solver import Solution
from household_dispatch.dispatch.types import DayWindow

ATOL = 1e-9


def _window(records) -> DayWindow:
    return DayWindow(day=records[0].timestamp, records=tuple(records))


def _fake_solution(model, **per_role) -> Solution:
    """Solution where every variable of *role* takes the given constant."""
    values = {}
    for name in model.variable_names:
        role = name.rsplit("_h", 1)[0]
        values[name] = float(per_role.get(role, 0.0))
    return Solution(values=values, objective=0.0, raw_output="fake solver output\n")


class TestExtractDayResult:
    def test_reports_first_24_hours_only(self, make_records, make_spec):
        window = _window(make_records(48))
        spec = make_spec()
        model = build_day_model(window, spec)
        result = extract_day_result(window, spec, model, _fake_solution(model))
        assert len(result.timestamps) == 24
        assert result.timestamps[0] == window.day
        assert result.timestamps[-1] == window.records[23].timestamp
        assert result.import_kw.shape == (24,)

    def test_cost_accounting(self, make_records, make_spec):
        window = _window(
            make_records(24, consumption=2.0, import_price=0.4, export_price=0.1)
        )
        spec = make_spec()
        model = build_day_model(window, spec)
        solution = _fake_solution(model, **{"import": 3.0, "export": 1.0})
        result = extract_day_result(window, spec, model, solution)
        # 24 × (3 × 0.4 − 1 × 0.1)
        assert result.cost.total == pytest.approx(24 * 1.1, abs=ATOL)
        # 24 × 2 × 0.4
        assert result.cost.only_uncontrolled_load == pytest.approx(19.2, abs=ATOL)
        assert result.cost.savings == pytest.approx(19.2 - 26.4, abs=ATOL)

    def test_curtailment_is_available_minus_used(self, make_records, make_spec):
        window = _window(make_records(24, pv=0.5))
        spec = make_spec(pv_kw=4.0)
        model = build_day_model(window, spec)
        solution = _fake_solution(model, pv_used=1.5)
        result = extract_day_result(window, spec, model, solution)
        np.testing.assert_allclose(result.pv_available_kw, 2.0)
        np.testing.assert_allclose(result.pv_kw, 1.5)
        assert result.curtailed_pv_kwh == pytest.approx(24 * 0.5, abs=ATOL)

    def test_soc_and_carry_values(self, make_records, make_spec):
        window = _window(make_records(24))
        spec = make_spec(battery_kwh_at_sod=1.0)
        model = build_day_model(window, spec)
        solution = _fake_solution(model)
        solution.values["soc_h23"] = 7.5
        result = extract_day_result(window, spec, model, solution)
        assert result.battery_kwh_at_sod == 1.0
        assert result.battery_kwh_at_eod == 7.5
        assert result.battery_kwh[23] == 7.5

    def test_inputs_copied_to_result(self, make_records, make_spec, sample_load_profile_24h):
        window = _window(make_records(24, consumption=sample_load_profile_24h, import_price=0.3))
        spec = make_spec()
        model = build_day_model(window, spec)
        result = extract_day_result(window, spec, model, _fake_solution(model))
        np.testing.assert_allclose(result.uncontrolled_load_kw, sample_load_profile_24h)
        np.testing.assert_allclose(result.import_price, 0.3)
        assert result.day is window

    def test_audit_artifacts(self, make_records, make_spec):
        window = _window(make_records(24))
        spec = make_spec()
        model = build_day_model(window, spec)
        result = extract_day_result(window, spec, model, _fake_solution(model))
        assert result.model_text == model.render_lp()
        assert result.solver_output == "fake solver output\n"

    def test_missing_variable_raises_solver_failure(self, make_records, make_spec):
        window = _window(make_records(24))
        spec = make_spec()
        model = build_day_model(window, spec)
        solution = _fake_solution(model)
        del solution.values[var_name("export", 17)]
        with pytest.raises(SolverFailureError, match="export_h17") as excinfo:
            extract_day_result(window, spec, model, solution)
        assert excinfo.value.window is window

    def test_short_window_raises(self, make_records, make_spec):
        window = _window(make_records(20))
        with pytest.raises(InsufficientHorizonError):
            extract_day_result(
                window, make_spec(), None, Solution(values={}, objective=0.0, raw_output="")
            )
