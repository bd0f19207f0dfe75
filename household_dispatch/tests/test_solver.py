"""Unit tests for household_dispatch.dispatch.solver.

Covers:
- to_linprog_arrays: column order, objective vector, equality rows, bounds
- Optimal solve returns every variable by name and the objective value
- Infeasible and unbounded models → ModelInfeasibleError with model text
- Solver exceptions and non-optimal statuses → SolverFailureError
- Unknown method rejected
"""

from __future__ import annotations

import pickle
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np
import pytest

from household_dispatch.dispatch.errors import (
    DispatchError,
    ModelInfeasibleError,
    SolveError,
    SolverFailureError,
)
from household_dispatch.dispatch.model import LPModel, Objective
from household_dispatch.dispatch.solver import LinprogSolver, Solution, to_linprog_arrays

ATOL = 1e-6


def _tiny_model() -> LPModel:
    """min x + 2y  s.t. x + y = 3,  0 <= x <= 1,  y >= 0   → x=1, y=2, obj=5."""
    model = LPModel(name="tiny", horizon_hours=24)
    model.add_variable("x", 0.0, 1.0)
    model.add_variable("y", 0.0, None)
    model.add_constraint("sum", [("x", 1.0), ("y", 1.0)], 3.0)
    model.objective = Objective(terms=(("x", 1.0), ("y", 2.0)))
    return model


# ---------------------------------------------------------------------------
# Matrix rendering
# ---------------------------------------------------------------------------


class TestToLinprogArrays:
    def test_arrays(self):
        c, A_eq, b_eq, bounds = to_linprog_arrays(_tiny_model())
        np.testing.assert_array_equal(c, [1.0, 2.0])
        np.testing.assert_array_equal(A_eq, [[1.0, 1.0]])
        np.testing.assert_array_equal(b_eq, [3.0])
        assert bounds == [(0.0, 1.0), (0.0, None)]

    def test_repeated_terms_are_summed(self):
        model = LPModel(name="m", horizon_hours=24)
        model.add_variable("x")
        model.add_constraint("c", [("x", 1.0), ("x", 2.0)], 6.0)
        model.objective = Objective(terms=(("x", 1.0), ("x", 0.5)))
        c, A_eq, _, _ = to_linprog_arrays(model)
        assert c[0] == pytest.approx(1.5)
        assert A_eq[0, 0] == pytest.approx(3.0)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class TestLinprogSolver:
    def test_optimal(self):
        solution = LinprogSolver().solve(_tiny_model())
        assert isinstance(solution, Solution)
        assert solution["x"] == pytest.approx(1.0, abs=ATOL)
        assert solution["y"] == pytest.approx(2.0, abs=ATOL)
        assert solution.objective == pytest.approx(5.0, abs=ATOL)
        assert "status: 0" in solution.raw_output
        assert "x = " in solution.raw_output

    def test_unknown_variable_raises_key_error(self):
        solution = LinprogSolver().solve(_tiny_model())
        with pytest.raises(KeyError):
            solution["z"]

    @pytest.mark.parametrize("method", ["highs", "highs-ds", "highs-ipm"])
    def test_methods(self, method):
        solution = LinprogSolver(method).solve(_tiny_model())
        assert solution.objective == pytest.approx(5.0, abs=1e-5)

    def test_unknown_method_raises(self):
        with pytest.raises(ValueError, match="Unknown solver method"):
            LinprogSolver("simplex")

    def test_infeasible(self):
        model = _tiny_model()
        model.add_constraint("too_small", [("y", 1.0)], -1.0)
        with pytest.raises(ModelInfeasibleError) as excinfo:
            LinprogSolver().solve(model)
        err = excinfo.value
        assert err.status == 2
        assert "too_small: y = -1.0" in err.model_text
        assert isinstance(err, SolveError)
        assert isinstance(err, DispatchError)

    def test_unbounded(self):
        model = LPModel(name="unbounded", horizon_hours=24)
        model.add_variable("x", 0.0, None)
        model.objective = Objective(terms=(("x", -1.0),))
        with pytest.raises(ModelInfeasibleError) as excinfo:
            LinprogSolver().solve(model)
        assert excinfo.value.status == 3

    def test_context_attached_to_error(self, make_spec):
        model = _tiny_model()
        model.add_constraint("too_small", [("y", 1.0)], -1.0)
        spec = make_spec()
        with pytest.raises(ModelInfeasibleError) as excinfo:
            LinprogSolver().solve(model, spec=spec)
        assert excinfo.value.spec is spec
        assert excinfo.value.window is None

    def test_error_survives_pickling(self):
        model = _tiny_model()
        model.add_constraint("too_small", [("y", 1.0)], -1.0)
        with pytest.raises(ModelInfeasibleError) as excinfo:
            LinprogSolver().solve(model)
        restored = pickle.loads(pickle.dumps(excinfo.value))
        assert type(restored) is ModelInfeasibleError
        assert restored.model_text == excinfo.value.model_text
        assert restored.status == 2
        assert str(restored) == str(excinfo.value)

    def test_solver_exception_becomes_failure(self):
        with patch(
            "household_dispatch.dispatch.solver.linprog",
            side_effect=ValueError("bad bounds"),
        ):
            with pytest.raises(SolverFailureError, match="bad bounds") as excinfo:
                LinprogSolver().solve(_tiny_model())
        assert excinfo.value.status is None
        assert excinfo.value.solver_message == "bad bounds"

    def test_iteration_limit_becomes_failure(self):
        fake = SimpleNamespace(status=1, message="Iteration limit reached.", fun=None, x=None)
        with patch("household_dispatch.dispatch.solver.linprog", return_value=fake):
            with pytest.raises(SolverFailureError) as excinfo:
                LinprogSolver().solve(_tiny_model())
        assert excinfo.value.status == 1
        assert not isinstance(excinfo.value, ModelInfeasibleError)
