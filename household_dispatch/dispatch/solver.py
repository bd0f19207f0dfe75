"""Solver adapter: solve an :class:`LPModel` with ``scipy.optimize.linprog``.

The structured model is converted to ``linprog`` matrices here and nowhere
else.  Columns follow the model's variable declaration order; each equality
constraint becomes one row of ``A_eq``.

Outcomes
--------
- status 0: optimal; a :class:`Solution` maps every variable name to its
  primal value.
- status 2 / 3: infeasible or unbounded model, :class:`ModelInfeasibleError`.
- any other status, or an exception raised inside ``linprog``:
  :class:`SolverFailureError`.

There is no retry and no fallback dispatch.  The adapter imposes no time
limit of its own.

Public API
----------
Solution        – Primal values, objective value and raw solver report.
LinprogSolver   – The HiGHS-backed solver adapter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import linprog

from household_dispatch.config.defaults import (
    LP_SOLVER_METHOD,
    LP_SOLVER_METHODS,
    LP_STATUS_INFEASIBLE,
    LP_STATUS_OPTIMAL,
    LP_STATUS_UNBOUNDED,
)
from household_dispatch.dispatch.errors import ModelInfeasibleError, SolverFailureError
from household_dispatch.dispatch.model import LPModel
from household_dispatch.dispatch.types import DayWindow, SystemSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Solution:
    """Optimal primal solution of an :class:`LPModel`."""

    values: dict[str, float]
    objective: float
    raw_output: str

    def __getitem__(self, name: str) -> float:
        return self.values[name]


def to_linprog_arrays(
    model: LPModel,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, list[tuple[float | None, float | None]]]:
    """Convert *model* to ``(c, A_eq, b_eq, bounds)`` for ``linprog``."""
    names = model.variable_names
    column = {name: i for i, name in enumerate(names)}
    n_vars = len(names)

    c = np.zeros(n_vars)
    for name, coef in model.objective.terms:
        c[column[name]] += coef

    A_eq = np.zeros((len(model.constraints), n_vars))
    b_eq = np.zeros(len(model.constraints))
    for row, constraint in enumerate(model.constraints):
        for name, coef in constraint.terms:
            A_eq[row, column[name]] += coef
        b_eq[row] = constraint.rhs

    bounds = [(v.lower, v.upper) for v in model.variables.values()]
    return c, A_eq, b_eq, bounds


def _report(model: LPModel, status: int, message: str, fun, x) -> str:
    """Plain-text solver report kept on each DayResult for audit."""
    lines = [
        f"model: {model.name}",
        f"status: {status}",
        f"message: {message}",
        f"objective: {fun!r}",
    ]
    if x is not None:
        lines.append("primal:")
        lines.extend(f"  {name} = {value!r}" for name, value in zip(model.variable_names, x))
    return "\n".join(lines) + "\n"


class LinprogSolver:
    """Solve dispatch models with the HiGHS backend of ``scipy.optimize.linprog``.

    Parameters
    ----------
    method:
        ``linprog`` method: ``"highs"`` (default, lets HiGHS choose),
        ``"highs-ds"`` (dual simplex) or ``"highs-ipm"`` (interior point).
    """

    def __init__(self, method: str = LP_SOLVER_METHOD) -> None:
        if method not in LP_SOLVER_METHODS:
            raise ValueError(
                f"Unknown solver method '{method}'. Use one of {list(LP_SOLVER_METHODS)}."
            )
        self.method = method

    def __repr__(self) -> str:
        return f"LinprogSolver(method={self.method!r})"

    def solve(
        self,
        model: LPModel,
        spec: SystemSpec | None = None,
        window: DayWindow | None = None,
    ) -> Solution:
        """Solve *model* and return the primal value of every variable.

        Parameters
        ----------
        model:
            Model to solve.
        spec, window:
            Inputs the model was built from; attached to any raised error so
            the failing day can be reproduced.

        Raises
        ------
        ModelInfeasibleError
            If the model is infeasible or unbounded.
        SolverFailureError
            If the solver fails for any other reason.
        """
        c, A_eq, b_eq, bounds = to_linprog_arrays(model)

        try:
            result = linprog(
                c,
                A_eq=A_eq if len(b_eq) else None,
                b_eq=b_eq if len(b_eq) else None,
                bounds=bounds,
                method=self.method,
            )
        except (ValueError, np.linalg.LinAlgError) as exc:
            raise SolverFailureError(
                f"Solver raised while solving {model.name}: {exc}",
                model_text=model.render_lp(),
                spec=spec,
                window=window,
                status=None,
                solver_message=str(exc),
            ) from exc

        raw = _report(model, result.status, result.message, result.fun, result.x)

        if result.status in (LP_STATUS_INFEASIBLE, LP_STATUS_UNBOUNDED):
            raise ModelInfeasibleError(
                f"Model {model.name} is infeasible or unbounded "
                f"(status={result.status}: {result.message})",
                model_text=model.render_lp(),
                spec=spec,
                window=window,
                status=result.status,
                solver_message=result.message,
            )
        if result.status != LP_STATUS_OPTIMAL or result.x is None:
            raise SolverFailureError(
                f"Solver failed on {model.name} "
                f"(status={result.status}: {result.message})",
                model_text=model.render_lp(),
                spec=spec,
                window=window,
                status=result.status,
                solver_message=result.message,
            )

        logger.debug(
            "Solved %s: objective=%.6f (%s)", model.name, result.fun, result.message
        )
        values = {name: float(v) for name, v in zip(model.variable_names, result.x)}
        return Solution(values=values, objective=float(result.fun), raw_output=raw)
