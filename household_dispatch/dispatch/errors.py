"""Exception hierarchy for the dispatch engine.

Every error raised by the chunker, model builder, solver adapter, extractor or
orchestrator derives from :class:`DispatchError`, so callers can catch the
whole family in one place.  Input-shape problems additionally subclass
``ValueError`` and solver outcomes ``RuntimeError``.

Solver errors carry the rendered LP text together with the :class:`SystemSpec`
and :class:`DayWindow` that produced it, so a failed day can be reproduced
offline.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from household_dispatch.dispatch.types import DayWindow, SystemSpec


class DispatchError(Exception):
    """Base class for all dispatch engine errors."""


class MisalignedSeriesError(DispatchError, ValueError):
    """Raised when an hourly series cannot be aligned to UTC day boundaries."""


class InsufficientHorizonError(DispatchError, ValueError):
    """Raised when a day has fewer than 24 hours of data to report."""

    def __init__(self, day: datetime, available_hours: int, required_hours: int) -> None:
        self.day = day
        self.available_hours = available_hours
        self.required_hours = required_hours
        super().__init__(
            f"Day {day:%Y-%m-%d} has only {available_hours} hourly record(s); "
            f"at least {required_hours} are required."
        )

    def __reduce__(self):
        # Rebuild from the original arguments when crossing process boundaries
        return (type(self), (self.day, self.available_hours, self.required_hours))


class SolveError(DispatchError, RuntimeError):
    """Base class for non-optimal solver outcomes.

    Attributes
    ----------
    model_text:
        The model rendered in CPLEX LP format.
    spec:
        System specification the model was built from (may be ``None`` when
        the solver is invoked directly).
    window:
        Day window the model was built from (may be ``None``).
    status:
        Solver status code, or ``None`` if the solver raised.
    solver_message:
        Message reported by the solver.
    """

    def __init__(
        self,
        message: str,
        model_text: str,
        spec: SystemSpec | None = None,
        window: DayWindow | None = None,
        status: int | None = None,
        solver_message: str = "",
    ) -> None:
        super().__init__(message)
        self.model_text = model_text
        self.spec = spec
        self.window = window
        self.status = status
        self.solver_message = solver_message

    def __reduce__(self):
        return (
            type(self),
            (
                self.args[0],
                self.model_text,
                self.spec,
                self.window,
                self.status,
                self.solver_message,
            ),
        )


class ModelInfeasibleError(SolveError):
    """The LP has no feasible solution, or its objective is unbounded."""


class SolverFailureError(SolveError):
    """The solver failed internally (numerical, iteration limit, bad input)."""
