"""Daily LP model for household dispatch, as a structured representation.

The model is built from typed records (:class:`Variable`,
:class:`LinearConstraint`, :class:`Objective`) and is only turned into a
solver-specific form at the boundary: :mod:`household_dispatch.dispatch.solver`
converts it to ``scipy.optimize.linprog`` matrices, and
:meth:`LPModel.render_lp` renders CPLEX LP text for audit and reproduction.

Formulation
-----------
For every hour ``h`` of the horizon (``0 .. H-1``, ``H <= 48``):

===========  ===========================  =================================
Variable     Bounds                       Meaning
===========  ===========================  =================================
import_h     [0, max_import_kw]           Grid import (kW)
export_h     [0, max_export_kw]           Grid export (kW)
bat_kw_h     [-battery_kw, battery_kw]    Battery power, positive = discharge
pv_used_h    [0, pv_available_h]          PV power delivered after curtailment
soc_h        [0, battery_kwh]; free h=0   Battery energy (kWh)
===========  ===========================  =================================

Constraints::

    balance_h:       import_h - export_h + bat_kw_h + pv_used_h = load_h
    continuity_h:    soc_{h-1} - bat_kw_h - soc_h = 0               (h > 0)
    anchor_soc:      soc_0 = battery_kwh_at_sod

Objective::

    minimise  Σ_h  import_price_h · import_h  -  export_price_h · export_h

The uncontrolled load is a fixed right-hand side of the balance constraint,
not a decision variable.  PV, battery and state-of-charge variables carry no
price; they only enter through the balance constraint.

Public API
----------
ModelOptions    – Horizon length and curtailment switch.
Variable        – Named continuous variable with bounds.
LinearConstraint – Named linear equality ``Σ coef·var = rhs``.
Objective       – Minimisation objective.
LPModel         – Complete model with rendering helpers.
var_name        – Variable naming convention ``<role>_h<hour>``.
build_day_model – Build the LP for one day window.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from household_dispatch.config.defaults import (
    DEFAULT_HORIZON_HOURS,
    HOURS_PER_DAY,
    MAX_HORIZON_HOURS,
)
from household_dispatch.dispatch.errors import InsufficientHorizonError
from household_dispatch.dispatch.types import DayWindow, SystemSpec

logger = logging.getLogger(__name__)

ROLE_IMPORT = "import"
ROLE_EXPORT = "export"
ROLE_BATTERY = "bat_kw"
ROLE_PV_USED = "pv_used"
ROLE_SOC = "soc"

ANCHOR_CONSTRAINT = "anchor_soc"


def var_name(role: str, hour: int) -> str:
    """Return the unique variable name for *role* at *hour*."""
    return f"{role}_h{hour}"


# ---------------------------------------------------------------------------
# Structured model records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelOptions:
    """Formulation switches for :func:`build_day_model`.

    Attributes
    ----------
    horizon_hours:
        Maximum number of hours modelled per day (24 reported + lookahead).
    allow_curtailment:
        When ``False`` the PV used is fixed to the PV available, so the
        optimiser cannot throw away PV output.
    """

    horizon_hours: int = DEFAULT_HORIZON_HOURS
    allow_curtailment: bool = True

    def __post_init__(self) -> None:
        if not HOURS_PER_DAY <= self.horizon_hours <= MAX_HORIZON_HOURS:
            raise ValueError(
                f"horizon_hours must be in [{HOURS_PER_DAY}, {MAX_HORIZON_HOURS}], "
                f"got {self.horizon_hours}"
            )


@dataclass(frozen=True)
class Variable:
    """Continuous decision variable; ``None`` bounds mean unbounded."""

    name: str
    lower: float | None = 0.0
    upper: float | None = None


@dataclass(frozen=True)
class LinearConstraint:
    """Linear equality ``Σ coefficient · variable = rhs``."""

    name: str
    terms: tuple[tuple[str, float], ...]
    rhs: float


@dataclass(frozen=True)
class Objective:
    """Linear minimisation objective."""

    terms: tuple[tuple[str, float], ...]
    sense: str = "minimize"


@dataclass
class LPModel:
    """A complete linear programme for one day.

    Variables are kept in declaration order, which is also the column order
    used by the solver adapter.
    """

    name: str
    horizon_hours: int
    objective: Objective = field(default_factory=lambda: Objective(terms=()))
    variables: dict[str, Variable] = field(default_factory=dict)
    constraints: list[LinearConstraint] = field(default_factory=list)

    def add_variable(
        self, name: str, lower: float | None = 0.0, upper: float | None = None
    ) -> Variable:
        """Declare a variable.

        Raises
        ------
        ValueError
            If *name* is already declared or ``lower > upper``.
        """
        if name in self.variables:
            raise ValueError(f"Variable '{name}' is already declared.")
        if lower is not None and upper is not None and lower > upper:
            raise ValueError(
                f"Variable '{name}': lower bound {lower} exceeds upper bound {upper}."
            )
        var = Variable(name=name, lower=lower, upper=upper)
        self.variables[name] = var
        return var

    def add_constraint(
        self, name: str, terms: list[tuple[str, float]], rhs: float
    ) -> LinearConstraint:
        """Add an equality constraint over declared variables.

        Raises
        ------
        KeyError
            If a term references an undeclared variable.
        """
        for var, _ in terms:
            if var not in self.variables:
                raise KeyError(f"Constraint '{name}' references unknown variable '{var}'.")
        constraint = LinearConstraint(name=name, terms=tuple(terms), rhs=rhs)
        self.constraints.append(constraint)
        return constraint

    @property
    def variable_names(self) -> list[str]:
        """Variable names in column order."""
        return list(self.variables)

    # ------------------------------------------------------------------
    # CPLEX LP rendering
    # ------------------------------------------------------------------

    def render_lp(self) -> str:
        """Render the model in CPLEX LP format."""
        lines = ["\\ " + self.name, "Minimize" if self.objective.sense == "minimize" else "Maximize"]
        lines.append(" obj: " + (_render_terms(self.objective.terms) or "0"))
        lines.append("Subject To")
        for c in self.constraints:
            lines.append(f" {c.name}: {_render_terms(c.terms)} = {_fmt(c.rhs)}")
        lines.append("Bounds")
        for v in self.variables.values():
            lines.append(" " + _render_bound(v))
        lines.append("End")
        return "\n".join(lines) + "\n"


def _fmt(value: float) -> str:
    return repr(float(value))


def _render_terms(terms: tuple[tuple[str, float], ...]) -> str:
    parts: list[str] = []
    for name, coef in terms:
        if coef == 0.0:
            continue
        sign = "-" if coef < 0 else "+"
        magnitude = abs(coef)
        body = name if magnitude == 1.0 else f"{_fmt(magnitude)} {name}"
        if not parts:
            parts.append(body if sign == "+" else f"- {body}")
        else:
            parts.append(f"{sign} {body}")
    return " ".join(parts)


def _render_bound(v: Variable) -> str:
    if v.lower is None and v.upper is None:
        return f"{v.name} free"
    lower = "-inf" if v.lower is None else _fmt(v.lower)
    upper = "+inf" if v.upper is None else _fmt(v.upper)
    return f"{lower} <= {v.name} <= {upper}"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _check_finite(record, window: DayWindow, hour: int) -> None:
    """Raise ValueError naming the first non-finite field of *record*."""
    for name in ("consumption_kwh", "import_price", "export_price", "pv_normalized_kw"):
        value = getattr(record, name)
        if not math.isfinite(value):
            raise ValueError(
                f"Day {window.day_name}, hour {hour}: {name} is {value}; "
                "all inputs must be resolved to finite values before dispatch."
            )


def build_day_model(
    window: DayWindow,
    spec: SystemSpec,
    options: ModelOptions | None = None,
) -> LPModel:
    """Build the dispatch LP for one day.

    Parameters
    ----------
    window:
        Day window; its first record is hour 0.
    spec:
        System configuration including the start-of-day battery energy.
    options:
        Formulation switches.  Defaults to :class:`ModelOptions()`.

    Returns
    -------
    LPModel
        Model over ``H = min(options.horizon_hours, window.horizon_hours)``
        hours.

    Raises
    ------
    InsufficientHorizonError
        If the window has fewer than ``HOURS_PER_DAY`` records.
    """
    options = options or ModelOptions()
    if window.horizon_hours < HOURS_PER_DAY:
        raise InsufficientHorizonError(window.day, window.horizon_hours, HOURS_PER_DAY)

    hours = min(options.horizon_hours, window.horizon_hours)
    model = LPModel(name=f"dispatch_{window.day_name}", horizon_hours=hours)
    objective: list[tuple[str, float]] = []

    for h in range(hours):
        record = window.records[h]
        _check_finite(record, window, h)
        pv_available = record.pv_normalized_kw * spec.pv_kw

        imp = model.add_variable(var_name(ROLE_IMPORT, h), 0.0, spec.max_import_kw).name
        exp = model.add_variable(var_name(ROLE_EXPORT, h), 0.0, spec.max_export_kw).name
        # Only continuity rows (h >= 1) link battery power to the SoC, so the
        # hour-0 battery power is bounded by battery_kw but does not move any
        # stored energy. Its value is not a physical flow.
        bat = model.add_variable(
            var_name(ROLE_BATTERY, h), -spec.battery_kw, spec.battery_kw
        ).name
        pv_lower = 0.0 if options.allow_curtailment else pv_available
        pv = model.add_variable(var_name(ROLE_PV_USED, h), pv_lower, pv_available).name
        if h == 0:
            soc = model.add_variable(var_name(ROLE_SOC, h), None, None).name
        else:
            soc = model.add_variable(var_name(ROLE_SOC, h), 0.0, spec.battery_kwh).name

        objective.append((imp, record.import_price))
        objective.append((exp, -record.export_price))

        model.add_constraint(
            f"balance_h{h}",
            [(imp, 1.0), (exp, -1.0), (bat, 1.0), (pv, 1.0)],
            record.consumption_kwh,
        )
        if h == 0:
            model.add_constraint(ANCHOR_CONSTRAINT, [(soc, 1.0)], spec.battery_kwh_at_sod)
        else:
            prev_soc = var_name(ROLE_SOC, h - 1)
            model.add_constraint(
                f"continuity_h{h}",
                [(prev_soc, 1.0), (bat, -1.0), (soc, -1.0)],
                0.0,
            )

    model.objective = Objective(terms=tuple(objective))

    logger.debug(
        "Built model %s: %d variables, %d constraints, %d hours",
        model.name,
        len(model.variables),
        len(model.constraints),
        hours,
    )
    return model
