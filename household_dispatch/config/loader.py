"""Load and validate scenario JSON files.

Public API
----------
ScenarioConfig          – Validated scenario with typed accessors.
load_scenario(path)     – Parse + validate a scenario JSON file.
load_scenario_dict(data) – Validate an already-parsed dictionary.

Relative input paths in the scenario are resolved against the directory of
the scenario file.  All error messages name the field that caused the
problem so the user can fix the JSON without guessing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from household_dispatch.config.defaults import (
    BASE_SCENARIO_NAME,
    DEFAULT_HORIZON_HOURS,
    DEFAULT_OUTPUT_DIR,
    LP_SOLVER_METHOD,
)
from household_dispatch.config.schema import validate_scenario
from household_dispatch.dispatch.model import ModelOptions
from household_dispatch.dispatch.types import SystemSpec
from household_dispatch.market.tariff import TariffConfig, tariff_config_from_dict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Typed result container
# ---------------------------------------------------------------------------


def _spec_from_block(block: dict[str, Any]) -> SystemSpec:
    return SystemSpec(
        battery_kw=float(block["battery_kw"]),
        battery_kwh=float(block["battery_kwh"]),
        battery_kwh_at_sod=float(block.get("initial_soc_kwh", 0.0)),
        pv_kw=float(block["pv_kw"]),
        max_import_kw=float(block["max_import_kw"]),
        max_export_kw=float(block["max_export_kw"]),
    )


@dataclass
class ScenarioConfig:
    """Fully validated, parsed scenario configuration.

    Attributes
    ----------
    raw:
        The original validated dictionary.  Accessors below read from it.
    name:
        Scenario name (``scenario.name``).
    path:
        Absolute path to the source JSON file (``None`` if loaded from a dict).
    """

    raw: dict[str, Any]
    name: str
    path: Path | None = field(default=None, repr=False)

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def system(self) -> dict:
        return self.raw["system"]

    @property
    def inputs(self) -> dict:
        return self.raw["inputs"]

    @property
    def model(self) -> dict:
        return self.raw.get("model", {})

    @property
    def output_dir(self) -> str:
        """Output directory (``scenario.output.directory``)."""
        return self.raw["scenario"].get("output", {}).get("directory", DEFAULT_OUTPUT_DIR)

    @property
    def write_hourly(self) -> bool:
        """Whether the hourly dispatch CSV is written (default ``True``)."""
        return bool(self.raw["scenario"].get("output", {}).get("write_hourly", True))

    @property
    def solver_method(self) -> str:
        return self.model.get("solver_method", LP_SOLVER_METHOD)

    def resolve_path(self, value: str) -> Path:
        """Resolve *value* relative to the scenario file's directory."""
        p = Path(value).expanduser()
        if p.is_absolute() or self.path is None:
            return p
        return self.path.parent / p

    @property
    def consumption_csv_path(self) -> Path:
        return self.resolve_path(self.inputs["consumption_csv"])

    @property
    def pvwatts_json_path(self) -> Path | None:
        """Path of a saved PVWatts response, or ``None`` if fetched live."""
        value = self.inputs.get("pvwatts_json")
        return self.resolve_path(value) if value else None

    @property
    def pvwatts_site(self) -> dict | None:
        """PVWatts site parameters, or ``None`` if a saved file is used."""
        return self.inputs.get("pvwatts")

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def system_spec(self) -> SystemSpec:
        """Return the base system as a :class:`SystemSpec`."""
        return _spec_from_block(self.system)

    def tariff_config(self) -> TariffConfig:
        return tariff_config_from_dict(self.raw.get("tariff", {}))

    def model_options(self) -> ModelOptions:
        return ModelOptions(
            horizon_hours=int(self.model.get("horizon_hours", DEFAULT_HORIZON_HOURS)),
            allow_curtailment=bool(self.model.get("allow_curtailment", True)),
        )

    def variant_specs(self) -> dict[str, SystemSpec]:
        """Return all scenarios to run, base system first.

        Each comparison variant overrides fields of the base ``system``
        block.  A variant without ``initial_soc_kwh`` starts with the base
        initial charge clipped to its own capacity.
        """
        specs = {BASE_SCENARIO_NAME: self.system_spec()}
        for variant in self.raw.get("comparison", []):
            block = {**self.system, **variant}
            if "initial_soc_kwh" not in variant:
                block["initial_soc_kwh"] = min(
                    float(self.system.get("initial_soc_kwh", 0.0)),
                    float(block["battery_kwh"]),
                )
            specs[variant["name"]] = _spec_from_block(block)
        return specs


# ---------------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------------


def load_scenario(path: str | Path) -> ScenarioConfig:
    """Load and validate a scenario JSON file.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    json.JSONDecodeError
        When the file contains invalid JSON.
    jsonschema.ValidationError
        When the JSON does not conform to the scenario schema.
    ValueError
        When cross-field constraints are violated.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Scenario file not found: '{path}'. "
            "Check that the path is correct and the file exists."
        )

    logger.debug("Loading scenario from '%s'", path)

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise json.JSONDecodeError(
            f"Invalid JSON in scenario file '{path}': {exc.msg}",
            exc.doc,
            exc.pos,
        ) from exc

    validate_scenario(data)

    config = ScenarioConfig(
        raw=data,
        name=data["scenario"]["name"],
        path=path.resolve(),
    )
    logger.info(
        "Loaded scenario '%s' (%d comparison variant(s)) from '%s'",
        config.name,
        len(data.get("comparison", [])),
        path,
    )
    return config


def load_scenario_dict(data: dict) -> ScenarioConfig:
    """Validate and wrap an already-parsed scenario dictionary.

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the scenario schema.
    ValueError
        When cross-field constraints are violated.
    """
    validate_scenario(data)
    return ScenarioConfig(raw=data, name=data["scenario"]["name"], path=None)
