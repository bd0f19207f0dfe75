"""JSON schema definition and validation for scenario configuration files.

Validation uses the ``jsonschema`` library (Draft 7).

Example scenario::

    {
      "scenario": {"name": "home", "output": {"directory": "output"}},
      "system": {
        "battery_kw": 5, "battery_kwh": 10, "initial_soc_kwh": 0,
        "pv_kw": 8, "max_import_kw": 11, "max_export_kw": 11
      },
      "tariff": {"grid_fee_fixed": 0.20, "energy_tax": 0.535},
      "model": {"horizon_hours": 48, "allow_curtailment": true},
      "inputs": {"consumption_csv": "consumption.csv",
                 "pvwatts_json": "pvwatts.json"},
      "comparison": [{"name": "no_battery", "battery_kw": 0, "battery_kwh": 0}]
    }

Usage::

    from household_dispatch.config.schema import validate_scenario
    validate_scenario(data)   # raises jsonschema.ValidationError on failure
"""

from __future__ import annotations

import jsonschema

from household_dispatch.config.defaults import (
    BASE_SCENARIO_NAME,
    HOURS_PER_DAY,
    LP_SOLVER_METHODS,
    MAX_HORIZON_HOURS,
)

# ---------------------------------------------------------------------------
# Re-usable sub-schemas
# ---------------------------------------------------------------------------

_NON_NEGATIVE_NUMBER = {"type": "number", "minimum": 0}

_OUTPUT = {
    "type": "object",
    "required": ["directory"],
    "properties": {
        "directory": {"type": "string", "minLength": 1},
        "write_hourly": {"type": "boolean"},
    },
    "additionalProperties": False,
}

_SCENARIO_BLOCK = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "output": _OUTPUT,
    },
    "additionalProperties": False,
}

# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

_SYSTEM = {
    "type": "object",
    "required": [
        "battery_kw",
        "battery_kwh",
        "pv_kw",
        "max_import_kw",
        "max_export_kw",
    ],
    "properties": {
        "battery_kw": _NON_NEGATIVE_NUMBER,
        "battery_kwh": _NON_NEGATIVE_NUMBER,
        "initial_soc_kwh": _NON_NEGATIVE_NUMBER,
        "pv_kw": _NON_NEGATIVE_NUMBER,
        "max_import_kw": _NON_NEGATIVE_NUMBER,
        "max_export_kw": _NON_NEGATIVE_NUMBER,
    },
    "additionalProperties": False,
}

_VARIANT = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        **_SYSTEM["properties"],
    },
    "additionalProperties": False,
}

# ---------------------------------------------------------------------------
# Tariff and model
# ---------------------------------------------------------------------------

_TARIFF = {
    "type": "object",
    "properties": {
        "grid_fee_fixed": {"type": "number"},
        "grid_fee_spot_fraction": {"type": "number"},
        "energy_tax": {"type": "number"},
        "export_remuneration": {"type": "number"},
        "export_includes_vat": {"type": "boolean"},
    },
    "additionalProperties": False,
}

_MODEL = {
    "type": "object",
    "properties": {
        "horizon_hours": {
            "type": "integer",
            "minimum": HOURS_PER_DAY,
            "maximum": MAX_HORIZON_HOURS,
        },
        "allow_curtailment": {"type": "boolean"},
        "solver_method": {"type": "string", "enum": list(LP_SOLVER_METHODS)},
    },
    "additionalProperties": False,
}

# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

_PVWATTS_SITE = {
    "type": "object",
    "required": ["latitude", "longitude", "tilt_deg", "azimuth_deg"],
    "properties": {
        "latitude": {"type": "number", "minimum": -90, "maximum": 90},
        "longitude": {"type": "number", "minimum": -180, "maximum": 180},
        "tilt_deg": {"type": "number", "minimum": 0, "maximum": 90},
        "azimuth_deg": {"type": "number", "minimum": 0, "maximum": 360},
        "losses_pct": {"type": "number", "minimum": -5, "maximum": 99},
        "module_type": {"type": "integer", "enum": [0, 1, 2]},
        "array_type": {"type": "integer", "enum": [0, 1, 2, 3, 4]},
        "dataset": {"type": "string", "enum": ["nsrdb", "tmy2", "tmy3", "intl"]},
        "radius_km": {"type": "integer", "minimum": 0},
        "api_key_env": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

_INPUTS = {
    "type": "object",
    "required": ["consumption_csv"],
    "properties": {
        "consumption_csv": {"type": "string", "minLength": 1},
        "pvwatts_json": {"type": "string", "minLength": 1},
        "pvwatts": _PVWATTS_SITE,
    },
    "oneOf": [
        {"required": ["pvwatts_json"], "not": {"required": ["pvwatts"]}},
        {"required": ["pvwatts"], "not": {"required": ["pvwatts_json"]}},
    ],
    "additionalProperties": False,
}

# ---------------------------------------------------------------------------
# Top-level schema
# ---------------------------------------------------------------------------

SCENARIO_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Household Dispatch Scenario Configuration",
    "type": "object",
    "required": ["scenario", "system", "inputs"],
    "properties": {
        "scenario": _SCENARIO_BLOCK,
        "system": _SYSTEM,
        "tariff": _TARIFF,
        "model": _MODEL,
        "inputs": _INPUTS,
        "comparison": {"type": "array", "items": _VARIANT},
    },
    "additionalProperties": False,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_scenario(data: dict) -> None:
    """Validate a scenario configuration dictionary against the JSON schema.

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the scenario schema.  The message
        names the JSON path of the failing field.
    ValueError
        When cross-field constraints are violated (initial charge above
        capacity, duplicate comparison names).
    """
    validator = jsonschema.Draft7Validator(SCENARIO_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

    if errors:
        first = errors[0]
        path_str = " → ".join(str(p) for p in first.absolute_path) or "(root)"
        raise jsonschema.ValidationError(
            f"Scenario validation failed at '{path_str}': {first.message}",
            path=first.absolute_path,
            schema_path=first.absolute_schema_path,
            validator=first.validator,
            validator_value=first.validator_value,
            instance=first.instance,
            schema=first.schema,
            cause=first.cause,
        )

    _validate_initial_soc(data["system"], "system")
    for i, variant in enumerate(data.get("comparison", [])):
        # Variants without an explicit initial charge inherit a clipped one.
        if "initial_soc_kwh" in variant:
            merged = {**data["system"], **variant}
            _validate_initial_soc(merged, f"comparison[{i}] ('{variant['name']}')")
    _validate_unique_variant_names(data)


def _validate_initial_soc(system: dict, where: str) -> None:
    """Check that the initial battery charge fits into the battery."""
    soc = system.get("initial_soc_kwh", 0.0)
    capacity = system["battery_kwh"]
    if soc > capacity:
        raise ValueError(
            f"{where}: initial_soc_kwh ({soc}) exceeds battery_kwh ({capacity})."
        )


def _validate_unique_variant_names(data: dict) -> None:
    """Check that comparison variant names are unique."""
    seen: set[str] = {BASE_SCENARIO_NAME}
    for variant in data.get("comparison", []):
        name = variant["name"]
        if name in seen:
            raise ValueError(
                f"Duplicate comparison variant name '{name}'. "
                f"Each entry in 'comparison' needs a unique name other than "
                f"'{BASE_SCENARIO_NAME}'."
            )
        seen.add(name)


def get_schema() -> dict:
    """Return a copy of the scenario JSON schema dictionary."""
    return SCENARIO_SCHEMA.copy()
