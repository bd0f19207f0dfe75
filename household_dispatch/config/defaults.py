"""Global default values and constants.

All numeric constants used throughout the household_dispatch package must be
defined here rather than as inline literals. Import from this module wherever
a constant is needed to ensure a single source of truth and full traceability.
"""

# ---------------------------------------------------------------------------
# Time constants
# ---------------------------------------------------------------------------

HOURS_PER_DAY: int = 24
"""Number of hourly timesteps reported per dispatch day."""

HOURS_PER_YEAR: int = 8760
"""Number of hours in a non-leap year (365 × 24)."""

HOURS_PER_LEAP_YEAR: int = 8784
"""Number of hours in a leap year (366 × 24)."""

DEFAULT_HORIZON_HOURS: int = 48
"""Hours modelled per day: 24 reported plus 24 lookahead."""

MAX_HORIZON_HOURS: int = 48
"""Upper limit on the modelled horizon per day."""

SECONDS_PER_HOUR: int = 3600
"""Spacing between consecutive hourly records, in seconds."""

# ---------------------------------------------------------------------------
# LP solver
# ---------------------------------------------------------------------------

LP_SOLVER_METHOD: str = "highs"
"""scipy.optimize.linprog method selecting the HiGHS backend."""

LP_SOLVER_METHODS: tuple[str, ...] = ("highs", "highs-ds", "highs-ipm")
"""linprog methods accepted by the solver adapter."""

LP_STATUS_OPTIMAL: int = 0
"""linprog status code: optimisation terminated successfully."""

LP_STATUS_INFEASIBLE: int = 2
"""linprog status code: problem appears to be infeasible."""

LP_STATUS_UNBOUNDED: int = 3
"""linprog status code: problem appears to be unbounded."""

LP_FEASIBILITY_TOLERANCE: float = 1e-6
"""Tolerance used when checking solved values against the model invariants."""

# ---------------------------------------------------------------------------
# Tariff defaults (currency / kWh)
# ---------------------------------------------------------------------------

DEFAULT_GRID_FEE_FIXED: float = 0.20
"""Fixed grid transfer fee added to every imported kWh."""

DEFAULT_GRID_FEE_SPOT_FRACTION: float = 0.0561
"""Grid fee component proportional to the spot price (fraction of spot)."""

DEFAULT_ENERGY_TAX: float = 0.535
"""Energy tax added to every imported kWh."""

DEFAULT_EXPORT_REMUNERATION: float = 0.0
"""Extra remuneration paid per exported kWh on top of the spot price."""

DEFAULT_EXPORT_INCLUDES_VAT: bool = True
"""Whether the VAT portion of the spot price is paid out on exports."""

# ---------------------------------------------------------------------------
# PVWatts API
# ---------------------------------------------------------------------------

PVWATTS_API_URL: str = "https://developer.nrel.gov/api/pvwatts/v8.json"
"""Endpoint of the NREL PVWatts v8 REST API."""

PVWATTS_CACHE_DIR: str = "~/.household_dispatch_cache"
"""Local directory for caching raw PVWatts JSON responses."""

PVWATTS_SYSTEM_CAPACITY_KW: float = 1.0
"""Nameplate capacity requested from PVWatts so output is normalised per kW."""

PVWATTS_RETRY_MAX: int = 5
"""Maximum number of HTTP retry attempts for PVWatts API calls."""

PVWATTS_RETRY_BACKOFF_FACTOR: float = 1.5
"""Exponential backoff factor (seconds) between PVWatts retries."""

PVWATTS_REQUEST_TIMEOUT_S: int = 60
"""HTTP request timeout in seconds for PVWatts API calls."""

PVWATTS_API_KEY_ENV: str = "PVWATTS_API_KEY"
"""Environment variable holding the NREL API key unless the scenario names another."""

W_TO_KW: float = 1.0 / 1000.0
"""Conversion factor from W to kW (multiply W value by this)."""

# ---------------------------------------------------------------------------
# Scenario comparison
# ---------------------------------------------------------------------------

DEFAULT_MAX_WORKERS: int | None = None
"""Default process count for scenario sweeps (None = CPU count)."""

BASE_SCENARIO_NAME: str = "base"
"""Name given to the scenario built from the top-level ``system`` block."""

# ---------------------------------------------------------------------------
# Output defaults
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR: str = "output"
"""Default root directory for scenario result files."""

CSV_DELIMITER: str = ","
"""Delimiter used in all input and output CSV files."""

CSV_TIMESTAMP_FORMAT: str = "%Y-%m-%dT%H:%M:%SZ"
"""ISO 8601 UTC timestamp format used in output CSV files."""

FLOAT_PRECISION: int = 4
"""Number of decimal places for energy and power values in output CSVs."""

CURRENCY_PRECISION: int = 2
"""Number of decimal places for monetary values in output CSVs."""
