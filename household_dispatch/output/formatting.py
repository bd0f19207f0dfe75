"""Number formatting helpers for output CSVs and stdout.

All functions return strings suitable for writing to CSV files or printing
to the terminal. None values are represented as an empty string.

Public API
----------
fmt_float    – Format a float with configurable decimal places.
fmt_currency – Format a monetary value.
fmt_price    – Format a per-kWh price.
"""

from __future__ import annotations

from household_dispatch.config.defaults import CURRENCY_PRECISION, FLOAT_PRECISION

PRICE_PRECISION: int = 6


def fmt_float(
    value: float | None,
    precision: int = FLOAT_PRECISION,
) -> str:
    """Format a float to a fixed number of decimal places.

    Parameters
    ----------
    value:
        The value to format. None is returned as an empty string.
    precision:
        Number of decimal places.

    Returns
    -------
    str
        Formatted string, e.g. ``"3.1416"``.
    """
    if value is None:
        return ""
    # Solver noise can yield "-0.0000"
    text = f"{value:.{precision}f}"
    if text.startswith("-") and float(text) == 0.0:
        text = text[1:]
    return text


def fmt_currency(
    value: float | None,
    precision: int = CURRENCY_PRECISION,
) -> str:
    """Format a monetary value (default two decimals)."""
    return fmt_float(value, precision=precision)


def fmt_price(value: float | None) -> str:
    """Format a price per kWh with six decimals."""
    return fmt_float(value, precision=PRICE_PRECISION)
