"""Derive per-hour import and export tariffs from spot prices.

Tariff formula (all values in currency/kWh)::

    import = spot + vat + grid_fee_fixed + grid_fee_spot_fraction · (spot + vat) + energy_tax
    export = spot + (vat if export_includes_vat) + export_remuneration

``spot`` is the spot price excluding VAT and ``vat`` is the VAT portion of the
spot price, as delivered by the utility feed.  Both tariffs are resolved
before dispatch; the optimiser only sees the final per-hour values.

Public API
----------
TariffConfig            – Tariff components.
tariff_config_from_dict – Build a config from the scenario ``tariff`` block.
import_tariff           – Vectorised import tariff.
export_tariff           – Vectorised export tariff.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from household_dispatch.config.defaults import (
    DEFAULT_ENERGY_TAX,
    DEFAULT_EXPORT_INCLUDES_VAT,
    DEFAULT_EXPORT_REMUNERATION,
    DEFAULT_GRID_FEE_FIXED,
    DEFAULT_GRID_FEE_SPOT_FRACTION,
)


@dataclass(frozen=True)
class TariffConfig:
    """Tariff components applied on top of the spot price.

    Attributes
    ----------
    grid_fee_fixed:
        Fixed grid fee per imported kWh.
    grid_fee_spot_fraction:
        Grid fee proportional to the VAT-inclusive spot price.
    energy_tax:
        Energy tax per imported kWh.
    export_remuneration:
        Extra payment per exported kWh (e.g. grid benefit compensation).
    export_includes_vat:
        Whether exports are paid the VAT portion of the spot price.
    """

    grid_fee_fixed: float = DEFAULT_GRID_FEE_FIXED
    grid_fee_spot_fraction: float = DEFAULT_GRID_FEE_SPOT_FRACTION
    energy_tax: float = DEFAULT_ENERGY_TAX
    export_remuneration: float = DEFAULT_EXPORT_REMUNERATION
    export_includes_vat: bool = DEFAULT_EXPORT_INCLUDES_VAT


def tariff_config_from_dict(d: dict) -> TariffConfig:
    """Build a :class:`TariffConfig` from a scenario ``tariff`` block.

    Missing keys fall back to the defaults.
    """
    return TariffConfig(
        grid_fee_fixed=float(d.get("grid_fee_fixed", DEFAULT_GRID_FEE_FIXED)),
        grid_fee_spot_fraction=float(
            d.get("grid_fee_spot_fraction", DEFAULT_GRID_FEE_SPOT_FRACTION)
        ),
        energy_tax=float(d.get("energy_tax", DEFAULT_ENERGY_TAX)),
        export_remuneration=float(
            d.get("export_remuneration", DEFAULT_EXPORT_REMUNERATION)
        ),
        export_includes_vat=bool(
            d.get("export_includes_vat", DEFAULT_EXPORT_INCLUDES_VAT)
        ),
    )


def import_tariff(
    spot: np.ndarray,
    vat: np.ndarray,
    config: TariffConfig,
) -> np.ndarray:
    """Return the import tariff per hour."""
    spot = np.asarray(spot, dtype=float)
    vat = np.asarray(vat, dtype=float)
    return (
        spot
        + vat
        + config.grid_fee_fixed
        + config.grid_fee_spot_fraction * (spot + vat)
        + config.energy_tax
    )


def export_tariff(
    spot: np.ndarray,
    vat: np.ndarray,
    config: TariffConfig,
) -> np.ndarray:
    """Return the export tariff per hour."""
    spot = np.asarray(spot, dtype=float)
    vat = np.asarray(vat, dtype=float)
    paid_vat = vat if config.export_includes_vat else np.zeros_like(vat)
    return spot + paid_vat + config.export_remuneration
