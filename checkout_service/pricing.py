"""
pricing.py — Glazing Unit Pricing Engine

Pure functions that turn a normalized unit into a unit price (inc VAT).

DGU units are priced from a banded rate table keyed by the (outer, inner) glass
pair:

    price = max(minimumPrice, area × bandRate) [+ area × selfCleaningRate]

A pair or band that is missing from the table means the configuration is not
sold; the engine returns 0 and the caller must reject the order.

Skylight units are priced by the storefront calculator. The engine only returns
the declared unit price and offers the tolerance check used to validate it.

All amounts are `Decimal`. Rounding to pennies happens once, in `money()`, when
a value is presented to the customer or the order platform.
"""

import json
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .models import DguUnit, SkylightUnit

ZERO = Decimal("0")
PENNY = Decimal("0.01")
HUNDRED = Decimal("100")

CURRENCY_SYMBOLS = {"GBP": "£", "EUR": "€", "USD": "$"}


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Decimal) -> Decimal:
    """Rounds an amount to pennies, half up."""
    return to_decimal(value).quantize(PENNY, rounding=ROUND_HALF_UP)


def format_money(value: Decimal, currency: str = "GBP") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{money(value)}"
    return f"{money(value)} {currency}"


def within_tolerance(declared: Decimal, expected: Decimal, tolerance: Decimal) -> bool:
    return abs(to_decimal(declared) - to_decimal(expected)) <= tolerance


def apply_discount(price: Decimal, percent: Decimal) -> Decimal:
    """Returns `price` reduced by `percent` (0-100). Never below zero."""
    if not percent:
        return price
    return max(ZERO, price * (HUNDRED - percent) / HUNDRED)


@dataclass(frozen=True)
class AreaBand:
    name: str
    upper: Decimal
    inclusive: bool = False

    def accepts(self, area: Decimal) -> bool:
        return area <= self.upper if self.inclusive else area < self.upper


@dataclass(frozen=True)
class GlassRate:
    minimum_price: Decimal
    band_rates: Mapping[str, Decimal]


@dataclass(frozen=True)
class DguRateTable:
    """
    Rate table for double glazed units.

    Bands are ordered by their upper bound and never overlap: a unit falls in
    the first band that accepts its area. Areas above the last band are unpriced.
    """
    bands: Tuple[AreaBand, ...]
    pairs: Mapping[Tuple[str, str], GlassRate]
    self_cleaning_rates: Mapping[str, Decimal]

    def band_for(self, area: Decimal) -> Optional[AreaBand]:
        for band in self.bands:
            if band.accepts(area):
                return band
        return None

    def rate_for(self, outer_glass: str, inner_glass: str) -> Optional[GlassRate]:
        return self.pairs.get((outer_glass, inner_glass))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DguRateTable":
        try:
            bands = tuple(
                AreaBand(b["name"], to_decimal(b["upper"]), bool(b.get("inclusive", False)))
                for b in data["bands"]
            )
            pairs = {
                (p["outer"], p["inner"]): GlassRate(
                    minimum_price=to_decimal(p["minimumPrice"]),
                    band_rates={k: to_decimal(v) for k, v in p["rates"].items()},
                )
                for p in data["pairs"]
            }
            self_cleaning = {k: to_decimal(v) for k, v in data.get("selfCleaningRates", {}).items()}
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ConfigurationError(f"Invalid DGU rate table: {e!r}") from e

        uppers = [b.upper for b in bands]
        if uppers != sorted(uppers) or len(set(uppers)) != len(uppers):
            raise ConfigurationError("DGU rate table bands must have strictly increasing upper bounds")
        names = {b.name for b in bands}
        for (outer, inner), rate in pairs.items():
            unknown = set(rate.band_rates) - names
            if unknown:
                raise ConfigurationError(f"Unknown band(s) {sorted(unknown)} for pair {outer} / {inner}")
        return cls(bands=bands, pairs=pairs, self_cleaning_rates=self_cleaning)

    @classmethod
    def from_json_file(cls, path: str) -> "DguRateTable":
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read pricing table {path}: {e}") from e
        return cls.from_dict(data)


def price_dgu(unit: DguUnit, table: DguRateTable) -> Decimal:
    """
    Unit price for a double glazed unit, inc VAT and unrounded.

    Returns 0 when the area is outside every band, or when the glass pair has
    no rate for that band (including a self-cleaning rate, if requested).
    """
    area = unit.area_m2
    band = table.band_for(area)
    if band is None:
        return ZERO

    rate = table.rate_for(unit.outer_glass, unit.inner_glass)
    if rate is None:
        return ZERO
    band_rate = rate.band_rates.get(band.name)
    if band_rate is None:
        return ZERO

    price = max(rate.minimum_price, area * band_rate)

    if unit.self_cleaning:
        surcharge_rate = table.self_cleaning_rates.get(band.name)
        if surcharge_rate is None:
            return ZERO
        price += area * surcharge_rate

    return price


def price_skylight(unit: SkylightUnit) -> Decimal:
    """
    Skylights are priced by the storefront; the declared unit price is taken as
    is and validated against the declared line total by the caller.
    """
    if unit.declared_unit_price is None or unit.declared_unit_price <= ZERO:
        return ZERO
    return unit.declared_unit_price
