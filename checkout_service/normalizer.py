"""
normalizer.py — Unit Normalization Rules

Turns untrusted calculator input into canonical units.

DGU units:
    • Width and height are clamped to the sellable range (never rejected).
    • Quantity is clamped to 1..10, defaulting to 1.
    • Large panes on base-tier glass are upgraded to the next tier, because the
      rate table does not sell thin glass at that size.

Skylight units:
    • Geometry is validated, never clamped: the customer has already confirmed
      the external measurement, so a resized unit would be a different product.

Only missing discrete options (glass, glazing spec) or impossible geometry raise
`InvalidConfigurationError`.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Mapping, Optional

from .errors import InvalidConfigurationError
from .models import DguUnit, DguUnitInput, SkylightUnit, SkylightUnitInput, as_flag

MIN_QUANTITY = 1
MAX_QUANTITY = 10


@dataclass(frozen=True)
class DguRules:
    min_mm: int = 150
    max_width_mm: int = 2000
    max_height_mm: int = 3000
    upgrade_threshold_m2: Decimal = Decimal("2.5")
    upgrades: Mapping[str, str] = field(default_factory=lambda: {
        "4mm Clear": "6mm Clear",
        "4mm Obscure": "6mm Obscure",
    })


@dataclass(frozen=True)
class SkylightRules:
    min_mm: int = 300
    max_width_mm: int = 2500
    max_height_mm: int = 2500
    wide_threshold_mm: int = 1800
    min_height_when_wide_mm: int = 600
    max_area_m2: Decimal = Decimal("3.0")


def clamp(value: float, low: int, high: int) -> int:
    """Rounds to whole millimetres and clamps into [low, high]."""
    return int(min(high, max(low, round(value))))


def clamp_quantity(value: Optional[float]) -> int:
    # 0, None and negatives all mean "one unit"
    if not value or value < MIN_QUANTITY:
        return MIN_QUANTITY
    return min(MAX_QUANTITY, int(value))


def apply_upgrade_rule(unit: DguUnit, rules: DguRules) -> DguUnit:
    """
    Upgrades both panes to the next tier when the unit is at or above the area
    threshold and both panes are base-tier glass. Applied at most once.
    """
    if unit.upgrade_applied or unit.area_m2 < rules.upgrade_threshold_m2:
        return unit
    outer = rules.upgrades.get(unit.outer_glass)
    inner = rules.upgrades.get(unit.inner_glass)
    if outer is None or inner is None:
        return unit
    return replace(unit, outer_glass=outer, inner_glass=inner, upgrade_applied=True)


def normalize_dgu(raw: DguUnitInput, rules: DguRules) -> DguUnit:
    if not raw.outerGlass or not raw.innerGlass:
        raise InvalidConfigurationError("Outer and inner glass must be specified")
    if raw.widthMm is None or raw.heightMm is None:
        raise InvalidConfigurationError("Width and height must be specified")

    unit = DguUnit(
        outer_glass=raw.outerGlass,
        inner_glass=raw.innerGlass,
        cavity_width=raw.cavityWidth,
        spacer=raw.spacer,
        self_cleaning=as_flag(raw.selfCleaning),
        width_mm=clamp(raw.widthMm, rules.min_mm, rules.max_width_mm),
        height_mm=clamp(raw.heightMm, rules.min_mm, rules.max_height_mm),
        quantity=clamp_quantity(raw.qty),
    )
    return apply_upgrade_rule(unit, rules)


def validate_skylight_geometry(width_mm: int, height_mm: int, rules: SkylightRules):
    """Raises InvalidConfigurationError for internal sizes the skylight range cannot make."""
    if not rules.min_mm <= width_mm <= rules.max_width_mm:
        raise InvalidConfigurationError(
            f"Internal width must be between {rules.min_mm}mm and {rules.max_width_mm}mm")
    if not rules.min_mm <= height_mm <= rules.max_height_mm:
        raise InvalidConfigurationError(
            f"Internal height must be between {rules.min_mm}mm and {rules.max_height_mm}mm")
    if width_mm > rules.wide_threshold_mm and height_mm < rules.min_height_when_wide_mm:
        raise InvalidConfigurationError(
            f"Units wider than {rules.wide_threshold_mm}mm must be at least "
            f"{rules.min_height_when_wide_mm}mm high")
    area = Decimal(width_mm) * Decimal(height_mm) / Decimal(1_000_000)
    if area > rules.max_area_m2:
        raise InvalidConfigurationError(f"Internal area must not exceed {rules.max_area_m2} m²")


def normalize_skylight(raw: SkylightUnitInput, rules: SkylightRules) -> SkylightUnit:
    if not raw.glazingSpec:
        raise InvalidConfigurationError("Glazing specification must be specified")
    if not raw.unitStrength:
        raise InvalidConfigurationError("Unit strength must be specified")

    dims = (raw.internalWidthMm, raw.internalHeightMm, raw.externalWidthMm, raw.externalHeightMm)
    if any(d is None or d <= 0 for d in dims):
        raise InvalidConfigurationError("Internal and external sizes must be specified")
    internal_w, internal_h, external_w, external_h = (int(round(d)) for d in dims)

    validate_skylight_geometry(internal_w, internal_h, rules)

    return SkylightUnit(
        unit_strength=raw.unitStrength,
        glazing_spec=raw.glazingSpec,
        tint=raw.tint,
        solar_control=as_flag(raw.solarControl),
        self_cleaning=as_flag(raw.selfCleaning),
        internal_width_mm=internal_w,
        internal_height_mm=internal_h,
        external_width_mm=external_w,
        external_height_mm=external_h,
        quantity=clamp_quantity(raw.qty),
        declared_unit_price=raw.unitPrice,
        declared_line_total=raw.lineTotal,
        original_unit_price=raw.originalUnitPrice,
        discount_percent=raw.discountPercent,
        discount_amount=raw.discountAmount,
    )
