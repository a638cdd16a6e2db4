"""
calculators.py — Per-Calculator Rules

Each storefront calculator (DGU, Skylight) has its own input shape, its own
normalization and pricing policy and its own attribute layout. Each variant is
one `Calculator` subclass; the checkout handler selects the variant once, from
the request's `calculatorType`, and never branches on the tag again.

Pricing trust policy:
    • DGU: server authoritative. The rate table prices every unit; client
      figures are ignored and a differing declared total is only logged.
    • Skylight: cross-checked. The storefront prices the unit; each line total
      and the declared grand total must agree within the configured tolerance.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .errors import PriceMismatchError, PricingError, ValidationError
from .logging_config import get_logger
from .models import (DguUnit, DguUnitInput, NormalizedUnit, OrderRequest, PricedUnit,
                     SkylightUnit, SkylightUnitInput)
from .normalizer import normalize_dgu, normalize_skylight
from .pricing import (ZERO, apply_discount, format_money, money, price_dgu, price_skylight,
                      within_tolerance)

log = get_logger(__name__)

Attributes = List[Tuple[str, str]]


class CalculatorType(str, Enum):
    DGU = "dgu"
    SKYLIGHT = "skylight"

    @classmethod
    def parse(cls, value: Any) -> "CalculatorType":
        """
        Missing or blank means DGU, the storefront's original calculator.
        Matching is case-insensitive; any other value is rejected.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.DGU
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("Unsupported calculator type",
                                  reason="invalid_calculator_type") from None


def _percent(value: Decimal) -> str:
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text}%"


class Calculator:
    calculator_type: CalculatorType
    label: str
    line_item_title: str
    input_model: Type[BaseModel]
    size_key: str

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def mandatory_keys(self) -> Tuple[str, ...]:
        return (self.size_key, "Calculator")

    @property
    def anchor_variant_id(self):
        return self.settings.anchor_for(self.calculator_type.value)

    def parse_unit(self, raw: Mapping[str, Any]) -> BaseModel:
        if not isinstance(raw, Mapping):
            raise ValidationError("Each unit must be an object")
        try:
            return self.input_model.model_validate(raw)
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ValidationError(f"Invalid unit fields: {', '.join(fields) or 'unknown'}") from None

    def normalize(self, raw: BaseModel) -> NormalizedUnit:
        raise NotImplementedError

    def unit_price(self, unit: NormalizedUnit) -> Decimal:
        """Raw engine price; 0 means no applicable rate."""
        raise NotImplementedError

    def price(self, unit: NormalizedUnit) -> PricedUnit:
        raise NotImplementedError

    def describe(self, unit: NormalizedUnit) -> Attributes:
        """Configuration attributes, in display order, excluding price."""
        raise NotImplementedError

    def build_unit(self, index: int, raw: Mapping[str, Any]) -> PricedUnit:
        """
        Parses, normalizes and prices one raw unit.

        Raises:
            ValidationError: The unit record is not an object or has malformed fields.
            PricingError: The unit cannot be sold as configured (names `index`).
        """
        try:
            return self.price(self.normalize(self.parse_unit(raw)))
        except PricingError as e:
            if e.unit_index is None:
                e.unit_index = index
            raise
        except ValidationError as e:
            e.message = f"Unit {index}: {e.message}"
            raise

    def attributes(self, priced: PricedUnit) -> Attributes:
        attrs = self.describe(priced.unit)
        currency = self.settings.currency
        price_text = format_money(priced.unit_price, currency)
        if priced.original_unit_price is not None and priced.original_unit_price > priced.unit_price:
            price_text = f"{format_money(priced.original_unit_price, currency)} → {price_text}"
        attrs.append(("Unit Price", price_text))

        if priced.has_discount:
            parts = []
            if priced.discount_percent:
                parts.append(f"{_percent(priced.discount_percent)} off")
            saving = priced.discount_amount
            if not saving and priced.original_unit_price is not None:
                saving = priced.original_unit_price - priced.unit_price
            if saving and saving > ZERO:
                parts.append(f"save {format_money(saving, currency)} per unit")
            if parts:
                attrs.append(("Discount", ", ".join(parts)))
        return attrs

    def check_declared_totals(self, order: OrderRequest, log_prefix: str = ""):
        if order.declared_total_quantity is not None and order.declared_total_quantity != order.total_quantity:
            log.warning(f"{log_prefix} Deklarierte Menge {order.declared_total_quantity} weicht von der "
                        f"normalisierten Menge {order.total_quantity} ab.")


class DguCalculator(Calculator):
    calculator_type = CalculatorType.DGU
    label = "DGU"
    line_item_title = "Bespoke Double Glazed Units (Custom Order)"
    input_model = DguUnitInput
    size_key = "Size (W x H)"

    def normalize(self, raw: DguUnitInput) -> DguUnit:
        return normalize_dgu(raw, self.settings.dgu_rules)

    def unit_price(self, unit: DguUnit) -> Decimal:
        return price_dgu(unit, self.settings.dgu_rates)

    def price(self, unit: DguUnit) -> PricedUnit:
        base = self.unit_price(unit)
        if base <= ZERO:
            raise PricingError(
                f"No price available for {unit.outer_glass} / {unit.inner_glass} "
                f"at {unit.width_mm}mm x {unit.height_mm}mm")

        discount = self.settings.dgu_discount_percent
        unit_price = money(apply_discount(base, discount))
        return PricedUnit(
            unit=unit,
            unit_price=unit_price,
            line_total=unit_price * unit.quantity,
            original_unit_price=money(base) if discount else None,
            discount_percent=discount or None,
        )

    def describe(self, unit: DguUnit) -> Attributes:
        attrs = [
            (self.size_key, f"{unit.width_mm}mm x {unit.height_mm}mm"),
            ("Calculator", self.label),
            ("Outer Glass", unit.outer_glass),
            ("Inner Glass", unit.inner_glass),
        ]
        if unit.cavity_width:
            attrs.append(("Cavity Width", unit.cavity_width))
        if unit.spacer:
            attrs.append(("Spacer", unit.spacer))
        attrs.append(("Toughened", unit.toughened))
        if unit.self_cleaning:
            attrs.append(("Self Cleaning", "Yes"))
        if unit.upgrade_applied:
            glass = unit.outer_glass if unit.outer_glass == unit.inner_glass \
                else f"{unit.outer_glass} / {unit.inner_glass}"
            attrs.append(("Note", f"Auto-upgraded to {glass} due to size"))
        return attrs

    def check_declared_totals(self, order: OrderRequest, log_prefix: str = ""):
        super().check_declared_totals(order, log_prefix)
        declared = order.declared_grand_total
        if declared is not None and not within_tolerance(declared, order.computed_grand_total,
                                                         self.settings.price_tolerance):
            log.warning(f"{log_prefix} Storefront-Summe {declared} ignoriert, Server-Summe ist "
                        f"{money(order.computed_grand_total)}.")


class SkylightCalculator(Calculator):
    calculator_type = CalculatorType.SKYLIGHT
    label = "Skylight"
    line_item_title = "Bespoke Skylight Units (Custom Order)"
    input_model = SkylightUnitInput
    size_key = "Internal Size (H x W)"

    def normalize(self, raw: SkylightUnitInput) -> SkylightUnit:
        return normalize_skylight(raw, self.settings.skylight_rules)

    def unit_price(self, unit: SkylightUnit) -> Decimal:
        return price_skylight(unit)

    def price(self, unit: SkylightUnit) -> PricedUnit:
        declared_price = self.unit_price(unit)
        if declared_price <= ZERO:
            raise PricingError("Unit price missing for skylight unit")

        if unit.declared_line_total is None:
            raise PriceMismatchError("Line total missing for skylight unit")
        expected = declared_price * unit.quantity
        if not within_tolerance(
                unit.declared_line_total, expected, self.settings.price_tolerance):
            raise PriceMismatchError(
                f"Line total {unit.declared_line_total} does not match {unit.quantity} x {declared_price}")

        unit_price = money(declared_price)
        original = unit.original_unit_price
        if original is not None and original <= unit_price:
            original = None
        return PricedUnit(
            unit=unit,
            unit_price=unit_price,
            line_total=unit_price * unit.quantity,
            original_unit_price=money(original) if original is not None else None,
            discount_percent=unit.discount_percent or None,
            discount_amount=unit.discount_amount or None,
        )

    def describe(self, unit: SkylightUnit) -> Attributes:
        attrs = [
            (self.size_key, f"{unit.internal_height_mm}mm x {unit.internal_width_mm}mm"),
            ("External Size (H x W)", f"{unit.external_height_mm}mm x {unit.external_width_mm}mm"),
            ("Calculator", self.label),
            ("Unit Strength", unit.unit_strength),
            ("Glazing", unit.glazing_spec),
        ]
        if unit.tint:
            attrs.append(("Tint", unit.tint))
        if unit.solar_control:
            attrs.append(("Solar Control", "Yes"))
        if unit.self_cleaning:
            attrs.append(("Self Cleaning", "Yes"))
        return attrs

    def check_declared_totals(self, order: OrderRequest, log_prefix: str = ""):
        super().check_declared_totals(order, log_prefix)
        declared = order.declared_grand_total
        if declared is not None and not within_tolerance(declared, order.computed_grand_total,
                                                         self.settings.price_tolerance):
            raise PricingError(
                f"Declared total {declared} does not match calculated total "
                f"{money(order.computed_grand_total)}", reason="total_mismatch")


CALCULATORS = (DguCalculator, SkylightCalculator)


def build_calculators(settings: Settings) -> Dict[CalculatorType, Calculator]:
    return {cls.calculator_type: cls(settings) for cls in CALCULATORS}
