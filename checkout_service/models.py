"""
models.py — Data Models for Checkout Processing

This module defines the data structures that flow through the checkout pipeline.

Inbound payload models (Pydantic, untrusted input):
    - CheckoutRequest: The signed body posted by the storefront calculator.
    - DguUnitInput: One double glazed unit as submitted by the DGU calculator.
    - SkylightUnitInput: One skylight unit as submitted by the skylight calculator.

Request-scoped value objects (frozen dataclasses, built by the service):
    - DguUnit / SkylightUnit: A unit after clamping, validation and upgrade rules.
    - PricedUnit: A normalized unit with its authoritative unit price and line total.
    - LineItem: One line of the draft order sent to the order platform.
    - OrderRequest: The complete draft order, with computed totals.
    - ExternalOrderResult: What the order platform returned.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

MM2_PER_M2 = Decimal(1_000_000)

TRUTHY = {"yes", "y", "true", "1", "on"}


def as_flag(value: Any) -> bool:
    """Reads the calculator's Yes/No style flags."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def _text(value: Any) -> Any:
    # Calculators send some discrete options as numbers (e.g. cavity 16)
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


Text = Annotated[Optional[str], BeforeValidator(_text)]


class CheckoutRequest(BaseModel):
    """
    Represents a checkout submission from the storefront.

    Attributes:
        calculatorType (Any): "dgu" or "skylight". Missing means "dgu"; any other
            value is judged by CalculatorType.parse.
        totalUnitsQty (float | None): Quantity total as shown by the storefront. Advisory.
        grandTotal (Decimal | None): Grand total as shown by the storefront. Cross-checked.
        units (List[dict]): Raw unit records, parsed per calculator type.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    calculatorType: Any = None
    totalUnitsQty: Optional[float] = None
    grandTotal: Optional[Decimal] = None
    units: List[Dict[str, Any]] = Field(default_factory=list)


class DguUnitInput(BaseModel):
    """
    Represents a double glazed unit as configured in the DGU calculator.

    Attributes:
        outerGlass (str): Outer pane specification, e.g. "4mm Clear".
        innerGlass (str): Inner pane specification.
        cavityWidth (str | None): Cavity between the panes, e.g. "16mm".
        spacer (str | None): Spacer bar colour/type.
        selfCleaning (str | bool | None): "Yes"/"No". Missing means "No".
        widthMm (float | None): Requested width in millimetres.
        heightMm (float | None): Requested height in millimetres.
        qty (float | None): Number of identical units. Also accepted as `quantity`.
        unitPrice, lineTotal (Decimal | None): Storefront figures. Ignored for pricing.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    outerGlass: Text = None
    innerGlass: Text = None
    cavityWidth: Text = None
    spacer: Text = None
    selfCleaning: Optional[Union[bool, str]] = None
    widthMm: Optional[float] = None
    heightMm: Optional[float] = None
    qty: Optional[float] = Field(default=None, validation_alias=AliasChoices("qty", "quantity"))
    unitPrice: Optional[Decimal] = None
    lineTotal: Optional[Decimal] = None


class SkylightUnitInput(BaseModel):
    """
    Represents a skylight unit as configured in the skylight calculator.

    Attributes:
        unitStrength (str): Structural strength option.
        glazingSpec (str): Glazing specification. Also accepted as `glazing`.
        tint (str | None): Tint option, omitted when empty.
        solarControl, selfCleaning (str | bool | None): Yes/No options.
        internalWidthMm, internalHeightMm (float | None): Internal opening size.
        externalWidthMm, externalHeightMm (float | None): External size confirmed by the customer.
        qty (float | None): Number of identical units. Also accepted as `quantity`.
        unitPrice (Decimal | None): Unit price computed by the storefront.
        lineTotal (Decimal | None): Line total computed by the storefront.
        originalUnitPrice, discountPercent, discountAmount (Decimal | None): Promotion details.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    unitStrength: Text = None
    glazingSpec: Text = Field(default=None, validation_alias=AliasChoices("glazingSpec", "glazing"))
    tint: Text = None
    solarControl: Optional[Union[bool, str]] = None
    selfCleaning: Optional[Union[bool, str]] = None
    internalWidthMm: Optional[float] = None
    internalHeightMm: Optional[float] = None
    externalWidthMm: Optional[float] = None
    externalHeightMm: Optional[float] = None
    qty: Optional[float] = Field(default=None, validation_alias=AliasChoices("qty", "quantity"))
    unitPrice: Optional[Decimal] = None
    lineTotal: Optional[Decimal] = None
    originalUnitPrice: Optional[Decimal] = None
    discountPercent: Optional[Decimal] = None
    discountAmount: Optional[Decimal] = None


@dataclass(frozen=True)
class DguUnit:
    outer_glass: str
    inner_glass: str
    cavity_width: Optional[str]
    spacer: Optional[str]
    self_cleaning: bool
    width_mm: int
    height_mm: int
    quantity: int
    toughened: str = "Yes"
    upgrade_applied: bool = False

    @property
    def area_m2(self) -> Decimal:
        return Decimal(self.width_mm) * Decimal(self.height_mm) / MM2_PER_M2


@dataclass(frozen=True)
class SkylightUnit:
    unit_strength: str
    glazing_spec: str
    tint: Optional[str]
    solar_control: bool
    self_cleaning: bool
    internal_width_mm: int
    internal_height_mm: int
    external_width_mm: int
    external_height_mm: int
    quantity: int
    declared_unit_price: Optional[Decimal] = None
    declared_line_total: Optional[Decimal] = None
    original_unit_price: Optional[Decimal] = None
    discount_percent: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    upgrade_applied: bool = False

    @property
    def area_m2(self) -> Decimal:
        return Decimal(self.internal_width_mm) * Decimal(self.internal_height_mm) / MM2_PER_M2


NormalizedUnit = Union[DguUnit, SkylightUnit]


@dataclass(frozen=True)
class PricedUnit:
    """
    A unit with its authoritative price. `line_total` is `unit_price × quantity`.
    `original_unit_price` is set only when a discount lowered the price.
    """
    unit: NormalizedUnit
    unit_price: Decimal
    line_total: Decimal
    original_unit_price: Optional[Decimal] = None
    discount_percent: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None

    @property
    def quantity(self) -> int:
        return self.unit.quantity

    @property
    def has_discount(self) -> bool:
        return bool(self.discount_percent or self.discount_amount or
                    (self.original_unit_price is not None and self.original_unit_price > self.unit_price))


@dataclass(frozen=True)
class LineItem:
    quantity: int
    unit_price: Decimal
    attributes: List[Tuple[str, str]]
    variant_id: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class OrderRequest:
    calculator_type: str
    units: List[PricedUnit]
    line_items: List[LineItem] = field(default_factory=list)
    note: str = ""
    tags: List[str] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    currency: str = "GBP"
    declared_total_quantity: Optional[float] = None
    declared_grand_total: Optional[Decimal] = None

    @property
    def computed_grand_total(self) -> Decimal:
        return sum((u.line_total for u in self.units), Decimal("0"))

    @property
    def total_quantity(self) -> int:
        return sum(u.quantity for u in self.units)

    @property
    def upgrades_applied(self) -> int:
        return sum(1 for u in self.units if u.unit.upgrade_applied)


@dataclass(frozen=True)
class ExternalOrderResult:
    order_id: str
    invoice_url: Optional[str] = None
