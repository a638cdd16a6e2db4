"""
assembler.py — Draft Order Assembly

Converts priced units into the draft order sent to the order platform.

Line items:
    One line per unit. When an anchor product variant is configured for the
    calculator, the line references it so the invoice shows the product image,
    and the computed unit price overrides the variant's catalog price.
    Without an anchor, a custom line item titled per calculator is used.

Totals:
    The grand total and unit count are recomputed from the priced units and are
    written both as order attributes and as note lines, since the invoice page
    renders the note but not always the attributes.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from .calculators import Calculator
from .models import LineItem, OrderRequest, PricedUnit
from .pricing import format_money, money


def format_note(calculator: Calculator, units: List[PricedUnit], store_name: str,
                currency: str) -> str:
    """
    Builds the human readable breakdown shown on the invoice.

    Example:
        RightGlaze Bespoke Units (inc VAT)

        Unit 1 × 2
        Size (W x H): 1000mm x 1000mm
        ...

        TOTAL UNITS: 2
        ORDER TOTAL: £290.00 (inc VAT)
    """
    lines = [f"{store_name} Bespoke Units (inc VAT)", ""]
    for i, priced in enumerate(units, start=1):
        lines.append(f"Unit {i} × {priced.quantity}")
        lines.extend(f"{key}: {value}" for key, value in calculator.attributes(priced))
        lines.append(f"Line Total: {format_money(priced.line_total, currency)}")
        lines.append("")

    total = sum((u.line_total for u in units), Decimal("0"))
    lines.append(f"TOTAL UNITS: {sum(u.quantity for u in units)}")
    lines.append(f"ORDER TOTAL: {format_money(total, currency)} (inc VAT)")
    return "\n".join(lines)


def build_line_item(calculator: Calculator, priced: PricedUnit) -> LineItem:
    variant_id = calculator.anchor_variant_id
    return LineItem(
        quantity=priced.quantity,
        unit_price=priced.unit_price,
        attributes=calculator.attributes(priced),
        variant_id=variant_id,
        title=None if variant_id else calculator.line_item_title,
    )


def assemble(calculator: Calculator, units: List[PricedUnit],
             declared_total_quantity: Optional[float] = None,
             declared_grand_total: Optional[Decimal] = None,
             request_id: Optional[str] = None) -> OrderRequest:
    """
    Assembles the draft order for a list of priced units.

    Args:
        calculator (Calculator): The variant the units were priced with.
        units (List[PricedUnit]): Priced units in submission order.
        declared_total_quantity (float | None): Storefront's quantity total, kept for cross-checks.
        declared_grand_total (Decimal | None): Storefront's grand total, kept for cross-checks.
        request_id (str | None): Correlation id recorded on the order.

    Returns:
        OrderRequest: Line items, note, tags and order attributes.
    """
    settings = calculator.settings
    total = sum((u.line_total for u in units), Decimal("0"))
    quantity = sum(u.quantity for u in units)

    tags = list(dict.fromkeys(list(settings.order_tags) + [calculator.calculator_type.value]))

    attributes = [
        ("Calculator Type", calculator.label),
        ("Total Units", str(quantity)),
        ("Grand Total", format_money(total, settings.currency)),
    ]
    upgrades = sum(1 for u in units if u.unit.upgrade_applied)
    if upgrades:
        attributes.append(("Auto Upgrades", str(upgrades)))
    if request_id:
        attributes.append(("Request ID", request_id))

    return OrderRequest(
        calculator_type=calculator.calculator_type.value,
        units=list(units),
        line_items=[build_line_item(calculator, u) for u in units],
        note=format_note(calculator, units, settings.store_name, settings.currency),
        tags=tags,
        attributes=attributes,
        currency=settings.currency,
        declared_total_quantity=declared_total_quantity,
        declared_grand_total=declared_grand_total,
    )


def _money_input(amount: Decimal, currency: str) -> Dict[str, str]:
    return {"amount": str(money(amount)), "currencyCode": currency}


def _attribute_inputs(attributes) -> List[Dict[str, str]]:
    return [{"key": key, "value": value} for key, value in attributes]


def to_draft_order_input(order: OrderRequest) -> Dict[str, Any]:
    """Renders an OrderRequest as the platform's `DraftOrderInput`."""
    line_items = []
    for item in order.line_items:
        entry: Dict[str, Any] = {
            "quantity": item.quantity,
            "customAttributes": _attribute_inputs(item.attributes),
        }
        if item.variant_id:
            entry["variantId"] = item.variant_id
            entry["priceOverride"] = _money_input(item.unit_price, order.currency)
        else:
            entry["title"] = item.title
            entry["originalUnitPriceWithCurrency"] = _money_input(item.unit_price, order.currency)
            entry["requiresShipping"] = True
            entry["taxable"] = False
        line_items.append(entry)

    return {
        "note": order.note,
        "tags": list(order.tags),
        "presentmentCurrencyCode": order.currency,
        "customAttributes": _attribute_inputs(order.attributes),
        "lineItems": line_items,
    }
