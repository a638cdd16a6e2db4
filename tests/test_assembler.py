from decimal import Decimal

import pytest

from checkout_service.assembler import assemble, format_note, to_draft_order_input
from checkout_service.calculators import DguCalculator, SkylightCalculator

from conftest import dgu_unit, make_settings, skylight_unit

DGU_ANCHOR = "gid://shopify/ProductVariant/111"


@pytest.fixture
def dgu(settings):
    return DguCalculator(settings)


def test_empty_order_totals_are_zero(dgu):
    order = assemble(dgu, [])
    assert order.computed_grand_total == Decimal("0")
    assert order.total_quantity == 0
    assert order.line_items == []


@pytest.mark.parametrize("units", [
    [dgu_unit()],
    [dgu_unit(qty=2), dgu_unit(selfCleaning="Yes", widthMm=600, heightMm=400)],
    [dgu_unit(widthMm=w, heightMm=h, qty=q) for w, h, q in [(300, 300, 1), (1200, 900, 4), (2000, 1400, 10)]],
])
def test_grand_total_is_sum_of_line_totals(dgu, units):
    priced = [dgu.build_unit(i, u) for i, u in enumerate(units, start=1)]
    order = assemble(dgu, priced)
    assert order.computed_grand_total == sum(p.line_total for p in priced)
    assert order.total_quantity == sum(p.quantity for p in priced)
    assert sum(item.unit_price * item.quantity for item in order.line_items) == order.computed_grand_total


def test_order_attributes_and_tags(dgu):
    priced = [dgu.build_unit(1, dgu_unit(qty=2)), dgu.build_unit(2, dgu_unit(widthMm=2000, heightMm=1500))]
    order = assemble(dgu, priced, request_id="req-1")
    assert order.attributes == [
        ("Calculator Type", "DGU"),
        ("Total Units", "3"),
        ("Grand Total", "£806.00"),
        ("Auto Upgrades", "1"),
        ("Request ID", "req-1"),
    ]
    assert order.tags == ["calculator", "dgu"]
    assert order.upgrades_applied == 1


def test_tags_are_not_duplicated():
    calc = DguCalculator(make_settings(order_tags=("dgu", "web")))
    assert assemble(calc, []).tags == ["dgu", "web"]


def test_note_lists_units_and_totals(dgu):
    priced = [dgu.build_unit(1, dgu_unit(qty=2)), dgu.build_unit(2, dgu_unit(widthMm=2000, heightMm=1500))]
    note = format_note(dgu, priced, "RightGlaze", "GBP")
    lines = note.split("\n")
    assert lines[0] == "RightGlaze Bespoke Units (inc VAT)"
    assert lines[2] == "Unit 1 × 2"
    assert lines[3] == "Size (W x H): 1000mm x 1000mm"
    assert "Note: Auto-upgraded to 6mm Clear due to size" in lines
    assert "Line Total: £290.00" in lines
    assert lines[-2] == "TOTAL UNITS: 3"
    assert lines[-1] == "ORDER TOTAL: £806.00 (inc VAT)"


def test_custom_line_item_without_anchor(dgu):
    order = assemble(dgu, [dgu.build_unit(1, dgu_unit(qty=2))])
    draft = to_draft_order_input(order)
    item = draft["lineItems"][0]
    assert item["title"] == "Bespoke Double Glazed Units (Custom Order)"
    assert item["quantity"] == 2
    assert item["originalUnitPriceWithCurrency"] == {"amount": "145.00", "currencyCode": "GBP"}
    assert item["requiresShipping"] is True
    assert item["taxable"] is False
    assert "variantId" not in item


def test_anchor_variant_line_item_overrides_price():
    calc = DguCalculator(make_settings(anchor_variants={"dgu": DGU_ANCHOR}))
    draft = to_draft_order_input(assemble(calc, [calc.build_unit(1, dgu_unit())]))
    item = draft["lineItems"][0]
    assert item["variantId"] == DGU_ANCHOR
    assert item["priceOverride"] == {"amount": "145.00", "currencyCode": "GBP"}
    assert "title" not in item
    assert item["customAttributes"][0] == {"key": "Size (W x H)", "value": "1000mm x 1000mm"}


def test_anchor_is_selected_per_calculator_type():
    settings = make_settings(anchor_variants={"dgu": DGU_ANCHOR})
    skylight = SkylightCalculator(settings)
    draft = to_draft_order_input(assemble(skylight, [skylight.build_unit(1, skylight_unit())]))
    item = draft["lineItems"][0]
    assert "variantId" not in item
    assert item["title"] == "Bespoke Skylight Units (Custom Order)"


def test_draft_order_input_shape(dgu):
    order = assemble(dgu, [dgu.build_unit(1, dgu_unit())], request_id="r")
    draft = to_draft_order_input(order)
    assert set(draft) == {"note", "tags", "presentmentCurrencyCode", "customAttributes", "lineItems"}
    assert draft["presentmentCurrencyCode"] == "GBP"
    assert {"key": "Grand Total", "value": "£145.00"} in draft["customAttributes"]
    assert draft["note"].endswith("ORDER TOTAL: £145.00 (inc VAT)")
