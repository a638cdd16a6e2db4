from decimal import Decimal

import pytest

from checkout_service.errors import ConfigurationError
from checkout_service.models import DguUnit, DguUnitInput
from checkout_service.normalizer import DguRules, normalize_dgu
from checkout_service.pricing import (DguRateTable, apply_discount, format_money, money,
                                      price_dgu, within_tolerance)
from checkout_service.rate_tables import DEFAULT_DGU_RATES

from conftest import dgu_unit

TABLE = DguRateTable.from_dict(DEFAULT_DGU_RATES)


def _unit(outer="4mm Clear", inner="4mm Clear", width=1000, height=1000, self_cleaning=False):
    return DguUnit(outer_glass=outer, inner_glass=inner, cavity_width="16mm", spacer="Black",
                   self_cleaning=self_cleaning, width_mm=width, height_mm=height, quantity=1)


def test_one_square_metre_of_4mm_clear():
    # 1.0 m² falls in the 1.0-1.49 band
    assert price_dgu(_unit(), TABLE) == Decimal("145.00")


def test_minimum_price_floor():
    assert price_dgu(_unit(width=200, height=200), TABLE) == Decimal("72.07")


def test_self_cleaning_surcharge_uses_the_same_band():
    assert price_dgu(_unit(self_cleaning=True), TABLE) == Decimal("174.00")


def test_self_cleaning_is_added_after_the_floor():
    # floor 72.07 + 0.04 m² × 32.00
    assert price_dgu(_unit(width=200, height=200, self_cleaning=True), TABLE) == Decimal("73.35")


@pytest.mark.parametrize("width, height, band", [
    (700, 700, "under_0_5"),
    (500, 1000, "0_5_to_0_99"),
    (1000, 1000, "1_0_to_1_49"),
    (1000, 1500, "1_5_to_1_99"),
    (1000, 2000, "2_0_to_2_5"),
    (1250, 2000, "2_0_to_2_5"),
    (1255, 2000, "2_51_to_3_0"),
    (1500, 2000, "2_51_to_3_0"),
])
def test_band_selection(width, height, band):
    area = Decimal(width * height) / Decimal(1_000_000)
    assert TABLE.band_for(area).name == band


def test_area_above_last_band_has_no_band():
    assert TABLE.band_for(Decimal("3.01")) is None
    assert price_dgu(_unit("6mm Clear", "6mm Clear", 2000, 1600), TABLE) == 0


def test_unknown_pair_is_unpriced():
    assert price_dgu(_unit("4mm Obscure", "4mm Clear"), TABLE) == 0


def test_thin_glass_missing_from_large_band_is_unpriced():
    # bypasses the upgrade rule on purpose
    assert price_dgu(_unit(width=2000, height=1400), TABLE) == 0


def test_upgraded_unit_is_priced_from_the_upgraded_pair():
    unit = normalize_dgu(DguUnitInput.model_validate(dgu_unit(widthMm=1250, heightMm=2000)), DguRules())
    assert unit.upgrade_applied
    # 2.5 m² × 176.00 for 6mm Clear / 6mm Clear
    assert price_dgu(unit, TABLE) == Decimal("440.00")


@pytest.mark.parametrize("outer, inner", [
    ("4mm Clear", "4mm Clear"), ("6mm Clear", "6mm Clear"), ("6.4mm Laminated", "4mm Clear"),
])
@pytest.mark.parametrize("width, height", [(150, 150), (400, 600), (1000, 1000), (1400, 1400), (1000, 2400)])
def test_price_never_below_table_minimum(outer, inner, width, height):
    price = price_dgu(_unit(outer, inner, width, height), TABLE)
    if price:
        assert price >= TABLE.rate_for(outer, inner).minimum_price
    assert price >= 0


def test_money_rounds_half_up_once():
    assert money(Decimal("337.225")) == Decimal("337.23")
    assert format_money(Decimal("72.07")) == "£72.07"
    assert format_money(Decimal("10"), "EUR") == "€10.00"
    assert format_money(Decimal("10"), "CHF") == "10.00 CHF"


def test_tolerance_is_inclusive():
    assert within_tolerance(Decimal("500.10"), Decimal("500.00"), Decimal("0.10"))
    assert not within_tolerance(Decimal("500.11"), Decimal("500.00"), Decimal("0.10"))


def test_apply_discount():
    assert apply_discount(Decimal("145"), Decimal("10")) == Decimal("130.5")
    assert apply_discount(Decimal("145"), Decimal("0")) == Decimal("145")


def test_rate_table_rejects_unknown_band():
    data = {
        "bands": [{"name": "small", "upper": "1.0"}],
        "pairs": [{"outer": "a", "inner": "b", "minimumPrice": "1", "rates": {"large": "2"}}],
    }
    with pytest.raises(ConfigurationError):
        DguRateTable.from_dict(data)


def test_rate_table_rejects_unordered_bands():
    data = {
        "bands": [{"name": "b", "upper": "2.0"}, {"name": "a", "upper": "1.0"}],
        "pairs": [],
    }
    with pytest.raises(ConfigurationError):
        DguRateTable.from_dict(data)


def test_rate_table_from_json_file(tmp_path):
    path = tmp_path / "rates.json"
    path.write_text('{"bands": [{"name": "all", "upper": "3", "inclusive": true}],'
                    ' "pairs": [{"outer": "4mm Clear", "inner": "4mm Clear",'
                    ' "minimumPrice": "50", "rates": {"all": "100"}}]}')
    table = DguRateTable.from_json_file(str(path))
    assert price_dgu(_unit(), table) == Decimal("100")


def test_rate_table_missing_file():
    with pytest.raises(ConfigurationError):
        DguRateTable.from_json_file("/nonexistent/rates.json")
