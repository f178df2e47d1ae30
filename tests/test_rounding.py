from decimal import Decimal

import pytest

from sales.pricing import (
    PricingInputError,
    apply_discount,
    ht_from_ttc,
    is_valid_tva_rate,
    money,
    percent,
    quantum_for,
    to_decimal,
    ttc_from_ht,
    tva_for,
)


def test_money_rounds_half_up():
    assert money(Decimal("2.345")) == Decimal("2.35")
    assert money(Decimal("2.344")) == Decimal("2.34")
    assert money("0.5", Decimal("1")) == Decimal("1")
    assert money("1.5", Decimal("1")) == Decimal("2")


def test_quantum_for():
    assert quantum_for(0) == Decimal("1")
    assert quantum_for(2) == Decimal("0.01")


@pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
def test_to_decimal_rejects_non_numbers(value):
    with pytest.raises(PricingInputError) as exc:
        to_decimal(value, "unit_price")
    assert exc.value.field == "unit_price"


@pytest.mark.parametrize("value", ["-0.01", "100.01"])
def test_percent_out_of_range(value):
    with pytest.raises(PricingInputError):
        percent(value, "discount_percent")


def test_tva_helpers():
    assert tva_for(Decimal("10000"), 18) == Decimal("1800.00")
    assert ttc_from_ht(Decimal("10000"), 18) == Decimal("11800.00")
    assert ht_from_ttc(Decimal("11800"), 18) == Decimal("10000.00")
    assert ht_from_ttc(Decimal("1000"), 0) == Decimal("1000.00")
    assert apply_discount(Decimal("200"), 25) == Decimal("150.00")


def test_ht_from_ttc_without_decimals():
    assert ht_from_ttc(Decimal("1000"), 18, Decimal("1")) == Decimal("847")


def test_is_valid_tva_rate():
    assert is_valid_tva_rate("18")
    assert is_valid_tva_rate(Decimal("9.00"))
    assert not is_valid_tva_rate(5)
    assert not is_valid_tva_rate("abc")
    assert is_valid_tva_rate(5, allowed_rates=None)
    assert not is_valid_tva_rate(120, allowed_rates=None)
    assert is_valid_tva_rate(5, allowed_rates=["0", "5"])
