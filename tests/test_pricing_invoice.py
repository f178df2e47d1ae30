from decimal import Decimal

import pytest

from sales.pricing import PricingInputError
from sales.pricing_invoice import (
    AdditionalTax,
    InvoiceLineInput,
    StampDuty,
    apply_stamp_duty,
    compute_invoice_totals,
    compute_line,
)

STAMP = StampDuty()


def line(qty, price, rate="18", discount="0"):
    return InvoiceLineInput(
        quantity=Decimal(qty),
        unit_price_ht=Decimal(price),
        discount_percent=Decimal(discount),
        tva_rate=Decimal(rate),
    )


def assert_reconciles(totals):
    assert totals.total_ttc == totals.total_ht_after_discount + totals.total_tva + totals.total_additional_taxes
    assert sum((t.amount for t in totals.tva_summary), Decimal("0")) == totals.total_tva


def test_reference_invoice():
    totals = compute_invoice_totals([line("1", "10000")])
    assert totals.subtotal_ht == Decimal("10000")
    assert totals.total_ht_after_discount == Decimal("10000")
    assert totals.total_tva == Decimal("1800")
    assert totals.total_ttc == Decimal("11800")
    assert [(t.rate, t.base, t.amount) for t in totals.tva_summary] == [
        (Decimal("18"), Decimal("10000"), Decimal("1800"))
    ]


def test_zero_lines():
    totals = compute_invoice_totals([])
    assert totals.subtotal_ht == 0
    assert totals.total_discounts == 0
    assert totals.total_tva == 0
    assert totals.total_ttc == 0
    assert totals.tva_summary == ()
    assert totals.items == ()


def test_line_computation():
    ln = compute_line(line("3", "333.33", rate="9", discount="10"))
    assert ln.ht_before_discount == Decimal("999.99")
    assert ln.total_ht == Decimal("899.99")
    assert ln.tva_amount == Decimal("81.00")
    assert ln.total_ttc == Decimal("980.99")


class TestGlobalDiscount:
    def test_bases_scaled_per_rate(self):
        totals = compute_invoice_totals(
            [line("1", "10000", "18"), line("1", "5000", "9")],
            global_discount_percent=Decimal("10"),
        )
        assert totals.subtotal_ht == Decimal("15000")
        assert totals.total_discounts == Decimal("1500")
        assert totals.total_ht_after_discount == Decimal("13500")
        assert [(t.rate, t.base, t.amount) for t in totals.tva_summary] == [
            (Decimal("9"), Decimal("4500"), Decimal("405")),
            (Decimal("18"), Decimal("9000"), Decimal("1620")),
        ]
        assert totals.total_tva == Decimal("2025")
        assert totals.total_ttc == Decimal("15525")

    def test_tax_recomputed_from_rounded_base(self):
        totals = compute_invoice_totals(
            [line("1", "333.33", "18"), line("1", "333.33", "9")],
            global_discount_percent=Decimal("10"),
        )
        assert totals.total_ht_after_discount == Decimal("599.99")
        for bucket in totals.tva_summary:
            assert bucket.base in (Decimal("299.99"), Decimal("300.00"))
            assert bucket.amount == (bucket.base * bucket.rate / 100).quantize(Decimal("0.01"))
        assert_reconciles(totals)

    def test_full_global_discount_keeps_buckets(self):
        totals = compute_invoice_totals(
            [line("2", "1000", "18"), line("1", "500", "0")],
            global_discount_percent=Decimal("100"),
        )
        assert totals.total_ht_after_discount == 0
        assert [t.rate for t in totals.tva_summary] == [Decimal("0"), Decimal("18")]
        assert all(t.base == 0 and t.amount == 0 for t in totals.tva_summary)
        assert totals.total_ttc == 0

    def test_full_line_discount_keeps_bucket(self):
        totals = compute_invoice_totals([line("1", "1000", "9", discount="100")])
        assert totals.subtotal_ht == 0
        assert [(t.rate, t.base, t.amount) for t in totals.tva_summary] == [
            (Decimal("9"), Decimal("0"), Decimal("0"))
        ]


class TestStampDuty:
    def test_cash_adds_stamp(self):
        totals = compute_invoice_totals([line("1", "10000")], payment_method="cash")
        assert [(t.name, t.amount) for t in totals.additional_taxes] == [("Timbre de quittance", Decimal("100"))]
        assert totals.total_additional_taxes == Decimal("100")
        assert totals.total_ttc == Decimal("11900")

    def test_other_method_has_no_stamp(self):
        totals = compute_invoice_totals([line("1", "10000")], payment_method="card")
        assert totals.additional_taxes == ()
        assert totals.total_ttc == Decimal("11800")

    def test_toggling_never_duplicates(self):
        taxes = (AdditionalTax("Taxe communale", Decimal("50")),)
        on = apply_stamp_duty("cash", taxes, STAMP)
        on_again = apply_stamp_duty("cash", on, STAMP)
        off = apply_stamp_duty("mobile_money", on_again, STAMP)
        back_on = apply_stamp_duty("cash", off, STAMP)

        def stamps(t):
            return [x for x in t if x.name == STAMP.name]

        assert len(stamps(on)) == 1
        assert len(stamps(on_again)) == 1
        assert stamps(off) == []
        assert off == taxes
        assert len(stamps(back_on)) == 1

    def test_stamp_passed_in_is_not_doubled(self):
        totals = compute_invoice_totals(
            [line("1", "1000")],
            additional_taxes=[AdditionalTax("Timbre de quittance", Decimal("100"))],
            payment_method="cash",
        )
        assert totals.total_additional_taxes == Decimal("100")

    def test_custom_stamp(self):
        totals = compute_invoice_totals(
            [line("1", "1000")],
            payment_method="cash",
            stamp_duty=StampDuty(name="Timbre", amount=Decimal("200")),
        )
        assert [(t.name, t.amount) for t in totals.additional_taxes] == [("Timbre", Decimal("200"))]

    def test_without_payment_method_taxes_are_taken_as_given(self):
        totals = compute_invoice_totals(
            [line("1", "1000")], additional_taxes=[AdditionalTax("Taxe communale", Decimal("50"))]
        )
        assert totals.total_additional_taxes == Decimal("50")
        assert totals.total_ttc == Decimal("1230")


class TestValidation:
    @pytest.mark.parametrize(
        "items,field",
        [
            ([line("0", "100")], "items[0].quantity"),
            ([line("-1", "100")], "items[0].quantity"),
            ([line("1", "100"), line("1", "-5")], "items[1].unit_price_ht"),
            ([line("1", "100", rate="5")], "items[0].tva_rate"),
            ([line("1", "100", discount="120")], "items[0].discount_percent"),
        ],
    )
    def test_bad_items(self, items, field):
        with pytest.raises(PricingInputError) as exc:
            compute_invoice_totals(items)
        assert exc.value.field == field

    def test_bad_global_discount(self):
        with pytest.raises(PricingInputError) as exc:
            compute_invoice_totals([line("1", "100")], global_discount_percent=Decimal("-1"))
        assert exc.value.field == "global_discount_percent"

    @pytest.mark.parametrize(
        "tax,field",
        [
            (AdditionalTax("  ", Decimal("10")), "additional_taxes[0].name"),
            (AdditionalTax("Taxe", Decimal("-10")), "additional_taxes[0].amount"),
        ],
    )
    def test_bad_additional_tax(self, tax, field):
        with pytest.raises(PricingInputError) as exc:
            compute_invoice_totals([line("1", "100")], additional_taxes=[tax])
        assert exc.value.field == field

    def test_allowed_rates_are_configurable(self):
        totals = compute_invoice_totals([line("1", "1000", rate="5")], allowed_rates=["0", "5"])
        assert totals.total_tva == Decimal("50")
        with pytest.raises(PricingInputError):
            compute_invoice_totals([line("1", "1000", rate="18")], allowed_rates=["0", "5"])


@pytest.mark.parametrize("global_pct", ["0", "7.5", "33.33", "100"])
def test_reconciliation(global_pct):
    totals = compute_invoice_totals(
        [
            line("3", "1234.57", "18", discount="5"),
            line("1.5", "999.99", "9"),
            line("7", "10.01", "0", discount="12.5"),
            line("2", "0.33", "18"),
        ],
        global_discount_percent=Decimal(global_pct),
        additional_taxes=[AdditionalTax("Taxe communale", Decimal("25"))],
        payment_method="cash",
    )
    assert_reconciles(totals)
    assert totals.total_ttc >= 0


def test_same_input_same_output():
    items = [line("3", "1234.57", "18", discount="5"), line("1", "10", "9")]
    a = compute_invoice_totals(items, Decimal("12"), payment_method="cash")
    b = compute_invoice_totals(items, Decimal("12"), payment_method="cash")
    assert a == b
    assert a.as_dict() == b.as_dict()


def test_invoice_without_decimals():
    totals = compute_invoice_totals([line("3", "333.5", "18")], quantum=Decimal("1"))
    assert totals.items[0].total_ht == Decimal("1001")
    assert totals.total_tva == Decimal("180")
    assert totals.total_ttc == Decimal("1181")
