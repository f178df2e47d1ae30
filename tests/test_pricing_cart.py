from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sales.pricing import PricingInputError
from sales.pricing_cart import (
    CART_STAGES,
    CartContext,
    CartLine,
    CartSettings,
    DiscountState,
    LoyaltyProgram,
    PromoRule,
    apply_promo_code,
    compute_cart_totals,
    find_promo,
    run_stages,
)

TVA_18 = CartSettings(tax_rate_percent=Decimal("18"))
LOYALTY = LoyaltyProgram(enabled=True, point_value=Decimal("10"), points_per_currency_unit=Decimal("0.01"))


def lines(*pairs):
    return [CartLine(variant_ref=f"V{i}", unit_price=Decimal(p), quantity=q) for i, (p, q) in enumerate(pairs)]


def test_reference_cart():
    totals = compute_cart_totals(
        lines(("5000", 2)),
        DiscountState(manual_discount_percent=Decimal("10")),
        TVA_18,
    )
    assert totals.subtotal == Decimal("10000")
    assert totals.manual_discount == Decimal("1000")
    assert totals.tax == Decimal("1620")
    assert totals.total == Decimal("10620")
    assert totals.points_to_earn == 0


def test_empty_cart_is_all_zero():
    totals = compute_cart_totals([], settings=TVA_18)
    assert totals.subtotal == 0
    assert totals.tax == 0
    assert totals.total == 0


class TestDiscountOrdering:
    def test_percentage_promo_applies_to_remainder_after_manual(self):
        promo = PromoRule(code="SOLDES", type="percentage", value=Decimal("10"))
        totals = compute_cart_totals(
            lines(("5000", 2)),
            DiscountState(manual_discount_percent=Decimal("10"), promo=promo),
            TVA_18,
        )
        # 10 % de 9000 et non de 10000
        assert totals.promo_discount == Decimal("900")
        assert totals.tax == Decimal("1458")
        assert totals.total == Decimal("9558")

    def test_fixed_promo_is_independent_of_manual_discount(self):
        promo = PromoRule(code="MOINS500", type="fixed", value=Decimal("500"))
        with_manual = compute_cart_totals(
            lines(("5000", 2)),
            DiscountState(manual_discount_percent=Decimal("10"), promo=promo),
            TVA_18,
        )
        assert with_manual.promo_discount == Decimal("500")
        assert with_manual.total_discounts == Decimal("1500")

    def test_tax_is_computed_on_discounted_base(self):
        totals = compute_cart_totals(
            lines(("1000", 1)),
            DiscountState(manual_discount_percent=Decimal("50")),
            TVA_18,
        )
        assert totals.tax == Decimal("90")

    def test_stages_run_in_documented_order(self):
        ctx = CartContext(
            lines=tuple(lines(("5000", 2))),
            discounts=DiscountState(manual_discount_percent=Decimal("10")),
            settings=TVA_18,
        )
        after_manual = run_stages(CART_STAGES[:2], ctx)
        assert after_manual.remainder == Decimal("9000")
        assert after_manual.tax == 0

        full = run_stages(CART_STAGES, ctx)
        assert full.total == Decimal("10620")


class TestClamps:
    def test_fixed_promo_larger_than_remainder(self):
        promo = PromoRule(code="BIG", type="fixed", value=Decimal("5000"))
        totals = compute_cart_totals(lines(("1000", 1)), DiscountState(promo=promo), TVA_18)
        assert totals.promo_discount == Decimal("1000")
        assert totals.tax == 0
        assert totals.total == 0

    def test_loyalty_clamped_to_remainder(self):
        totals = compute_cart_totals(
            lines(("2000", 1)),
            DiscountState(loyalty_points_to_apply=500),
            CartSettings(tax_rate_percent=Decimal("18"), loyalty=LOYALTY),
            customer_assigned=True,
        )
        assert totals.loyalty_discount == Decimal("2000")
        assert totals.total == 0
        assert totals.points_to_earn == 0

    def test_loyalty_ignored_when_program_disabled(self):
        totals = compute_cart_totals(
            lines(("2000", 1)),
            DiscountState(loyalty_points_to_apply=10),
            TVA_18,
        )
        assert totals.loyalty_discount == 0

    def test_exchange_credit_after_tax(self):
        totals = compute_cart_totals(
            lines(("5000", 2)), DiscountState(exchange_credit=Decimal("1800")), TVA_18
        )
        assert totals.tax == Decimal("1800")
        assert totals.exchange_credit == Decimal("1800")
        assert totals.total == Decimal("10000")

    def test_exchange_credit_larger_than_sale(self):
        totals = compute_cart_totals(
            lines(("1000", 1)), DiscountState(exchange_credit=Decimal("2000")), TVA_18
        )
        assert totals.exchange_credit == Decimal("1180")
        assert totals.exchange_credit_unused == Decimal("820")
        assert totals.total == 0

    def test_store_credit_bounded_by_remainder(self):
        totals = compute_cart_totals(
            lines(("1000", 1)),
            DiscountState(exchange_credit=Decimal("180"), store_credit_available=Decimal("5000")),
            TVA_18,
        )
        assert totals.store_credit_applied == Decimal("1000")
        assert totals.total == 0

    @pytest.mark.parametrize(
        "manual,promo,points,exchange,store_credit",
        [
            ("0", None, 0, "0", "0"),
            ("15", PromoRule("P", "percentage", Decimal("100")), 0, "0", "0"),
            ("100", PromoRule("F", "fixed", Decimal("99999")), 50, "500", "500"),
            ("5", PromoRule("F", "fixed", Decimal("300")), 1000, "20000", "0"),
            ("10", None, 3, "0", "100000"),
        ],
    )
    def test_total_never_negative(self, manual, promo, points, exchange, store_credit):
        totals = compute_cart_totals(
            lines(("1250", 3), ("499.99", 1)),
            DiscountState(
                manual_discount_percent=Decimal(manual),
                promo=promo,
                loyalty_points_to_apply=points,
                exchange_credit=Decimal(exchange),
                store_credit_available=Decimal(store_credit),
            ),
            CartSettings(tax_rate_percent=Decimal("18"), loyalty=LOYALTY),
            customer_assigned=True,
        )
        assert totals.total >= 0
        assert totals.total_discounts <= totals.subtotal
        assert totals.tax >= 0
        assert totals.store_credit_applied <= Decimal(store_credit)


class TestPointsEarning:
    settings = CartSettings(tax_rate_percent=Decimal("18"), loyalty=LOYALTY)

    def test_points_on_base_after_discounts(self):
        totals = compute_cart_totals(
            lines(("5000", 2)),
            DiscountState(manual_discount_percent=Decimal("10")),
            self.settings,
            customer_assigned=True,
        )
        assert totals.points_to_earn == 90

    def test_points_are_floored(self):
        totals = compute_cart_totals(lines(("999", 1)), settings=self.settings, customer_assigned=True)
        assert totals.points_to_earn == 9

    def test_no_points_without_customer(self):
        totals = compute_cart_totals(lines(("5000", 2)), settings=self.settings)
        assert totals.points_to_earn == 0

    def test_credit_sale_suppresses_earning(self):
        totals = compute_cart_totals(
            lines(("5000", 2)),
            settings=self.settings,
            customer_assigned=True,
            suppress_points_earning=True,
        )
        assert totals.points_to_earn == 0
        assert totals.total == Decimal("11800")


class TestPromoRegistry:
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    registry = [
        PromoRule(code="SOLDES", type="percentage", value=Decimal("10")),
        PromoRule(code="OLD", type="fixed", value=Decimal("500"), expires_at=now - timedelta(days=1)),
        PromoRule(code="OFF", type="fixed", value=Decimal("500"), is_active=False),
    ]

    def test_lookup_is_case_insensitive(self):
        assert find_promo(" soldes ", self.registry, now=self.now).code == "SOLDES"

    @pytest.mark.parametrize("code", ["OLD", "OFF", "NOPE", ""])
    def test_unusable_codes_are_not_applied(self, code):
        state, applied = apply_promo_code(DiscountState(), code, self.registry, now=self.now)
        assert applied is False
        assert state.promo is None

    def test_invalid_code_removes_current_promo(self):
        state, applied = apply_promo_code(DiscountState(), "SOLDES", self.registry, now=self.now)
        assert applied is True
        state, applied = apply_promo_code(state, "NOPE", self.registry, now=self.now)
        assert applied is False
        assert state.promo is None


class TestValidation:
    @pytest.mark.parametrize(
        "cart_lines,field",
        [
            ([CartLine("V0", Decimal("100"), 0)], "items[0].quantity"),
            ([CartLine("V0", Decimal("100"), -1)], "items[0].quantity"),
            ([CartLine("V0", Decimal("100"), Decimal("1.5"))], "items[0].quantity"),
            ([CartLine("V0", Decimal("100"), 1), CartLine("V1", Decimal("-1"), 1)], "items[1].unit_price"),
        ],
    )
    def test_bad_lines(self, cart_lines, field):
        with pytest.raises(PricingInputError) as exc:
            compute_cart_totals(cart_lines, settings=TVA_18)
        assert exc.value.field == field

    @pytest.mark.parametrize(
        "discounts,field",
        [
            (DiscountState(manual_discount_percent=Decimal("150")), "manual_discount_percent"),
            (DiscountState(exchange_credit=Decimal("-5")), "exchange_credit"),
            (DiscountState(loyalty_points_to_apply=-3), "loyalty_points_to_apply"),
            (DiscountState(promo=PromoRule("X", "bogus", Decimal("1"))), "promo_code"),
            (DiscountState(promo=PromoRule("X", "percentage", Decimal("120"))), "promo_code"),
        ],
    )
    def test_bad_discounts(self, discounts, field):
        with pytest.raises(PricingInputError) as exc:
            compute_cart_totals(lines(("100", 1)), discounts, TVA_18)
        assert exc.value.field == field

    def test_bad_tax_rate(self):
        with pytest.raises(PricingInputError) as exc:
            compute_cart_totals(lines(("100", 1)), settings=CartSettings(tax_rate_percent=Decimal("-1")))
        assert exc.value.field == "tax_rate_percent"


def test_same_input_same_output():
    args = (
        lines(("1250", 3), ("499.99", 1)),
        DiscountState(manual_discount_percent=Decimal("5"), loyalty_points_to_apply=7),
        CartSettings(tax_rate_percent=Decimal("18"), loyalty=LOYALTY),
    )
    assert compute_cart_totals(*args, customer_assigned=True) == compute_cart_totals(*args, customer_assigned=True)


def test_cart_without_decimals():
    totals = compute_cart_totals(
        lines(("333", 1)),
        DiscountState(manual_discount_percent=Decimal("15")),
        CartSettings(tax_rate_percent=Decimal("18"), quantum=Decimal("1")),
    )
    # 49.95 -> 50 ; 283 x 18 % = 50.94 -> 51
    assert totals.manual_discount == Decimal("50")
    assert totals.tax == Decimal("51")
    assert totals.total == Decimal("334")
