# sales/pricing_cart.py
"""
Calcul du ticket de caisse.

Les remises sont composées dans un ordre fixe (CART_STAGES). Chaque étape est une
fonction pure qui reçoit le reste courant (CartRemainder) et en renvoie un nouveau :
aucune remise n'est calculée sur le sous-total d'origine et aucune ne peut rendre
le reste négatif.

    subtotal -> remise manuelle -> code promo -> points fidélité -> TVA
             -> crédit d'échange -> avoir client -> total
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

from .pricing import (
    MONEY_QUANTUM,
    ZERO,
    HUNDRED,
    PricingInputError,
    money,
    non_negative,
    percent,
    to_decimal,
)

PROMO_PERCENTAGE = "percentage"
PROMO_FIXED = "fixed"
PROMO_TYPES = (PROMO_PERCENTAGE, PROMO_FIXED)


@dataclass(frozen=True)
class CartLine:
    variant_ref: str
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class PromoRule:
    code: str
    type: str
    value: Decimal
    is_active: bool = True
    expires_at: Optional[object] = None

    def is_usable(self, now=None) -> bool:
        if not self.is_active:
            return False
        if self.expires_at is not None and now is not None and self.expires_at <= now:
            return False
        return True


@dataclass(frozen=True)
class LoyaltyProgram:
    enabled: bool = False
    point_value: Decimal = ZERO
    points_per_currency_unit: Decimal = ZERO


@dataclass(frozen=True)
class DiscountState:
    manual_discount_percent: Decimal = ZERO
    promo: Optional[PromoRule] = None
    loyalty_points_to_apply: int = 0
    exchange_credit: Decimal = ZERO
    store_credit_available: Decimal = ZERO


@dataclass(frozen=True)
class CartSettings:
    tax_rate_percent: Decimal = ZERO
    loyalty: LoyaltyProgram = field(default_factory=LoyaltyProgram)
    quantum: Decimal = MONEY_QUANTUM


@dataclass(frozen=True)
class CartRemainder:
    subtotal: Decimal = ZERO
    remainder: Decimal = ZERO
    manual_discount: Decimal = ZERO
    promo_discount: Decimal = ZERO
    loyalty_discount: Decimal = ZERO
    taxable_base: Decimal = ZERO
    tax: Decimal = ZERO
    exchange_credit: Decimal = ZERO
    exchange_credit_unused: Decimal = ZERO
    store_credit_applied: Decimal = ZERO
    total: Decimal = ZERO


@dataclass(frozen=True)
class CartContext:
    lines: tuple
    discounts: DiscountState
    settings: CartSettings


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    manual_discount: Decimal
    promo_discount: Decimal
    loyalty_discount: Decimal
    tax: Decimal
    exchange_credit: Decimal
    exchange_credit_unused: Decimal
    store_credit_applied: Decimal
    total: Decimal
    points_to_earn: int
    promo_code: Optional[str] = None

    @property
    def total_discounts(self) -> Decimal:
        return self.manual_discount + self.promo_discount + self.loyalty_discount

    def as_dict(self):
        return {
            "subtotal": self.subtotal,
            "manual_discount": self.manual_discount,
            "promo_discount": self.promo_discount,
            "loyalty_discount": self.loyalty_discount,
            "total_discounts": self.total_discounts,
            "tax": self.tax,
            "exchange_credit": self.exchange_credit,
            "exchange_credit_unused": self.exchange_credit_unused,
            "store_credit_applied": self.store_credit_applied,
            "total": self.total,
            "points_to_earn": self.points_to_earn,
            "promo_code": self.promo_code,
        }


# --- Registre des codes promo ---

def find_promo(code: str, registry, now=None) -> Optional[PromoRule]:
    """Recherche insensible à la casse ; ignore les codes inactifs ou expirés."""
    wanted = (code or "").strip().upper()
    if not wanted:
        return None
    for rule in registry:
        if rule.code.upper() == wanted and rule.is_usable(now):
            return rule
    return None


def apply_promo_code(state: DiscountState, code: str, registry, now=None):
    """
    Renvoie (nouvel_etat, applique). Un code invalide retire le code courant
    et renvoie False ; ce n'est jamais une exception.
    """
    rule = find_promo(code, registry, now=now)
    return replace(state, promo=rule), rule is not None


# --- Étapes ---

def _subtotal(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    q = ctx.settings.quantum
    subtotal = money(sum((ln.unit_price * ln.quantity for ln in ctx.lines), ZERO), q)
    return replace(r, subtotal=subtotal, remainder=subtotal)


def _manual_discount(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    pct = ctx.discounts.manual_discount_percent
    if not pct:
        return r
    amount = money(r.subtotal * pct / HUNDRED, ctx.settings.quantum)
    amount = min(amount, max(ZERO, r.remainder))
    return replace(r, manual_discount=amount, remainder=r.remainder - amount)


def _promo_discount(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    promo = ctx.discounts.promo
    if promo is None:
        return r
    base = max(ZERO, r.remainder)
    if promo.type == PROMO_PERCENTAGE:
        amount = money(base * promo.value / HUNDRED, ctx.settings.quantum)
    else:
        amount = money(promo.value, ctx.settings.quantum)
    amount = min(amount, base)
    return replace(r, promo_discount=amount, remainder=r.remainder - amount)


def _loyalty_discount(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    program = ctx.settings.loyalty
    points = ctx.discounts.loyalty_points_to_apply
    if program.enabled and points > 0:
        amount = money(points * program.point_value, ctx.settings.quantum)
        amount = min(amount, max(ZERO, r.remainder))
        r = replace(r, loyalty_discount=amount, remainder=r.remainder - amount)
    return replace(r, taxable_base=max(ZERO, r.remainder))


def _tax(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    tax = money(r.taxable_base * ctx.settings.tax_rate_percent / HUNDRED, ctx.settings.quantum)
    return replace(r, tax=tax, remainder=r.remainder + tax)


def _exchange_credit(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    credit = ctx.discounts.exchange_credit
    if not credit:
        return r
    applied = min(credit, max(ZERO, r.remainder))
    return replace(
        r,
        exchange_credit=applied,
        exchange_credit_unused=credit - applied,
        remainder=r.remainder - applied,
    )


def _store_credit(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    available = ctx.discounts.store_credit_available
    if not available:
        return r
    applied = min(available, max(ZERO, r.remainder))
    return replace(r, store_credit_applied=applied, remainder=r.remainder - applied)


def _settle(r: CartRemainder, ctx: CartContext) -> CartRemainder:
    return replace(r, total=max(ZERO, r.remainder))


CART_STAGES = (
    _subtotal,
    _manual_discount,
    _promo_discount,
    _loyalty_discount,
    _tax,
    _exchange_credit,
    _store_credit,
    _settle,
)


def run_stages(stages, ctx: CartContext, start: CartRemainder = None) -> CartRemainder:
    r = start or CartRemainder()
    for stage in stages:
        r = stage(r, ctx)
    return r


# --- Validation aux frontières ---

def _clean_quantity(value, field_name):
    if isinstance(value, bool):
        raise PricingInputError(field_name, "La quantité doit être un entier positif")
    if not isinstance(value, int):
        dec = to_decimal(value, field_name)
        if dec != dec.to_integral_value():
            raise PricingInputError(field_name, "La quantité doit être un entier positif")
        value = int(dec)
    if value <= 0:
        raise PricingInputError(field_name, "La quantité doit être un entier positif")
    return value


def _clean_lines(lines):
    cleaned = []
    for i, ln in enumerate(lines):
        cleaned.append(
            CartLine(
                variant_ref=ln.variant_ref,
                unit_price=non_negative(ln.unit_price, f"items[{i}].unit_price"),
                quantity=_clean_quantity(ln.quantity, f"items[{i}].quantity"),
            )
        )
    return tuple(cleaned)


def _clean_points(value, field_name):
    points = non_negative(value, field_name)
    if points != points.to_integral_value():
        raise PricingInputError(field_name, "Le nombre de points doit être entier")
    return int(points)


def _clean_discounts(d: DiscountState, quantum) -> DiscountState:
    promo = d.promo
    if promo is not None:
        if promo.type not in PROMO_TYPES:
            raise PricingInputError("promo_code", "Type de code promo inconnu")
        value = (
            percent(promo.value, "promo_code")
            if promo.type == PROMO_PERCENTAGE
            else non_negative(promo.value, "promo_code")
        )
        promo = replace(promo, value=value)
    return DiscountState(
        manual_discount_percent=percent(d.manual_discount_percent, "manual_discount_percent"),
        promo=promo,
        loyalty_points_to_apply=_clean_points(d.loyalty_points_to_apply, "loyalty_points_to_apply"),
        exchange_credit=money(non_negative(d.exchange_credit, "exchange_credit"), quantum),
        store_credit_available=money(
            non_negative(d.store_credit_available, "store_credit_available"), quantum
        ),
    )


def _clean_settings(s: CartSettings) -> CartSettings:
    loyalty = s.loyalty
    return CartSettings(
        tax_rate_percent=percent(s.tax_rate_percent, "tax_rate_percent"),
        loyalty=LoyaltyProgram(
            enabled=bool(loyalty.enabled),
            point_value=non_negative(loyalty.point_value, "loyalty.point_value"),
            points_per_currency_unit=non_negative(
                loyalty.points_per_currency_unit, "loyalty.points_per_currency_unit"
            ),
        ),
        quantum=s.quantum,
    )


def compute_cart_totals(
    lines,
    discounts: DiscountState = None,
    settings: CartSettings = None,
    *,
    customer_assigned: bool = False,
    suppress_points_earning: bool = False,
) -> CartTotals:
    """
    Totaux du panier. Fonction pure : mêmes entrées, même résultat.

    `suppress_points_earning` est la règle métier des ventes à crédit : aucun point
    gagné, quel que soit le montant restant.
    """
    cleaned_settings = _clean_settings(settings or CartSettings())
    ctx = CartContext(
        lines=_clean_lines(lines),
        discounts=_clean_discounts(discounts or DiscountState(), cleaned_settings.quantum),
        settings=cleaned_settings,
    )
    r = run_stages(CART_STAGES, ctx)

    points = 0
    program = ctx.settings.loyalty
    if program.enabled and customer_assigned and not suppress_points_earning:
        earned = (r.taxable_base * program.points_per_currency_unit).to_integral_value(rounding=ROUND_FLOOR)
        points = int(earned)

    promo = ctx.discounts.promo
    return CartTotals(
        subtotal=r.subtotal,
        manual_discount=r.manual_discount,
        promo_discount=r.promo_discount,
        loyalty_discount=r.loyalty_discount,
        tax=r.tax,
        exchange_credit=r.exchange_credit,
        exchange_credit_unused=r.exchange_credit_unused,
        store_credit_applied=r.store_credit_applied,
        total=r.total,
        points_to_earn=points,
        promo_code=promo.code if promo else None,
    )
