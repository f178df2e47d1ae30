# sales/pricing.py
"""
Règles communes de calcul monétaire utilisées par le panier (pricing_cart)
et par la facture (pricing_invoice).

Chaque montant est arrondi à l'unité monétaire au moment où il est produit,
jamais plus tard : les lignes affichées doivent toujours sommer au total imprimé.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_TVA_RATES = (Decimal("0"), Decimal("9"), Decimal("18"))


class PricingError(ValueError):
    pass


class PricingInputError(PricingError):
    """Entrée hors domaine (bug de l'appelant), jamais un état interactif normal."""

    def __init__(self, field, message):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def to_decimal(x, field="value"):
    if isinstance(x, bool) or x is None:
        raise PricingInputError(field, "Valeur numérique requise")
    if not isinstance(x, Decimal):
        try:
            x = Decimal(str(x))
        except (InvalidOperation, ValueError):
            raise PricingInputError(field, "Valeur numérique invalide")
    if not x.is_finite():
        raise PricingInputError(field, "Valeur numérique invalide")
    return x


def money(x, quantum=MONEY_QUANTUM):
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(quantum, rounding=ROUND_HALF_UP)


def quantum_for(decimals: int) -> Decimal:
    """0 -> Decimal('1'), 2 -> Decimal('0.01')"""
    return Decimal(1).scaleb(-int(decimals))


def non_negative(x, field):
    value = to_decimal(x, field)
    if value < 0:
        raise PricingInputError(field, "Le montant doit être positif ou zéro")
    return value


def percent(x, field):
    value = to_decimal(x, field)
    if value < 0 or value > HUNDRED:
        raise PricingInputError(field, "Le pourcentage doit être entre 0 et 100")
    return value


def normalize_rates(rates):
    if rates is None:
        return None
    return frozenset(to_decimal(r, "allowed_rates") for r in rates)


def is_valid_tva_rate(rate, allowed_rates=DEFAULT_TVA_RATES) -> bool:
    try:
        value = to_decimal(rate)
    except PricingInputError:
        return False
    allowed = normalize_rates(allowed_rates)
    if allowed is None:
        return ZERO <= value <= HUNDRED
    return value in allowed


def apply_discount(amount, discount_percent, quantum=MONEY_QUANTUM):
    return money(to_decimal(amount) * (1 - to_decimal(discount_percent) / HUNDRED), quantum)


def tva_for(ht, tva_rate, quantum=MONEY_QUANTUM):
    return money(to_decimal(ht) * to_decimal(tva_rate) / HUNDRED, quantum)


def ttc_from_ht(ht, tva_rate, quantum=MONEY_QUANTUM):
    return money(to_decimal(ht) * (1 + to_decimal(tva_rate) / HUNDRED), quantum)


def ht_from_ttc(ttc, tva_rate, quantum=MONEY_QUANTUM):
    return money(to_decimal(ttc) / (1 + to_decimal(tva_rate) / HUNDRED), quantum)
