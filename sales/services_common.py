# sales/services_common.py
"""
Passerelle entre la configuration du tenant (core.StoreSettings) et les moteurs
de calcul purs. Relue à chaque appel, jamais mise en cache.
"""
import logging
from contextlib import contextmanager
from decimal import Decimal

from rest_framework.exceptions import ValidationError

from core.models import StoreSettings
from .pricing import PricingInputError, quantum_for
from .pricing_cart import CartSettings, LoyaltyProgram
from .pricing_invoice import StampDuty

logger = logging.getLogger(__name__)


def cart_settings_for(store: StoreSettings) -> CartSettings:
    return CartSettings(
        tax_rate_percent=store.tax_rate,
        loyalty=LoyaltyProgram(
            enabled=store.loyalty_enabled,
            point_value=store.loyalty_point_value,
            points_per_currency_unit=store.loyalty_points_per_unit,
        ),
        quantum=quantum_for(store.money_decimals),
    )


def invoice_options_for(store: StoreSettings) -> dict:
    return {
        "allowed_rates": [Decimal(str(r)) for r in (store.allowed_tva_rates or [])],
        "stamp_duty": StampDuty(name=store.stamp_duty_name, amount=store.stamp_duty_amount),
        "quantum": quantum_for(store.money_decimals),
    }


def as_validation_error(exc: PricingInputError) -> ValidationError:
    return ValidationError({exc.field: [exc.message]})


@contextmanager
def pricing_errors():
    """Convertit une PricingInputError en erreur de champ DRF (HTTP 400)."""
    try:
        yield
    except PricingInputError as exc:
        logger.warning(f"[Pricing] Entrée rejetée: {exc}")
        raise as_validation_error(exc) from exc
