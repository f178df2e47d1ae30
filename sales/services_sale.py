# sales/services_sale.py
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.models import StoreSettings
from .models import Customer, Installment, PromoCode, Sale, SaleLine
from .pricing import ZERO, money, quantum_for
from .pricing_cart import CartLine, DiscountState, PromoRule, apply_promo_code, compute_cart_totals
from .services_common import cart_settings_for, pricing_errors
from .services_return import consume_exchange_credit, exchange_credit_available

logger = logging.getLogger(__name__)


def promo_registry(org):
    return [
        PromoRule(
            code=p.code,
            type=p.type,
            value=p.value,
            is_active=p.is_active,
            expires_at=p.expires_at,
        )
        for p in PromoCode.objects.filter(org=org)
    ]


def check_promo_code(org, code: str) -> bool:
    _, applied = apply_promo_code(DiscountState(), code, promo_registry(org), now=timezone.now())
    return applied


def _cart_lines(items):
    return tuple(
        CartLine(
            variant_ref=it["variant_ref"],
            unit_price=it["unit_price"],
            quantity=it["quantity"],
        )
        for it in items
    )


def compute_cart(org, data: dict, *, customer: Customer = None):
    """
    Totaux du panier à partir des données validées par CartRequestSerializer.
    Renvoie (CartTotals, promo_applied). promo_applied vaut None si aucun code n'a été saisi.
    """
    store = StoreSettings.for_org(org)
    customer = customer if customer is not None else data.get("customer")

    # le crédit d'échange ne peut venir que d'un retour de la vente d'origine
    exchange_credit = data.get("exchange_credit") or ZERO
    if exchange_credit > 0:
        available = exchange_credit_available(data.get("original_sale"))
        if exchange_credit > available:
            raise ValidationError(
                {"exchange_credit": f"Crédit d'échange supérieur au retour disponible ({available})"}
            )

    discounts = DiscountState(
        manual_discount_percent=data.get("manual_discount_percent") or ZERO,
        loyalty_points_to_apply=data.get("loyalty_points_to_apply") or 0,
        exchange_credit=exchange_credit,
        store_credit_available=(
            customer.store_credit if (customer is not None and data.get("use_store_credit")) else ZERO
        ),
    )

    promo_applied = None
    code = (data.get("promo_code") or "").strip()
    if code:
        discounts, promo_applied = apply_promo_code(
            discounts, code, promo_registry(org), now=timezone.now()
        )

    with pricing_errors():
        totals = compute_cart_totals(
            _cart_lines(data.get("items") or []),
            discounts,
            cart_settings_for(store),
            customer_assigned=customer is not None,
            suppress_points_earning=data.get("payment_method") == "credit",
        )
    return totals, promo_applied


def _points_used(loyalty_discount: Decimal, point_value: Decimal) -> int:
    if not loyalty_discount or not point_value:
        return 0
    return int((loyalty_discount / point_value).to_integral_value(rounding=ROUND_HALF_UP))


@transaction.atomic
def checkout(org, user, data: dict) -> Sale:
    """
    Enregistre la vente : lignes, mouvements fidélité / avoir du client,
    acompte éventuel pour une vente à crédit.
    """
    store = StoreSettings.for_org(org)
    is_credit = data.get("payment_method") == "credit"

    customer = data.get("customer")
    if customer is not None:
        customer = Customer.objects.select_for_update().get(pk=customer.pk, org=org)
        if (data.get("loyalty_points_to_apply") or 0) > customer.loyalty_points:
            raise ValidationError({"loyalty_points_to_apply": "Solde de points insuffisant"})

    if is_credit and customer is None:
        raise ValidationError({"customer": "Un client est requis pour une vente à crédit"})

    totals, _ = compute_cart(org, data, customer=customer)

    deposit = money(data.get("deposit") or ZERO, quantum_for(store.money_decimals))
    if is_credit:
        if deposit < 0:
            raise ValidationError({"deposit": "L'acompte doit être positif ou zéro"})
        if deposit > totals.total:
            raise ValidationError({"deposit": "L'acompte dépasse le total de la vente"})
        total_paid = deposit
    else:
        total_paid = totals.total

    points_used = 0
    if store.loyalty_enabled:
        points_used = _points_used(totals.loyalty_discount, store.loyalty_point_value)

    sale = Sale.objects.create(
        org=org,
        created_by=user,
        customer=customer,
        payment_method=data.get("payment_method") or "cash",
        is_credit=is_credit,
        item_status=data.get("item_status") if is_credit else "taken",
        subtotal=totals.subtotal,
        manual_discount=totals.manual_discount,
        promo_code=totals.promo_code or "",
        promo_discount=totals.promo_discount,
        loyalty_discount=totals.loyalty_discount,
        tax_rate=store.tax_rate,
        tax=totals.tax,
        exchange_credit=totals.exchange_credit,
        store_credit_applied=totals.store_credit_applied,
        total=totals.total,
        total_paid=total_paid,
        loyalty_points_earned=totals.points_to_earn,
        loyalty_points_used=points_used,
        original_sale=data.get("original_sale"),
    )

    q = quantum_for(store.money_decimals)
    SaleLine.objects.bulk_create([
        SaleLine(
            sale=sale,
            variant_ref=it["variant_ref"],
            product_name=it.get("product_name", ""),
            variant_name=it.get("variant_name", ""),
            unit_price=it["unit_price"],
            quantity=it["quantity"],
            line_total=money(it["unit_price"] * it["quantity"], q),
        )
        for it in data.get("items") or []
    ])

    if (data.get("exchange_credit") or ZERO) > 0:
        consume_exchange_credit(data["original_sale"], data["exchange_credit"], sale)

    if is_credit and deposit > 0:
        Installment.objects.create(
            org=org,
            sale=sale,
            amount=deposit,
            method="cash",
            notes="Acompte",
            created_by=user,
        )

    if customer is not None:
        customer.loyalty_points = max(0, customer.loyalty_points - points_used) + totals.points_to_earn
        customer.store_credit = max(ZERO, customer.store_credit - totals.store_credit_applied)
        customer.save(update_fields=["loyalty_points", "store_credit"])

    logger.info(
        f"[Sale] org={org.slug} sale={sale.id} total={sale.total} "
        f"method={sale.payment_method} points+={sale.loyalty_points_earned} points-={points_used}"
    )
    return sale
