# sales/services_return.py
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from rest_framework.exceptions import ValidationError

from core.models import StoreSettings
from .models import Customer, Sale, SaleLine, SaleReturn, SaleReturnLine
from .pricing import ZERO, money, quantum_for

logger = logging.getLogger(__name__)


def open_exchange_returns(original_sale: Sale, *, lock=False):
    """Retours en mode échange de la vente, pas encore utilisés par une nouvelle vente."""
    qs = SaleReturn.objects.filter(sale=original_sale, mode="exchange", consumed_by__isnull=True)
    if lock:
        qs = qs.select_for_update()
    return qs


def exchange_credit_available(original_sale: Sale) -> Decimal:
    if original_sale is None:
        return ZERO
    return open_exchange_returns(original_sale).aggregate(s=Sum("amount"))["s"] or ZERO


@transaction.atomic
def register_return(sale: Sale, *, lines, mode: str, user=None) -> SaleReturn:
    """
    Retour d'articles : `lines` est une liste de {"line": <id SaleLine>, "quantity": n}.
    Valeur remboursée = quantité retournée x prix unitaire de la ligne.
    """
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if sale.customer_id is None:
        raise ValidationError({"customer": "Un client est requis pour un avoir ou un échange"})
    if mode not in dict(SaleReturn.MODES):
        raise ValidationError({"mode": "Mode de retour inconnu"})
    if not lines:
        raise ValidationError({"lines": "Aucun article à retourner"})

    sale_lines = {ln.pk: ln for ln in SaleLine.objects.select_for_update().filter(sale=sale)}
    q = quantum_for(StoreSettings.for_org(sale.org).money_decimals)

    requested = {}
    for i, item in enumerate(lines):
        line = sale_lines.get(item["line"])
        if line is None:
            raise ValidationError({f"lines[{i}].line": "Ligne inconnue pour cette vente"})
        quantity = item["quantity"]
        if quantity < 1:
            raise ValidationError({f"lines[{i}].quantity": "La quantité doit être au moins 1"})
        already = requested.get(line.pk, 0)
        if already + quantity > line.returnable_quantity:
            raise ValidationError(
                {f"lines[{i}].quantity": f"Quantité retournable dépassée ({line.returnable_quantity})"}
            )
        requested[line.pk] = already + quantity

    amounts = {pk: money(sale_lines[pk].unit_price * qty, q) for pk, qty in requested.items()}
    total = money(sum(amounts.values(), ZERO), q)
    if total <= 0:
        raise ValidationError({"lines": "Le montant du retour doit être strictement positif"})

    ret = SaleReturn.objects.create(org=sale.org, sale=sale, mode=mode, amount=total, created_by=user)
    for pk, qty in requested.items():
        line = sale_lines[pk]
        SaleReturnLine.objects.create(sale_return=ret, sale_line=line, quantity=qty, amount=amounts[pk])
        line.returned_quantity += qty
        line.save(update_fields=["returned_quantity"])

    if mode == "store_credit":
        customer = Customer.objects.select_for_update().get(pk=sale.customer_id)
        customer.store_credit += total
        customer.save(update_fields=["store_credit"])

    logger.info(f"[Return] org={sale.org.slug} sale={sale.id} mode={mode} amount={total}")
    return ret


def consume_exchange_credit(original_sale: Sale, amount: Decimal, new_sale: Sale):
    """Rattache les retours d'échange ouverts de la vente d'origine à la nouvelle vente."""
    returns = list(open_exchange_returns(original_sale, lock=True))
    available = sum((r.amount for r in returns), ZERO)
    if amount > available:
        raise ValidationError({"exchange_credit": f"Crédit d'échange supérieur au retour disponible ({available})"})
    SaleReturn.objects.filter(pk__in=[r.pk for r in returns]).update(consumed_by=new_sale)
    return available
