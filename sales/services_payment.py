# sales/services_payment.py
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from rest_framework.exceptions import ValidationError

from .models import Installment, Sale

logger = logging.getLogger(__name__)


@transaction.atomic
def register_installment(sale: Sale, *, amount: Decimal, date=None, method: str = "cash", notes="", user=None):
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if not sale.is_credit:
        raise ValidationError("Seules les ventes à crédit acceptent des versements")
    if amount is None or amount <= 0:
        raise ValidationError({"amount": "Le montant doit être strictement positif"})
    if amount > sale.balance_due:
        raise ValidationError({"amount": f"Le montant dépasse le reste dû ({sale.balance_due})"})

    kwargs = {"date": date} if date else {}
    inst = Installment.objects.create(
        org=sale.org,
        sale=sale,
        amount=amount,
        method=method,
        notes=notes,
        created_by=user,
        **kwargs,
    )

    # total encaissé = somme des versements
    sale.total_paid = sale.installments.aggregate(s=Sum("amount"))["s"] or Decimal("0.00")
    sale.save(update_fields=["total_paid"])

    logger.info(f"[Installment] sale={sale.id} amount={amount} reste={sale.balance_due}")
    return inst
