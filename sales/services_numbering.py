# sales/services_numbering.py
import logging

from django.db import transaction
from django.utils import timezone

from .models import InvoiceSequence

logger = logging.getLogger(__name__)

SUBTYPE_PREFIX = {
    "standard": "",
    "avoir": "A-",
    "proforma": "P-",
}


def format_invoice_number(year: int, number: int, document_subtype: str) -> str:
    """
    2025-00001 (standard), A-2025-00001 (avoir), P-2025-00001 (proforma)
    """
    return f"{SUBTYPE_PREFIX.get(document_subtype, '')}{year}-{number:05d}"


@transaction.atomic
def next_invoice_number(org, document_subtype: str = "standard") -> str:
    """
    Consomme et renvoie le prochain numéro de la série (tenant, année, sous-type).
    """
    year = timezone.localdate().year
    seq, _ = InvoiceSequence.objects.select_for_update().get_or_create(
        org=org,
        document_subtype=document_subtype,
        year=year,
        defaults={"last_number": 0},
    )
    seq.last_number += 1
    seq.save(update_fields=["last_number"])
    number = format_invoice_number(year, seq.last_number, document_subtype)
    logger.info(f"[Invoices] Numéro attribué: org={org.slug} {number}")
    return number


def peek_invoice_number(org, document_subtype: str = "standard") -> str:
    """Numéro qui serait attribué, sans consommer la séquence."""
    year = timezone.localdate().year
    last = (
        InvoiceSequence.objects.filter(org=org, document_subtype=document_subtype, year=year)
        .values_list("last_number", flat=True)
        .first()
    ) or 0
    return format_invoice_number(year, last + 1, document_subtype)
