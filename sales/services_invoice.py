# sales/services_invoice.py
import logging
from decimal import Decimal

from django.db import transaction

from core.models import StoreSettings
from .models import Customer, Invoice, InvoiceAdditionalTax, InvoiceLine, InvoiceTaxLine, Sale
from .pricing import ZERO, ht_from_ttc, quantum_for
from .pricing_invoice import AdditionalTax, InvoiceLineInput, InvoiceTotals, compute_invoice_totals
from .services_common import invoice_options_for, pricing_errors
from .services_numbering import next_invoice_number

logger = logging.getLogger(__name__)

# mode de paiement caisse -> code du document normalisé
SALE_TO_INVOICE_PAYMENT = {
    "cash": "cash",
    "card": "card",
    "credit": "on_account",
}


def build_line_inputs(items):
    return [
        InvoiceLineInput(
            quantity=it["quantity"],
            unit_price_ht=it["unit_price_ht"],
            discount_percent=it.get("discount_percent") or ZERO,
            tva_rate=it["tva_rate"],
            variant_ref=it.get("variant_ref", ""),
            product_name=it.get("product_name", ""),
            variant_name=it.get("variant_name", ""),
        )
        for it in items
    ]


def build_tax_inputs(taxes):
    return [AdditionalTax(name=t.get("name", ""), amount=t["amount"]) for t in taxes or []]


def preview_invoice(org, data: dict) -> InvoiceTotals:
    store = StoreSettings.for_org(org)
    with pricing_errors():
        return compute_invoice_totals(
            build_line_inputs(data.get("items") or []),
            data.get("global_discount_percent") or ZERO,
            build_tax_inputs(data.get("additional_taxes")),
            payment_method=data.get("payment_method"),
            **invoice_options_for(store),
        )


def _customer_from_data(org, data: dict) -> Customer:
    first, _, last = (data.get("name") or "").strip().partition(" ")
    return Customer.objects.create(
        org=org,
        first_name=first,
        last_name=last,
        ncc=data.get("ncc", ""),
        phone=data.get("phone", ""),
        email=data.get("email", ""),
        address=data.get("address", ""),
    )


@transaction.atomic
def create_invoice(org, user, data: dict) -> Invoice:
    """
    Calcule les totaux, attribue le numéro et enregistre la facture avec ses
    lignes, son récapitulatif TVA et ses taxes additionnelles.
    """
    totals = preview_invoice(org, data)

    customer = data.get("customer") or _customer_from_data(org, data.get("customer_data") or {})
    subtype = data.get("document_subtype") or "standard"
    number = next_invoice_number(org, document_subtype=subtype)

    inv = Invoice.objects.create(
        org=org,
        number=number,
        document_type=data.get("document_type") or "invoice",
        invoice_type=data.get("invoice_type") or "B2C",
        document_subtype=subtype,
        customer=customer,
        sale=data.get("sale"),
        due_date=data.get("due_date"),
        payment_method=data["payment_method"],
        currency=StoreSettings.for_org(org).currency,
        commercial_message=data.get("commercial_message", ""),
        global_discount_percent=data.get("global_discount_percent") or ZERO,
        subtotal_ht=totals.subtotal_ht,
        total_discounts=totals.total_discounts,
        total_ht_after_discount=totals.total_ht_after_discount,
        total_tva=totals.total_tva,
        total_additional_taxes=totals.total_additional_taxes,
        total_ttc=totals.total_ttc,
        created_by=user,
    )

    InvoiceLine.objects.bulk_create([
        InvoiceLine(
            invoice=inv,
            line_number=i,
            variant_ref=ln.variant_ref,
            product_name=ln.product_name,
            variant_name=ln.variant_name,
            quantity=ln.quantity,
            unit_price_ht=ln.unit_price_ht,
            discount_percent=ln.discount_percent,
            tva_rate=ln.tva_rate,
            total_ht=ln.total_ht,
            tva_amount=ln.tva_amount,
            total_ttc=ln.total_ttc,
        )
        for i, ln in enumerate(totals.items, start=1)
    ])
    InvoiceTaxLine.objects.bulk_create([
        InvoiceTaxLine(invoice=inv, rate=t.rate, base=t.base, amount=t.amount)
        for t in totals.tva_summary
    ])
    InvoiceAdditionalTax.objects.bulk_create([
        InvoiceAdditionalTax(invoice=inv, name=t.name, amount=t.amount)
        for t in totals.additional_taxes
    ])

    logger.info(f"[Invoice] org={org.slug} number={inv.number} ttc={inv.total_ttc} type={inv.invoice_type}")
    return inv


def invoice_draft_from_sale(sale: Sale, tva_rate: Decimal = None) -> dict:
    """
    Brouillon de facture pré-rempli depuis une vente. Les prix caisse sont TTC :
    on les ramène en HT au taux de TVA donné (taux de la boutique par défaut).
    """
    store = StoreSettings.for_org(sale.org)
    rate = store.tax_rate if tva_rate is None else tva_rate
    q = quantum_for(store.money_decimals)

    customer = sale.customer
    customer_data = {"name": "", "ncc": "", "phone": "", "email": "", "address": ""}
    if customer is not None:
        customer_data = {
            "name": customer.full_name,
            "ncc": customer.ncc,
            "phone": customer.phone,
            "email": customer.email,
            "address": customer.address,
        }

    with pricing_errors():
        items = [
            {
                "variant_ref": ln.variant_ref,
                "product_name": ln.product_name,
                "variant_name": ln.variant_name,
                "quantity": Decimal(ln.returnable_quantity),
                "unit_price_ht": ht_from_ttc(ln.unit_price, rate, q),
                "discount_percent": ZERO,
                "tva_rate": rate,
            }
            for ln in sale.lines.all()
            if ln.returnable_quantity > 0
        ]

    return {
        "sale": sale.id,
        "customer": customer.id if customer is not None else None,
        "customer_data": customer_data,
        "invoice_type": "B2B" if customer is not None and customer.ncc else "B2C",
        "document_type": "invoice",
        "document_subtype": "standard",
        "payment_method": SALE_TO_INVOICE_PAYMENT.get(sale.payment_method, "cash"),
        "items": items,
        "global_discount_percent": ZERO,
        "additional_taxes": [],
    }
