# sales/pricing_invoice.py
"""
Totaux des factures et reçus normalisés (TVA ivoirienne 0/9/18 %).

Ordre : remise par ligne, puis remise globale, puis TVA par taux recalculée sur la
base remisée de chaque taux, puis taxes additionnelles (timbre de quittance...).
"""
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .pricing import (
    DEFAULT_TVA_RATES,
    MONEY_QUANTUM,
    ZERO,
    HUNDRED,
    PricingInputError,
    apply_discount,
    is_valid_tva_rate,
    money,
    non_negative,
    normalize_rates,
    percent,
    to_decimal,
    tva_for,
)

PAYMENT_CASH = "cash"


@dataclass(frozen=True)
class InvoiceLineInput:
    quantity: Decimal
    unit_price_ht: Decimal
    discount_percent: Decimal = ZERO
    tva_rate: Decimal = Decimal("18")
    variant_ref: str = ""
    product_name: str = ""
    variant_name: str = ""


@dataclass(frozen=True)
class InvoiceLineTotals:
    quantity: Decimal
    unit_price_ht: Decimal
    discount_percent: Decimal
    tva_rate: Decimal
    ht_before_discount: Decimal
    total_ht: Decimal
    tva_amount: Decimal
    total_ttc: Decimal
    variant_ref: str = ""
    product_name: str = ""
    variant_name: str = ""

    def as_dict(self):
        return {
            "variant_ref": self.variant_ref,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price_ht": self.unit_price_ht,
            "discount_percent": self.discount_percent,
            "tva_rate": self.tva_rate,
            "total_ht": self.total_ht,
            "tva_amount": self.tva_amount,
            "total_ttc": self.total_ttc,
        }


@dataclass(frozen=True)
class AdditionalTax:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class StampDuty:
    name: str = "Timbre de quittance"
    amount: Decimal = Decimal("100")

    def as_tax(self) -> AdditionalTax:
        return AdditionalTax(name=self.name, amount=self.amount)


DEFAULT_STAMP_DUTY = StampDuty()


@dataclass(frozen=True)
class TvaSummaryLine:
    rate: Decimal
    base: Decimal
    amount: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal_ht: Decimal
    total_discounts: Decimal
    total_ht_after_discount: Decimal
    tva_summary: tuple
    total_tva: Decimal
    additional_taxes: tuple
    total_additional_taxes: Decimal
    total_ttc: Decimal
    items: tuple

    def as_dict(self):
        return {
            "subtotal_ht": self.subtotal_ht,
            "total_discounts": self.total_discounts,
            "total_ht_after_discount": self.total_ht_after_discount,
            "tva_summary": [
                {"rate": t.rate, "base": t.base, "amount": t.amount} for t in self.tva_summary
            ],
            "total_tva": self.total_tva,
            "additional_taxes": [{"name": t.name, "amount": t.amount} for t in self.additional_taxes],
            "total_additional_taxes": self.total_additional_taxes,
            "total_ttc": self.total_ttc,
            "items": [it.as_dict() for it in self.items],
        }


def apply_stamp_duty(payment_method: str, taxes, stamp: StampDuty = DEFAULT_STAMP_DUTY) -> tuple:
    """
    Ajoute le timbre pour un paiement en espèces, le retire sinon.
    Idempotent : jamais deux timbres, quel que soit le nombre de bascules.
    """
    others = tuple(t for t in taxes if t.name != stamp.name)
    if payment_method == PAYMENT_CASH:
        return others + (stamp.as_tax(),)
    return others


def compute_line(line: InvoiceLineInput, quantum=MONEY_QUANTUM) -> InvoiceLineTotals:
    ht_before = money(line.quantity * line.unit_price_ht, quantum)
    total_ht = apply_discount(ht_before, line.discount_percent, quantum)
    tva_amount = tva_for(total_ht, line.tva_rate, quantum)
    return InvoiceLineTotals(
        quantity=line.quantity,
        unit_price_ht=line.unit_price_ht,
        discount_percent=line.discount_percent,
        tva_rate=line.tva_rate,
        ht_before_discount=ht_before,
        total_ht=total_ht,
        tva_amount=tva_amount,
        total_ttc=money(total_ht + tva_amount, quantum),
        variant_ref=line.variant_ref,
        product_name=line.product_name,
        variant_name=line.variant_name,
    )


def tva_summary(lines, discount_ratio: Decimal, quantum=MONEY_QUANTUM) -> tuple:
    """
    Regroupe les bases HT par taux, applique le ratio de remise globale à la base
    de chaque taux puis recalcule la TVA de ce taux à partir de la base ajustée.
    """
    bases = OrderedDict()
    for ln in lines:
        bases[ln.tva_rate] = bases.get(ln.tva_rate, ZERO) + ln.total_ht

    summary = []
    for rate in sorted(bases):
        base = money(bases[rate] * discount_ratio, quantum)
        summary.append(TvaSummaryLine(rate=rate, base=base, amount=tva_for(base, rate, quantum)))
    return tuple(summary)


def _clean_items(items, allowed):
    cleaned = []
    for i, it in enumerate(items):
        qty = to_decimal(it.quantity, f"items[{i}].quantity")
        if qty <= 0:
            raise PricingInputError(f"items[{i}].quantity", "La quantité doit être positive")
        rate = to_decimal(it.tva_rate, f"items[{i}].tva_rate")
        if not is_valid_tva_rate(rate, allowed):
            raise PricingInputError(f"items[{i}].tva_rate", "Taux de TVA non autorisé")
        cleaned.append(
            InvoiceLineInput(
                quantity=qty,
                unit_price_ht=non_negative(it.unit_price_ht, f"items[{i}].unit_price_ht"),
                discount_percent=percent(it.discount_percent, f"items[{i}].discount_percent"),
                tva_rate=rate,
                variant_ref=it.variant_ref,
                product_name=it.product_name,
                variant_name=it.variant_name,
            )
        )
    return cleaned


def _clean_taxes(taxes, quantum):
    cleaned = []
    for i, t in enumerate(taxes):
        name = (t.name or "").strip()
        if not name:
            raise PricingInputError(f"additional_taxes[{i}].name", "Le nom de la taxe est requis")
        amount = money(non_negative(t.amount, f"additional_taxes[{i}].amount"), quantum)
        cleaned.append(AdditionalTax(name=name, amount=amount))
    return tuple(cleaned)


def compute_invoice_totals(
    items,
    global_discount_percent=ZERO,
    additional_taxes=(),
    *,
    payment_method: Optional[str] = None,
    stamp_duty: StampDuty = DEFAULT_STAMP_DUTY,
    allowed_rates=DEFAULT_TVA_RATES,
    quantum=MONEY_QUANTUM,
) -> InvoiceTotals:
    """
    Totaux complets d'une facture. Sans `payment_method`, les taxes additionnelles
    sont prises telles quelles ; avec, le timbre est ajouté ou retiré.
    """
    allowed = normalize_rates(allowed_rates)
    lines = [compute_line(it, quantum) for it in _clean_items(items, allowed)]
    global_pct = percent(global_discount_percent, "global_discount_percent")

    taxes = _clean_taxes(additional_taxes, quantum)
    if payment_method is not None:
        stamp = StampDuty(
            name=stamp_duty.name,
            amount=money(non_negative(stamp_duty.amount, "stamp_duty.amount"), quantum),
        )
        taxes = apply_stamp_duty(payment_method, taxes, stamp)

    subtotal_ht = money(sum((ln.total_ht for ln in lines), ZERO), quantum)
    discount_amount = money(subtotal_ht * global_pct / HUNDRED, quantum)
    total_ht_after = subtotal_ht - discount_amount

    # sous-total nul : ratio neutre
    ratio = total_ht_after / subtotal_ht if subtotal_ht > 0 else Decimal(1)
    summary = tva_summary(lines, ratio, quantum)

    total_tva = sum((t.amount for t in summary), ZERO)
    total_additional = sum((t.amount for t in taxes), ZERO)

    return InvoiceTotals(
        subtotal_ht=subtotal_ht,
        total_discounts=discount_amount,
        total_ht_after_discount=total_ht_after,
        tva_summary=summary,
        total_tva=money(total_tva, quantum),
        additional_taxes=taxes,
        total_additional_taxes=money(total_additional, quantum),
        total_ttc=money(total_ht_after + total_tva + total_additional, quantum),
        items=tuple(lines),
    )
