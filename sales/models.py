# sales/models.py
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import Organization


class OrgScopedModel(models.Model):
    org = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )

    class Meta:
        abstract = True


class Customer(OrgScopedModel):
    first_name = models.CharField(max_length=120)
    last_name = models.CharField(max_length=120, blank=True, default="")
    ncc = models.CharField(max_length=32, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.CharField(max_length=240, blank=True, default="")
    loyalty_points = models.PositiveIntegerField(default=0)
    store_credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["last_name", "first_name"]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name


class PromoCode(OrgScopedModel):
    TYPE_CHOICES = (("percentage", "Percentage"), ("fixed", "Fixed"))

    code = models.CharField(max_length=32)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default="percentage")
    value = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ("org", "code")
        ordering = ["code"]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.code


class Sale(OrgScopedModel):
    PAYMENT_METHODS = (("cash", "Cash"), ("card", "Card"), ("credit", "Credit"))
    ITEM_STATUS = (("taken", "Taken"), ("reserved", "Reserved"))

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="sales",
    )
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHODS, default="cash")
    is_credit = models.BooleanField(default=False)
    item_status = models.CharField(max_length=16, choices=ITEM_STATUS, default="taken")

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    manual_discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    promo_code = models.CharField(max_length=32, blank=True, default="")
    promo_discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    loyalty_discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    exchange_credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    store_credit_applied = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    loyalty_points_earned = models.PositiveIntegerField(default=0)
    loyalty_points_used = models.PositiveIntegerField(default=0)

    # échange : vente d'origine dont le retour a généré le crédit
    original_sale = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="exchanges",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["org", "created_at"], name="sales_sale_org_created_idx")]

    @property
    def balance_due(self):
        return max(Decimal("0.00"), self.total - self.total_paid)

    @property
    def discount(self):
        return self.manual_discount + self.promo_discount + self.loyalty_discount


class SaleLine(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="lines")
    variant_ref = models.CharField(max_length=64)
    product_name = models.CharField(max_length=200, blank=True, default="")
    variant_name = models.CharField(max_length=200, blank=True, default="")
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    line_total = models.DecimalField(max_digits=14, decimal_places=2)
    returned_quantity = models.PositiveIntegerField(default=0)

    @property
    def returnable_quantity(self):
        return max(0, self.quantity - self.returned_quantity)


class SaleReturn(OrgScopedModel):
    """
    Retour d'articles sur une vente. Le montant est soit crédité sur l'avoir du client,
    soit réservé pour un échange : il devient alors le crédit d'échange d'une nouvelle
    vente qui référence la vente d'origine (consumed_by).
    """
    MODES = (("store_credit", "Store credit"), ("exchange", "Exchange"))

    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="returns")
    mode = models.CharField(max_length=16, choices=MODES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    consumed_by = models.ForeignKey(
        Sale,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="consumed_returns",
    )
    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    class Meta:
        ordering = ["-created_at"]


class SaleReturnLine(models.Model):
    sale_return = models.ForeignKey(SaleReturn, on_delete=models.CASCADE, related_name="lines")
    sale_line = models.ForeignKey(SaleLine, on_delete=models.PROTECT, related_name="return_lines")
    quantity = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=14, decimal_places=2)


class Installment(OrgScopedModel):
    """Versement sur une vente à crédit."""
    METHOD = (("cash", "Cash"), ("card", "Card"), ("mobile_money", "Mobile money"), ("transfer", "Transfer"))
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="installments")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    date = models.DateField(default=timezone.localdate)
    method = models.CharField(max_length=16, choices=METHOD, default="cash")
    notes = models.CharField(max_length=240, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )


DOCUMENT_SUBTYPES = (("standard", "Standard"), ("avoir", "Avoir"), ("proforma", "Proforma"))


class InvoiceSequence(OrgScopedModel):
    """
    Numérotation par tenant, année et sous-type de document.
    Utilisée depuis services_numbering.next_invoice_number.
    """
    document_subtype = models.CharField(max_length=16, choices=DOCUMENT_SUBTYPES, default="standard")
    year = models.IntegerField()
    last_number = models.IntegerField(default=0)

    class Meta:
        unique_together = ("org", "year", "document_subtype")


class Invoice(OrgScopedModel):
    DOCUMENT_TYPES = (("invoice", "Invoice"), ("receipt", "Receipt"))
    INVOICE_TYPES = (("B2B", "B2B"), ("B2C", "B2C"), ("B2F", "B2F"), ("B2G", "B2G"))
    PAYMENT_METHODS = (
        ("card", "Carte bancaire"),
        ("cheque", "Chèque"),
        ("cash", "Espèces"),
        ("mobile_money", "Mobile money"),
        ("transfer", "Virement"),
        ("on_account", "A terme"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=32)
    document_type = models.CharField(max_length=16, choices=DOCUMENT_TYPES, default="invoice")
    invoice_type = models.CharField(max_length=8, choices=INVOICE_TYPES, default="B2C")
    document_subtype = models.CharField(max_length=16, choices=DOCUMENT_SUBTYPES, default="standard")
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="invoices")
    sale = models.ForeignKey(Sale, null=True, blank=True, on_delete=models.SET_NULL, related_name="invoices")
    date_issue = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHODS, default="cash")
    currency = models.CharField(max_length=3, default="XOF")
    commercial_message = models.CharField(max_length=240, blank=True, default="")

    global_discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    subtotal_ht = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_discounts = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_ht_after_discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_tva = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_additional_taxes = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_ttc = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    class Meta:
        unique_together = ("org", "number")
        ordering = ["-date_issue", "-created_at"]


class InvoiceLine(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")
    line_number = models.PositiveIntegerField()
    variant_ref = models.CharField(max_length=64, blank=True, default="")
    product_name = models.CharField(max_length=200, blank=True, default="")
    variant_name = models.CharField(max_length=200, blank=True, default="")
    quantity = models.DecimalField(max_digits=16, decimal_places=3)
    unit_price_ht = models.DecimalField(max_digits=12, decimal_places=2)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tva_rate = models.DecimalField(max_digits=5, decimal_places=2)
    total_ht = models.DecimalField(max_digits=14, decimal_places=2)
    tva_amount = models.DecimalField(max_digits=14, decimal_places=2)
    total_ttc = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["line_number"]


class InvoiceTaxLine(models.Model):
    """Récapitulatif TVA par taux, tel qu'imprimé sur le document."""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="tva_lines")
    rate = models.DecimalField(max_digits=5, decimal_places=2)
    base = models.DecimalField(max_digits=14, decimal_places=2)
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["rate"]


class InvoiceAdditionalTax(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="additional_taxes")
    name = models.CharField(max_length=80)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
