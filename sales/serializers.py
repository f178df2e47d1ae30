# sales/serializers.py
from rest_framework import serializers
from django.utils import timezone

from .models import (
    Customer,
    Installment,
    Invoice,
    InvoiceAdditionalTax,
    InvoiceLine,
    InvoiceTaxLine,
    PromoCode,
    Sale,
    SaleLine,
    SaleReturn,
    SaleReturnLine,
)
from .validators import is_valid_email, is_valid_ncc, is_valid_phone, validate_ncc, validate_phone_ci

MONEY = dict(max_digits=16, decimal_places=2)
PERCENT = dict(max_digits=6, decimal_places=2)


class OrgScopedPrimaryKeyRelatedField(serializers.PrimaryKeyRelatedField):
    """PK limitée aux objets de l'organisation du contexte."""

    def get_queryset(self):
        qs = super().get_queryset()
        org = self.context.get("org")
        return qs.filter(org=org) if org is not None else qs.none()


# --- Clients & codes promo ---

class CustomerSerializer(serializers.ModelSerializer):
    ncc = serializers.CharField(required=False, allow_blank=True, validators=[validate_ncc])
    phone = serializers.CharField(required=False, allow_blank=True, validators=[validate_phone_ci])

    class Meta:
        model = Customer
        fields = [
            "id",
            "first_name",
            "last_name",
            "full_name",
            "ncc",
            "phone",
            "email",
            "address",
            "loyalty_points",
            "store_credit",
            "created_at",
        ]
        read_only_fields = ["full_name", "loyalty_points", "store_credit", "created_at"]


class PromoCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PromoCode
        fields = ["id", "code", "type", "value", "is_active", "expires_at"]

    def validate_code(self, value):
        code = (value or "").strip().upper()
        if not code:
            raise serializers.ValidationError("Code requis")
        qs = PromoCode.objects.filter(org=self.context.get("org"), code=code)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Ce code existe déjà")
        return code

    def validate(self, attrs):
        type_ = attrs.get("type", getattr(self.instance, "type", "percentage"))
        value = attrs.get("value", getattr(self.instance, "value", None))
        if value is not None:
            if value < 0:
                raise serializers.ValidationError({"value": "La valeur doit être positive ou zéro"})
            if type_ == "percentage" and value > 100:
                raise serializers.ValidationError({"value": "Un pourcentage ne peut dépasser 100"})
        return attrs


class PromoCheckSerializer(serializers.Serializer):
    code = serializers.CharField()


# --- Panier ---

class CartItemSerializer(serializers.Serializer):
    variant_ref = serializers.CharField(max_length=64)
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    variant_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    unit_price = serializers.DecimalField(**MONEY)
    quantity = serializers.IntegerField()


class CartRequestSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True, allow_empty=True)
    customer = OrgScopedPrimaryKeyRelatedField(
        queryset=Customer.objects.all(), required=False, allow_null=True
    )
    manual_discount_percent = serializers.DecimalField(**PERCENT, required=False, default=0)
    promo_code = serializers.CharField(required=False, allow_blank=True, default="")
    loyalty_points_to_apply = serializers.IntegerField(required=False, default=0)
    use_store_credit = serializers.BooleanField(required=False, default=False)
    exchange_credit = serializers.DecimalField(**MONEY, required=False, default=0)
    original_sale = OrgScopedPrimaryKeyRelatedField(
        queryset=Sale.objects.all(), required=False, allow_null=True
    )
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHODS, required=False, default="cash")

    def validate(self, attrs):
        customer = attrs.get("customer")
        points = attrs.get("loyalty_points_to_apply") or 0
        if points:
            if customer is None:
                raise serializers.ValidationError(
                    {"loyalty_points_to_apply": "Un client doit être assigné pour utiliser des points"}
                )
            if points > customer.loyalty_points:
                raise serializers.ValidationError(
                    {"loyalty_points_to_apply": "Solde de points insuffisant"}
                )
        if attrs.get("use_store_credit") and customer is None:
            raise serializers.ValidationError({"use_store_credit": "Un client doit être assigné"})
        if (attrs.get("exchange_credit") or 0) > 0 and attrs.get("original_sale") is None:
            raise serializers.ValidationError(
                {"original_sale": "Un échange doit référencer la vente d'origine"}
            )
        return attrs


class CheckoutSerializer(CartRequestSerializer):
    deposit = serializers.DecimalField(**MONEY, required=False, default=0)
    item_status = serializers.ChoiceField(choices=Sale.ITEM_STATUS, required=False, default="taken")

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if attrs.get("payment_method") == "credit" and attrs.get("customer") is None:
            raise serializers.ValidationError({"customer": "Un client est requis pour une vente à crédit"})
        if not attrs.get("items") and not attrs.get("exchange_credit"):
            raise serializers.ValidationError({"items": "Le panier est vide"})
        return attrs


class CartTotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(**MONEY)
    manual_discount = serializers.DecimalField(**MONEY)
    promo_discount = serializers.DecimalField(**MONEY)
    loyalty_discount = serializers.DecimalField(**MONEY)
    total_discounts = serializers.DecimalField(**MONEY)
    tax = serializers.DecimalField(**MONEY)
    exchange_credit = serializers.DecimalField(**MONEY)
    exchange_credit_unused = serializers.DecimalField(**MONEY)
    store_credit_applied = serializers.DecimalField(**MONEY)
    total = serializers.DecimalField(**MONEY)
    points_to_earn = serializers.IntegerField()
    promo_code = serializers.CharField(allow_null=True)


# --- Ventes ---

class SaleLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleLine
        fields = [
            "id",
            "variant_ref",
            "product_name",
            "variant_name",
            "unit_price",
            "quantity",
            "returned_quantity",
            "line_total",
        ]


class SaleReturnLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleReturnLine
        fields = ["sale_line", "quantity", "amount"]


class SaleReturnSerializer(serializers.ModelSerializer):
    lines = SaleReturnLineSerializer(many=True, read_only=True)

    class Meta:
        model = SaleReturn
        fields = ["id", "mode", "amount", "consumed_by", "created_at", "lines"]
        read_only_fields = fields


class ReturnLineInputSerializer(serializers.Serializer):
    line = serializers.IntegerField()
    quantity = serializers.IntegerField()


class SaleReturnRequestSerializer(serializers.Serializer):
    mode = serializers.ChoiceField(choices=SaleReturn.MODES)
    lines = ReturnLineInputSerializer(many=True, allow_empty=False)


class InstallmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Installment
        fields = ["id", "sale", "amount", "date", "method", "notes"]
        read_only_fields = ["sale"]


class SaleSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.full_name", read_only=True, default="")
    lines = SaleLineSerializer(many=True, read_only=True)
    installments = InstallmentSerializer(many=True, read_only=True)
    returns = SaleReturnSerializer(many=True, read_only=True)
    balance_due = serializers.DecimalField(**MONEY, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "created_at",
            "customer",
            "customer_name",
            "payment_method",
            "is_credit",
            "item_status",
            "subtotal",
            "manual_discount",
            "promo_code",
            "promo_discount",
            "loyalty_discount",
            "tax_rate",
            "tax",
            "exchange_credit",
            "store_credit_applied",
            "total",
            "total_paid",
            "balance_due",
            "loyalty_points_earned",
            "loyalty_points_used",
            "original_sale",
            "lines",
            "installments",
            "returns",
        ]
        read_only_fields = fields


# --- Factures ---

class InvoiceItemInputSerializer(serializers.Serializer):
    variant_ref = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    variant_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=16, decimal_places=3)
    unit_price_ht = serializers.DecimalField(**MONEY)
    discount_percent = serializers.DecimalField(**PERCENT, required=False, default=0)
    tva_rate = serializers.DecimalField(**PERCENT)


class AdditionalTaxInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=80, allow_blank=True)
    amount = serializers.DecimalField(**MONEY)


class InvoicePreviewSerializer(serializers.Serializer):
    items = InvoiceItemInputSerializer(many=True, allow_empty=True)
    global_discount_percent = serializers.DecimalField(**PERCENT, required=False, default=0)
    additional_taxes = AdditionalTaxInputSerializer(many=True, required=False, default=list)
    payment_method = serializers.ChoiceField(choices=Invoice.PAYMENT_METHODS, required=False, allow_null=True)


class CustomerDataSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=240, required=False, allow_blank=True, default="")
    ncc = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    email = serializers.CharField(max_length=254, required=False, allow_blank=True, default="")
    address = serializers.CharField(max_length=240, required=False, allow_blank=True, default="")


class InvoiceCreateSerializer(InvoicePreviewSerializer):
    items = InvoiceItemInputSerializer(
        many=True, allow_empty=False, error_messages={"empty": "Au moins un article requis"}
    )
    payment_method = serializers.ChoiceField(choices=Invoice.PAYMENT_METHODS)
    document_type = serializers.ChoiceField(choices=Invoice.DOCUMENT_TYPES, default="invoice")
    invoice_type = serializers.ChoiceField(choices=Invoice.INVOICE_TYPES, default="B2C")
    document_subtype = serializers.ChoiceField(
        choices=("standard", "avoir", "proforma"), default="standard"
    )
    customer = OrgScopedPrimaryKeyRelatedField(
        queryset=Customer.objects.all(), required=False, allow_null=True
    )
    customer_data = CustomerDataSerializer(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    commercial_message = serializers.CharField(max_length=240, required=False, allow_blank=True, default="")
    sale = OrgScopedPrimaryKeyRelatedField(queryset=Sale.objects.all(), required=False, allow_null=True)

    def validate_due_date(self, value):
        if value and value < timezone.localdate():
            raise serializers.ValidationError("La date d'échéance ne peut pas être dans le passé")
        return value

    def validate(self, attrs):
        customer = attrs.get("customer")
        data = dict(attrs.get("customer_data") or {})
        if customer is not None:
            # les champs saisis priment sur la fiche client
            data = {
                "name": data.get("name") or customer.full_name,
                "ncc": data.get("ncc") or customer.ncc,
                "phone": data.get("phone") or customer.phone,
                "email": data.get("email") or customer.email,
                "address": data.get("address") or customer.address,
            }
        attrs["customer_data"] = data

        errors = {}
        if attrs.get("invoice_type") == "B2B":
            ncc = data.get("ncc", "")
            if not ncc:
                errors["customer_data.ncc"] = "NCC requis pour facturation B2B"
            elif not is_valid_ncc(ncc):
                errors["customer_data.ncc"] = "Format NCC invalide. Format attendu : CI-XXX-YYYY-X-NNNNN"
        else:
            if not (data.get("name") or "").strip():
                errors["customer_data.name"] = "Nom du client requis"
            phone = (data.get("phone") or "").strip()
            if not phone:
                errors["customer_data.phone"] = "Téléphone du client requis"
            elif not is_valid_phone(phone):
                errors["customer_data.phone"] = "Format de téléphone invalide"
            email = (data.get("email") or "").strip()
            if not email:
                errors["customer_data.email"] = "Email du client requis"
            elif not is_valid_email(email):
                errors["customer_data.email"] = "Format d'email invalide"
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class TvaSummarySerializer(serializers.Serializer):
    rate = serializers.DecimalField(**PERCENT)
    base = serializers.DecimalField(**MONEY)
    amount = serializers.DecimalField(**MONEY)


class InvoiceLineTotalsSerializer(serializers.Serializer):
    variant_ref = serializers.CharField()
    product_name = serializers.CharField()
    variant_name = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=16, decimal_places=3)
    unit_price_ht = serializers.DecimalField(**MONEY)
    discount_percent = serializers.DecimalField(**PERCENT)
    tva_rate = serializers.DecimalField(**PERCENT)
    total_ht = serializers.DecimalField(**MONEY)
    tva_amount = serializers.DecimalField(**MONEY)
    total_ttc = serializers.DecimalField(**MONEY)


class InvoiceTotalsSerializer(serializers.Serializer):
    subtotal_ht = serializers.DecimalField(**MONEY)
    total_discounts = serializers.DecimalField(**MONEY)
    total_ht_after_discount = serializers.DecimalField(**MONEY)
    tva_summary = TvaSummarySerializer(many=True)
    total_tva = serializers.DecimalField(**MONEY)
    additional_taxes = AdditionalTaxInputSerializer(many=True)
    total_additional_taxes = serializers.DecimalField(**MONEY)
    total_ttc = serializers.DecimalField(**MONEY)
    items = InvoiceLineTotalsSerializer(many=True)


class InvoiceLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceLine
        fields = [
            "line_number",
            "variant_ref",
            "product_name",
            "variant_name",
            "quantity",
            "unit_price_ht",
            "discount_percent",
            "tva_rate",
            "total_ht",
            "tva_amount",
            "total_ttc",
        ]


class InvoiceTaxLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceTaxLine
        fields = ["rate", "base", "amount"]


class InvoiceAdditionalTaxSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceAdditionalTax
        fields = ["name", "amount"]


class InvoiceSerializer(serializers.ModelSerializer):
    issuer = serializers.SerializerMethodField()
    customer_detail = CustomerSerializer(source="customer", read_only=True)
    lines = InvoiceLineSerializer(many=True, read_only=True)
    tva_summary = InvoiceTaxLineSerializer(source="tva_lines", many=True, read_only=True)
    additional_taxes = InvoiceAdditionalTaxSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "number",
            "document_type",
            "invoice_type",
            "document_subtype",
            "date_issue",
            "due_date",
            "issuer",
            "customer",
            "customer_detail",
            "sale",
            "payment_method",
            "currency",
            "commercial_message",
            "global_discount_percent",
            "subtotal_ht",
            "total_discounts",
            "total_ht_after_discount",
            "tva_summary",
            "total_tva",
            "additional_taxes",
            "total_additional_taxes",
            "total_ttc",
            "lines",
        ]
        read_only_fields = fields

    def get_issuer(self, obj):
        # mentions de l'émetteur imprimées en tête de facture
        org = obj.org
        return {"name": org.name, "ncc": org.ncc, "address": org.address, "phone": org.phone}
