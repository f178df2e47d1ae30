# sales/views.py
from rest_framework import filters as drf_filters, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend

from core.mixins import OrgContextMixin, OrgScopedModelViewSet
from core.models import StoreSettings
from core.permissions import CanManageSettings, IsOrgMember
from .filters import InvoiceFilter, SaleFilter
from .models import Customer, Invoice, PromoCode, Sale
from .pricing import PricingInputError, is_valid_tva_rate, percent
from .serializers import (
    CartRequestSerializer,
    CartTotalsSerializer,
    CheckoutSerializer,
    CustomerSerializer,
    InstallmentSerializer,
    InvoiceCreateSerializer,
    InvoiceItemInputSerializer,
    InvoicePreviewSerializer,
    InvoiceSerializer,
    InvoiceTotalsSerializer,
    PromoCheckSerializer,
    PromoCodeSerializer,
    SaleReturnRequestSerializer,
    SaleSerializer,
)
from .services_common import pricing_errors
from .services_invoice import create_invoice, invoice_draft_from_sale, preview_invoice
from .services_numbering import peek_invoice_number
from .services_payment import register_installment
from .services_return import register_return
from .services_sale import check_promo_code, checkout, compute_cart


class CartTotalsView(OrgContextMixin, APIView):
    """
    Totaux du panier en cours, recalculés à chaque modification côté caisse.
    POST /api/v1/t/<org_slug>/sales/cart/totals/
    """

    def post(self, request, *args, **kwargs):
        s = CartRequestSerializer(data=request.data, context={"org": self.org, "request": request})
        s.is_valid(raise_exception=True)
        totals, promo_applied = compute_cart(self.org, s.validated_data)
        data = dict(CartTotalsSerializer(totals.as_dict()).data)
        data["promo_applied"] = promo_applied
        return Response(data, status=status.HTTP_200_OK)


class CustomerViewSet(OrgScopedModelViewSet):
    serializer_class = CustomerSerializer
    queryset = Customer.objects.all()
    filter_backends = (drf_filters.SearchFilter, drf_filters.OrderingFilter)
    search_fields = ("first_name", "last_name", "phone", "email", "ncc")
    ordering_fields = ("last_name", "first_name", "created_at")


class PromoCodeViewSet(OrgScopedModelViewSet):
    serializer_class = PromoCodeSerializer
    queryset = PromoCode.objects.all()
    permission_classes = [CanManageSettings]

    def get_permissions(self):
        # la vérification d'un code reste ouverte aux caissiers
        if self.action == "check":
            return [IsOrgMember()]
        return super().get_permissions()

    @action(detail=False, methods=["post"])
    def check(self, request, *args, **kwargs):
        s = PromoCheckSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        code = s.validated_data["code"].strip().upper()
        return Response({"code": code, "applied": check_promo_code(self.org, code)})


class SaleViewSet(OrgScopedModelViewSet):
    serializer_class = SaleSerializer
    queryset = Sale.objects.select_related("customer").prefetch_related("lines", "installments", "returns__lines")
    http_method_names = ["get", "post", "head", "options"]
    filter_backends = (DjangoFilterBackend, drf_filters.OrderingFilter)
    filterset_class = SaleFilter
    ordering_fields = ("created_at", "total")

    def create(self, request, *args, **kwargs):
        s = CheckoutSerializer(data=request.data, context=self.get_serializer_context())
        s.is_valid(raise_exception=True)
        sale = checkout(self.org, request.user, s.validated_data)
        return Response(SaleSerializer(self.get_queryset().get(pk=sale.pk)).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def installments(self, request, pk=None, *args, **kwargs):
        sale = self.get_object()
        s = InstallmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        register_installment(
            sale,
            amount=s.validated_data["amount"],
            date=s.validated_data.get("date"),
            method=s.validated_data.get("method", "cash"),
            notes=s.validated_data.get("notes", ""),
            user=request.user,
        )
        return Response(SaleSerializer(self.get_queryset().get(pk=sale.pk)).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def returns(self, request, pk=None, *args, **kwargs):
        """Retour d'articles : avoir client (store_credit) ou crédit pour un échange (exchange)."""
        sale = self.get_object()
        s = SaleReturnRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        register_return(sale, lines=s.validated_data["lines"], mode=s.validated_data["mode"], user=request.user)
        return Response(SaleSerializer(self.get_queryset().get(pk=sale.pk)).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="invoice-draft")
    def invoice_draft(self, request, pk=None, *args, **kwargs):
        sale = self.get_object()
        rate = request.query_params.get("tva_rate")
        if rate not in (None, ""):
            with pricing_errors():
                rate = percent(rate, "tva_rate")
                if not is_valid_tva_rate(rate, StoreSettings.for_org(self.org).allowed_tva_rates):
                    raise PricingInputError("tva_rate", "Taux de TVA non autorisé.")
        else:
            rate = None

        draft = invoice_draft_from_sale(sale, tva_rate=rate)
        draft["sale"] = str(draft["sale"])
        draft["items"] = InvoiceItemInputSerializer(draft["items"], many=True).data
        draft["global_discount_percent"] = str(draft["global_discount_percent"])
        return Response(draft, status=status.HTTP_200_OK)


class InvoiceViewSet(OrgScopedModelViewSet):
    serializer_class = InvoiceSerializer
    queryset = (
        Invoice.objects.select_related("customer", "org")
        .prefetch_related("lines", "tva_lines", "additional_taxes")
    )
    http_method_names = ["get", "post", "head", "options"]
    filter_backends = (DjangoFilterBackend, drf_filters.OrderingFilter)
    filterset_class = InvoiceFilter
    ordering_fields = ("date_issue", "number", "total_ttc")

    def create(self, request, *args, **kwargs):
        s = InvoiceCreateSerializer(data=request.data, context=self.get_serializer_context())
        s.is_valid(raise_exception=True)
        inv = create_invoice(self.org, request.user, s.validated_data)
        return Response(InvoiceSerializer(self.get_queryset().get(pk=inv.pk)).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def preview(self, request, *args, **kwargs):
        s = InvoicePreviewSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        totals = preview_invoice(self.org, s.validated_data)
        return Response(InvoiceTotalsSerializer(totals.as_dict()).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="next-number")
    def next_number(self, request, *args, **kwargs):
        subtype = request.query_params.get("document_subtype") or "standard"
        if subtype not in ("standard", "avoir", "proforma"):
            return Response({"document_subtype": ["Sous-type inconnu"]}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"document_subtype": subtype, "number": peek_invoice_number(self.org, subtype)})
