# sales/filters.py
import django_filters
from django.db.models import F, Q

from sales.models import Invoice, Sale


class InvoiceFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="date_issue", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="date_issue", lookup_expr="lte")
    customer_name = django_filters.CharFilter(method="by_customer_name")
    number = django_filters.CharFilter(field_name="number", lookup_expr="icontains")
    document_type = django_filters.CharFilter(field_name="document_type")
    invoice_type = django_filters.CharFilter(field_name="invoice_type")
    document_subtype = django_filters.CharFilter(field_name="document_subtype")
    min_amount = django_filters.NumberFilter(field_name="total_ttc", lookup_expr="gte")
    max_amount = django_filters.NumberFilter(field_name="total_ttc", lookup_expr="lte")

    class Meta:
        model = Invoice
        fields = ("document_type", "invoice_type", "document_subtype")

    def by_customer_name(self, qs, name, value):
        v = (value or "").strip()
        if not v:
            return qs
        return qs.filter(
            Q(customer__first_name__icontains=v) |
            Q(customer__last_name__icontains=v)
        )


class SaleFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    customer = django_filters.NumberFilter(field_name="customer_id")
    payment_method = django_filters.CharFilter(field_name="payment_method")
    # ventes à crédit avec un reste à payer
    open_credit = django_filters.BooleanFilter(method="by_open_credit")

    class Meta:
        model = Sale
        fields = ("payment_method", "is_credit")

    def by_open_credit(self, qs, name, value):
        if value is None:
            return qs
        open_q = Q(is_credit=True) & Q(total_paid__lt=F("total"))
        return qs.filter(open_q) if value else qs.exclude(open_q)
