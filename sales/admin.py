from django.contrib import admin
from .models import (
    Customer, Installment, Invoice, InvoiceLine, InvoiceSequence, PromoCode, Sale, SaleLine, SaleReturn, SaleReturnLine,
)


class SaleLineInline(admin.TabularInline):
    model = SaleLine
    extra = 0


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id","org","first_name","last_name","phone","loyalty_points","store_credit")
    list_filter = ("org",)
    search_fields = ("first_name","last_name","phone","email","ncc")

@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = ("code","org","type","value","is_active","expires_at")
    list_filter = ("org","type","is_active")
    search_fields = ("code",)

@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("id","org","created_at","customer","payment_method","total","total_paid")
    list_filter = ("org","payment_method","is_credit")
    inlines = [SaleLineInline]

@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ("id","org","sale","amount","date","method")
    list_filter = ("org","method")

@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("number","org","date_issue","invoice_type","document_subtype","customer","total_ttc")
    list_filter = ("org","invoice_type","document_type","document_subtype")
    search_fields = ("number","customer__first_name","customer__last_name")
    inlines = [InvoiceLineInline]

@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    list_display = ("org","year","document_subtype","last_number")

class SaleReturnLineInline(admin.TabularInline):
    model = SaleReturnLine
    extra = 0

@admin.register(SaleReturn)
class SaleReturnAdmin(admin.ModelAdmin):
    list_display = ("id","org","sale","mode","amount","consumed_by","created_at")
    list_filter = ("org","mode")
    inlines = [SaleReturnLineInline]
