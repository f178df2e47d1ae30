from django.urls import path, include
from django.http import JsonResponse
from rest_framework.routers import DefaultRouter

from .views import (
    CartTotalsView,
    CustomerViewSet,
    InvoiceViewSet,
    PromoCodeViewSet,
    SaleViewSet,
)

router = DefaultRouter()
router.register(r"customers", CustomerViewSet, basename="sales-customer")
router.register(r"promo-codes", PromoCodeViewSet, basename="sales-promo")
router.register(r"sales", SaleViewSet, basename="sales-sale")
router.register(r"invoices", InvoiceViewSet, basename="sales-inv")


def health(request, org_slug):
    org = getattr(request, "org", None)
    return JsonResponse({"app": "sales", "status": "ok", "tenant": org.slug if org else None})

urlpatterns = [
    path("health/", health, name="sales-health"),
    path("cart/totals/", CartTotalsView.as_view(), name="sales-cart-totals"),
    path("", include(router.urls)),
]
