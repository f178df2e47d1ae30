from django.urls import path
from django.http import JsonResponse
from core.views import StoreSettingsView


def health(request, org_slug):
    org = getattr(request, "org", None)
    return JsonResponse({"app": "core", "status": "ok", "tenant": org.slug if org else None})


urlpatterns = [
    path("health/", health, name="core-health"),
    path("settings/", StoreSettingsView.as_view(), name="core-store-settings"),
]
