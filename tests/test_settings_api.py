from decimal import Decimal

import pytest

from core.middleware import resolve_org_from_path
from core.models import Membership, StoreSettings

pytestmark = pytest.mark.django_db


def test_resolve_org_from_path():
    assert resolve_org_from_path("/api/v1/t/plateau/sales/cart/totals/") == "plateau"
    assert resolve_org_from_path("/api/v1/auth/token") is None
    assert resolve_org_from_path("/api/v1/t/") is None


def test_defaults_come_from_settings(auth_client, base, org):
    res = auth_client.get(f"{base}/core/settings/")
    assert res.status_code == 200
    assert res.data["currency"] == "XOF"
    assert res.data["tax_rate"] == "18.00"
    assert res.data["allowed_tva_rates"] == ["0", "9", "18"]
    assert res.data["stamp_duty_name"] == "Timbre de quittance"
    assert res.data["stamp_duty_amount"] == "100.00"
    assert res.data["loyalty_enabled"] is False
    assert StoreSettings.objects.filter(organization=org).count() == 1


def test_owner_updates_settings(auth_client, base, org):
    res = auth_client.put(
        f"{base}/core/settings/",
        {"tax_rate": "9", "loyalty_enabled": True, "loyalty_point_value": "5", "allowed_tva_rates": [0, 18]},
        format="json",
    )
    assert res.status_code == 200, res.data
    store = StoreSettings.for_org(org)
    assert store.tax_rate == Decimal("9")
    assert store.loyalty_enabled is True
    assert store.allowed_tva_rates == [0, 18]


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"allowed_tva_rates": []}, "allowed_tva_rates"),
        ({"allowed_tva_rates": [18, 120]}, "allowed_tva_rates"),
        ({"tax_rate": "101"}, "tax_rate"),
        ({"stamp_duty_amount": "-1"}, "stamp_duty_amount"),
        ({"loyalty_point_value": "-1"}, "loyalty_point_value"),
    ],
)
def test_invalid_settings(auth_client, base, payload, field):
    res = auth_client.put(f"{base}/core/settings/", payload, format="json")
    assert res.status_code == 400
    assert field in res.data


def test_cashier_reads_but_cannot_write(api_client, base, org, django_user_model):
    cashier = django_user_model.objects.create_user(username="caisse2", password="testpass123")
    Membership.objects.create(organization=org, user=cashier, role="cashier")
    api_client.force_authenticate(user=cashier)
    assert api_client.get(f"{base}/core/settings/").status_code == 200
    assert api_client.put(f"{base}/core/settings/", {"tax_rate": "9"}, format="json").status_code == 403


def test_anonymous_is_rejected(api_client, base):
    assert api_client.get(f"{base}/core/settings/").status_code == 401


def test_unknown_tenant(auth_client):
    assert auth_client.get("/api/v1/t/inconnu/core/settings/").status_code in (403, 404)


def test_jwt_login(api_client, user, member, base):
    res = api_client.post("/api/v1/auth/token", {"username": "caissier", "password": "testpass123"}, format="json")
    assert res.status_code == 200
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
    assert api_client.get(f"{base}/core/settings/").status_code == 200


def test_promo_codes_crud(auth_client, base):
    res = auth_client.post(
        f"{base}/sales/promo-codes/", {"code": "soldes", "type": "percentage", "value": "10"}, format="json"
    )
    assert res.status_code == 201, res.data
    assert res.data["code"] == "SOLDES"
    dup = auth_client.post(
        f"{base}/sales/promo-codes/", {"code": "SOLDES", "type": "fixed", "value": "500"}, format="json"
    )
    assert dup.status_code == 400
    too_big = auth_client.post(
        f"{base}/sales/promo-codes/", {"code": "X", "type": "percentage", "value": "150"}, format="json"
    )
    assert too_big.status_code == 400


def test_customer_search(auth_client, base):
    auth_client.post(f"{base}/sales/customers/", {"first_name": "Awa", "last_name": "Koné", "phone": "0701020304"}, format="json")
    auth_client.post(f"{base}/sales/customers/", {"first_name": "Yao", "last_name": "Kouassi"}, format="json")
    res = auth_client.get(f"{base}/sales/customers/", {"search": "kou"})
    assert res.status_code == 200
    assert [c["first_name"] for c in res.data["results"]] == ["Yao"]
    bad = auth_client.post(f"{base}/sales/customers/", {"first_name": "Z", "ncc": "CI-1"}, format="json")
    assert bad.status_code == 400
    assert "ncc" in bad.data


def test_tenant_middleware_sets_org(client, org):
    res = client.get(f"/api/v1/t/{org.slug}/core/health/")
    assert res.json() == {"app": "core", "status": "ok", "tenant": "plateau"}
    res = client.get("/api/v1/t/inconnu/core/health/")
    assert res.json()["tenant"] is None
