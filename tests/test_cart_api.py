from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from sales.models import Customer, PromoCode

pytestmark = pytest.mark.django_db


def cart(**extra):
    payload = {"items": [{"variant_ref": "ROBE-M", "unit_price": "5000", "quantity": 2}]}
    payload.update(extra)
    return payload


def test_cart_totals(auth_client, base):
    res = auth_client.post(f"{base}/sales/cart/totals/", cart(manual_discount_percent="10"), format="json")
    assert res.status_code == 200
    assert res.data["subtotal"] == "10000.00"
    assert res.data["manual_discount"] == "1000.00"
    assert res.data["tax"] == "1620.00"
    assert res.data["total"] == "10620.00"
    assert res.data["points_to_earn"] == 0
    assert res.data["promo_applied"] is None


def test_promo_code_from_registry(auth_client, base, org):
    PromoCode.objects.create(org=org, code="soldes", type="percentage", value=Decimal("10"))
    res = auth_client.post(
        f"{base}/sales/cart/totals/",
        cart(manual_discount_percent="10", promo_code="Soldes"),
        format="json",
    )
    assert res.status_code == 200
    assert res.data["promo_applied"] is True
    assert res.data["promo_code"] == "SOLDES"
    assert res.data["promo_discount"] == "900.00"


def test_expired_or_unknown_promo_is_not_applied(auth_client, base, org):
    PromoCode.objects.create(
        org=org,
        code="NOEL",
        type="fixed",
        value=Decimal("500"),
        expires_at=timezone.now() - timedelta(days=1),
    )
    for code in ("NOEL", "INCONNU"):
        res = auth_client.post(f"{base}/sales/cart/totals/", cart(promo_code=code), format="json")
        assert res.status_code == 200
        assert res.data["promo_applied"] is False
        assert res.data["promo_discount"] == "0.00"
        assert res.data["total"] == "11800.00"


def test_promo_of_other_tenant_is_ignored(auth_client, base, other_org):
    PromoCode.objects.create(org=other_org, code="COCODY", type="fixed", value=Decimal("500"))
    res = auth_client.post(f"{base}/sales/cart/totals/", cart(promo_code="COCODY"), format="json")
    assert res.data["promo_applied"] is False


def test_loyalty_and_store_credit(auth_client, base, org, store):
    customer = Customer.objects.create(
        org=org, first_name="Awa", last_name="Koné", loyalty_points=100, store_credit=Decimal("2000")
    )
    res = auth_client.post(
        f"{base}/sales/cart/totals/",
        cart(customer=customer.id, loyalty_points_to_apply=50, use_store_credit=True),
        format="json",
    )
    assert res.status_code == 200
    assert res.data["loyalty_discount"] == "500.00"
    assert res.data["tax"] == "1710.00"
    assert res.data["store_credit_applied"] == "2000.00"
    assert res.data["total"] == "9210.00"
    assert res.data["points_to_earn"] == 95


def test_credit_mode_earns_no_points(auth_client, base, org, store):
    customer = Customer.objects.create(org=org, first_name="Awa")
    res = auth_client.post(
        f"{base}/sales/cart/totals/",
        cart(customer=customer.id, payment_method="credit"),
        format="json",
    )
    assert res.data["points_to_earn"] == 0
    assert res.data["total"] == "11800.00"


def test_points_above_balance_rejected(auth_client, base, org, store):
    customer = Customer.objects.create(org=org, first_name="Awa", loyalty_points=10)
    res = auth_client.post(
        f"{base}/sales/cart/totals/",
        cart(customer=customer.id, loyalty_points_to_apply=50),
        format="json",
    )
    assert res.status_code == 400
    assert "loyalty_points_to_apply" in res.data


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"items": [{"variant_ref": "A", "unit_price": "100", "quantity": -1}]}, "items[0].quantity"),
        ({"items": [{"variant_ref": "A", "unit_price": "-100", "quantity": 1}]}, "items[0].unit_price"),
        (cart(manual_discount_percent="150"), "manual_discount_percent"),
    ],
)
def test_invalid_input_is_a_field_error(auth_client, base, payload, field):
    res = auth_client.post(f"{base}/sales/cart/totals/", payload, format="json")
    assert res.status_code == 400
    assert field in res.data


def test_customer_of_other_tenant_rejected(auth_client, base, other_org):
    stranger = Customer.objects.create(org=other_org, first_name="Yao")
    res = auth_client.post(f"{base}/sales/cart/totals/", cart(customer=stranger.id), format="json")
    assert res.status_code == 400
    assert "customer" in res.data


def test_tax_rate_change_applies_to_next_computation(auth_client, base):
    auth_client.put(f"{base}/core/settings/", {"tax_rate": "9"}, format="json")
    res = auth_client.post(f"{base}/sales/cart/totals/", cart(), format="json")
    assert res.data["tax"] == "900.00"


def test_non_member_forbidden(api_client, base, other_org, django_user_model):
    from core.models import Membership

    outsider = django_user_model.objects.create_user(username="autre", password="testpass123")
    Membership.objects.create(organization=other_org, user=outsider, role="owner")
    api_client.force_authenticate(user=outsider)
    res = api_client.post(f"{base}/sales/cart/totals/", cart(), format="json")
    assert res.status_code == 403


def test_promo_check_endpoint(auth_client, base, org):
    PromoCode.objects.create(org=org, code="SOLDES", type="percentage", value=Decimal("10"))
    res = auth_client.post(f"{base}/sales/promo-codes/check/", {"code": "soldes"}, format="json")
    assert res.status_code == 200
    assert res.data == {"code": "SOLDES", "applied": True}
    res = auth_client.post(f"{base}/sales/promo-codes/check/", {"code": "x"}, format="json")
    assert res.data["applied"] is False
