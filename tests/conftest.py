"""
Fixtures communes : un tenant, un membre authentifié et son client API.
"""
from decimal import Decimal

import pytest

from core.models import Membership, Organization, StoreSettings


@pytest.fixture
def api_client():
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def org(db):
    return Organization.objects.create(name="Boutique Plateau", slug="plateau")


@pytest.fixture
def other_org(db):
    return Organization.objects.create(name="Boutique Cocody", slug="cocody")


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="caissier", password="testpass123")


@pytest.fixture
def member(org, user):
    return Membership.objects.create(organization=org, user=user, role="owner")


@pytest.fixture
def auth_client(api_client, user, member):
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def base(org):
    return f"/api/v1/t/{org.slug}"


@pytest.fixture
def store(org):
    """Boutique avec programme fidélité : 1 point pour 100 XOF, 1 point = 10 XOF."""
    s = StoreSettings.for_org(org)
    s.loyalty_enabled = True
    s.loyalty_points_per_unit = Decimal("0.01")
    s.loyalty_point_value = Decimal("10")
    s.save()
    return s
