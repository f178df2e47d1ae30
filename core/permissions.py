# core/permissions.py
from rest_framework.permissions import BasePermission, SAFE_METHODS
from core.models import Membership

ALLOWED_SETTINGS_ROLES = {"owner", "admin", "manager"}


def _org_and_user(request):
    org = getattr(request, "org", None)
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated or not org:
        return None, None
    return org, user


class IsOrgMember(BasePermission):
    """
    Tout membre authentifié de l'organisation (request.org posé par TenantMiddleware).
    """
    def has_permission(self, request, view):
        org, user = _org_and_user(request)
        if org is None:
            return False
        return Membership.objects.filter(organization=org, user=user).exists()


class CanManageSettings(BasePermission):
    """
    Lecture : tout membre. Écriture : owner/admin/manager.
    """
    def has_permission(self, request, view):
        org, user = _org_and_user(request)
        if org is None:
            return False

        if request.method in SAFE_METHODS:
            return Membership.objects.filter(organization=org, user=user).exists()

        return Membership.objects.filter(
            organization=org,
            user=user,
            role__in=ALLOWED_SETTINGS_ROLES,
        ).exists()
