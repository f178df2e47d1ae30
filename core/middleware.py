import logging
from typing import Optional

from django.db import connection
from django.http import HttpRequest
from django.utils.deprecation import MiddlewareMixin

from core.models import Organization

logger = logging.getLogger(__name__)

TENANT_SEGMENT = "t"
PG_SETTING = "app.current_org"  # nom attendu par les policies RLS


def resolve_org_from_path(path: str) -> Optional[str]:
    """/api/v1/t/<org_slug>/... -> org_slug, sinon None."""
    parts = [p for p in path.split("/") if p]
    if TENANT_SEGMENT not in parts:
        return None
    idx = parts.index(TENANT_SEGMENT)
    return parts[idx + 1] if idx + 1 < len(parts) else None


class TenantMiddleware(MiddlewareMixin):
    """
    Pose request.org pour les routes tenant. Un slug inconnu laisse request.org à None ;
    les permissions (IsOrgMember) refusent alors l'accès.
    """

    def process_request(self, request: HttpRequest):
        org_slug = resolve_org_from_path(request.path)
        request.org = None
        if not org_slug:
            return
        try:
            request.org = Organization.objects.get(slug=org_slug)
        except Organization.DoesNotExist:
            logger.warning(f"[Tenant] Organisation inconnue: {org_slug}")
            return
        if connection.vendor == "postgresql":
            with connection.cursor() as c:
                c.execute(f"SET LOCAL {PG_SETTING} = %s", [str(request.org.pk)])
