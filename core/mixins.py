# core/mixins.py
from rest_framework import viewsets
from rest_framework.exceptions import NotFound
from django.utils.functional import cached_property
from core.models import Organization
from core.permissions import IsOrgMember


def resolve_org(request, kwargs):
    # 1) middleware
    o = getattr(request, "org", None)
    if o:
        return o
    # 2) repli sur le slug de l'URL
    slug = kwargs.get("org_slug")
    if slug:
        try:
            return Organization.objects.get(slug=slug)
        except Organization.DoesNotExist:
            pass
    raise NotFound("Organisation introuvable")


class OrgContextMixin:
    """Pour les APIView : expose self.org."""
    permission_classes = [IsOrgMember]

    @cached_property
    def org(self):
        return resolve_org(self.request, self.kwargs)


class OrgScopedModelViewSet(OrgContextMixin, viewsets.ModelViewSet):
    """
    - Filtre le queryset par organisation.
    - Injecte self.org et le passe à perform_create(..., org=self.org).
    - Ajoute 'org' au serializer_context.
    """
    org_lookup = "org"
    queryset = None  # obligatoire dans les sous-classes

    def get_queryset(self):
        assert self.queryset is not None, f"{self.__class__.__name__} doit définir 'queryset'"
        return self.queryset.filter(**{self.org_lookup: self.org})

    def get_serializer_context(self):
        ctx = super().get_serializer_context()
        ctx["org"] = self.org
        return ctx

    def perform_create(self, serializer):
        serializer.save(org=self.org)

    # empêche un update de changer d'organisation
    def perform_update(self, serializer):
        serializer.save(org=self.org)
