import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from core.mixins import OrgContextMixin
from core.models import StoreSettings
from core.permissions import CanManageSettings
from core.serializers import StoreSettingsSerializer

logger = logging.getLogger(__name__)


class StoreSettingsView(OrgContextMixin, APIView):
    permission_classes = [CanManageSettings]

    def get(self, request, org_slug: str):
        settings_obj = StoreSettings.for_org(self.org)
        return Response(StoreSettingsSerializer(settings_obj).data)

    def put(self, request, org_slug: str):
        settings_obj = StoreSettings.for_org(self.org)
        serializer = StoreSettingsSerializer(settings_obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"[Settings] Paramètres caisse mis à jour: org={self.org.slug} par user={request.user.pk}")
        return Response(serializer.data)
