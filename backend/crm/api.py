import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from accounts.permissions import IsAdmin
from bookings.models import Booking
from core.exceptions import error_response
from properties.models import Property

from .clients import get_crm_client
from .models import CRMSyncLog
from .serializers import CRMBulkSyncSerializer, CRMSyncLogSerializer
from .sync import sync_booking, sync_property, sync_user_contact

logger = logging.getLogger(__name__)

SYNC_TARGETS = {
    "users": (User, sync_user_contact),
    "properties": (Property, sync_property),
    "bookings": (Booking, sync_booking),
}


class CRMSyncView(APIView):
    """Admin bulk push of users, properties or bookings to the CRM."""

    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        logs = CRMSyncLog.objects.all()[:50]
        return Response(
            {
                "enabled": bool(settings.CRM_ENABLED),
                "provider": settings.CRM_PROVIDER,
                "logs": CRMSyncLogSerializer(logs, many=True).data,
            }
        )

    def post(self, request, *args, **kwargs):
        if not settings.CRM_ENABLED:
            return error_response("CRM integration is disabled", "CRM_DISABLED")

        serializer = CRMBulkSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entity = serializer.validated_data["entity"]
        model, sync = SYNC_TARGETS[entity]

        queryset = model.objects.all().order_by("pk")
        ids = serializer.validated_data.get("ids")
        if ids:
            queryset = queryset.filter(pk__in=ids)

        client = get_crm_client()
        synced, failed = [], []
        for instance in queryset:
            if sync(instance, client=client):
                synced.append(instance.pk)
            else:
                failed.append(instance.pk)

        logger.info("CRM bulk sync of %s by %s: %s synced, %s failed", entity, request.user.email, len(synced), len(failed))
        return Response(
            {"success": not failed, "entity": entity, "synced": synced, "failed": failed},
            status=status.HTTP_200_OK,
        )
