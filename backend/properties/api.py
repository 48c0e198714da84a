import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdmin, IsOwnerOrAdmin, can_manage_property
from .filters import PropertyFilterSet
from .models import Property
from .serializers import PropertyRejectSerializer, PropertySerializer, PublicPropertySerializer

logger = logging.getLogger(__name__)


class PropertyViewSet(viewsets.ModelViewSet):
    """
    Public listing plus owner/admin management of properties.

    Anonymous visitors only ever see approved, published listings. Owners also
    see (and may edit) their own listings whatever their approval state.
    """

    serializer_class = PropertySerializer
    filterset_class = PropertyFilterSet
    search_fields = ["title", "location", "region", "description"]
    ordering_fields = ["price_midweek", "price_weekend", "sleeps_max", "created_at"]

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsOwnerOrAdmin()]

    def get_queryset(self):
        queryset = Property.objects.select_related("owner")
        public = Q(status=Property.APPROVED, is_published=True)
        if self.action == "list":
            return queryset.filter(public)

        user = self.request.user
        if user.is_authenticated and user.is_admin:
            return queryset
        if user.is_authenticated:
            return queryset.filter(public | Q(owner=user))
        return queryset.filter(public)

    def get_serializer_class(self):
        if self.action == "list":
            return PublicPropertySerializer
        if self.action == "retrieve":
            instance = getattr(self, "_retrieved", None)
            if instance is None or not can_manage_property(self.request.user, instance):
                return PublicPropertySerializer
        return super().get_serializer_class()

    def retrieve(self, request, *args, **kwargs):
        self._retrieved = self.get_object()
        serializer = self.get_serializer(self._retrieved)
        return Response(serializer.data)

    def perform_create(self, serializer):
        user = self.request.user
        if user.is_admin:
            instance = serializer.save(owner=user)
            instance.approve(user)
            logger.info("Property %s created and approved by admin %s", instance.pk, user.email)
            return
        instance = serializer.save(owner=user, status=Property.PENDING, is_published=False)
        logger.info("Property %s submitted for approval by %s", instance.pk, user.email)

    def perform_update(self, serializer):
        instance = serializer.instance
        user = self.request.user
        if not can_manage_property(user, instance):
            raise PermissionDenied("You can only edit your own properties.")
        if not user.is_admin and instance.status != Property.APPROVED:
            serializer.save(is_published=False)
            return
        serializer.save()

    def perform_destroy(self, instance):
        if not can_manage_property(self.request.user, instance):
            raise PermissionDenied("You can only delete your own properties.")
        logger.info("Property %s deleted by %s", instance.pk, self.request.user.email)
        instance.delete()

    @action(detail=False, methods=["get"], url_path="mine")
    def mine(self, request):
        queryset = Property.objects.select_related("owner").order_by("title")
        if not request.user.is_admin:
            queryset = queryset.filter(owner=request.user)
        queryset = self.filter_queryset(queryset)
        serializer = PropertySerializer(queryset, many=True)
        return Response(serializer.data)


class PendingPropertyListView(generics.ListAPIView):
    serializer_class = PropertySerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filter_backends: list = []

    def get_queryset(self):
        return Property.objects.filter(status=Property.PENDING).select_related("owner").order_by("created_at")


class AdminPropertyBaseView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    property: Property | None = None

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.property = get_object_or_404(Property, pk=kwargs.get("property_id"))

    def _respond(self, message: str):
        data = PropertySerializer(self.property).data
        return Response({"success": True, "message": message, "property": data}, status=status.HTTP_200_OK)


class PropertyApproveView(AdminPropertyBaseView):
    def post(self, request, property_id, *args, **kwargs):
        if self.property.status == Property.APPROVED:
            return self._respond("Property is already approved")
        self.property.approve(request.user)
        logger.info("Property %s approved by %s", self.property.pk, request.user.email)
        return self._respond("Property approved")


class PropertyRejectView(AdminPropertyBaseView):
    def post(self, request, property_id, *args, **kwargs):
        serializer = PropertyRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.property.reject(serializer.validated_data["reason"])
        logger.info("Property %s rejected by %s", self.property.pk, request.user.email)
        return self._respond("Property rejected")


class PropertyUnpublishView(AdminPropertyBaseView):
    def post(self, request, property_id, *args, **kwargs):
        self.property.unpublish()
        logger.info("Property %s unpublished by %s", self.property.pk, request.user.email)
        return self._respond("Property unpublished")
