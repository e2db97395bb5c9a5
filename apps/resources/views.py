"""API views for bookable resources."""

from __future__ import annotations

from uuid import UUID

import django_filters  # type: ignore
from asgiref.sync import async_to_sync  # type: ignore
from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings import services
from apps.bookings.serializers import AvailabilityQuerySerializer, QuoteSerializer

from .models import Resource
from .serializers import ResourceSerializer


class IsOwnerOrStaff(permissions.BasePermission):
    """Only the vendor who owns the resource (or staff) may change it."""

    def has_object_permission(self, request, view, obj: Resource):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.owner_id == user.id


class ResourceFilterSet(django_filters.FilterSet):
    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    kind = django_filters.ChoiceFilter(choices=Resource.Kind.choices)
    owner = django_filters.NumberFilter(field_name="owner_id")

    class Meta:
        model = Resource
        fields = ["kind", "city", "is_active", "owner"]


class ResourceViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Resources are never deleted while bookings refer to them; owners deactivate instead."""

    queryset = Resource.objects.select_related("owner").all()
    serializer_class = ResourceSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsOwnerOrStaff]
    filterset_class = ResourceFilterSet
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        if user.is_authenticated:
            return qs.filter(Q(is_active=True) | Q(owner=user))
        return qs.filter(is_active=True)

    def perform_create(self, serializer):  # type: ignore
        serializer.save(owner=self.request.user)

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):  # type: ignore
        resource: Resource = self.get_object()  # type: ignore
        resource.deactivate()
        return Response(self.get_serializer(resource).data)

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def availability(self, request, pk=None):  # type: ignore
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        handler = services.availability_handler()
        result = async_to_sync(handler.handle)(serializer.to_query(UUID(pk)))
        return Response(result.to_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], permission_classes=[permissions.AllowAny])
    def quote(self, request, pk=None):  # type: ignore
        serializer = QuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = services.quote_handler()
        plan = async_to_sync(handler.handle)(serializer.to_query(UUID(pk)))
        return Response(plan.to_dict(), status=status.HTTP_200_OK)
