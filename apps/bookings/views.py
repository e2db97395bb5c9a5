"""API views for the booking domain."""

from __future__ import annotations

from asgiref.sync import async_to_sync  # type: ignore
from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    ChangeBookingStatusCommand,
    ConfirmPaymentCommand,
)
from apps.bookings.domain.entities import ActorRole, BookingStatus

from . import services
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    ConfirmPaymentSerializer,
)


def actor_role(user, booking: Booking, requested: str | None = None) -> ActorRole:
    """Role the user plays for this booking.

    Staff act as admin. A user who booked their own resource cancels as
    the requester and moves it forward as the owner.
    """
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return ActorRole.ADMIN
    is_requester = booking.user_id == user.id
    is_owner = booking.resource.owner_id == user.id
    if is_requester and (requested == BookingStatus.CANCELLED.value or not is_owner):
        return ActorRole.REQUESTER
    return ActorRole.OWNER if is_owner else ActorRole.REQUESTER


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create bookings and move them through their lifecycle."""

    queryset = Booking.objects.select_related("resource", "user").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = BookingFilterSet
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(Q(user=user) | Q(resource__owner=user))

    def _render(self, booking_id, status_code=status.HTTP_200_OK, **extra) -> Response:
        booking = self.get_queryset().get(pk=booking_id)
        data = dict(BookingSerializer(booking, context=self.get_serializer_context()).data)
        data.update(extra)
        return Response(data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = services.create_booking_handler()
        booking = async_to_sync(handler.handle)(serializer.to_command(request.user.id))

        return self._render(
            booking.id,
            status.HTTP_201_CREATED,
            payment_client_secret=booking.payment_client_secret,
        )

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        requested = serializer.validated_data["status"]

        handler = services.change_status_handler()
        async_to_sync(handler.handle)(
            ChangeBookingStatusCommand(
                booking_id=booking.id,
                status=BookingStatus(requested),
                actor=actor_role(request.user, booking, requested),
                reason=serializer.validated_data["reason"],
            )
        )
        return self._render(booking.id)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = services.cancel_booking_handler()
        async_to_sync(handler.handle)(
            CancelBookingCommand(
                booking_id=booking.id,
                actor=actor_role(request.user, booking, BookingStatus.CANCELLED.value),
                reason=serializer.validated_data["reason"],
            )
        )
        return self._render(booking.id)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def confirm_payment(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = services.confirm_payment_handler()
        async_to_sync(handler.handle)(
            ConfirmPaymentCommand(
                booking_id=booking.id,
                payment_intent_id=serializer.validated_data["payment_intent_id"] or booking.payment_intent_id,
            )
        )
        return self._render(booking.id)
