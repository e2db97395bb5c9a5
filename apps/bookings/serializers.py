"""Serializers for the booking domain.

Input serializers validate the request shape and build typed commands;
business rules are enforced by the use cases behind them.
"""

from __future__ import annotations

from uuid import UUID

from rest_framework import serializers  # type: ignore

from shared.domain.exceptions import ValidationError as DomainValidationError

from apps.bookings.application.command_handlers import CreateBookingCommand
from apps.bookings.application.queries import CheckAvailabilityQuery, QuoteQuery
from apps.bookings.domain.pricing import TRANSFER_TYPES, Occupancy

from .models import Booking


class BookingRequestSerializer(serializers.Serializer):
    """Dates, party, trip and driver details shared by quotes and bookings."""

    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    units = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    adults = serializers.IntegerField(min_value=0, default=1)
    children = serializers.IntegerField(min_value=0, default=0)
    seniors = serializers.IntegerField(min_value=0, default=0)
    infants = serializers.IntegerField(min_value=0, default=0)
    luggage = serializers.IntegerField(min_value=0, default=0)
    distance_km = serializers.DecimalField(
        max_digits=8,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
        default=None,
    )
    transfer_type = serializers.ChoiceField(choices=sorted(TRANSFER_TYPES), default="point_to_point")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    driver_birth_date = serializers.DateField(required=False, allow_null=True, default=None)
    license_expiry = serializers.DateField(required=False, allow_null=True, default=None)

    def validate(self, attrs):  # type: ignore
        end_date = attrs.get("end_date")
        if end_date is not None and end_date <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must be after start date."})
        try:
            attrs["occupancy"] = Occupancy(
                adults=attrs.pop("adults"),
                children=attrs.pop("children"),
                seniors=attrs.pop("seniors"),
                infants=attrs.pop("infants"),
            )
        except DomainValidationError as exc:
            raise serializers.ValidationError({"adults": exc.message})
        return attrs


class BookingCreateSerializer(BookingRequestSerializer):
    """Booking request made by the authenticated user."""

    resource = serializers.UUIDField()

    def to_command(self, user_id) -> CreateBookingCommand:
        data = dict(self.validated_data)
        return CreateBookingCommand(resource_id=data.pop("resource"), user_id=user_id, **data)


class QuoteSerializer(BookingRequestSerializer):

    def to_query(self, resource_id: UUID) -> QuoteQuery:
        return QuoteQuery(resource_id=resource_id, **self.validated_data)


class AvailabilityQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    units = serializers.IntegerField(min_value=1, default=1)

    def to_query(self, resource_id: UUID) -> CheckAvailabilityQuery:
        return CheckAvailabilityQuery(resource_id=resource_id, **self.validated_data)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class ConfirmPaymentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Stored booking, price breakdown included."""

    resource_id = serializers.ReadOnlyField(source="resource.id")
    resource_kind = serializers.ReadOnlyField(source="resource.kind")
    resource_title = serializers.ReadOnlyField(source="resource.title")
    user_id = serializers.ReadOnlyField(source="user.id")

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "resource_id",
            "resource_kind",
            "resource_title",
            "user_id",
            "start_date",
            "end_date",
            "start_time",
            "units",
            "occupancy",
            "participants",
            "price_breakdown",
            "total_amount",
            "currency",
            "status",
            "payment_status",
            "payment_intent_id",
            "special_requests",
            "cancelled_at",
            "cancelled_by",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
