"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "resource",
        "user",
        "status",
        "payment_status",
        "start_date",
        "end_date",
        "units",
        "total_amount",
        "currency",
        "created_at",
    )
    list_filter = ("status", "payment_status", "resource__kind", "start_date")
    search_fields = ("booking_code", "resource__title", "user__email", "payment_intent_id")
    readonly_fields = (
        "booking_code",
        "starts_at",
        "ends_at",
        "price_breakdown",
        "total_amount",
        "currency",
        "payment_intent_id",
        "refund_id",
        "created_at",
        "updated_at",
        "version",
    )
