"""Booking persistence models.

The ORM model is a storage shape only: business rules live in
apps.bookings.domain and reach the database through
apps.bookings.infrastructure.repositories.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Reservation of units of a resource for a period."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ASSIGNED = "assigned", _("Driver assigned")
        CHECKED_IN = "checked_in", _("Checked in")
        ACTIVE = "active", _("Active rental")
        IN_PROGRESS = "in_progress", _("In progress")
        CHECKED_OUT = "checked_out", _("Checked out")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Awaiting payment")
        PAID = "paid", _("Paid")
        FAILED = "failed", _("Payment failed")
        REFUNDED = "refunded", _("Refunded")
        CANCELLED = "cancelled", _("Payment cancelled")

    class CancelledBy(models.TextChoices):
        REQUESTER = "requester", _("Requester")
        OWNER = "owner", _("Owner")
        ADMIN = "admin", _("Administrator")
        SYSTEM = "system", _("System")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_code = models.CharField(max_length=16, unique=True, editable=False)
    resource = models.ForeignKey(
        "resources.Resource",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    starts_at = models.DateTimeField(help_text=_("Start of the blocked interval (inclusive)."))
    ends_at = models.DateTimeField(help_text=_("End of the blocked interval (exclusive)."))
    units = models.PositiveIntegerField(default=1)
    occupancy = models.PositiveIntegerField(default=1)
    participants = models.JSONField(default=dict, blank=True)
    price_breakdown = models.JSONField(
        default=dict,
        help_text=_("Price frozen at booking time."),
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_intent_id = models.CharField(max_length=255, blank=True)
    refund_id = models.CharField(max_length=255, blank=True)
    special_requests = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=20, choices=CancelledBy.choices, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    version = models.PositiveIntegerField(
        default=0,
        editable=False,
        help_text=_("Incremented on every update; writes compare it to reject stale copies."),
    )

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(ends_at__gt=models.F("starts_at")),
                name="booking_valid_period",
            ),
        ]
        indexes = [
            models.Index(fields=["resource", "starts_at", "ends_at"], name="booking_resource_period_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for {self.resource_id}"
