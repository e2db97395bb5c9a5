"""Bookable resource models.

A resource is a unit of inventory offered by a vendor: a hotel room type,
a rental car model, a tour departure or a transfer vehicle. The shape of
`pricing` depends on `kind` and is parsed by the booking rate calculator.
"""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Resource(models.Model):
    """Bookable inventory unit."""

    class Kind(models.TextChoices):
        HOTEL_ROOM = "hotel_room", _("Hotel room")
        CAR = "car", _("Car")
        TOUR = "tour", _("Tour")
        TRANSFER = "transfer", _("Transfer")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="resources",
    )
    kind = models.CharField(max_length=20, choices=Kind.choices)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    currency = models.CharField(max_length=3, default="USD")
    capacity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("Number of identical units: rooms of this type, cars, tour seats."),
    )
    max_occupancy = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Guests per unit or passengers per vehicle."),
    )
    max_luggage = models.PositiveIntegerField(null=True, blank=True)
    min_stay = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    max_stay = models.PositiveIntegerField(null=True, blank=True)
    pricing = models.JSONField(
        default=dict,
        help_text=_("Rate table, e.g. {\"daily_rate\": \"45.00\", \"weekly_rate\": \"250.00\"}."),
    )
    attributes = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Resource")
        verbose_name_plural = _("Resources")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="resource_kind_active_idx"),
            models.Index(fields=["city"], name="resource_city_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()}: {self.title}"

    def deactivate(self) -> None:
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])
