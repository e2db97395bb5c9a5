"""Serializers for bookable resources."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.domain.exceptions import ValidationError as DomainValidationError
from shared.domain.value_objects import Money

from apps.bookings.domain.pricing import rate_table_from_dict

from .models import Resource


class ResourceSerializer(serializers.ModelSerializer):
    owner_id = serializers.ReadOnlyField(source="owner.id")

    class Meta:
        model = Resource
        fields = [
            "id",
            "owner_id",
            "kind",
            "title",
            "description",
            "city",
            "currency",
            "capacity",
            "max_occupancy",
            "max_luggage",
            "min_stay",
            "max_stay",
            "pricing",
            "attributes",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner_id", "is_active", "created_at", "updated_at"]

    def validate_currency(self, value: str) -> str:
        try:
            Money.zero(value)
        except DomainValidationError as exc:
            raise serializers.ValidationError(exc.message)
        return value.upper()

    def validate(self, attrs):  # type: ignore
        kind = attrs.get("kind", getattr(self.instance, "kind", None))
        pricing = attrs.get("pricing", getattr(self.instance, "pricing", None))
        currency = attrs.get("currency", getattr(self.instance, "currency", "USD"))
        if self.instance is not None and "kind" in attrs and attrs["kind"] != self.instance.kind:
            raise serializers.ValidationError({"kind": "Resource kind cannot be changed."})
        try:
            rate_table_from_dict(kind, pricing, currency)
        except DomainValidationError as exc:
            raise serializers.ValidationError({"pricing": exc.message})

        min_stay = attrs.get("min_stay", getattr(self.instance, "min_stay", 1))
        max_stay = attrs.get("max_stay", getattr(self.instance, "max_stay", None))
        if max_stay is not None and max_stay < min_stay:
            raise serializers.ValidationError({"max_stay": "Maximum stay cannot be less than minimum stay."})
        return attrs
