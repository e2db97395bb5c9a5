"""FilterSet definitions for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Booking.Status.choices)
    payment_status = django_filters.ChoiceFilter(choices=Booking.PaymentStatus.choices)
    resource = django_filters.UUIDFilter(field_name="resource_id")
    kind = django_filters.CharFilter(field_name="resource__kind", lookup_expr="exact")
    start_from = django_filters.DateFilter(field_name="start_date", lookup_expr="gte")
    start_to = django_filters.DateFilter(field_name="start_date", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = ["status", "payment_status", "resource", "kind"]
