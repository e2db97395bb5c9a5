"""
Django ORM adapters for the booking ports

Maps between the Booking/Resource models and the domain objects. ORM
calls are synchronous and run through asgiref's sync_to_async, so the
async use cases can drive them from the request thread.
"""

from datetime import datetime
from typing import List
from uuid import UUID
import logging

from asgiref.sync import sync_to_async  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import ConflictError, NotFoundError
from shared.domain.value_objects import Period

from apps.bookings.application.ports import CONCURRENT_UPDATE_MESSAGE, BookingStore, ResourceStore
from apps.bookings.domain.entities import (
    ActorRole,
    Booking,
    BookingStatus,
    PaymentStatus,
    Resource,
    ResourceKind,
)
from apps.bookings.domain.inventory import Inventory
from apps.bookings.domain.pricing import PriceBreakdown, rate_table_from_dict
from apps.bookings.models import Booking as BookingModel
from apps.resources.models import Resource as ResourceModel

logger = logging.getLogger(__name__)


# ===== Mapping =====

def resource_to_domain(model: ResourceModel) -> Resource:
    return Resource(
        id=model.id,
        kind=ResourceKind(model.kind),
        currency=model.currency,
        rates=rate_table_from_dict(model.kind, model.pricing, model.currency),
        capacity=model.capacity,
        owner_id=model.owner_id,
        title=model.title,
        is_active=model.is_active,
        min_stay=model.min_stay,
        max_stay=model.max_stay,
        max_occupancy=model.max_occupancy,
        max_luggage=model.max_luggage,
    )


def booking_to_domain(model: BookingModel) -> Booking:
    return Booking(
        id=model.id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        booking_code=model.booking_code,
        resource_id=model.resource_id,
        resource_kind=ResourceKind(model.resource.kind),
        user_id=model.user_id,
        start_date=model.start_date,
        end_date=model.end_date,
        start_time=model.start_time,
        period=Period(model.starts_at, model.ends_at),
        units=model.units,
        occupancy=model.occupancy,
        participants=model.participants or {},
        price=PriceBreakdown.from_dict(model.price_breakdown),
        status=BookingStatus(model.status),
        payment_status=PaymentStatus(model.payment_status),
        payment_intent_id=model.payment_intent_id,
        refund_id=model.refund_id,
        special_requests=model.special_requests,
        cancelled_at=model.cancelled_at,
        cancelled_by=ActorRole(model.cancelled_by) if model.cancelled_by else None,
        cancellation_reason=model.cancellation_reason,
        version=model.version,
    )


def booking_fields(booking: Booking) -> dict:
    """Column values for a booking, without id and version"""
    return {
        'booking_code': booking.booking_code,
        'resource_id': booking.resource_id,
        'user_id': booking.user_id,
        'start_date': booking.start_date,
        'end_date': booking.end_date,
        'start_time': booking.start_time,
        'starts_at': booking.period.start,
        'ends_at': booking.period.end,
        'units': booking.units,
        'occupancy': booking.occupancy,
        'participants': booking.participants,
        'price_breakdown': booking.price.to_dict(),
        'total_amount': booking.price.total.amount,
        'currency': booking.price.currency,
        'status': booking.status.value,
        'payment_status': booking.payment_status.value,
        'payment_intent_id': booking.payment_intent_id,
        'refund_id': booking.refund_id,
        'special_requests': booking.special_requests,
        'cancelled_at': booking.cancelled_at,
        'cancelled_by': booking.cancelled_by.value if booking.cancelled_by else '',
        'cancellation_reason': booking.cancellation_reason,
        'created_at': booking.created_at,
    }


def apply_to_model(booking: Booking, model: BookingModel) -> BookingModel:
    for name, value in booking_fields(booking).items():
        setattr(model, name, value)
    model.version = booking.version
    return model


# ===== Stores =====

class DjangoResourceStore(ResourceStore):

    async def get(self, resource_id: UUID) -> Resource | None:
        return await sync_to_async(self._get)(resource_id)

    def _get(self, resource_id):
        try:
            model = ResourceModel.objects.get(pk=resource_id)
        except (ResourceModel.DoesNotExist, ValueError):
            return None
        return resource_to_domain(model)


class DjangoBookingStore(BookingStore):
    """
    Booking repository

    add_if_available() locks the resource row (SELECT ... FOR UPDATE)
    inside a transaction, so concurrent writers for one resource are
    serialised across processes while other resources proceed.
    save() is a compare-and-set on the version column.
    """

    async def get(self, booking_id: UUID) -> Booking | None:
        return await sync_to_async(self._get)(booking_id)

    async def list_blocking(self, resource_id: UUID, period: Period) -> List[Booking]:
        return await sync_to_async(self._list_blocking)(resource_id, period)

    async def add_if_available(self, booking: Booking, capacity: int) -> bool:
        return await sync_to_async(self._add_if_available)(booking, capacity)

    async def save(self, booking: Booking) -> None:
        await sync_to_async(self._save)(booking)

    async def list_stale_pending(self, created_before: datetime) -> List[Booking]:
        return await sync_to_async(self._list_stale_pending)(created_before)

    def _get(self, booking_id):
        try:
            model = BookingModel.objects.select_related('resource').get(pk=booking_id)
        except (BookingModel.DoesNotExist, ValueError):
            return None
        return booking_to_domain(model)

    def _list_blocking(self, resource_id, period: Period) -> List[Booking]:
        queryset = (
            BookingModel.objects.select_related('resource')
            .filter(resource_id=resource_id, starts_at__lt=period.end, ends_at__gt=period.start)
            .exclude(status=BookingModel.Status.CANCELLED)
        )
        return [booking_to_domain(model) for model in queryset]

    def _add_if_available(self, booking: Booking, capacity: int) -> bool:
        with transaction.atomic():
            # Lock the resource row; concurrent inserts for it wait here
            ResourceModel.objects.select_for_update().only('id').get(pk=booking.resource_id)

            blocking = self._list_blocking(booking.resource_id, booking.period)
            inventory = Inventory.from_bookings(booking.resource_id, capacity, blocking)
            if not inventory.can_allocate(booking.period, booking.units):
                logger.info(
                    f"Conditional insert rejected booking {booking.booking_code}: "
                    f"resource {booking.resource_id} full for {booking.period}"
                )
                return False

            model = apply_to_model(booking, BookingModel(id=booking.id))
            model.save(force_insert=True)
        return True

    def _save(self, booking: Booking):
        fields = booking_fields(booking)
        del fields['created_at']
        # UPDATE ... WHERE version = <read version>; a stale copy matches no row
        updated = BookingModel.objects.filter(pk=booking.id, version=booking.version).update(
            version=F('version') + 1,
            updated_at=timezone.now(),
            **fields,
        )
        if not updated:
            if not BookingModel.objects.filter(pk=booking.id).exists():
                raise NotFoundError(f"Booking {booking.id} not found", reason='booking_not_found')
            logger.warning(
                f"Stale write rejected for booking {booking.booking_code} "
                f"(version {booking.version}, status {booking.status.value})"
            )
            raise ConflictError(CONCURRENT_UPDATE_MESSAGE, reason='concurrent_update')
        booking.version += 1

    def _list_stale_pending(self, created_before: datetime) -> List[Booking]:
        queryset = BookingModel.objects.select_related('resource').filter(
            status=BookingModel.Status.PENDING,
            payment_status=BookingModel.PaymentStatus.PENDING,
            created_at__lt=created_before,
        ).order_by('created_at')
        return [booking_to_domain(model) for model in queryset]
