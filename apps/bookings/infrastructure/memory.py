"""
In-memory adapters for the booking ports

Used by the use-case tests and for local experiments without a
database. Objects are copied on the way in and out so callers never
share state with the store.
"""

from collections import defaultdict
from copy import deepcopy
from datetime import datetime
from typing import Dict, Iterable, List
from uuid import UUID
import asyncio

from shared.domain.exceptions import ConflictError, NotFoundError
from shared.domain.value_objects import Period

from apps.bookings.application.ports import CONCURRENT_UPDATE_MESSAGE, BookingStore, ResourceStore
from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus, Resource
from apps.bookings.domain.inventory import Inventory


class InMemoryResourceStore(ResourceStore):

    def __init__(self, resources: Iterable[Resource] = ()):
        self._resources: Dict[UUID, Resource] = {r.id: r for r in resources}

    def add(self, resource: Resource):
        self._resources[resource.id] = resource

    async def get(self, resource_id: UUID) -> Resource | None:
        return self._resources.get(resource_id)


class InMemoryBookingStore(BookingStore):
    """
    Booking store backed by a dict

    add_if_available() holds a per-resource asyncio.Lock while it
    recounts and inserts, which is the in-process equivalent of the row
    lock taken by the Django adapter.
    save() rejects a booking whose version is older than the stored one.
    """

    def __init__(self):
        self._bookings: Dict[UUID, Booking] = {}
        self._locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __len__(self):
        return len(self._bookings)

    def _copy(self, booking: Booking) -> Booking:
        copy = deepcopy(booking)
        copy.clear_events()
        return copy

    def _blocking(self, resource_id: UUID, period: Period) -> List[Booking]:
        return [
            b for b in self._bookings.values()
            if b.resource_id == resource_id and b.blocks_inventory and b.period.overlaps_with(period)
        ]

    async def get(self, booking_id: UUID) -> Booking | None:
        booking = self._bookings.get(booking_id)
        return self._copy(booking) if booking else None

    async def list_blocking(self, resource_id: UUID, period: Period) -> List[Booking]:
        return [self._copy(b) for b in self._blocking(resource_id, period)]

    async def add_if_available(self, booking: Booking, capacity: int) -> bool:
        async with self._locks[booking.resource_id]:
            inventory = Inventory.from_bookings(
                booking.resource_id, capacity, self._blocking(booking.resource_id, booking.period)
            )
            if not inventory.can_allocate(booking.period, booking.units):
                return False
            self._bookings[booking.id] = self._copy(booking)
            return True

    async def save(self, booking: Booking) -> None:
        stored = self._bookings.get(booking.id)
        if stored is None:
            raise NotFoundError(f"Booking {booking.id} not found", reason='booking_not_found')
        if stored.version != booking.version:
            raise ConflictError(CONCURRENT_UPDATE_MESSAGE, reason='concurrent_update')
        booking.version += 1
        self._bookings[booking.id] = self._copy(booking)

    async def list_stale_pending(self, created_before: datetime) -> List[Booking]:
        return [
            self._copy(b) for b in sorted(self._bookings.values(), key=lambda b: b.created_at)
            if b.status == BookingStatus.PENDING
            and b.payment_status == PaymentStatus.PENDING
            and b.created_at < created_before
        ]
