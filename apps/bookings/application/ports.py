"""
Booking Ports

Interfaces the booking use cases depend on. Concrete adapters live in
apps.bookings.infrastructure (Django ORM, in-memory, Stripe, sandbox).
All methods are coroutines; the Django adapters bridge with asgiref.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID

from shared.domain.value_objects import Period

from apps.bookings.domain.entities import Booking, Resource

CONCURRENT_UPDATE_MESSAGE = "Booking was changed by another request. Reload and retry."


class ResourceStore(ABC):

    @abstractmethod
    async def get(self, resource_id: UUID) -> Resource | None:
        """Return the resource or None if it does not exist"""


class BookingStore(ABC):

    @abstractmethod
    async def get(self, booking_id: UUID) -> Booking | None:
        ...

    @abstractmethod
    async def list_blocking(self, resource_id: UUID, period: Period) -> List[Booking]:
        """Non-cancelled bookings of the resource overlapping the period"""

    @abstractmethod
    async def add_if_available(self, booking: Booking, capacity: int) -> bool:
        """
        Conditional insert

        Recount the units held over the booking's period and insert it
        only if they still fit into capacity, as one atomic step.
        Returns False (and stores nothing) when capacity ran out.
        """

    @abstractmethod
    async def save(self, booking: Booking) -> None:
        """
        Persist changes to an existing booking

        Compare-and-set on booking.version: raises ConflictError
        (reason concurrent_update) when the stored version moved on since
        the booking was read, otherwise stores it and bumps the version.
        """

    @abstractmethod
    async def list_stale_pending(self, created_before: datetime) -> List[Booking]:
        """Bookings still waiting for payment that were created before the cutoff"""


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    amount_minor: int
    currency: str
    status: str = 'requires_payment_method'
    client_secret: str = ''
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Refund:
    id: str
    payment_intent_id: str
    status: str = 'succeeded'


class PaymentGateway(ABC):
    """
    Payment processor

    Implementations raise ServiceError on transport or processor failure
    and RefundError when a refund is rejected.
    """

    @abstractmethod
    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        idempotency_key: str,
        metadata: dict | None = None,
    ) -> PaymentIntent:
        ...

    @abstractmethod
    async def refund(self, payment_intent_id: str, idempotency_key: str) -> Refund:
        ...

    @abstractmethod
    async def cancel_intent(self, payment_intent_id: str) -> None:
        ...
