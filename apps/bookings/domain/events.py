"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after the unit of work completes.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money, Period


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (status PENDING, payment PENDING)

    Triggers:
    - Start hold expiry timer (beat task)
    - Notify resource owner
    """
    booking_id: UUID
    resource_id: UUID
    user_id: Any
    period: Period
    units: int
    total: Money


@dataclass(kw_only=True)
class BookingStatusChanged(DomainEvent):
    """Event: Booking moved forward through its progression"""
    booking_id: UUID
    old_status: str
    new_status: str
    actor: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    Triggers:
    - Capacity is freed for the period
    - Notify requester and resource owner
    """
    booking_id: UUID
    resource_id: UUID
    old_status: str
    actor: str
    reason: str = ''
    refunded: bool = False


@dataclass(kw_only=True)
class BookingPaymentConfirmed(DomainEvent):
    """Event: Payment captured (payment PENDING -> PAID)"""
    booking_id: UUID
    payment_intent_id: str


@dataclass(kw_only=True)
class BookingRefunded(DomainEvent):
    """Event: Captured payment returned to the requester"""
    booking_id: UUID
    payment_intent_id: str
    refund_id: str
    amount: Money
