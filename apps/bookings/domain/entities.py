"""
Booking Domain Entities

Core business entities for the booking domain:
- ResourceKind: the bookable verticals (hotel rooms, cars, tours, transfers)
- BookingStatus: FSM states, union of every vertical's vocabulary
- PaymentStatus: Payment state tracking
- ActorRole: who is asking for a change
- Resource: the booking context's view of an inventory unit
- Booking: Main aggregate representing a reservation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import Period

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.domain.pricing import PriceBreakdown, RateTable


class ResourceKind(str, Enum):
    HOTEL_ROOM = 'hotel_room'
    CAR = 'car'
    TOUR = 'tour'
    TRANSFER = 'transfer'


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    Per-kind progressions (see domain.transitions):
    - hotel_room: PENDING -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT
    - car:        PENDING -> CONFIRMED -> ACTIVE -> COMPLETED
    - tour:       PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    - transfer:   PENDING -> CONFIRMED -> ASSIGNED -> IN_PROGRESS -> COMPLETED
    - CANCELLED is absorbing and reachable until the booking has started
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ASSIGNED = 'assigned'
    CHECKED_IN = 'checked_in'
    ACTIVE = 'active'
    IN_PROGRESS = 'in_progress'
    CHECKED_OUT = 'checked_out'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class PaymentStatus(str, Enum):
    """Payment status tracking"""
    PENDING = 'pending'       # Intent created, waiting for capture
    PAID = 'paid'             # Payment captured
    FAILED = 'failed'         # Payment failed
    REFUNDED = 'refunded'     # Payment refunded (after cancellation)
    CANCELLED = 'cancelled'   # Intent cancelled before capture


class ActorRole(str, Enum):
    REQUESTER = 'requester'   # booking owner
    OWNER = 'owner'           # resource owner (vendor)
    ADMIN = 'admin'
    SYSTEM = 'system'         # scheduled jobs and payment callbacks


@dataclass(frozen=True)
class Resource:
    """
    Resource as seen by the booking context

    Capacity is the number of identical units (rooms of a type, cars of a
    model, seats on a departure). The rate table is frozen for the
    duration of one pricing computation.
    """
    id: UUID
    kind: ResourceKind
    currency: str
    rates: 'RateTable'
    capacity: int = 1
    owner_id: Any = None
    title: str = ''
    is_active: bool = True
    min_stay: int = 1
    max_stay: int | None = None
    max_occupancy: int | None = None
    max_luggage: int | None = None


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Represents a requester's reservation of units of a resource for a
    period. The price breakdown is frozen at creation and never
    recomputed, even if the resource's rates change later.

    Key invariants:
    - Period is non-empty (start < end)
    - Units and occupancy are positive
    - CANCELLED is terminal; cancelled bookings no longer hold inventory
    - Writes are compare-and-set on version, so a stale copy never
      overwrites a newer state
    """

    booking_code: str
    resource_id: UUID
    resource_kind: ResourceKind
    user_id: Any

    # Requested dates as entered by the requester, plus the blocked interval
    start_date: date
    end_date: date
    start_time: time | None = None
    period: Period

    units: int = 1
    occupancy: int = 1
    participants: dict = field(default_factory=dict)

    price: 'PriceBreakdown'

    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: str = ''
    refund_id: str = ''
    # Returned to the client once at creation, never persisted
    payment_client_secret: str = field(default='', repr=False)

    special_requests: str = ''

    cancelled_at: datetime | None = None
    cancelled_by: ActorRole | None = None
    cancellation_reason: str = ''

    # Bumped by the store on every save; a save carrying an older version is rejected
    version: int = 0

    def __post_init__(self):
        if self.units < 1:
            raise ValueError("Booking must hold at least one unit")
        if self.occupancy < 1:
            raise ValueError("Occupancy must be at least 1")

    @classmethod
    def create(cls, **kwargs) -> 'Booking':
        """Create a new PENDING booking and record BookingCreated"""
        from apps.bookings.domain.events import BookingCreated

        kwargs.setdefault('id', uuid4())
        kwargs.setdefault('booking_code', generate_booking_code())
        booking = cls(**kwargs)
        booking.add_event(BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            resource_id=booking.resource_id,
            user_id=booking.user_id,
            period=booking.period,
            units=booking.units,
            total=booking.price.total,
        ))
        return booking

    @property
    def blocks_inventory(self) -> bool:
        """Every non-cancelled booking holds its units"""
        return self.status != BookingStatus.CANCELLED

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    def change_status(self, new_status: BookingStatus, actor: ActorRole):
        """
        Move the booking forward through its progression

        Cancellation goes through cancel() so that payment side effects
        are handled by the caller first.
        """
        from apps.bookings.domain.events import BookingStatusChanged
        from apps.bookings.domain.transitions import check_transition

        new_status = BookingStatus(new_status)
        actor = ActorRole(actor)
        if new_status == BookingStatus.CANCELLED:
            raise ValueError("Use cancel() to cancel a booking")

        check_transition(self.resource_kind, self.status, new_status, actor)

        old_status = self.status
        self.status = new_status
        self.touch()
        self.add_event(BookingStatusChanged(
            aggregate_id=self.id,
            booking_id=self.id,
            old_status=old_status.value,
            new_status=new_status.value,
            actor=actor.value,
        ))

    def cancel(self, actor: ActorRole, reason: str = ''):
        """
        Cancel booking (any cancellable status -> CANCELLED)

        Payment must already be refunded or voided by the caller.
        """
        from apps.bookings.domain.events import BookingCancelled
        from apps.bookings.domain.transitions import check_transition

        actor = ActorRole(actor)
        check_transition(self.resource_kind, self.status, BookingStatus.CANCELLED, actor)
        if self.payment_status == PaymentStatus.PAID:
            raise ConflictError(
                f"Booking {self.booking_code} is paid and must be refunded before cancellation",
                reason='refund_required',
            )

        old_status = self.status
        self.status = BookingStatus.CANCELLED
        self.cancelled_at = utcnow()
        self.cancelled_by = actor
        self.cancellation_reason = reason
        self.touch()
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            old_status=old_status.value,
            actor=actor.value,
            reason=reason,
            refunded=self.payment_status == PaymentStatus.REFUNDED,
        ))

    def confirm_payment(self, payment_intent_id: str):
        """
        Record a captured payment (payment PENDING -> PAID)

        A PENDING booking moves to CONFIRMED at the same time.
        """
        from apps.bookings.domain.events import BookingPaymentConfirmed

        if self.payment_intent_id != payment_intent_id:
            raise ConflictError(
                f"Payment intent {payment_intent_id} does not belong to booking {self.booking_code}",
                reason='payment_intent_mismatch',
            )
        if self.payment_status == PaymentStatus.PAID:
            raise ConflictError("Payment already confirmed.", reason='already_paid')
        if self.is_cancelled or self.payment_status != PaymentStatus.PENDING:
            raise ConflictError(
                f"Cannot confirm payment for booking with status {self.status.value} "
                f"and payment status {self.payment_status.value}",
                reason='invalid_payment_state',
            )

        self.payment_status = PaymentStatus.PAID
        if self.status == BookingStatus.PENDING:
            self.status = BookingStatus.CONFIRMED
        self.touch()
        self.add_event(BookingPaymentConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            payment_intent_id=payment_intent_id,
        ))

    def mark_refunded(self, refund_id: str):
        """Payment returned to the requester (PAID -> REFUNDED)"""
        from apps.bookings.domain.events import BookingRefunded

        if self.payment_status != PaymentStatus.PAID:
            raise ConflictError(
                f"Cannot refund payment with status {self.payment_status.value}",
                reason='not_refundable',
            )
        self.payment_status = PaymentStatus.REFUNDED
        self.refund_id = refund_id
        self.touch()
        self.add_event(BookingRefunded(
            aggregate_id=self.id,
            booking_id=self.id,
            payment_intent_id=self.payment_intent_id,
            refund_id=refund_id,
            amount=self.price.total,
        ))

    def void_payment(self):
        """Intent cancelled before capture (PENDING -> CANCELLED)"""
        if self.payment_status == PaymentStatus.PENDING:
            self.payment_status = PaymentStatus.CANCELLED
            self.touch()

    def __str__(self):
        return f"Booking {self.booking_code} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_code={self.booking_code}, "
            f"status={self.status.value}, period={self.period!r})"
        )


def generate_booking_code() -> str:
    """Human-readable booking code: BK + 8 hex chars"""
    return f"BK{uuid4().hex[:8].upper()}"
