"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations and the injected stores and payment
gateway; events are published through the unit of work afterwards.

Commands:
- CreateBookingCommand: Create a new booking with a payment intent
- ChangeBookingStatusCommand: Move a booking through its progression
- CancelBookingCommand: Cancel a booking, refunding or voiding payment
- ConfirmPaymentCommand: Record a captured payment
- ExpireHoldsCommand: Cancel bookings whose payment never arrived
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, List
from uuid import UUID, uuid4
import asyncio
import logging

from shared.application.uow import UnitOfWork
from shared.domain.base import utcnow
from shared.domain.exceptions import ConflictError, DomainError, NotFoundError, RefundError, ServiceError

from apps.bookings.application.ports import BookingStore, PaymentGateway, ResourceStore
from apps.bookings.application.queries import NOT_AVAILABLE_MESSAGE, BookingPlanner, BookingRequest
from apps.bookings.domain.entities import ActorRole, Booking, BookingStatus, PaymentStatus
from apps.bookings.domain.inventory import DEFAULT_TRANSFER_BLOCK_HOURS
from apps.bookings.domain.transitions import check_transition

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_TIMEOUT_SECONDS = 10
DEFAULT_HOLD_MINUTES = 30


# ===== Commands =====

@dataclass(kw_only=True)
class CreateBookingCommand(BookingRequest):
    """
    Command to create a new booking

    This is the primary entry point for creating bookings.
    """
    user_id: Any


@dataclass
class ChangeBookingStatusCommand:
    booking_id: UUID
    status: BookingStatus
    actor: ActorRole
    reason: str = ''


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: UUID
    actor: ActorRole
    reason: str = ''


@dataclass
class ConfirmPaymentCommand:
    """Command to confirm a booking after successful payment"""
    booking_id: UUID
    payment_intent_id: str


@dataclass
class ExpireHoldsCommand:
    """Cancel unpaid bookings created before now - hold_minutes"""
    now: datetime | None = None
    hold_minutes: int = DEFAULT_HOLD_MINUTES


@dataclass
class ExpireHoldsResult:
    expired: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Strategy (fail fast, in order):
    1-5. Validate, load resource, apply business rules, check availability
         and price the request (BookingPlanner)
    6. Create the payment intent with an explicit timeout
    7. Conditional insert: the store re-checks capacity and inserts
       atomically, so two concurrent requests cannot both take the last unit

    No booking is stored without a payment intent. If the insert loses
    the race, the fresh intent is cancelled (best effort).
    """

    def __init__(
        self,
        resource_store: ResourceStore,
        booking_store: BookingStore,
        payment_gateway: PaymentGateway,
        payment_timeout: float = DEFAULT_PAYMENT_TIMEOUT_SECONDS,
        transfer_block_hours: int = DEFAULT_TRANSFER_BLOCK_HOURS,
        clock: Callable[[], datetime] = utcnow,
        bus=None,
    ):
        self.booking_store = booking_store
        self.payments = payment_gateway
        self.payment_timeout = payment_timeout
        self.planner = BookingPlanner(resource_store, booking_store, transfer_block_hours, clock)
        self.bus = bus

    async def handle(self, command: CreateBookingCommand) -> Booking:
        """
        Handle booking creation

        Returns: Created Booking aggregate (PENDING, payment PENDING)

        Raises:
            ValidationError, NotFoundError: bad request or unknown resource
            ConflictError: inactive resource or no capacity left
            ServiceError: payment processor failed or timed out
        """
        logger.info(
            f"Creating booking for resource {command.resource_id}, "
            f"user {command.user_id}, dates {command.start_date} - {command.end_date}"
        )

        plan = await self.planner.plan(command)
        booking_id = uuid4()

        intent = await self._create_intent(booking_id, command, plan)

        booking = Booking.create(
            id=booking_id,
            resource_id=plan.resource.id,
            resource_kind=plan.resource.kind,
            user_id=command.user_id,
            start_date=plan.period.start_date,
            end_date=plan.period.end_date,
            start_time=command.start_time,
            period=plan.period,
            units=plan.units,
            occupancy=plan.occupancy.guests,
            participants=plan.occupancy.to_dict(),
            price=plan.price,
            payment_intent_id=intent.id,
            payment_client_secret=intent.client_secret,
            special_requests=command.special_requests,
        )

        async with UnitOfWork(self.bus) as uow:
            added = await self.booking_store.add_if_available(booking, plan.resource.capacity)
            if not added:
                logger.warning(
                    f"Booking {booking.booking_code} lost the race for resource "
                    f"{plan.resource.id} {plan.period}, releasing intent {intent.id}"
                )
                await self._release_intent(intent.id)
                raise ConflictError(NOT_AVAILABLE_MESSAGE, reason='not_available')
            uow.collect_events(booking)

        logger.info(
            f"Booking {booking.booking_code} created for resource {plan.resource.id}, "
            f"total {plan.price.total}"
        )
        return booking

    async def _create_intent(self, booking_id: UUID, command: CreateBookingCommand, plan):
        try:
            return await asyncio.wait_for(
                self.payments.create_intent(
                    amount_minor=plan.price.total_minor,
                    currency=plan.price.currency,
                    idempotency_key=f"booking-{booking_id}",
                    metadata={
                        'booking_id': str(booking_id),
                        'resource_id': str(plan.resource.id),
                        'resource_kind': plan.resource.kind.value,
                        'user_id': str(command.user_id),
                    },
                ),
                timeout=self.payment_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Payment intent for booking {booking_id} timed out after {self.payment_timeout}s")
            raise ServiceError(
                "Payment processor did not respond in time. Please retry.",
                reason='payment_timeout',
            )

    async def _release_intent(self, intent_id: str):
        try:
            await asyncio.wait_for(self.payments.cancel_intent(intent_id), timeout=self.payment_timeout)
        except (ServiceError, asyncio.TimeoutError) as e:
            # Orphaned intents are picked up by reconciliation
            logger.error(f"Failed to cancel payment intent {intent_id}: {e}")


class CancelBookingHandler:
    """
    Handler for CancelBooking command

    - Already cancelled: returned as is, no gateway call
    - Paid: refunded first (idempotency key from the booking id); if the
      refund fails the booking is left unchanged
    - Payment pending: the intent is cancelled so it cannot be captured
    - The booking is saved (version bumped) before any gateway call, so a
      status change racing with the cancellation is rejected as stale
    """

    def __init__(
        self,
        booking_store: BookingStore,
        payment_gateway: PaymentGateway,
        payment_timeout: float = DEFAULT_PAYMENT_TIMEOUT_SECONDS,
        bus=None,
    ):
        self.booking_store = booking_store
        self.payments = payment_gateway
        self.payment_timeout = payment_timeout
        self.bus = bus

    async def handle(self, command: CancelBookingCommand) -> Booking:
        booking = await self.booking_store.get(command.booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {command.booking_id} not found", reason='booking_not_found')

        if booking.is_cancelled:
            logger.info(f"Booking {booking.booking_code} already cancelled, nothing to do")
            return booking

        # Authorization and state first: never refund a booking we will not cancel
        check_transition(booking.resource_kind, booking.status, BookingStatus.CANCELLED, command.actor)

        settles_payment = booking.payment_status == PaymentStatus.PAID or (
            booking.payment_status == PaymentStatus.PENDING and booking.payment_intent_id
        )
        if settles_payment:
            # Claim the version read above before money moves: a concurrent
            # writer holding the same copy now fails instead of overwriting
            await self.booking_store.save(booking)

        if booking.payment_status == PaymentStatus.PAID:
            refund = await self._refund(booking)
            booking.mark_refunded(refund.id)
        elif booking.payment_status == PaymentStatus.PENDING and booking.payment_intent_id:
            await self._void(booking)
            booking.void_payment()

        booking.cancel(command.actor, command.reason)

        async with UnitOfWork(self.bus) as uow:
            await self.booking_store.save(booking)
            uow.collect_events(booking)

        logger.info(
            f"Booking {booking.booking_code} cancelled by {ActorRole(command.actor).value}"
            f"{': ' + command.reason if command.reason else ''}"
        )
        return booking

    async def _refund(self, booking: Booking):
        try:
            return await asyncio.wait_for(
                self.payments.refund(booking.payment_intent_id, idempotency_key=f"refund-{booking.id}"),
                timeout=self.payment_timeout,
            )
        except RefundError:
            logger.error(f"Refund rejected for booking {booking.booking_code}")
            raise
        except (ServiceError, asyncio.TimeoutError) as e:
            logger.error(f"Refund failed for booking {booking.booking_code}: {e}")
            raise RefundError(reason='refund_failed')

    async def _void(self, booking: Booking):
        try:
            await asyncio.wait_for(
                self.payments.cancel_intent(booking.payment_intent_id),
                timeout=self.payment_timeout,
            )
        except asyncio.TimeoutError:
            raise ServiceError(
                "Payment processor did not respond in time. Please retry.",
                reason='payment_timeout',
            )


class ChangeBookingStatusHandler:
    """
    Handler for ChangeBookingStatus command

    Forward moves are checked by the transition guard; a move to
    CANCELLED goes through CancelBookingHandler so payment is settled.
    """

    def __init__(self, booking_store: BookingStore, cancel_handler: CancelBookingHandler, bus=None):
        self.booking_store = booking_store
        self.cancel_handler = cancel_handler
        self.bus = bus

    async def handle(self, command: ChangeBookingStatusCommand) -> Booking:
        status = BookingStatus(command.status)
        if status == BookingStatus.CANCELLED:
            return await self.cancel_handler.handle(
                CancelBookingCommand(command.booking_id, command.actor, command.reason)
            )

        booking = await self.booking_store.get(command.booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {command.booking_id} not found", reason='booking_not_found')

        old_status = booking.status
        booking.change_status(status, command.actor)

        async with UnitOfWork(self.bus) as uow:
            await self.booking_store.save(booking)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code}: {old_status.value} -> {status.value}")
        return booking


class ConfirmPaymentHandler:
    """Handler for ConfirmPayment command (payment PENDING -> PAID)"""

    def __init__(self, booking_store: BookingStore, bus=None):
        self.booking_store = booking_store
        self.bus = bus

    async def handle(self, command: ConfirmPaymentCommand) -> Booking:
        booking = await self.booking_store.get(command.booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {command.booking_id} not found", reason='booking_not_found')

        booking.confirm_payment(command.payment_intent_id)

        async with UnitOfWork(self.bus) as uow:
            await self.booking_store.save(booking)
            uow.collect_events(booking)

        logger.info(f"Payment confirmed for booking {booking.booking_code}")
        return booking


class ExpireHoldsHandler:
    """
    Handler for ExpireHolds command

    Cancels (as system) every booking still waiting for payment after
    the hold window, voiding its intent and freeing its units. One
    failing booking does not stop the others; it is retried next run.
    """

    def __init__(self, booking_store: BookingStore, cancel_handler: CancelBookingHandler):
        self.booking_store = booking_store
        self.cancel_handler = cancel_handler

    async def handle(self, command: ExpireHoldsCommand) -> ExpireHoldsResult:
        now = command.now or utcnow()
        cutoff = now - timedelta(minutes=command.hold_minutes)
        stale = await self.booking_store.list_stale_pending(cutoff)

        result = ExpireHoldsResult()
        for booking in stale:
            try:
                await self.cancel_handler.handle(
                    CancelBookingCommand(booking.id, ActorRole.SYSTEM, 'payment_hold_expired')
                )
            except DomainError as e:
                logger.error(f"Failed to expire booking {booking.booking_code}: {e}")
                result.failed.append(booking.id)
                continue
            result.expired.append(booking.id)

        if stale:
            logger.info(f"Expired {len(result.expired)} unpaid bookings, {len(result.failed)} failed")
        return result
