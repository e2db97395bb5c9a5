"""Tests for booking status transitions and the Booking aggregate."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from shared.domain.exceptions import AuthorizationError, ConflictError
from shared.domain.value_objects import Period

from apps.bookings.domain.entities import ActorRole, Booking, BookingStatus, PaymentStatus, ResourceKind
from apps.bookings.domain.events import BookingCancelled, BookingCreated, BookingPaymentConfirmed, BookingStatusChanged
from apps.bookings.domain.pricing import NightlyRates, Occupancy, compute_price
from apps.bookings.domain.transitions import can_transition, check_transition, is_cancellable, statuses_for

S = BookingStatus
A = ActorRole


def make_booking(kind=ResourceKind.HOTEL_ROOM, status=S.PENDING, payment_status=PaymentStatus.PENDING) -> Booking:
    period = Period.from_dates(date(2030, 5, 1), date(2030, 5, 3))
    price = compute_price(NightlyRates(currency='USD', base_price=Decimal('100')), period, Occupancy())
    return Booking.create(
        resource_id=uuid4(),
        resource_kind=kind,
        user_id=1,
        start_date=period.start_date,
        end_date=period.end_date,
        period=period,
        price=price,
        status=status,
        payment_status=payment_status,
        payment_intent_id='pi_test',
    )


class TestCancellationGating:

    @pytest.mark.parametrize('status', [S.PENDING, S.CONFIRMED])
    def test_requester_can_cancel_before_start(self, status):
        check_transition(ResourceKind.HOTEL_ROOM, status, S.CANCELLED, A.REQUESTER)

    @pytest.mark.parametrize('kind,status', [
        (ResourceKind.HOTEL_ROOM, S.CHECKED_IN),
        (ResourceKind.HOTEL_ROOM, S.CHECKED_OUT),
        (ResourceKind.CAR, S.ACTIVE),
        (ResourceKind.TOUR, S.IN_PROGRESS),
        (ResourceKind.TRANSFER, S.IN_PROGRESS),
        (ResourceKind.TOUR, S.COMPLETED),
    ])
    def test_requester_cannot_cancel_once_started(self, kind, status):
        with pytest.raises(ConflictError):
            check_transition(kind, status, S.CANCELLED, A.REQUESTER)

    def test_transfer_can_be_cancelled_when_driver_assigned(self):
        assert is_cancellable(S.ASSIGNED)
        assert can_transition(ResourceKind.TRANSFER, S.ASSIGNED, S.CANCELLED, A.REQUESTER)

    def test_requester_cannot_advance(self):
        with pytest.raises(AuthorizationError) as exc:
            check_transition(ResourceKind.HOTEL_ROOM, S.PENDING, S.CONFIRMED, A.REQUESTER)
        assert exc.value.reason == 'requester_cannot_change_status'

    def test_owner_cannot_cancel(self):
        with pytest.raises(AuthorizationError) as exc:
            check_transition(ResourceKind.CAR, S.CONFIRMED, S.CANCELLED, A.OWNER)
        assert exc.value.reason == 'owner_cannot_cancel'

    def test_admin_and_system_can_cancel(self):
        assert can_transition(ResourceKind.CAR, S.CONFIRMED, S.CANCELLED, A.ADMIN)
        assert can_transition(ResourceKind.CAR, S.PENDING, S.CANCELLED, A.SYSTEM)


class TestProgression:

    def test_owner_moves_forward(self):
        assert can_transition(ResourceKind.HOTEL_ROOM, S.PENDING, S.CONFIRMED, A.OWNER)
        assert can_transition(ResourceKind.HOTEL_ROOM, S.CONFIRMED, S.CHECKED_IN, A.OWNER)
        assert can_transition(ResourceKind.HOTEL_ROOM, S.CHECKED_IN, S.CHECKED_OUT, A.OWNER)

    def test_skipping_forward_is_allowed(self):
        assert can_transition(ResourceKind.CAR, S.CONFIRMED, S.COMPLETED, A.OWNER)

    def test_moving_backwards_is_rejected(self):
        with pytest.raises(ConflictError) as exc:
            check_transition(ResourceKind.CAR, S.ACTIVE, S.CONFIRMED, A.ADMIN)
        assert exc.value.reason == 'invalid_transition'

    def test_status_from_another_vertical_is_rejected(self):
        with pytest.raises(ConflictError) as exc:
            check_transition(ResourceKind.CAR, S.CONFIRMED, S.CHECKED_IN, A.OWNER)
        assert exc.value.reason == 'invalid_status'

    def test_terminal_statuses_are_absorbing(self):
        with pytest.raises(ConflictError) as exc:
            check_transition(ResourceKind.TOUR, S.CANCELLED, S.CONFIRMED, A.ADMIN)
        assert exc.value.reason == 'terminal_status'

    def test_statuses_for_transfer(self):
        assert statuses_for(ResourceKind.TRANSFER) == (
            S.PENDING, S.CONFIRMED, S.ASSIGNED, S.IN_PROGRESS, S.COMPLETED, S.CANCELLED,
        )


class TestBookingAggregate:

    def test_create_records_event(self):
        booking = make_booking()
        assert booking.booking_code.startswith('BK')
        assert len(booking.booking_code) == 10
        assert isinstance(booking.events[0], BookingCreated)

    def test_change_status(self):
        booking = make_booking()
        booking.clear_events()

        booking.change_status(S.CONFIRMED, A.OWNER)

        assert booking.status == S.CONFIRMED
        event = booking.events[0]
        assert isinstance(event, BookingStatusChanged)
        assert (event.old_status, event.new_status, event.actor) == ('pending', 'confirmed', 'owner')

    def test_cancel_goes_through_cancel(self):
        with pytest.raises(ValueError):
            make_booking().change_status(S.CANCELLED, A.ADMIN)

    def test_cancel(self):
        booking = make_booking()
        booking.void_payment()

        booking.cancel(A.REQUESTER, 'change of plans')

        assert booking.is_cancelled
        assert not booking.blocks_inventory
        assert booking.cancelled_by == A.REQUESTER
        assert booking.cancelled_at is not None
        assert booking.payment_status == PaymentStatus.CANCELLED
        assert isinstance(booking.events[-1], BookingCancelled)

    def test_paid_booking_must_be_refunded_first(self):
        booking = make_booking(status=S.CONFIRMED, payment_status=PaymentStatus.PAID)
        with pytest.raises(ConflictError) as exc:
            booking.cancel(A.REQUESTER)
        assert exc.value.reason == 'refund_required'

        booking.mark_refunded('re_1')
        booking.cancel(A.REQUESTER)
        assert booking.payment_status == PaymentStatus.REFUNDED
        assert booking.events[-1].refunded

    def test_confirm_payment(self):
        booking = make_booking()
        booking.confirm_payment('pi_test')

        assert booking.payment_status == PaymentStatus.PAID
        assert booking.status == S.CONFIRMED
        assert isinstance(booking.events[-1], BookingPaymentConfirmed)

    def test_confirm_payment_rejects_foreign_intent(self):
        with pytest.raises(ConflictError) as exc:
            make_booking().confirm_payment('pi_other')
        assert exc.value.reason == 'payment_intent_mismatch'

    def test_confirm_payment_twice(self):
        booking = make_booking()
        booking.confirm_payment('pi_test')
        with pytest.raises(ConflictError) as exc:
            booking.confirm_payment('pi_test')
        assert exc.value.reason == 'already_paid'
