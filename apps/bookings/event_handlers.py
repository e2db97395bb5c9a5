"""Booking domain event handlers.

Registered on the global message bus when the app is ready. They only
record what happened; delivery of notifications is out of scope.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import MessageBus

from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingPaymentConfirmed,
    BookingRefunded,
    BookingStatusChanged,
)

logger = logging.getLogger(__name__)


def log_booking_created(event: BookingCreated) -> None:
    logger.info(
        f"Booking {event.booking_id} created for resource {event.resource_id}: "
        f"{event.units} unit(s), {event.period}, total {event.total}"
    )


def log_status_changed(event: BookingStatusChanged) -> None:
    logger.info(f"Booking {event.booking_id} {event.old_status} -> {event.new_status} by {event.actor}")


def log_booking_cancelled(event: BookingCancelled) -> None:
    logger.info(
        f"Booking {event.booking_id} cancelled by {event.actor} from {event.old_status}"
        f" (refunded={event.refunded}, reason={event.reason or '-'})"
    )


def log_payment_confirmed(event: BookingPaymentConfirmed) -> None:
    logger.info(f"Payment {event.payment_intent_id} confirmed for booking {event.booking_id}")


def log_refund(event: BookingRefunded) -> None:
    logger.info(f"Refund {event.refund_id} of {event.amount} issued for booking {event.booking_id}")


def register(bus: MessageBus) -> None:
    bus.register_event_handler(BookingCreated, log_booking_created)
    bus.register_event_handler(BookingStatusChanged, log_status_changed)
    bus.register_event_handler(BookingCancelled, log_booking_cancelled)
    bus.register_event_handler(BookingPaymentConfirmed, log_payment_confirmed)
    bus.register_event_handler(BookingRefunded, log_refund)
