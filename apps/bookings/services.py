"""Wiring of booking use cases for the Django host.

Views, tasks and the admin build their handlers here, so the stores and
the payment gateway are chosen in one place from settings.
"""

from __future__ import annotations

from functools import lru_cache

from django.conf import settings  # type: ignore

from apps.bookings.application.command_handlers import (
    CancelBookingHandler,
    ChangeBookingStatusHandler,
    ConfirmPaymentHandler,
    CreateBookingHandler,
    ExpireHoldsHandler,
)
from apps.bookings.application.ports import PaymentGateway
from apps.bookings.application.queries import BookingPlanner, CheckAvailabilityHandler, QuoteHandler
from apps.bookings.infrastructure.payments import SandboxPaymentGateway, StripePaymentGateway
from apps.bookings.infrastructure.repositories import DjangoBookingStore, DjangoResourceStore


def _payment_timeout() -> float:
    return float(getattr(settings, "PAYMENT_TIMEOUT_SECONDS", 10))


def _transfer_block_hours() -> int:
    return int(getattr(settings, "TRANSFER_BLOCK_HOURS", 3))


def hold_minutes() -> int:
    return int(getattr(settings, "BOOKING_HOLD_MINUTES", 30))


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    """One gateway per process; the sandbox keeps its intents in memory."""

    if getattr(settings, "PAYMENTS_SANDBOX", False):
        return SandboxPaymentGateway()
    return StripePaymentGateway(getattr(settings, "STRIPE_SECRET_KEY", ""))


def availability_handler() -> CheckAvailabilityHandler:
    return CheckAvailabilityHandler(DjangoResourceStore(), DjangoBookingStore(), _transfer_block_hours())


def quote_handler() -> QuoteHandler:
    return QuoteHandler(BookingPlanner(DjangoResourceStore(), DjangoBookingStore(), _transfer_block_hours()))


def create_booking_handler() -> CreateBookingHandler:
    return CreateBookingHandler(
        DjangoResourceStore(),
        DjangoBookingStore(),
        get_payment_gateway(),
        payment_timeout=_payment_timeout(),
        transfer_block_hours=_transfer_block_hours(),
    )


def cancel_booking_handler() -> CancelBookingHandler:
    return CancelBookingHandler(DjangoBookingStore(), get_payment_gateway(), payment_timeout=_payment_timeout())


def change_status_handler() -> ChangeBookingStatusHandler:
    return ChangeBookingStatusHandler(DjangoBookingStore(), cancel_booking_handler())


def confirm_payment_handler() -> ConfirmPaymentHandler:
    return ConfirmPaymentHandler(DjangoBookingStore())


def expire_holds_handler() -> ExpireHoldsHandler:
    return ExpireHoldsHandler(DjangoBookingStore(), cancel_booking_handler())
