"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync  # type: ignore
from celery import shared_task  # type: ignore

from apps.bookings.application.command_handlers import ExpireHoldsCommand

from . import services

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_unpaid_bookings")
def expire_unpaid_bookings() -> dict[str, int]:
    """
    Cancel bookings whose payment never arrived.

    Finds bookings still PENDING with payment PENDING after
    BOOKING_HOLD_MINUTES, voids their payment intents and cancels them
    as the system, freeing the units they held.

    Returns:
        dict: {"expired": cancelled count, "failed": count left for the next run}
    """
    handler = services.expire_holds_handler()
    result = async_to_sync(handler.handle)(ExpireHoldsCommand(hold_minutes=services.hold_minutes()))

    if result.expired or result.failed:
        logger.info(f"Expired {len(result.expired)} unpaid bookings ({len(result.failed)} failed)")

    return {"expired": len(result.expired), "failed": len(result.failed)}
