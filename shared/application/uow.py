"""
Unit of Work Pattern

Collects domain events raised by aggregates during a use case and
publishes them only after the use case completed without error.
Persistence itself is delegated to the injected stores, each of which
writes atomically.
"""

from typing import List
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Async Unit of Work

    Usage:
        async with UnitOfWork() as uow:
            booking = await booking_store.get(booking_id)
            booking.confirm_payment(intent_id)
            await booking_store.save(booking)
            uow.collect_events(booking)
        # Events are published here, after the block succeeded
    """

    def __init__(self, bus=None):
        if bus is None:
            from shared.application.message_bus import message_bus as bus
        self._bus = bus
        self._events: List[DomainEvent] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    def commit(self):
        """Publish collected events"""
        events = self._events.copy()
        self._events.clear()
        if not events:
            return

        logger.debug(f"Publishing {len(events)} domain events after commit")
        try:
            self._bus.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
            # State is already persisted; publishing failures are handled by monitoring

    def rollback(self):
        """Discard events collected so far"""
        if self._events:
            logger.warning(f"Rolling back unit of work, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Extracts all domain events from the aggregate and
        clears them from the aggregate.
        """
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )
