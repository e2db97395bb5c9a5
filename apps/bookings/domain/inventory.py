"""
Inventory Aggregate

This is the CRITICAL aggregate for preventing overbooking.
All capacity decisions MUST go through this aggregate.

A resource has `capacity` identical units. Each non-cancelled booking
holds `units` of them for its period. At no instant may the units held
by overlapping bookings exceed capacity.

Strategy (Defense in Depth):
1. Domain validation: can_allocate() computes peak concurrent usage
2. Conditional insert: the store re-runs can_allocate() under a lock
3. Pessimistic locking: SELECT FOR UPDATE on the resource row
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List
from uuid import UUID, uuid4

from shared.domain.base import Aggregate
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Period, as_utc

from apps.bookings.domain.entities import ResourceKind

DEFAULT_TRANSFER_BLOCK_HOURS = 3


@dataclass(frozen=True)
class Allocation:
    """
    Allocation - units held by one booking for a period

    Built from non-cancelled bookings when the inventory is loaded.
    """
    booking_id: UUID
    period: Period
    units: int = 1

    def __post_init__(self):
        if self.units < 1:
            raise ValueError("Allocation units must be at least 1")


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    conflicting_count: int
    remaining_units: int
    capacity: int

    def to_dict(self) -> dict:
        return {
            'available': self.available,
            'conflicting_count': self.conflicting_count,
            'remaining_units': self.remaining_units,
            'capacity': self.capacity,
        }


@dataclass(eq=False, kw_only=True)
class Inventory(Aggregate):
    """
    Inventory Aggregate Root

    Key invariants:
    - Peak concurrent units over any period never exceed capacity
    - Adjacent periods ([a, b) and [b, c)) do not compete for units

    Usage:
        inventory = Inventory(resource_id=..., capacity=3, allocations=[...])
        result = inventory.check(period, units=2)
        if result.available:
            ...  # store.add_if_available() re-checks under a lock
    """

    resource_id: UUID
    capacity: int
    allocations: List[Allocation] = field(default_factory=list)

    def __post_init__(self):
        if self.capacity < 0:
            raise ValueError("Capacity cannot be negative")

    def overlapping(self, period: Period) -> List[Allocation]:
        """Allocations whose period intersects the given one"""
        return [a for a in self.allocations if a.period.overlaps_with(period)]

    def peak_usage(self, period: Period) -> int:
        """
        Maximum units held at any single instant inside the period

        Sweep line over allocation boundaries clipped to the period.
        Releases are processed before acquisitions at the same instant,
        so back-to-back allocations never add up.
        """
        boundaries = []
        for allocation in self.overlapping(period):
            start = max(allocation.period.start, period.start)
            end = min(allocation.period.end, period.end)
            boundaries.append((start, 1, allocation.units))
            boundaries.append((end, 0, -allocation.units))

        peak = held = 0
        for _, _, delta in sorted(boundaries, key=lambda b: (b[0], b[1])):
            held += delta
            peak = max(peak, held)
        return peak

    def check(self, period: Period, units: int = 1) -> AvailabilityResult:
        if units < 1:
            raise ValidationError("Requested units must be at least 1", reason='invalid_units')
        peak = self.peak_usage(period)
        remaining = max(self.capacity - peak, 0)
        return AvailabilityResult(
            available=peak + units <= self.capacity,
            conflicting_count=len(self.overlapping(period)),
            remaining_units=remaining,
            capacity=self.capacity,
        )

    def can_allocate(self, period: Period, units: int = 1) -> bool:
        return self.check(period, units).available

    @classmethod
    def from_bookings(cls, resource_id: UUID, capacity: int, bookings) -> 'Inventory':
        """Build inventory from the bookings of a resource, skipping cancelled ones"""
        return cls(
            id=uuid4(),
            resource_id=resource_id,
            capacity=capacity,
            allocations=[
                Allocation(booking_id=b.id, period=b.period, units=b.units)
                for b in bookings
                if b.blocks_inventory
            ],
        )

    def __str__(self):
        return f"Inventory(resource={self.resource_id}, capacity={self.capacity}, allocations={len(self.allocations)})"


def period_for(
    kind: ResourceKind,
    start_date: date,
    end_date: date | None = None,
    start_time: time | None = None,
    transfer_block_hours: int = DEFAULT_TRANSFER_BLOCK_HOURS,
) -> Period:
    """
    Blocked interval for a request against a resource of the given kind

    - hotel_room / car: [start_date, end_date) on whole days
    - tour: the departure day, [tour_date, tour_date + 1 day)
    - transfer: [pickup, pickup + transfer_block_hours)
    """
    kind = ResourceKind(kind)
    if kind == ResourceKind.TRANSFER:
        pickup = start_date if isinstance(start_date, datetime) else as_utc(start_date, start_time)
        return Period.starting_at(pickup, timedelta(hours=transfer_block_hours))
    if kind == ResourceKind.TOUR:
        day = start_date.date() if isinstance(start_date, datetime) else start_date
        return Period.from_dates(day, day + timedelta(days=1))

    if end_date is None:
        raise ValidationError("End date is required", reason='missing_end_date')
    return Period.from_dates(_as_date(start_date), _as_date(end_date))


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value
