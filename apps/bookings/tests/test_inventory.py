"""Tests for capacity accounting and blocked intervals."""

from datetime import date, datetime, time, timedelta, timezone
from uuid import uuid4

import pytest

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Period

from apps.bookings.domain.entities import ResourceKind
from apps.bookings.domain.inventory import Allocation, Inventory, period_for


def days(start: int, end: int) -> Period:
    return Period.from_dates(date(2030, 3, start), date(2030, 3, end))


def inventory(capacity: int, *allocations) -> Inventory:
    return Inventory(
        resource_id=uuid4(),
        capacity=capacity,
        allocations=[Allocation(booking_id=uuid4(), period=p, units=u) for p, u in allocations],
    )


class TestCapacity:

    def test_empty_inventory_is_available(self):
        result = inventory(1).check(days(1, 3))
        assert result.available
        assert result.remaining_units == 1
        assert result.conflicting_count == 0

    def test_n_plus_one_booking_is_rejected(self):
        capacity = 3
        inv = inventory(capacity, *[(days(10, 11), 1) for _ in range(capacity)])

        result = inv.check(days(10, 11))
        assert not result.available
        assert result.conflicting_count == capacity
        assert result.remaining_units == 0

    def test_adjacent_bookings_share_a_unit(self):
        inv = inventory(1, (days(1, 3), 1))
        assert inv.can_allocate(days(3, 5))
        assert inv.can_allocate(Period.from_dates(date(2030, 2, 27), date(2030, 3, 1)))
        assert not inv.can_allocate(days(2, 3))

    def test_back_to_back_bookings_do_not_add_up(self):
        # [1,3) and [3,5) never hold a unit at the same instant
        inv = inventory(1, (days(1, 3), 1), (days(3, 5), 1))
        assert inv.peak_usage(days(1, 5)) == 1
        assert not inv.can_allocate(days(2, 4))

    def test_peak_usage_counts_only_concurrent_units(self):
        # Two non-overlapping bookings inside the period use one unit at a time
        inv = inventory(2, (days(1, 3), 1), (days(5, 7), 1))
        assert inv.peak_usage(days(1, 8)) == 1
        assert inv.check(days(1, 8)).available
        assert inv.check(days(1, 8)).conflicting_count == 2

    def test_multi_unit_requests(self):
        inv = inventory(5, (days(1, 4), 3))
        assert inv.can_allocate(days(2, 3), units=2)
        assert not inv.can_allocate(days(2, 3), units=3)
        assert inv.can_allocate(days(4, 6), units=5)

    def test_units_must_be_positive(self):
        with pytest.raises(ValidationError):
            inventory(1).check(days(1, 2), units=0)

    def test_zero_capacity_is_never_available(self):
        assert not inventory(0).can_allocate(days(1, 2))


class TestPeriodFor:

    def test_range_kinds_use_whole_days(self):
        period = period_for(ResourceKind.HOTEL_ROOM, date(2030, 3, 1), date(2030, 3, 4))
        assert period == days(1, 4)
        assert period_for(ResourceKind.CAR, date(2030, 3, 1), date(2030, 3, 4)).days == 3

    def test_range_kinds_need_an_end_date(self):
        with pytest.raises(ValidationError):
            period_for(ResourceKind.CAR, date(2030, 3, 1))

    def test_tour_blocks_the_departure_day(self):
        assert period_for(ResourceKind.TOUR, date(2030, 3, 1)) == days(1, 2)

    def test_transfer_blocks_hours_from_pickup(self):
        period = period_for(ResourceKind.TRANSFER, date(2030, 3, 1), start_time=time(23, 0))
        assert period.start == datetime(2030, 3, 1, 23, 0, tzinfo=timezone.utc)
        assert period.end - period.start == timedelta(hours=3)

    def test_transfer_block_is_configurable(self):
        period = period_for(ResourceKind.TRANSFER, date(2030, 3, 1), start_time=time(9, 0), transfer_block_hours=1)
        assert period.end - period.start == timedelta(hours=1)
