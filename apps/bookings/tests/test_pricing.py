"""Tests for the rate calculator."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Money, Period

from apps.bookings.domain.entities import ResourceKind
from apps.bookings.domain.pricing import (
    DistanceRates,
    NightlyRates,
    Occupancy,
    ParticipantRates,
    PriceBreakdown,
    TieredRates,
    TransferTrip,
    compute_price,
    rate_table_from_dict,
)


def rental(n_days: int) -> Period:
    start = date(2030, 1, 1)
    return Period.from_dates(start, date.fromordinal(start.toordinal() + n_days))


def usd(amount) -> Money:
    return Money(amount, 'USD')


class TestTieredRates:

    def test_months_then_daily_without_weekly_rate(self):
        rates = TieredRates(currency='USD', daily_rate=Decimal('10'), monthly_rate=Decimal('200'))
        price = compute_price(rates, rental(35))

        assert price.total == usd('250')
        assert [(line.code, line.quantity) for line in price.base_lines] == [('monthly', 1), ('daily', 5)]

    def test_short_remainder_falls_back_to_daily(self):
        rates = TieredRates(
            currency='USD',
            daily_rate=Decimal('10'),
            weekly_rate=Decimal('60'),
            monthly_rate=Decimal('200'),
        )
        assert compute_price(rates, rental(35)).total == usd('250')

    def test_remainder_uses_weeks_before_days(self):
        rates = TieredRates(
            currency='USD',
            daily_rate=Decimal('10'),
            weekly_rate=Decimal('60'),
            monthly_rate=Decimal('200'),
        )
        # 30 days + 2 weeks
        assert compute_price(rates, rental(44)).total == usd('320')
        # 30 days + 2 weeks + 1 day
        assert compute_price(rates, rental(45)).total == usd('330')

    def test_daily_only(self):
        rates = TieredRates(currency='USD', daily_rate=Decimal('45.50'))
        price = compute_price(rates, rental(3))
        assert price.total == usd('136.50')
        assert price.unit == 'day'
        assert price.units == 3

    def test_insurance_and_deposit_are_fees(self):
        rates = TieredRates(
            currency='USD',
            daily_rate=Decimal('10'),
            insurance_fee=Decimal('5'),
            deposit=Decimal('100'),
        )
        price = compute_price(rates, rental(4))
        assert price.subtotal == usd('40')
        assert price.fee('insurance') == usd('20')
        assert price.fee('deposit') == usd('100')
        assert price.total == usd('160')


class TestParticipantRates:

    def test_discounts_and_tax(self):
        rates = ParticipantRates(currency='USD', base_price=Decimal('100'))
        price = compute_price(rates, rental(1), Occupancy(adults=2, children=1))

        assert price.subtotal == usd('270')
        assert price.fee('tax') == usd('27')
        assert price.total == usd('297.00')
        assert price.total_minor == 29700
        assert price.units == 3

    def test_seniors_and_infants(self):
        rates = ParticipantRates(currency='USD', base_price=Decimal('100'), tax_rate=Decimal('0'))
        price = compute_price(rates, rental(1), Occupancy(adults=1, seniors=1, infants=1))

        assert price.total == usd('185')
        assert price.fees == ()
        # Infants ride free and take no seat
        assert price.units == 2


class TestNightlyRates:

    def test_room_with_extra_guest_tax_and_cleaning(self):
        rates = NightlyRates(
            currency='USD',
            base_price=Decimal('100'),
            tax_rate=Decimal('10'),
            cleaning_fee=Decimal('25'),
            extra_guest_fee=Decimal('20'),
            included_guests=2,
        )
        price = compute_price(rates, rental(3), Occupancy(adults=3))

        assert price.base == usd('300')
        assert price.subtotal == usd('360')
        # Tax applies to the room price only
        assert price.fee('tax') == usd('30')
        assert price.fee('cleaning') == usd('25')
        assert price.total == usd('415')
        assert price.unit == 'night'

    def test_no_extra_guest_surcharge_within_included_guests(self):
        rates = NightlyRates(
            currency='USD',
            base_price=Decimal('80'),
            extra_guest_fee=Decimal('20'),
            included_guests=2,
        )
        price = compute_price(rates, rental(2), Occupancy(adults=1, children=1))
        assert price.surcharges == ()
        assert price.total == usd('160')


class TestDistanceRates:

    RATES = DistanceRates(
        currency='USD',
        base_price=Decimal('20'),
        price_per_km=Decimal('1.5'),
        airport_surcharge=Decimal('10'),
        night_surcharge=Decimal('5'),
    )

    def pickup(self, hour: int) -> Period:
        start = datetime(2030, 1, 1, hour, 0, tzinfo=timezone.utc)
        return Period(start, start.replace(hour=hour + 1) if hour < 23 else start.replace(day=2, hour=0))

    def test_airport_night_transfer(self):
        trip = TransferTrip(distance_km=Decimal('10'), transfer_type='airport_to_city')
        price = compute_price(self.RATES, self.pickup(23), trip=trip)

        assert {line.code for line in price.surcharges} == {'distance', 'airport', 'night'}
        assert price.total == usd('50')

    def test_daytime_point_to_point_transfer(self):
        trip = TransferTrip(distance_km=Decimal('12.3'), transfer_type='point_to_point')
        price = compute_price(self.RATES, self.pickup(12), trip=trip)
        assert price.total == usd('38.45')

    def test_early_morning_is_night(self):
        trip = TransferTrip(distance_km=Decimal('0'), transfer_type='point_to_point')
        assert compute_price(self.RATES, self.pickup(5), trip=trip).total == usd('25')
        assert compute_price(self.RATES, self.pickup(6), trip=trip).total == usd('20')

    def test_distance_is_required(self):
        with pytest.raises(ValidationError):
            compute_price(self.RATES, self.pickup(12))

    def test_unknown_transfer_type(self):
        with pytest.raises(ValidationError):
            TransferTrip(distance_km=Decimal('1'), transfer_type='teleport')


class TestRateTableFromDict:

    def test_parses_kind_specific_table(self):
        rates = rate_table_from_dict(ResourceKind.CAR, {'daily_rate': '10', 'monthly_rate': 200, 'color': 'red'}, 'USD')
        assert isinstance(rates, TieredRates)
        assert rates.daily_rate == Decimal('10')
        assert rates.weekly_rate is None

    def test_included_guests_is_an_integer(self):
        rates = rate_table_from_dict('hotel_room', {'base_price': '50', 'included_guests': '2'}, 'EUR')
        assert isinstance(rates, NightlyRates)
        assert rates.included_guests == 2

    def test_missing_rate(self):
        with pytest.raises(ValidationError) as exc:
            rate_table_from_dict(ResourceKind.TOUR, {}, 'USD')
        assert exc.value.reason == 'missing_rate'

    def test_negative_rate(self):
        with pytest.raises(ValidationError) as exc:
            rate_table_from_dict(ResourceKind.TRANSFER, {'base_price': '10', 'price_per_km': '-1'}, 'USD')
        assert exc.value.reason == 'invalid_rate'

    @pytest.mark.parametrize('field', ['child_discount', 'senior_discount', 'infant_discount'])
    def test_discount_over_100_percent(self, field):
        with pytest.raises(ValidationError) as exc:
            rate_table_from_dict(ResourceKind.TOUR, {'base_price': '100', field: '130'}, 'USD')
        assert exc.value.reason == 'invalid_rate'

    def test_full_discount_is_free(self):
        rates = rate_table_from_dict(ResourceKind.TOUR, {'base_price': '100', 'child_discount': '100'}, 'USD')
        assert rates.unit_price(rates.child_discount) == usd('0')


class TestOccupancy:

    def test_at_least_one_guest(self):
        with pytest.raises(ValidationError):
            Occupancy(adults=0, infants=1)

    def test_negative_counts(self):
        with pytest.raises(ValidationError):
            Occupancy(adults=1, children=-1)


def test_breakdown_survives_storage():
    rates = ParticipantRates(currency='USD', base_price=Decimal('100'))
    price = compute_price(rates, rental(1), Occupancy(adults=2, children=1))

    restored = PriceBreakdown.from_dict(price.to_dict())

    assert restored == price
    assert restored.to_dict()['total'] == '297.00'
