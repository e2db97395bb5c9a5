"""Tests for Money and Period."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Money, Period


def d(day: int) -> date:
    return date(2030, 1, day)


class TestMoney:

    def test_amount_is_quantized_half_up(self):
        assert Money('10.005', 'USD').amount == Decimal('10.01')
        assert Money('10.004', 'USD').amount == Decimal('10.00')

    def test_zero_decimal_currency_has_no_minor_digits(self):
        money = Money('1500.5', 'JPY')
        assert money.amount == Decimal('1501')
        assert money.to_minor_units() == 1501

    def test_minor_units(self):
        assert Money('297.00', 'usd').to_minor_units() == 29700
        assert Money('123.456', 'USD').to_minor_units() == 12346

    def test_currency_is_normalized(self):
        assert Money('1', 'eur').currency == 'EUR'

    def test_negative_amount_is_rejected(self):
        with pytest.raises(ValidationError):
            Money('-1', 'USD')

    def test_invalid_input_is_rejected(self):
        with pytest.raises(ValidationError):
            Money('abc', 'USD')
        with pytest.raises(ValidationError):
            Money('1', 'US')

    def test_arithmetic(self):
        assert Money('10', 'USD') + Money('5.50', 'USD') == Money('15.50', 'USD')
        assert Money('10', 'USD') * 3 == Money('30', 'USD')
        assert Money('270', 'USD').percent(10) == Money('27', 'USD')
        assert Money('1', 'USD') < Money('2', 'USD')

    def test_float_factor_does_not_drift(self):
        assert Money('0.10', 'USD') * 3 == Money('0.30', 'USD')
        assert Money('100', 'USD') * 0.7 == Money('70', 'USD')

    def test_currency_mismatch(self):
        with pytest.raises(ValueError):
            Money('1', 'USD') + Money('1', 'EUR')


class TestPeriod:

    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            Period.from_dates(d(5), d(5))
        with pytest.raises(ValidationError):
            Period.from_dates(d(6), d(5))

    def test_partial_overlap(self):
        assert Period.from_dates(d(25), d(28)).overlaps_with(Period.from_dates(d(27), d(30)))

    def test_adjacent_periods_do_not_overlap(self):
        first = Period.from_dates(d(25), d(28))
        second = Period.from_dates(d(28), d(31))
        assert not first.overlaps_with(second)
        assert not second.overlaps_with(first)

    def test_contained_period_overlaps(self):
        outer = Period.from_dates(d(1), d(10))
        inner = Period.from_dates(d(3), d(4))
        assert outer.overlaps_with(inner)
        assert inner.overlaps_with(outer)

    def test_disjoint_periods(self):
        assert not Period.from_dates(d(1), d(3)).overlaps_with(Period.from_dates(d(5), d(7)))

    def test_end_is_exclusive(self):
        period = Period.from_dates(d(1), d(3))
        last_minute = Period(datetime(2030, 1, 2, 23, 59, tzinfo=timezone.utc), datetime(2030, 1, 3, tzinfo=timezone.utc))
        assert period.overlaps_with(last_minute)
        assert not period.overlaps_with(Period.from_dates(d(3), d(4)))

    def test_naive_datetimes_are_read_as_utc(self):
        period = Period(datetime(2030, 1, 1, 10), datetime(2030, 1, 1, 13))
        assert period.start.tzinfo == timezone.utc
        assert period.end - period.start == timedelta(hours=3)

    def test_days(self):
        assert Period.from_dates(d(1), d(8)).days == 7
