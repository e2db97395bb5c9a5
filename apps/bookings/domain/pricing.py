"""
Rate Calculator

Pure pricing functions for every resource kind. A rate table is parsed
from the resource's `pricing` JSON once, then applied to a period and the
party travelling.

All arithmetic goes through Money (Decimal, quantized half-up to the
currency exponent). Nothing here touches storage or the network.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Money, Period, to_decimal

from apps.bookings.domain.entities import ResourceKind

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30

AIRPORT_TRANSFER_TYPES = frozenset({'airport_to_city', 'city_to_airport'})
TRANSFER_TYPES = AIRPORT_TRANSFER_TYPES | {'point_to_point', 'hourly'}

# Pickups in [22:00, 06:00) pay the night surcharge
NIGHT_STARTS_AT_HOUR = 22
NIGHT_ENDS_AT_HOUR = 6


# ===== Request value objects =====

@dataclass(frozen=True)
class Occupancy(ValueObject):
    """The party a booking is for"""
    adults: int = 1
    children: int = 0
    seniors: int = 0
    infants: int = 0

    def __post_init__(self):
        for name in ('adults', 'children', 'seniors', 'infants'):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name.capitalize()} cannot be negative", reason='invalid_occupancy')
        if self.guests < 1:
            raise ValidationError("At least one participant is required", reason='invalid_occupancy')

    @property
    def guests(self) -> int:
        """People that take a seat or a bed (infants excluded)"""
        return self.adults + self.children + self.seniors

    @property
    def total(self) -> int:
        return self.guests + self.infants

    def to_dict(self) -> dict:
        return {
            'adults': self.adults,
            'children': self.children,
            'seniors': self.seniors,
            'infants': self.infants,
        }


@dataclass(frozen=True)
class TransferTrip(ValueObject):
    distance_km: Decimal
    transfer_type: str = 'point_to_point'

    def __post_init__(self):
        distance = to_decimal(self.distance_km)
        if distance < 0:
            raise ValidationError("Distance cannot be negative", reason='invalid_distance')
        if self.transfer_type not in TRANSFER_TYPES:
            raise ValidationError(f"Unknown transfer type: {self.transfer_type}", reason='invalid_transfer_type')
        object.__setattr__(self, 'distance_km', distance)

    @property
    def is_airport(self) -> bool:
        return self.transfer_type in AIRPORT_TRANSFER_TYPES


# ===== Price breakdown =====

@dataclass(frozen=True)
class Charge(ValueObject):
    """One priced line: what it is, how many, and the line amount"""
    code: str
    amount: Money
    quantity: int = 1

    def to_dict(self) -> dict:
        return {'code': self.code, 'quantity': self.quantity, 'amount': str(self.amount.amount)}

    @classmethod
    def from_dict(cls, data: dict, currency: str) -> 'Charge':
        return cls(code=data['code'], amount=Money(data['amount'], currency), quantity=data.get('quantity', 1))


@dataclass(frozen=True)
class PriceBreakdown(ValueObject):
    """
    Itemised price

    subtotal = base + surcharges
    total = subtotal + fees
    """
    currency: str
    base_lines: Tuple[Charge, ...]
    surcharges: Tuple[Charge, ...] = ()
    fees: Tuple[Charge, ...] = ()
    units: int = 1
    unit: str = 'night'

    def _sum(self, lines) -> Money:
        total = Money.zero(self.currency)
        for line in lines:
            total = total + line.amount
        return total

    @property
    def base(self) -> Money:
        return self._sum(self.base_lines)

    @property
    def subtotal(self) -> Money:
        return self.base + self._sum(self.surcharges)

    @property
    def total(self) -> Money:
        return self.subtotal + self._sum(self.fees)

    @property
    def total_minor(self) -> int:
        return self.total.to_minor_units()

    def fee(self, code: str) -> Money | None:
        return next((f.amount for f in self.fees if f.code == code), None)

    def to_dict(self) -> dict:
        return {
            'currency': self.currency,
            'unit': self.unit,
            'units': self.units,
            'base': str(self.base.amount),
            'base_lines': [line.to_dict() for line in self.base_lines],
            'surcharges': [line.to_dict() for line in self.surcharges],
            'fees': [line.to_dict() for line in self.fees],
            'subtotal': str(self.subtotal.amount),
            'total': str(self.total.amount),
            'total_minor': self.total_minor,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PriceBreakdown':
        currency = data['currency']
        return cls(
            currency=currency,
            base_lines=tuple(Charge.from_dict(d, currency) for d in data.get('base_lines', [])),
            surcharges=tuple(Charge.from_dict(d, currency) for d in data.get('surcharges', [])),
            fees=tuple(Charge.from_dict(d, currency) for d in data.get('fees', [])),
            units=data.get('units', 1),
            unit=data.get('unit', 'night'),
        )


# ===== Rate tables =====

@dataclass(frozen=True)
class RateTable(ValueObject):
    currency: str

    def price(self, period: Period, occupancy: Occupancy, trip: TransferTrip | None = None) -> PriceBreakdown:
        raise NotImplementedError

    def money(self, amount) -> Money:
        return Money(amount, self.currency)


def tiered_base(days: int, daily: Money, weekly: Money | None = None, monthly: Money | None = None) -> list:
    """
    Base lines for a multi-day rental

    Months first when the rental is at least 30 days and a monthly rate
    exists; the remainder is priced by the weekly rule, then daily.
    """
    lines = []
    if monthly is not None and days >= DAYS_PER_MONTH:
        months, days = divmod(days, DAYS_PER_MONTH)
        lines.append(Charge('monthly', monthly * months, months))
    if weekly is not None and days >= DAYS_PER_WEEK:
        weeks, days = divmod(days, DAYS_PER_WEEK)
        lines.append(Charge('weekly', weekly * weeks, weeks))
    if days:
        lines.append(Charge('daily', daily * days, days))
    return lines


@dataclass(frozen=True)
class TieredRates(RateTable):
    """Cars: daily/weekly/monthly tiers, insurance per day, flat deposit"""
    daily_rate: Decimal
    weekly_rate: Decimal | None = None
    monthly_rate: Decimal | None = None
    insurance_fee: Decimal | None = None
    deposit: Decimal | None = None

    def price(self, period, occupancy, trip=None):
        days = period.days
        if days < 1:
            raise ValidationError("Rental must last at least one day", reason='invalid_period')

        base = tiered_base(
            days,
            self.money(self.daily_rate),
            self.money(self.weekly_rate) if self.weekly_rate is not None else None,
            self.money(self.monthly_rate) if self.monthly_rate is not None else None,
        )
        fees = []
        if self.insurance_fee:
            fees.append(Charge('insurance', self.money(self.insurance_fee) * days, days))
        if self.deposit:
            fees.append(Charge('deposit', self.money(self.deposit)))

        return PriceBreakdown(
            currency=self.currency,
            base_lines=tuple(base),
            fees=tuple(fees),
            units=days,
            unit='day',
        )


@dataclass(frozen=True)
class ParticipantRates(RateTable):
    """Tours: one base price, discounted per participant category, tax on top"""
    base_price: Decimal
    child_discount: Decimal = Decimal('30')
    senior_discount: Decimal = Decimal('15')
    infant_discount: Decimal = Decimal('100')
    tax_rate: Decimal = Decimal('10')

    def unit_price(self, discount: Decimal) -> Money:
        return self.money(self.base_price) * ((Decimal(100) - discount) / Decimal(100))

    def price(self, period, occupancy, trip=None):
        categories = (
            ('adult', occupancy.adults, Decimal(0)),
            ('child', occupancy.children, self.child_discount),
            ('senior', occupancy.seniors, self.senior_discount),
            ('infant', occupancy.infants, self.infant_discount),
        )
        base = [
            Charge(code, self.unit_price(discount) * count, count)
            for code, count, discount in categories
            if count
        ]
        breakdown = PriceBreakdown(
            currency=self.currency,
            base_lines=tuple(base),
            units=occupancy.guests,
            unit='participant',
        )
        if not self.tax_rate:
            return breakdown
        tax = Charge('tax', breakdown.subtotal.percent(self.tax_rate))
        return PriceBreakdown(
            currency=self.currency,
            base_lines=breakdown.base_lines,
            fees=(tax,),
            units=breakdown.units,
            unit=breakdown.unit,
        )


@dataclass(frozen=True)
class NightlyRates(RateTable):
    """Hotel rooms: per-night price, extra guests per night, tax on room price, cleaning"""
    base_price: Decimal
    tax_rate: Decimal = Decimal('0')
    cleaning_fee: Decimal | None = None
    extra_guest_fee: Decimal | None = None
    included_guests: int | None = None

    def price(self, period, occupancy, trip=None):
        nights = period.days
        if nights < 1:
            raise ValidationError("Stay must be at least one night", reason='invalid_period')

        room = Charge('nightly', self.money(self.base_price) * nights, nights)
        surcharges = []
        if self.extra_guest_fee and self.included_guests is not None and occupancy.guests > self.included_guests:
            extra = occupancy.guests - self.included_guests
            surcharges.append(Charge('extra_guest', self.money(self.extra_guest_fee) * (extra * nights), extra))

        fees = []
        if self.tax_rate:
            fees.append(Charge('tax', room.amount.percent(self.tax_rate)))
        if self.cleaning_fee:
            fees.append(Charge('cleaning', self.money(self.cleaning_fee)))

        return PriceBreakdown(
            currency=self.currency,
            base_lines=(room,),
            surcharges=tuple(surcharges),
            fees=tuple(fees),
            units=nights,
            unit='night',
        )


@dataclass(frozen=True)
class DistanceRates(RateTable):
    """Transfers: flat base plus per-km, airport and night surcharges"""
    base_price: Decimal
    price_per_km: Decimal = Decimal('0')
    airport_surcharge: Decimal | None = None
    night_surcharge: Decimal | None = None

    def price(self, period, occupancy, trip=None):
        if trip is None:
            raise ValidationError("Distance is required to price a transfer", reason='missing_distance')

        surcharges = []
        if self.price_per_km:
            surcharges.append(Charge('distance', self.money(self.price_per_km) * trip.distance_km))
        if self.airport_surcharge and trip.is_airport:
            surcharges.append(Charge('airport', self.money(self.airport_surcharge)))
        hour = period.start.hour
        if self.night_surcharge and (hour >= NIGHT_STARTS_AT_HOUR or hour < NIGHT_ENDS_AT_HOUR):
            surcharges.append(Charge('night', self.money(self.night_surcharge)))

        return PriceBreakdown(
            currency=self.currency,
            base_lines=(Charge('base', self.money(self.base_price)),),
            surcharges=tuple(surcharges),
            units=1,
            unit='trip',
        )


RATE_TABLES = {
    ResourceKind.HOTEL_ROOM: (NightlyRates, 'base_price'),
    ResourceKind.CAR: (TieredRates, 'daily_rate'),
    ResourceKind.TOUR: (ParticipantRates, 'base_price'),
    ResourceKind.TRANSFER: (DistanceRates, 'base_price'),
}

INTEGER_FIELDS = frozenset({'included_guests'})
DISCOUNT_FIELDS = frozenset({'child_discount', 'senior_discount', 'infant_discount'})


def rate_table_from_dict(kind: ResourceKind, data: dict, currency: str) -> RateTable:
    """
    Parse a resource's pricing JSON into a rate table

    Unknown keys are ignored. The required base rate must be present;
    every amount must be a non-negative number and discounts are
    percentages of at most 100.
    """
    table_cls, required = RATE_TABLES[ResourceKind(kind)]
    data = data or {}
    if data.get(required) in (None, ''):
        raise ValidationError(f"Pricing is missing {required}", reason='missing_rate')

    values = {}
    for name in table_cls.__dataclass_fields__:
        if name == 'currency' or data.get(name) in (None, ''):
            continue
        if name in INTEGER_FIELDS:
            try:
                values[name] = int(data[name])
            except (TypeError, ValueError):
                raise ValidationError(f"{name} must be an integer", reason='invalid_rate')
            continue
        value = to_decimal(data[name])
        if not value.is_finite() or value < 0:
            raise ValidationError(f"{name} must be a non-negative number", reason='invalid_rate')
        if name in DISCOUNT_FIELDS and value > 100:
            raise ValidationError(f"{name} cannot exceed 100 percent", reason='invalid_rate')
        values[name] = value

    return table_cls(currency=currency, **values)


def compute_price(
    rates: RateTable,
    period: Period,
    occupancy: Occupancy | None = None,
    trip: TransferTrip | None = None,
) -> PriceBreakdown:
    """Apply a rate table to a period and party"""
    return rates.price(period, occupancy or Occupancy(), trip)
