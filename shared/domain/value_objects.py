"""
Common Value Objects

Value objects used across multiple domains:
- Money: Fixed-point monetary amount with currency
- Period: Half-open time interval [start, end) used for reservations
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError

# Currencies without a minor unit (amount is already in the smallest unit)
ZERO_DECIMAL_CURRENCIES = frozenset({'BIF', 'CLP', 'JPY', 'KRW', 'PYG', 'RWF', 'UGX', 'VND', 'XAF', 'XOF'})


def currency_exponent(currency: str) -> int:
    """Number of decimal places used by a currency"""
    return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2


def to_decimal(value) -> Decimal:
    """Convert user input (str, int, float, Decimal) into a Decimal"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid monetary amount: {value!r}")


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with currency.
    The amount is quantized to the currency's exponent on construction,
    so every intermediate result is fixed-point and rounding is explicit.
    """
    amount: Decimal
    currency: str = 'USD'

    def __post_init__(self):
        if not self.currency or len(self.currency) != 3:
            raise ValidationError(f"Invalid currency code: {self.currency!r}")
        amount = to_decimal(self.amount)
        if not amount.is_finite():
            raise ValidationError("Amount must be a finite number")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")
        object.__setattr__(self, 'currency', self.currency.upper())
        object.__setattr__(self, 'amount', amount.quantize(self._quantum(), rounding=ROUND_HALF_UP))

    def _quantum(self) -> Decimal:
        return Decimal(1).scaleb(-currency_exponent(self.currency))

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(Decimal(0), currency)

    def to_minor_units(self) -> int:
        """Amount in the smallest currency unit (cents), rounded half-up"""
        scaled = self.amount.scaleb(currency_exponent(self.currency))
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def _check_currency(self, other: 'Money', operation: str):
        if not isinstance(other, Money):
            raise TypeError(f"Can only {operation} Money and Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {operation} different currencies: {self.currency} and {other.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, 'add')
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, 'subtract')
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor, rounding half-up to the currency exponent"""
        if isinstance(factor, bool) or not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def percent(self, rate) -> 'Money':
        """Return `rate` percent of this amount"""
        return self * (to_decimal(rate) / Decimal(100))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, 'compare')
        return self.amount < other.amount

    def __bool__(self) -> bool:
        return bool(self.amount)

    def __str__(self):
        return f"{self.amount:,} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


def as_utc(value: date | datetime, at: time | None = None) -> datetime:
    """
    Normalize a date or datetime into an aware UTC datetime

    Dates become midnight (or `at`) on that day. Naive datetimes and times
    are read as UTC wall clock.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, at or time.min, tzinfo=timezone.utc)
    raise ValidationError(f"Expected a date or datetime, got {type(value).__name__}")


@dataclass(frozen=True)
class Period(ValueObject):
    """
    Half-open interval [start, end)

    Used for stays, rentals, tour departures and transfer slots. The end
    instant is exclusive, so a period ending when another starts does
    not overlap it.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise ValidationError("Period bounds must be datetimes")
        object.__setattr__(self, 'start', as_utc(self.start))
        object.__setattr__(self, 'end', as_utc(self.end))
        if self.start >= self.end:
            raise ValidationError(f"Start ({self.start.isoformat()}) must be before end ({self.end.isoformat()})")

    @classmethod
    def from_dates(cls, start_date: date, end_date: date) -> 'Period':
        """Whole-day period: start_date inclusive, end_date exclusive"""
        return cls(as_utc(start_date), as_utc(end_date))

    @classmethod
    def starting_at(cls, start: datetime, duration: timedelta) -> 'Period':
        return cls(as_utc(start), as_utc(start) + duration)

    def overlaps_with(self, other: 'Period') -> bool:
        """
        Check if this period overlaps with another

        Overlap formula: start1 < end2 AND end1 > start2

        Examples:
            - [25, 28) overlaps with [27, 30) -> True
            - [25, 28) overlaps with [28, 31) -> False (adjacent)
        """
        if not isinstance(other, Period):
            raise TypeError("Can only check overlap with another Period")
        return self.start < other.end and self.end > other.start

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    @property
    def days(self) -> int:
        """Calendar days (nights for a stay) between start and end"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"Period({self.start.isoformat()}, {self.end.isoformat()})"
