"""
Booking Queries

Read-only use cases:
- CheckAvailabilityQuery: can N units of a resource be held for a period
- QuoteQuery: availability plus the price a booking would cost

BookingPlanner holds the validation, availability and pricing stages
shared by quoting and CreateBookingHandler, so a quote and a booking for
the same request always agree.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable
from uuid import UUID
import logging

from shared.domain.base import utcnow
from shared.domain.exceptions import ConflictError, NotFoundError, ValidationError
from shared.domain.value_objects import Period

from apps.bookings.application.ports import BookingStore, ResourceStore
from apps.bookings.domain.entities import Resource, ResourceKind
from apps.bookings.domain.inventory import (
    DEFAULT_TRANSFER_BLOCK_HOURS,
    AvailabilityResult,
    Inventory,
    period_for,
)
from apps.bookings.domain.pricing import Occupancy, PriceBreakdown, TransferTrip, compute_price

logger = logging.getLogger(__name__)

NOT_AVAILABLE_MESSAGE = "Resource not available for selected dates"

# Kinds priced and blocked on whole days between two dates
RANGE_KINDS = frozenset({ResourceKind.HOTEL_ROOM, ResourceKind.CAR})

MIN_DRIVER_AGE = 21


# ===== Queries =====

@dataclass
class CheckAvailabilityQuery:
    resource_id: UUID
    start_date: date | datetime
    end_date: date | None = None
    start_time: time | None = None
    units: int = 1


@dataclass(kw_only=True)
class BookingRequest:
    """
    What a requester asks for

    For tours `units` is derived from the party size; for other kinds it
    defaults to one. Car bookings carry the driver's date of birth and
    licence expiry; quotes may leave them out.
    """
    resource_id: UUID
    start_date: date | datetime
    end_date: date | None = None
    start_time: time | None = None
    units: int | None = None
    occupancy: Occupancy = field(default_factory=Occupancy)
    luggage: int = 0
    distance_km: Decimal | None = None
    transfer_type: str = 'point_to_point'
    special_requests: str = ''
    # Car rentals only
    driver_birth_date: date | None = None
    license_expiry: date | None = None


@dataclass(kw_only=True)
class QuoteQuery(BookingRequest):
    pass


@dataclass(frozen=True)
class BookingPlan:
    """Everything known about a request after stages 1 to 5"""
    resource: Resource
    period: Period
    units: int
    occupancy: Occupancy
    availability: AvailabilityResult
    price: PriceBreakdown
    trip: TransferTrip | None = None

    def to_dict(self) -> dict:
        return {
            'resource_id': str(self.resource.id),
            'start': self.period.start.isoformat(),
            'end': self.period.end.isoformat(),
            'units': self.units,
            'occupancy': self.occupancy.to_dict(),
            'availability': self.availability.to_dict(),
            'price_breakdown': self.price.to_dict(),
        }


# ===== Planner =====

class BookingPlanner:
    """
    Validate, check and price a booking request without side effects

    Stages, failing fast in this order:
    1. input validation (ValidationError)
    2. resource exists (NotFoundError) and is active (ConflictError)
    3. business rules of the resource, driver eligibility for cars (ValidationError)
    4. availability (ConflictError 'not_available' when required)
    5. price computation
    """

    def __init__(
        self,
        resource_store: ResourceStore,
        booking_store: BookingStore,
        transfer_block_hours: int = DEFAULT_TRANSFER_BLOCK_HOURS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.resources = resource_store
        self.bookings = booking_store
        self.transfer_block_hours = transfer_block_hours
        self.clock = clock

    async def plan(
        self,
        request: BookingRequest,
        require_available: bool = True,
        require_driver: bool = True,
    ) -> BookingPlan:
        self.validate_request(request)

        resource = await self.load_resource(request.resource_id)
        if not resource.is_active:
            raise ConflictError(
                f"Resource {resource.id} is not accepting bookings",
                reason='resource_inactive',
            )

        period = self.period_for(resource, request)
        units = self.units_for(resource, request)
        trip = self.trip_for(resource, request)
        self.validate_against_resource(resource, request, period, units)
        if resource.kind == ResourceKind.CAR:
            self.validate_driver(request, period, required=require_driver)

        availability = await self.availability(resource, period, units)
        if require_available and not availability.available:
            logger.info(
                f"Resource {resource.id} not available for {period}: "
                f"{units} unit(s) requested, {availability.remaining_units} free"
            )
            raise ConflictError(NOT_AVAILABLE_MESSAGE, reason='not_available')

        price = compute_price(resource.rates, period, request.occupancy, trip)
        return BookingPlan(
            resource=resource,
            period=period,
            units=units,
            occupancy=request.occupancy,
            availability=availability,
            price=price,
            trip=trip,
        )

    def validate_request(self, request: BookingRequest):
        if request.start_date is None:
            raise ValidationError("Start date is required", reason='missing_start_date')
        if request.units is not None and request.units < 1:
            raise ValidationError("Units must be at least 1", reason='invalid_units')
        if request.luggage < 0:
            raise ValidationError("Luggage cannot be negative", reason='invalid_luggage')
        if request.end_date is not None and _day(request.end_date) <= _day(request.start_date):
            raise ValidationError("End date must be after start date", reason='invalid_period')

    async def load_resource(self, resource_id: UUID) -> Resource:
        resource = await self.resources.get(resource_id)
        if resource is None:
            raise NotFoundError(f"Resource {resource_id} not found", reason='resource_not_found')
        return resource

    def period_for(self, resource: Resource, request) -> Period:
        if resource.kind in RANGE_KINDS and request.end_date is None:
            raise ValidationError("End date is required", reason='missing_end_date')
        if resource.kind == ResourceKind.TRANSFER and request.start_time is None and not isinstance(request.start_date, datetime):
            raise ValidationError("Pickup time is required", reason='missing_start_time')
        return period_for(
            resource.kind,
            request.start_date,
            request.end_date,
            request.start_time,
            transfer_block_hours=self.transfer_block_hours,
        )

    def units_for(self, resource: Resource, request: BookingRequest) -> int:
        if resource.kind == ResourceKind.TOUR:
            # Every participant takes one seat on the departure
            return request.occupancy.guests
        return request.units or 1

    def trip_for(self, resource: Resource, request: BookingRequest) -> TransferTrip | None:
        if resource.kind != ResourceKind.TRANSFER:
            return None
        if request.distance_km is None:
            raise ValidationError("Distance is required for transfers", reason='missing_distance')
        return TransferTrip(distance_km=request.distance_km, transfer_type=request.transfer_type)

    def validate_against_resource(self, resource: Resource, request: BookingRequest, period: Period, units: int):
        now = self.clock()
        if resource.kind == ResourceKind.TRANSFER:
            if period.start < now:
                raise ValidationError("Pickup time cannot be in the past", reason='past_date')
        elif period.start_date < now.date():
            raise ValidationError("Start date cannot be in the past", reason='past_date')

        if resource.kind in RANGE_KINDS:
            days = period.days
            if days < resource.min_stay:
                raise ValidationError(
                    f"Minimum stay is {resource.min_stay} day(s)",
                    reason='min_stay',
                    details={'min_stay': resource.min_stay, 'requested': days},
                )
            if resource.max_stay is not None and days > resource.max_stay:
                raise ValidationError(
                    f"Maximum stay is {resource.max_stay} day(s)",
                    reason='max_stay',
                    details={'max_stay': resource.max_stay, 'requested': days},
                )

        guests = request.occupancy.guests
        if resource.kind == ResourceKind.TOUR:
            if guests > resource.capacity:
                raise ValidationError(
                    f"Group size ({guests}) exceeds the tour maximum ({resource.capacity})",
                    reason='max_occupancy',
                )
        elif resource.max_occupancy is not None and guests > resource.max_occupancy * units:
            raise ValidationError(
                f"Guests count ({guests}) exceeds capacity ({resource.max_occupancy * units})",
                reason='max_occupancy',
            )

        if resource.max_luggage is not None and request.luggage > resource.max_luggage * units:
            raise ValidationError(
                f"Luggage ({request.luggage}) exceeds capacity ({resource.max_luggage * units})",
                reason='max_luggage',
            )

        if units > resource.capacity:
            raise ValidationError(
                f"Requested units ({units}) exceed capacity ({resource.capacity})",
                reason='invalid_units',
            )

    def validate_driver(self, request: BookingRequest, period: Period, required: bool = True):
        """
        Car driver eligibility

        The driver must be MIN_DRIVER_AGE on the pickup date and the
        licence must still be valid on the return date.
        """
        birth_date, expiry = request.driver_birth_date, request.license_expiry
        if birth_date is None or expiry is None:
            if required:
                raise ValidationError(
                    "Driver date of birth and licence expiry are required",
                    reason='missing_driver_details',
                )
            return

        age = age_on(birth_date, period.start_date)
        if age < MIN_DRIVER_AGE:
            raise ValidationError(
                f"Driver must be at least {MIN_DRIVER_AGE} years old",
                reason='driver_too_young',
                details={'min_age': MIN_DRIVER_AGE, 'age': age},
            )
        if expiry < period.end_date:
            raise ValidationError(
                "Driver licence expires before the return date",
                reason='license_expires',
                details={'license_expiry': expiry.isoformat(), 'return_date': period.end_date.isoformat()},
            )

    async def availability(self, resource: Resource, period: Period, units: int) -> AvailabilityResult:
        blocking = await self.bookings.list_blocking(resource.id, period)
        inventory = Inventory.from_bookings(resource.id, resource.capacity, blocking)
        return inventory.check(period, units)


def _day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def age_on(birth_date: date, day: date) -> int:
    """Completed years on the given day"""
    return day.year - birth_date.year - ((day.month, day.day) < (birth_date.month, birth_date.day))


# ===== Query Handlers =====

class CheckAvailabilityHandler:
    """
    Answer whether units of a resource can be held for a period

    "No capacity" is a normal answer (available=False), never an error.
    Inactive resources are never available.
    """

    def __init__(self, resource_store: ResourceStore, booking_store: BookingStore,
                 transfer_block_hours: int = DEFAULT_TRANSFER_BLOCK_HOURS):
        self.planner = BookingPlanner(resource_store, booking_store, transfer_block_hours)

    async def handle(self, query: CheckAvailabilityQuery) -> AvailabilityResult:
        if query.units is None or query.units < 1:
            raise ValidationError("Units must be at least 1", reason='invalid_units')
        if query.end_date is not None and _day(query.end_date) <= _day(query.start_date):
            raise ValidationError("End date must be after start date", reason='invalid_period')

        resource = await self.planner.load_resource(query.resource_id)
        period = self.planner.period_for(resource, query)

        if not resource.is_active:
            return AvailabilityResult(
                available=False,
                conflicting_count=0,
                remaining_units=0,
                capacity=resource.capacity,
            )

        result = await self.planner.availability(resource, period, query.units)
        logger.debug(
            f"Availability for resource {resource.id} {period}: "
            f"available={result.available}, conflicts={result.conflicting_count}"
        )
        return result


class QuoteHandler:
    """Price a request and report availability, persisting nothing"""

    def __init__(self, planner: BookingPlanner):
        self.planner = planner

    async def handle(self, query: QuoteQuery) -> BookingPlan:
        return await self.planner.plan(query, require_available=False, require_driver=False)
