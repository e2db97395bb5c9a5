"""
Status Transition Guard

Each resource kind has its own linear progression. Cancellation is the
only sideways edge and is closed once the booking has started.

Who may do what:
- requester: cancel only, and only before the booking has started
- owner: move forward (skipping steps is allowed), never cancel
- admin / system: any move the graph allows
"""

from shared.domain.exceptions import AuthorizationError, ConflictError

from apps.bookings.domain.entities import ActorRole, BookingStatus, ResourceKind

S = BookingStatus

PROGRESSIONS = {
    ResourceKind.HOTEL_ROOM: (S.PENDING, S.CONFIRMED, S.CHECKED_IN, S.CHECKED_OUT),
    ResourceKind.CAR: (S.PENDING, S.CONFIRMED, S.ACTIVE, S.COMPLETED),
    ResourceKind.TOUR: (S.PENDING, S.CONFIRMED, S.IN_PROGRESS, S.COMPLETED),
    ResourceKind.TRANSFER: (S.PENDING, S.CONFIRMED, S.ASSIGNED, S.IN_PROGRESS, S.COMPLETED),
}

STARTED_STATUSES = frozenset({S.CHECKED_IN, S.ACTIVE, S.IN_PROGRESS})
COMPLETED_STATUSES = frozenset({S.CHECKED_OUT, S.COMPLETED})
TERMINAL_STATUSES = COMPLETED_STATUSES | {S.CANCELLED}


def statuses_for(kind: ResourceKind) -> tuple:
    """Every status a booking of this kind can have"""
    return PROGRESSIONS[ResourceKind(kind)] + (S.CANCELLED,)


def is_cancellable(status: BookingStatus) -> bool:
    status = BookingStatus(status)
    return status not in STARTED_STATUSES and status not in TERMINAL_STATUSES


def _check_graph(kind: ResourceKind, current: BookingStatus, requested: BookingStatus):
    """Raise ConflictError unless the graph has an edge current -> requested"""
    progression = PROGRESSIONS[kind]
    if requested not in statuses_for(kind):
        raise ConflictError(
            f"Status {requested.value} does not apply to {kind.value} bookings",
            reason='invalid_status',
        )
    if current in TERMINAL_STATUSES:
        raise ConflictError(
            f"Booking is already {current.value} and cannot change",
            reason='terminal_status',
        )
    if requested == S.CANCELLED:
        if not is_cancellable(current):
            raise ConflictError(
                f"Cannot cancel a booking that is {current.value}",
                reason='not_cancellable',
            )
        return
    if progression.index(requested) <= progression.index(current):
        raise ConflictError(
            f"Invalid status transition: {current.value} -> {requested.value}",
            reason='invalid_transition',
        )


def check_transition(kind, current, requested, actor: ActorRole):
    """
    Validate a status change

    Raises:
        AuthorizationError: the actor's role does not allow this kind of move
        ConflictError: the move is not possible from the current status
    """
    kind = ResourceKind(kind)
    current = BookingStatus(current)
    requested = BookingStatus(requested)
    actor = ActorRole(actor)

    if actor == ActorRole.REQUESTER and requested != S.CANCELLED:
        raise AuthorizationError(
            "Only cancellation is available to the person who made the booking",
            reason='requester_cannot_change_status',
        )
    if actor == ActorRole.OWNER and requested == S.CANCELLED:
        raise AuthorizationError(
            "Resource owners cannot cancel bookings; contact support",
            reason='owner_cannot_cancel',
        )

    _check_graph(kind, current, requested)


def can_transition(kind, current, requested, actor: ActorRole) -> bool:
    try:
        check_transition(kind, current, requested, actor)
    except (AuthorizationError, ConflictError):
        return False
    return True
