"""
Booking lifecycle

    pending_payment -> pending_approval -> confirmed -> completed
    cancelled from any non-terminal status
    no_show only from confirmed, after the slot has ended
"""
from datetime import datetime
from typing import Dict, FrozenSet

from easyagenda.core.errors import InvalidTransitionError
from easyagenda.schemas.booking import BookingStatus
from easyagenda.schemas.catalog import ConfirmationType

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
    BookingStatus.NO_SHOW,
})

# Statuses whose bookings occupy slot capacity
CAPACITY_HOLDING_STATUSES: FrozenSet[BookingStatus] = frozenset(
    status for status in BookingStatus if status != BookingStatus.CANCELLED
)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({
        BookingStatus.PENDING_APPROVAL,
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.PENDING_APPROVAL: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
        BookingStatus.CANCELLED,
    }),
}

# Targets that only make sense once the slot is over
REQUIRES_SLOT_END = frozenset({BookingStatus.COMPLETED, BookingStatus.NO_SHOW})


def initial_status(requires_payment: bool, confirmation_type: ConfirmationType) -> BookingStatus:
    """Status of a freshly reserved booking"""
    if requires_payment:
        return BookingStatus.PENDING_PAYMENT
    return status_after_payment(confirmation_type)


def status_after_payment(confirmation_type: ConfirmationType) -> BookingStatus:
    if ConfirmationType(confirmation_type) == ConfirmationType.MANUAL:
        return BookingStatus.PENDING_APPROVAL
    return BookingStatus.CONFIRMED


def is_terminal(status: BookingStatus) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def check_transition(
        current: BookingStatus,
        target: BookingStatus,
        slot_end: datetime,
        now: datetime,
) -> bool:
    """
    Validate a status change.

    Returns:
        True when the transition must be applied, False when it is a no-op
        (cancelling an already cancelled booking).

    Raises:
        InvalidTransitionError: the change is not part of the lifecycle or the
            slot has not ended yet for completed/no_show.
    """
    current = BookingStatus(current)
    target = BookingStatus(target)

    if current == target == BookingStatus.CANCELLED:
        return False

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"cannot move booking from {current.value} to {target.value}")

    if target in REQUIRES_SLOT_END and slot_end > now:
        raise InvalidTransitionError(f"cannot mark booking {target.value} before the slot ends")

    return True
