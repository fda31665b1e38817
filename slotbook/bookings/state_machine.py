"""
Booking status state machine.

Statuses are monotonic: a booking starts confirmed and may move once to
either cancelled or completed. Reschedule is a cancel of the old booking
annotated with a forward link; it shares the terminal ``cancelled`` value.

Usage:
    next_status(BookingStatus.CONFIRMED, BookingEvent.CANCEL)
    # -> BookingStatus.CANCELLED
"""

from dataclasses import dataclass
from enum import Enum

from slotbook.errors import ConflictError
from slotbook.schemas.booking_schema import BookingStatus


class BookingEvent(str, Enum):
    """Events that move a booking between statuses."""
    CANCEL = "cancel"
    COMPLETE = "complete"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    event: BookingEvent


TRANSITIONS: list[Transition] = [
    Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingEvent.CANCEL),
    Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingEvent.COMPLETE),
    Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingEvent.RESCHEDULE),
]

TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


def next_status(current: BookingStatus, event: BookingEvent) -> BookingStatus:
    """
    Resolve the status an event leads to.

    Raises:
        ConflictError: If the event is not valid from ``current``.
    """
    for t in TRANSITIONS:
        if t.from_status == current and t.event == event:
            return t.to_status
    raise ConflictError(
        f"Cannot {event.value} a booking that is {current.value}"
    )


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES
