"""Tests for the booking status state machine."""

import pytest

from slotbook.bookings.state_machine import (
    TRANSITIONS,
    BookingEvent,
    is_terminal,
    next_status,
)
from slotbook.errors import ConflictError
from slotbook.schemas.booking_schema import BookingStatus


class TestTransitions:
    def test_cancel_confirmed(self):
        assert next_status(BookingStatus.CONFIRMED, BookingEvent.CANCEL) == BookingStatus.CANCELLED

    def test_complete_confirmed(self):
        assert next_status(BookingStatus.CONFIRMED, BookingEvent.COMPLETE) == BookingStatus.COMPLETED

    def test_reschedule_cancels(self):
        assert (
            next_status(BookingStatus.CONFIRMED, BookingEvent.RESCHEDULE)
            == BookingStatus.CANCELLED
        )

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    @pytest.mark.parametrize("event", list(BookingEvent))
    def test_terminal_statuses_reject_every_event(self, status, event):
        with pytest.raises(ConflictError, match=f"Cannot {event.value} a booking that is {status.value}"):
            next_status(status, event)

    def test_all_transitions_leave_confirmed(self):
        assert {t.from_status for t in TRANSITIONS} == {BookingStatus.CONFIRMED}


class TestHelpers:
    def test_is_terminal(self):
        assert not is_terminal(BookingStatus.CONFIRMED)
        assert is_terminal(BookingStatus.CANCELLED)
        assert is_terminal(BookingStatus.COMPLETED)
