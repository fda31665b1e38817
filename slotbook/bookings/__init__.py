from slotbook.bookings.history import HistoryChainResolver
from slotbook.bookings.lifecycle import BookingLifecycle
from slotbook.bookings.permissions import PERMISSIONS, Capability, Operation, authorize
from slotbook.bookings.state_machine import BookingEvent, next_status

__all__ = [
    "BookingLifecycle",
    "HistoryChainResolver",
    "PERMISSIONS",
    "Capability",
    "Operation",
    "authorize",
    "BookingEvent",
    "next_status",
]
