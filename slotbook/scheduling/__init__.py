from slotbook.scheduling.intervals import Interval, normalize, overlaps, subtract
from slotbook.scheduling.calendar import TimeZoneCalendar, get_time_zone
from slotbook.scheduling.slots import SlotGenerator
from slotbook.scheduling.availability import AvailabilityService

__all__ = [
    "Interval",
    "normalize",
    "subtract",
    "overlaps",
    "TimeZoneCalendar",
    "get_time_zone",
    "SlotGenerator",
    "AvailabilityService",
]
