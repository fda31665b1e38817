"""
Offline console demo: runs the scheduling core against an in-memory store.

Seeds one provider with a weekly template, then plays a pre-scripted
scenario using the real availability service, booking lifecycle and
history resolver. No database, no network, no configuration needed. The
clock is pinned so every run prints the same instants.

Usage:
    python console_demo.py
    python console_demo.py --scenario reschedule
    python console_demo.py --scenario dst
"""

import argparse
from datetime import datetime, timezone

from slotbook.bookings.history import HistoryChainResolver
from slotbook.bookings.lifecycle import BookingLifecycle
from slotbook.config import settings
from slotbook.errors import SchedulingError
from slotbook.logging_context import request_scope
from slotbook.scheduling.availability import AvailabilityService
from slotbook.schemas.availability_schema import Slot
from slotbook.schemas.booking_schema import Actor, Booking, Role
from slotbook.store import InMemorySchedulingStore
from slotbook.utils import to_iso_z

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_NOW = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
PROVIDER_ID = "provider-demo"
CLIENT_ID = "client-demo"

WORKWEEK = [
    {"dayOfWeek": day, "ranges": [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "17:00"}]}
    for day in range(1, 6)
]
# Sunday ranges that straddle both Europe/Berlin transitions in 2026.
SUNDAY_NIGHT = [{"dayOfWeek": 0, "ranges": [{"start": "02:00", "end": "04:00"}, {"start": "09:00", "end": "10:00"}]}]


class ConsoleSession:
    """Wires the scheduling core to a seeded in-memory store."""

    def __init__(self) -> None:
        self.store = InMemorySchedulingStore()
        self.availability = AvailabilityService(self.store, clock=self._clock)
        self.lifecycle = BookingLifecycle(self.store, self.availability, clock=self._clock)
        self.history = HistoryChainResolver(self.store)
        self.client = Actor(user_id=CLIENT_ID, role=Role.CLIENT)
        self.provider = Actor(user_id=PROVIDER_ID, role=Role.PROVIDER)

    @staticmethod
    def _clock() -> datetime:
        return DEMO_NOW

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def print_slots(self, slots: list[Slot], limit: int = 6) -> None:
        for slot in slots[:limit]:
            print(f"  {BLUE}{to_iso_z(slot.start_at)} -> {to_iso_z(slot.end_at)}{RESET}")
        if len(slots) > limit:
            self.system_log(f"... {len(slots) - limit} more")

    def print_booking(self, booking: Booking, marker: str = "") -> None:
        links = []
        if booking.rescheduled_from_id:
            links.append(f"from={booking.rescheduled_from_id[:8]}")
        if booking.rescheduled_to_id:
            links.append(f"to={booking.rescheduled_to_id[:8]}")
        print(
            f"  {YELLOW}{booking.id[:8]}{RESET} {booking.status.value:<9} "
            f"{to_iso_z(booking.start_at)} {' '.join(links)}{marker}"
        )

    # Pre-scripted scenarios for --scenario flag

    SCENARIOS = ("slots", "reschedule", "dst")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        handler = getattr(self, f"_scenario_{scenario}", None)
        if scenario not in self.SCENARIOS or handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SLOTBOOK - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Clock pinned at {to_iso_z(DEMO_NOW)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        try:
            with request_scope(f"demo-{scenario}"):
                handler()
        except SchedulingError as exc:
            print(f"{RED}[{exc.code}] {exc.message}{RESET}")

        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _seed(self, weekly: list[dict]) -> None:
        self.availability.update_availability(
            PROVIDER_ID, time_zone="Europe/Berlin", slot_duration_min=60, buffer_min=0, weekly=weekly
        )
        self.system_log(f"Provider {PROVIDER_ID} seeded in Europe/Berlin")

    def _scenario_slots(self) -> None:
        self._seed(WORKWEEK)

        self.say("Free slots on Monday 2026-03-02:")
        self.print_slots(self.availability.get_slots(PROVIDER_ID, "2026-03-02", "2026-03-02"), limit=10)

        blackout = self.availability.add_blackout(
            PROVIDER_ID, "2026-03-02T09:30:00Z", "2026-03-02T10:30:00Z", reason="Dentist"
        )
        self.system_log(f"Blackout {blackout.id[:8]} added ({blackout.reason})")

        booking = self.lifecycle.create(
            self.client, "request-1", "response-1", PROVIDER_ID, "2026-03-02T14:00:00Z"
        )
        self.system_log(f"Booking {booking.id[:8]} created at {to_iso_z(booking.start_at)}")

        self.say("Free slots after the blackout and the booking:")
        self.print_slots(self.availability.get_slots(PROVIDER_ID, "2026-03-02", "2026-03-02"), limit=10)

    def _scenario_reschedule(self) -> None:
        self._seed(WORKWEEK)

        first = self.lifecycle.create(
            self.client, "request-1", "response-1", PROVIDER_ID, "2026-03-09T08:00:00Z"
        )
        self.system_log(f"Booked {to_iso_z(first.start_at)}")
        second = self.lifecycle.reschedule(
            self.client, first.id, "2026-03-10T09:00:00Z", reason="Clash at work"
        )
        self.system_log(f"Client moved it to {to_iso_z(second.start_at)}")
        third = self.lifecycle.reschedule(
            self.provider, second.id, "2026-03-11T13:00:00Z", reason="Provider running late"
        )
        self.system_log(f"Provider moved it to {to_iso_z(third.start_at)}")

        history = self.history.get_history(self.client, second.id)
        self.say(
            f"History of {second.id[:8]}: root={history.root_id[:8]} "
            f"latest={history.latest_id[:8]} currentIndex={history.current_index}"
        )
        for index, item in enumerate(history.items):
            self.print_booking(item, "  <- requested" if index == history.current_index else "")

        self.say("Trying to cancel the superseded booking:")
        self.lifecycle.cancel(self.client, first.id)

    def _scenario_dst(self) -> None:
        self._seed(SUNDAY_NIGHT)

        for label, day in [
            ("Sunday before spring-forward", "2026-03-22"),
            ("Spring-forward Sunday (02:00-03:00 does not exist)", "2026-03-29"),
            ("Fall-back Sunday (02:00-03:00 happens twice)", "2026-10-25"),
        ]:
            self.say(f"{label}, {day}:")
            self.print_slots(self.availability.get_slots(PROVIDER_ID, day, day))


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline scheduling demo")
    parser.add_argument(
        "--scenario",
        choices=list(ConsoleSession.SCENARIOS),
        default="slots",
        help="Pre-scripted scenario to play",
    )
    args = parser.parse_args()

    print(f"{DIM}Service: {settings.service_name}{RESET}")
    ConsoleSession().run_scenario(args.scenario)


if __name__ == "__main__":
    main()
