"""Smoke tests for the offline console demo scenarios."""

import pytest

from console_demo import ConsoleSession


class TestConsoleScenarios:
    @pytest.mark.parametrize("scenario", ConsoleSession.SCENARIOS)
    def test_scenario_completes(self, scenario, capsys):
        ConsoleSession().run_scenario(scenario)
        out = capsys.readouterr().out
        assert f"Scenario '{scenario}' complete." in out

    def test_slots_scenario_hides_blocked_slots(self, capsys):
        session = ConsoleSession()
        session.run_scenario("slots")
        out = capsys.readouterr().out
        assert "Blackout" in out
        slots = session.availability.get_slots("provider-demo", "2026-03-02", "2026-03-02")
        assert len(slots) == 4

    def test_reschedule_scenario_reports_terminal_cancel(self, capsys):
        ConsoleSession().run_scenario("reschedule")
        out = capsys.readouterr().out
        assert "currentIndex=1" in out
        assert "[conflict] Cannot cancel a booking that is cancelled" in out

    def test_dst_scenario_skips_gap(self, capsys):
        session = ConsoleSession()
        session.run_scenario("dst")
        gap_day = session.availability.get_slots("provider-demo", "2026-03-29", "2026-03-29")
        assert [s.start_at.hour for s in gap_day] == [7]

    def test_unknown_scenario(self, capsys):
        ConsoleSession().run_scenario("nope")
        assert "Unknown scenario" in capsys.readouterr().out
