"""Unit tests for calendarapi.cli_output."""

from datetime import datetime, timedelta

import pytest

from calendarapi.calendar.models import BusyState, CustomStatus, Snapshot
from calendarapi.cli_output import format_event, format_snapshot, format_status

pytestmark = pytest.mark.unit


class TestFormatEvent:
    """Tests for single-event rendering."""

    def test_format_timed_event(self, make_event, frozen_now):
        event = make_event("Standup", start=frozen_now + timedelta(hours=1), message="bring notes")

        assert format_event(event, 1, frozen_now) == " 1) Standup: <01:00PM - 02:00PM> - bring notes"

    def test_format_marks_state_and_done(self, make_event, frozen_now):
        event = make_event(
            "Offsite",
            start=frozen_now - timedelta(hours=3),
            end=frozen_now - timedelta(hours=2),
            busy=BusyState.TENTATIVE,
        )

        assert format_event(event, 2, frozen_now) == " 2) [tentative]Offsite: <09:00AM - 10:00AM> (done)"

    def test_format_all_day_with_calendar(self, make_event, frozen_now):
        event = make_event("Vacation", all_day=True, busy=BusyState.OUT_OF_OFFICE, calendar_name="home")

        line = format_event(event, 3, frozen_now, show_calendar=True)

        assert line == " 3) [out-of-office]Vacation (all day) (home)"

    def test_format_with_color_adds_escape_codes(self, make_event, frozen_now):
        event = make_event("Urgent", start=frozen_now + timedelta(hours=1), important=True)

        line = format_event(event, 1, frozen_now, color=True)

        assert line.startswith("\033[")
        assert line.endswith("\033[0m")
        assert "Urgent" in line


class TestFormatSnapshot:
    """Tests for snapshot rendering."""

    def test_format_empty_snapshot(self, frozen_now):
        text = format_snapshot(Snapshot(last_updated=frozen_now), frozen_now)

        assert "Calendar: all Date: 2024-01-15" in text
        assert text.endswith("No events today")

    def test_format_lists_all_day_first(self, make_event, frozen_now):
        timed = make_event("Standup", start=frozen_now - timedelta(hours=3))
        all_day = make_event("Holiday", all_day=True)
        snapshot = Snapshot(last_updated=frozen_now, entries=(timed, all_day), calendar_name="work")

        lines = format_snapshot(snapshot, frozen_now).splitlines()

        assert lines[-2].startswith(" 1) Holiday")
        assert lines[-1].startswith(" 2) Standup")


class TestFormatStatus:
    """Tests for custom status rendering."""

    def test_format_unset_status(self):
        assert format_status("room-a", CustomStatus()) == "No custom status set for room-a"

    def test_format_set_status(self):
        text = format_status("room-a", CustomStatus(title="Busy", description="Back soon", icon="warn", icon_size=64))

        assert "Title: Busy" in text
        assert "Icon: warn (64x64)" in text
