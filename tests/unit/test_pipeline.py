"""Unit tests for calendarapi.domain.pipeline."""

import pytest

from calendarapi.calendar.exceptions import CalendarParseError
from calendarapi.calendar.fetcher import SourceFetcher
from calendarapi.calendar.models import BusyState, CalendarSource
from calendarapi.domain.pipeline import load_events
from calendarapi.domain.rules import Rule

pytestmark = pytest.mark.unit

KEEP_ALL = [Rule(name="keep-all", key="*", contains=["*"])]


class TestLoadEvents:
    """Tests for the per-source fetch, parse, normalize and filter pipeline."""

    async def test_load_events_from_file(self, sample_ics, write_ics, frozen_now, utc):
        source = CalendarSource(name="work", origin="file", location=str(write_ics("work", sample_ics)))

        events = await load_events(source, KEEP_ALL, SourceFetcher(), now=frozen_now, tz=utc)

        # Cancelled and tomorrow's events are gone; order follows start time
        assert [(e.title, e.all_day, e.busy) for e in events] == [
            ("Vacation", True, BusyState.OUT_OF_OFFICE),
            ("Team Meeting", False, BusyState.BUSY),
        ]
        assert all(e.calendar_name == "work" for e in events)

    async def test_load_events_applies_rules_in_order(self, sample_ics, write_ics, frozen_now, utc):
        source = CalendarSource(name="work", origin="file", location=str(write_ics("work", sample_ics)))
        rules = [
            Rule(key="busy", contains=["out-of-office"], skip=True),
            Rule(key="title", contains=["meeting"], message="Dial in", important=True),
        ]

        events = await load_events(source, rules, SourceFetcher(), now=frozen_now, tz=utc)

        assert [(e.title, e.message, e.important) for e in events] == [("Team Meeting", "Dial in", True)]

    async def test_load_events_when_content_invalid_then_raises(self, write_ics, frozen_now, utc):
        source = CalendarSource(name="work", origin="file", location=str(write_ics("work", "not a calendar")))

        with pytest.raises(CalendarParseError):
            await load_events(source, KEEP_ALL, SourceFetcher(), now=frozen_now, tz=utc)
