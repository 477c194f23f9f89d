"""Unit tests for calendarapi.domain.current_event."""

from datetime import timedelta

import pytest

from calendarapi.domain.current_event import resolve_current_event

pytestmark = pytest.mark.unit


class TestResolveCurrentEvent:
    """Tests for picking the event happening now."""

    def test_resolve_when_no_events_then_none(self, frozen_now):
        assert resolve_current_event([], "all", frozen_now) is None

    def test_resolve_ignores_past_and_future_events(self, make_event, frozen_now):
        events = [
            make_event("Past", start=frozen_now - timedelta(hours=2), end=frozen_now - timedelta(hours=1)),
            make_event("Future", start=frozen_now + timedelta(hours=1)),
        ]
        assert resolve_current_event(events, "all", frozen_now) is None

    def test_resolve_bounds_are_exclusive(self, make_event, frozen_now):
        starting_now = make_event("Starting", start=frozen_now)
        ending_now = make_event("Ending", start=frozen_now - timedelta(hours=1), end=frozen_now)

        assert resolve_current_event([starting_now, ending_now], "all", frozen_now) is None

    def test_resolve_single_candidate(self, make_event, frozen_now):
        event = make_event("Now")
        assert resolve_current_event([event], "all", frozen_now) is event

    def test_resolve_filters_by_calendar(self, make_event, frozen_now):
        work = make_event("Work thing", calendar_name="work")
        personal = make_event("Personal thing", calendar_name="personal")

        assert resolve_current_event([work, personal], "personal", frozen_now) is personal
        assert resolve_current_event([work], "personal", frozen_now) is None

    def test_resolve_prefers_most_recent_start_over_importance(self, make_event, frozen_now):
        older_important = make_event("Older", start=frozen_now - timedelta(seconds=5), important=True)
        newer = make_event("Newer", start=frozen_now - timedelta(seconds=3))

        assert resolve_current_event([older_important, newer], "all", frozen_now) is newer
        assert resolve_current_event([newer, older_important], "all", frozen_now) is newer

    def test_resolve_equal_delta_prefers_important_in_any_order(self, make_event, frozen_now):
        start = frozen_now - timedelta(seconds=5)
        plain = make_event("Plain", start=start)
        important = make_event("Important", start=start, important=True)

        assert resolve_current_event([plain, important], "all", frozen_now) is important
        assert resolve_current_event([important, plain], "all", frozen_now) is important

    @pytest.mark.parametrize("important", [True, False])
    def test_resolve_equal_delta_same_importance_keeps_first_seen(self, make_event, frozen_now, important):
        start = frozen_now - timedelta(minutes=10)
        first = make_event("First", start=start, important=important)
        second = make_event("Second", start=start, important=important)

        assert resolve_current_event([first, second], "all", frozen_now) is first
        assert resolve_current_event([second, first], "all", frozen_now) is second

    def test_resolve_smaller_delta_seen_later_wins(self, make_event, frozen_now):
        events = [
            make_event("Long block", start=frozen_now - timedelta(hours=2), end=frozen_now + timedelta(hours=2)),
            make_event("Quick call", start=frozen_now - timedelta(minutes=5)),
            make_event("Mid", start=frozen_now - timedelta(minutes=20)),
        ]

        assert resolve_current_event(events, "all", frozen_now).title == "Quick call"
