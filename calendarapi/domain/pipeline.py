"""Per-source pipeline: fetch, parse today's window, normalize and filter."""

from __future__ import annotations

import datetime
import logging

from calendarapi.calendar.fetcher import DEFAULT_FETCH_TIMEOUT, SourceFetcher
from calendarapi.calendar.ics_parser import parse_ics
from calendarapi.calendar.models import CalendarEvent, CalendarSource
from calendarapi.calendar.normalizer import normalize_event
from calendarapi.core.timezone_utils import day_window
from calendarapi.domain.rules import Rule, apply_rules

logger = logging.getLogger(__name__)


async def load_events(
    source: CalendarSource,
    rules: list[Rule],
    fetcher: SourceFetcher,
    now: datetime.datetime,
    tz: datetime.tzinfo,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> list[CalendarEvent]:
    """Load today's events for one source and run them through the rules.

    Args:
        source: Calendar source to load
        rules: Ordered rules; the first matching rule decides keep/skip
        fetcher: Fetcher used to retrieve the raw feed
        now: Current time, selects the calendar day to load
        tz: Local timezone for the day window and event instants
        timeout: Network timeout for URL sources

    Returns:
        Kept events in ascending start order

    Raises:
        CalendarSourceError: The feed could not be fetched or parsed
    """
    content = await fetcher.fetch(source, timeout=timeout)

    window_start, window_end = day_window(now, tz)
    raw_events = parse_ics(content, window_start, window_end, tz)

    # Stable start-time order drives rule evaluation and downstream tie-breaks
    raw_events.sort(key=lambda raw: raw.start)

    events: list[CalendarEvent] = []
    dropped = 0
    for raw in raw_events:
        event = normalize_event(source.name, raw, tz)
        if event is None:
            continue
        kept = apply_rules(rules, event)
        if kept is None:
            dropped += 1
        else:
            events.append(kept)

    logger.debug(
        "Calendar %s: %d raw events, %d kept, %d dropped by rules",
        source.name,
        len(raw_events),
        len(events),
        dropped,
    )
    return events
