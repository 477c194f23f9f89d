"""Resolution of the single event happening "now" for a calendar."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from typing import Optional

from calendarapi.calendar.models import ALL_CALENDARS, CalendarEvent

logger = logging.getLogger(__name__)


def resolve_current_event(
    events: Iterable[CalendarEvent],
    calendar_name: str,
    now: datetime.datetime,
) -> Optional[CalendarEvent]:
    """Pick the most relevant event in progress at ``now``.

    Candidates are events with ``start < now < end`` in the requested
    calendar (``all`` matches every calendar). Among overlapping candidates
    the one that started most recently wins; on an equal start delta an
    important candidate replaces a non-important one, otherwise the
    earlier-seen candidate is kept.

    Args:
        events: Events to choose from, in any order
        calendar_name: Calendar to consider, or ``all``
        now: Reference instant

    Returns:
        The selected event, or None when nothing is in progress
    """
    candidates = [
        event
        for event in events
        if (calendar_name == ALL_CALENDARS or event.calendar_name == calendar_name)
        and event.start < now < event.end
    ]

    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    closest: Optional[CalendarEvent] = None
    closest_delta: Optional[datetime.timedelta] = None
    for event in candidates:
        delta = now - event.start
        if closest_delta is None or delta < closest_delta:
            closest = event
            closest_delta = delta
        elif delta == closest_delta and event.important and closest is not None and not closest.important:
            closest = event

    logger.debug(
        "Resolved current event %r among %d overlapping candidates",
        closest.title if closest else None,
        len(candidates),
    )
    return closest
