"""Conversion of parsed ICS records into canonical calendar events."""

from __future__ import annotations

import datetime
import logging
from typing import Optional

from pydantic import ValidationError

from calendarapi.calendar.ics_parser import RawEvent
from calendarapi.calendar.models import BusyState, CalendarEvent

logger = logging.getLogger(__name__)

# Outlook/Exchange marks cancelled and declined meetings in the summary
DISCARD_MARKERS = ("Canceled", "Declined")

BUSY_STATUS_ATTRIBUTE = "X-MICROSOFT-CDO-BUSYSTATUS"
ALL_DAY_ATTRIBUTE = "X-MICROSOFT-CDO-ALLDAYEVENT"

BUSY_STATUS_MAP: dict[str, BusyState] = {
    "FREE": BusyState.FREE,
    "BUSY": BusyState.BUSY,
    "TENTATIVE": BusyState.TENTATIVE,
    "OOF": BusyState.OUT_OF_OFFICE,
    "WORKINGELSEWHERE": BusyState.WORKING_ELSEWHERE,
}


def normalize_event(
    calendar_name: str, raw: RawEvent, tz: datetime.tzinfo
) -> Optional[CalendarEvent]:
    """Build a CalendarEvent from a raw record, or None if it must be discarded.

    Args:
        calendar_name: Name of the configured source the record came from
        raw: Parsed ICS record
        tz: Local timezone the instants are converted to

    Returns:
        CalendarEvent, or None for cancelled/declined or invalid records
    """
    if any(marker in raw.summary for marker in DISCARD_MARKERS):
        logger.debug("Discarding cancelled/declined event %r", raw.summary)
        return None

    busy = BUSY_STATUS_MAP.get(raw.custom_attributes.get(BUSY_STATUS_ATTRIBUTE, ""), BusyState.FREE)
    all_day = raw.custom_attributes.get(ALL_DAY_ATTRIBUTE) == "TRUE"

    try:
        return CalendarEvent(
            title=raw.summary,
            start=raw.start.astimezone(tz),
            end=raw.end.astimezone(tz),
            all_day=all_day,
            busy=busy,
            calendar_name=calendar_name,
        )
    except ValidationError as e:
        logger.warning("Dropping invalid event %r from %s: %s", raw.summary, calendar_name, e)
        return None
