"""iCalendar parsing restricted to a time window.

Turns raw ICS bytes into ``RawEvent`` records: summary, aware start/end
instants and the vendor ``X-`` attributes. Recurring events are expanded
inside the window.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from dateutil.rrule import rrulestr
from icalendar import Calendar, vRecur

from calendarapi.calendar.exceptions import CalendarParseError
from calendarapi.core.timezone_utils import resolve_tzid

logger = logging.getLogger(__name__)


@dataclass
class RawEvent:
    """A parsed VEVENT occurrence before normalization."""

    summary: str
    start: datetime.datetime
    end: datetime.datetime
    custom_attributes: dict[str, str] = field(default_factory=dict)
    uid: str = ""


def _to_aware(value: Any, tzid: Optional[str], tz: datetime.tzinfo) -> datetime.datetime:
    """Convert an icalendar DATE/DATE-TIME value into an aware datetime.

    Dates become local midnight. Floating times use the TZID when it can be
    resolved (Windows names included), otherwise the local zone.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            return value
        return value.replace(tzinfo=resolve_tzid(tzid) or tz)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min, tzinfo=tz)
    raise CalendarParseError(f"unsupported date value {value!r}")


def _prop_value(component: Any, name: str, tz: datetime.tzinfo) -> Optional[datetime.datetime]:
    prop = component.get(name)
    if prop is None:
        return None
    return _to_aware(prop.dt, prop.params.get("TZID"), tz)


def _event_bounds(component: Any, tz: datetime.tzinfo) -> tuple[datetime.datetime, datetime.datetime]:
    start = _prop_value(component, "DTSTART", tz)
    if start is None:
        raise CalendarParseError("VEVENT without DTSTART")

    end = _prop_value(component, "DTEND", tz)
    if end is None:
        duration = component.get("DURATION")
        if duration is not None:
            end = start + duration.dt
        elif not isinstance(component.get("DTSTART").dt, datetime.datetime):
            end = start + datetime.timedelta(days=1)
        else:
            end = start
    return start, end


def _overlaps(
    start: datetime.datetime,
    end: datetime.datetime,
    window_start: datetime.datetime,
    window_end: datetime.datetime,
) -> bool:
    return start <= window_end and (end > window_start or start >= window_start)


def _custom_attributes(component: Any) -> dict[str, str]:
    return {
        str(key).upper(): str(value)
        for key, value in component.items()
        if str(key).upper().startswith("X-")
    }


def _exdates(component: Any, tz: datetime.tzinfo) -> set[datetime.datetime]:
    raw = component.get("EXDATE")
    if raw is None:
        return set()
    # A single EXDATE line parses to one object, several lines to a list
    entries = raw if isinstance(raw, list) else [raw]
    excluded: set[datetime.datetime] = set()
    for entry in entries:
        tzid = entry.params.get("TZID") if hasattr(entry, "params") else None
        for dt_value in getattr(entry, "dts", []):
            excluded.add(_to_aware(dt_value.dt, tzid, tz))
    return excluded


def _expand_occurrences(
    component: Any,
    start: datetime.datetime,
    end: datetime.datetime,
    window_start: datetime.datetime,
    window_end: datetime.datetime,
    tz: datetime.tzinfo,
) -> list[tuple[datetime.datetime, datetime.datetime]]:
    """Expand an RRULE into (start, end) pairs overlapping the window."""
    recur = dict(component.get("RRULE"))
    until_values = recur.pop("UNTIL", None)
    until = None
    if until_values:
        until_value = until_values[0]
        if isinstance(until_value, datetime.datetime):
            until = _to_aware(until_value, None, tz)
        else:
            # A DATE UNTIL includes the whole day
            until = datetime.datetime.combine(until_value, datetime.time.max, tzinfo=tz)

    # UNTIL is applied separately to avoid dateutil's aware/naive mismatch checks
    rule = rrulestr(vRecur(recur).to_ical().decode(), dtstart=start)
    duration = end - start
    excluded = _exdates(component, tz)

    occurrences = []
    for occ_start in rule.between(window_start - duration, window_end, inc=True):
        if until is not None and occ_start > until:
            break
        if occ_start in excluded:
            continue
        occ_end = occ_start + duration
        if _overlaps(occ_start, occ_end, window_start, window_end):
            occurrences.append((occ_start, occ_end))
    return occurrences


def parse_ics(
    content: bytes | str,
    window_start: datetime.datetime,
    window_end: datetime.datetime,
    tz: datetime.tzinfo,
) -> list[RawEvent]:
    """Parse ICS content and return the events overlapping ``[window_start, window_end]``.

    Args:
        content: Raw iCalendar bytes or text
        window_start: Inclusive window start (aware)
        window_end: Inclusive window end (aware)
        tz: Zone used for floating times and all-day dates

    Returns:
        Unordered list of RawEvent occurrences

    Raises:
        CalendarParseError: If the content is not a valid calendar
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    if "BEGIN:VCALENDAR" not in content:
        raise CalendarParseError("content is not an iCalendar document (missing BEGIN:VCALENDAR)")

    try:
        calendar = Calendar.from_ical(content)
    except (ValueError, IndexError, KeyError) as e:
        raise CalendarParseError(f"unable to parse iCalendar content: {e}") from e

    vevents = list(calendar.walk("VEVENT"))

    # Instances moved or edited via RECURRENCE-ID replace the generated occurrence
    overrides: set[tuple[str, datetime.datetime]] = set()
    for component in vevents:
        if component.get("RECURRENCE-ID") is not None:
            recurrence_id = _prop_value(component, "RECURRENCE-ID", tz)
            overrides.add((str(component.get("UID", "")), recurrence_id))

    events: list[RawEvent] = []
    for component in vevents:
        try:
            start, end = _event_bounds(component, tz)
        except CalendarParseError as e:
            logger.warning("Skipping malformed VEVENT %r: %s", component.get("UID"), e)
            continue

        uid = str(component.get("UID", ""))
        summary = str(component.get("SUMMARY", ""))
        attributes = _custom_attributes(component)

        if component.get("RRULE") is not None and component.get("RECURRENCE-ID") is None:
            try:
                occurrences = _expand_occurrences(component, start, end, window_start, window_end, tz)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping event %r with invalid RRULE: %s", uid, e)
                continue
            occurrences = [o for o in occurrences if (uid, o[0]) not in overrides]
        elif _overlaps(start, end, window_start, window_end):
            occurrences = [(start, end)]
        else:
            occurrences = []

        for occ_start, occ_end in occurrences:
            events.append(
                RawEvent(
                    summary=summary,
                    start=occ_start,
                    end=occ_end,
                    custom_attributes=dict(attributes),
                    uid=uid,
                )
            )

    logger.debug("Parsed %d VEVENTs into %d windowed events", len(vevents), len(events))
    return events
