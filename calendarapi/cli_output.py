"""Human-readable rendering of API responses for the command line."""

from __future__ import annotations

import datetime
from typing import Optional

from colorlog.escape_codes import escape_codes

from calendarapi.calendar.models import BusyState, CalendarEvent, CustomStatus, Snapshot

_MARKED_STATES = (BusyState.TENTATIVE, BusyState.OUT_OF_OFFICE, BusyState.WORKING_ELSEWHERE)


def _style(text: str, color: Optional[str], enabled: bool) -> str:
    if not enabled or not color:
        return text
    return f"{escape_codes[color]}{text}{escape_codes['reset']}"


def _event_color(event: CalendarEvent, now: datetime.datetime) -> Optional[str]:
    if event.end < now:
        return "thin_white"
    if event.important:
        return "bold_red"
    if event.busy == BusyState.FREE:
        return "light_black"
    if event.busy == BusyState.TENTATIVE:
        return "yellow"
    if event.busy in (BusyState.OUT_OF_OFFICE, BusyState.WORKING_ELSEWHERE):
        return "purple"
    return None


def format_event(
    event: CalendarEvent,
    index: int,
    now: datetime.datetime,
    show_calendar: bool = False,
    color: bool = False,
) -> str:
    """Render one event as a numbered line."""
    start = event.start.astimezone(now.tzinfo)
    end = event.end.astimezone(now.tzinfo)

    line = f"{index:2d}) "
    if event.busy in _MARKED_STATES:
        line += f"[{event.busy.value}]"

    if event.all_day:
        line += f"{event.title} (all day)"
    else:
        line += f"{event.title}: <{start:%I:%M%p} - {end:%I:%M%p}>"

    if event.message:
        line += f" - {event.message}"
    if event.end < now:
        line += " (done)"

    line = _style(line, _event_color(event, now), color)
    if show_calendar:
        line += _style(f" ({event.calendar_name})", "light_black", color)
    return line


def format_snapshot(snapshot: Snapshot, now: datetime.datetime, color: bool = False) -> str:
    """Render a snapshot: all-day events first, then timed events."""
    last_updated = snapshot.last_updated.astimezone(now.tzinfo)
    lines = [
        _style(f"(last refreshed: {last_updated:%H:%M:%S})", "light_black", color),
        "",
        f"Calendar: {snapshot.calendar_name} Date: {last_updated:%Y-%m-%d}",
    ]

    show_calendar = any(e.calendar_name != snapshot.calendar_name for e in snapshot.entries)
    ordered = [e for e in snapshot.entries if e.all_day] + [e for e in snapshot.entries if not e.all_day]
    for index, event in enumerate(ordered, start=1):
        lines.append(format_event(event, index, now, show_calendar=show_calendar, color=color))

    if not ordered:
        lines.append("No events today")
    return "\n".join(lines)


def format_status(calendar_name: str, status: CustomStatus) -> str:
    """Render a custom status block."""
    if not status.is_set:
        return f"No custom status set for {calendar_name}"
    return "\n".join(
        [
            f"Custom status for {calendar_name}:",
            f"  - Title: {status.title}",
            f"  - Description: {status.description}",
            f"  - Icon: {status.icon} ({status.icon_size}x{status.icon_size})",
        ]
    )
