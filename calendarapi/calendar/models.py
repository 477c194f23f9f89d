"""Data models for calendar aggregation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

# Calendar filter values that select every calendar
ALL_CALENDARS = "all"
_ALL_CALENDAR_ALIASES = frozenset({"", "*", ALL_CALENDARS})


def normalize_calendar_filter(calendar_name: str | None) -> str:
    """Map empty/``*`` filters onto ``all``."""
    if calendar_name is None or calendar_name.strip() in _ALL_CALENDAR_ALIASES:
        return ALL_CALENDARS
    return calendar_name


class BusyState(str, Enum):
    """Availability status of an event."""

    FREE = "free"
    BUSY = "busy"
    TENTATIVE = "tentative"
    OUT_OF_OFFICE = "out-of-office"
    WORKING_ELSEWHERE = "working-elsewhere"


class SourceOrigin(str, Enum):
    """Where a calendar feed is read from."""

    FILE = "file"
    URL = "url"


class CalendarSource(BaseModel):
    """Configuration for a single calendar feed."""

    name: str = Field(..., min_length=1, description="Unique calendar name used for filtering")
    origin: SourceOrigin = Field(..., alias="from", description="Feed origin kind")
    location: str = Field(..., alias="ical", description="File path or URL of the ICS feed")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CalendarEvent(BaseModel):
    """Canonical calendar event.

    Immutable: the rule engine relabels ``message`` and ``important`` by
    producing a copy, so events shared through a snapshot never change.
    """

    title: str = Field(..., description="Event summary")
    start: datetime = Field(..., description="Start instant (timezone aware)")
    end: datetime = Field(..., description="End instant (timezone aware)")
    all_day: bool = Field(default=False, description="All-day event flag")
    busy: BusyState = Field(default=BusyState.FREE, description="Availability status")
    calendar_name: str = Field(..., description="Name of the owning calendar source")
    message: str = Field(default="", description="Free-text annotation set by rules")
    important: bool = Field(default=False, description="Importance flag set by rules")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_interval(self) -> CalendarEvent:
        if self.end < self.start:
            raise ValueError("event end must not be before its start")
        return self

    @field_serializer("start", "end")
    def serialize_instant(self, dt: datetime) -> int:
        """Serialize instants as Unix epoch seconds."""
        return int(dt.timestamp())


class Snapshot(BaseModel):
    """Immutable, atomically published set of cached events."""

    last_updated: datetime
    entries: tuple[CalendarEvent, ...] = ()
    calendar_name: str = ALL_CALENDARS

    model_config = ConfigDict(frozen=True)

    @field_serializer("last_updated")
    def serialize_last_updated(self, dt: datetime) -> int:
        """Serialize the timestamp as Unix epoch seconds."""
        return int(dt.timestamp())

    def for_calendar(self, calendar_name: str | None) -> Snapshot:
        """Return a snapshot narrowed to one calendar (or all of them)."""
        name = normalize_calendar_filter(calendar_name)
        if name == ALL_CALENDARS:
            entries = self.entries
        else:
            entries = tuple(e for e in self.entries if e.calendar_name == name)
        return Snapshot(last_updated=self.last_updated, entries=entries, calendar_name=name)


class CustomStatus(BaseModel):
    """Per-calendar custom status. The all-default instance means "no status set"."""

    title: str = ""
    description: str = ""
    icon: str = ""
    icon_size: int = 0

    @property
    def is_set(self) -> bool:
        """True when a status title has been set."""
        return bool(self.title)
