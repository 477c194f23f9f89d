"""Exception hierarchy for calendar source processing."""

from typing import Optional


class CalendarSourceError(Exception):
    """Base exception for anything that fails while processing one calendar source."""


class CalendarFetchError(CalendarSourceError):
    """Raw calendar bytes could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CalendarNetworkError(CalendarFetchError):
    """Network error while downloading a calendar feed."""


class CalendarTimeoutError(CalendarFetchError):
    """The source did not answer before its deadline."""


class UnsupportedSourceError(CalendarFetchError):
    """The source origin or URL scheme is not supported."""


class CalendarParseError(CalendarSourceError):
    """The calendar content is not valid iCalendar data."""
