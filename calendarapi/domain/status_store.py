"""In-memory custom status store keyed by calendar name."""

from __future__ import annotations

import logging
import threading

from calendarapi.calendar.models import CustomStatus

logger = logging.getLogger(__name__)


class CustomStatusStore:
    """Thread-safe mapping of calendar name to CustomStatus.

    Guarded by its own lock, independent of the aggregation cache. A
    calendar without an entry reads back as the zero-value status.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[str, CustomStatus] = {}

    def get(self, calendar_name: str) -> CustomStatus:
        """Return the status for a calendar, or the zero value if none is set."""
        with self._lock:
            status = self._statuses.get(calendar_name)
        return status.model_copy() if status is not None else CustomStatus()

    def set(self, calendar_name: str, status: CustomStatus) -> None:
        """Unconditionally replace the status for a calendar."""
        with self._lock:
            self._statuses[calendar_name] = status.model_copy()
        logger.info("Set custom status for %s: %r", calendar_name, status.title)

    def clear(self, calendar_name: str) -> None:
        """Reset the status for a calendar to the zero value."""
        self.set(calendar_name, CustomStatus())

    def all(self) -> dict[str, CustomStatus]:
        """Copy of every stored status."""
        with self._lock:
            return {name: status.model_copy() for name, status in self._statuses.items()}
