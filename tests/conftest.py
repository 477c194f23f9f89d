"""Shared fixtures for calendarapi tests."""

from collections.abc import AsyncIterator, Generator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

from calendarapi.calendar.models import BusyState, CalendarEvent
from calendarapi.core.http_client import close_all_clients

UTC = ZoneInfo("UTC")

_ENV_VARS = (
    "CALENDARAPI_CONFIG",
    "CALENDARAPI_DEBUG",
    "CALENDARAPI_LOG_LEVEL",
    "CALENDARAPI_REFRESH",
    "CALENDARAPI_SERVER_HOST",
    "CALENDARAPI_SERVER_PORT",
    "CALENDARAPI_TEST_TIME",
    "CALENDARAPI_TIMEZONE",
)


def pytest_configure(config: Any) -> None:
    """Register calendarapi markers."""
    config.addinivalue_line("markers", "unit: Fast isolated unit tests")
    config.addinivalue_line("markers", "integration: Tests wiring real files, cache and REST app")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear CALENDARAPI_* variables so host settings never leak into tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest_asyncio.fixture
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients created during a test."""
    yield
    await close_all_clients()


@pytest.fixture
def utc() -> ZoneInfo:
    """Deterministic timezone for window and instant math."""
    return UTC


@pytest.fixture
def frozen_now() -> datetime:
    """Noon on 2024-01-15 UTC, the reference "now" used across tests."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_event(frozen_now: datetime) -> Callable[..., CalendarEvent]:
    """Factory for CalendarEvent objects with sensible defaults."""

    def _make(
        title: str = "Meeting",
        start: datetime | None = None,
        end: datetime | None = None,
        calendar_name: str = "work",
        **kwargs: Any,
    ) -> CalendarEvent:
        start = start or frozen_now - timedelta(minutes=30)
        end = end or start + timedelta(hours=1)
        kwargs.setdefault("busy", BusyState.BUSY)
        return CalendarEvent(title=title, start=start, end=end, calendar_name=calendar_name, **kwargs)

    return _make


@pytest.fixture
def ics_calendar() -> Callable[..., str]:
    """Build an ICS document from VEVENT bodies (lists of content lines)."""

    def _build(*events: list[str]) -> str:
        lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//calendarapi test//EN"]
        for index, body in enumerate(events):
            lines.append("BEGIN:VEVENT")
            if not any(line.startswith("UID") for line in body):
                lines.append(f"UID:event-{index}@calendarapi.test")
            lines.extend(body)
            lines.append("END:VEVENT")
        lines.append("END:VCALENDAR")
        return "\r\n".join(lines) + "\r\n"

    return _build


@pytest.fixture
def sample_ics(ics_calendar: Callable[..., str]) -> str:
    """Calendar with a timed meeting, an all-day OOF event, a cancelled
    meeting and an event on another day (relative to frozen_now)."""
    return ics_calendar(
        [
            "SUMMARY:Team Meeting",
            "DTSTART:20240115T113000Z",
            "DTEND:20240115T123000Z",
            "X-MICROSOFT-CDO-BUSYSTATUS:BUSY",
        ],
        [
            "SUMMARY:Vacation",
            "DTSTART;VALUE=DATE:20240115",
            "DTEND;VALUE=DATE:20240116",
            "X-MICROSOFT-CDO-BUSYSTATUS:OOF",
            "X-MICROSOFT-CDO-ALLDAYEVENT:TRUE",
        ],
        [
            "SUMMARY:Canceled: Budget review",
            "DTSTART:20240115T150000Z",
            "DTEND:20240115T160000Z",
            "X-MICROSOFT-CDO-BUSYSTATUS:BUSY",
        ],
        [
            "SUMMARY:Tomorrow sync",
            "DTSTART:20240116T090000Z",
            "DTEND:20240116T100000Z",
            "X-MICROSOFT-CDO-BUSYSTATUS:BUSY",
        ],
    )


@pytest.fixture
def write_ics(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write ICS content to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / f"{name}.ics"
        path.write_text(content, encoding="utf-8")
        return path

    return _write
