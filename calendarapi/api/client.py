"""Async HTTP client for a running calendarapi server."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from calendarapi.calendar.models import ALL_CALENDARS, CalendarEvent, CustomStatus, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:8099"


def _status_path(calendar_name: str) -> str:
    return f"/api/status/{quote(calendar_name, safe='')}"


class ApiClientError(Exception):
    """The server could not be reached or answered with an error."""


class CalendarApiClient:
    """Thin wrapper around the REST endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> CalendarApiClient:
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiClientError(
                f"{method} {path} failed with HTTP {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise ApiClientError(f"failed to talk to API at {self.base_url}: {e}") from e
        return response.json()

    async def get_calendar(self, calendar_name: str = ALL_CALENDARS) -> Snapshot:
        data = await self._request("GET", "/api/calendar", params={"calendar": calendar_name})
        return Snapshot.model_validate(data)

    async def get_current_event(self, calendar_name: str = ALL_CALENDARS) -> Optional[CalendarEvent]:
        data = await self._request("GET", "/api/calendar/current", params={"calendar": calendar_name})
        return CalendarEvent.model_validate(data) if data else None

    async def refresh(self) -> dict[str, Any]:
        return await self._request("POST", "/api/calendar/refresh")

    async def get_status(self, calendar_name: str) -> CustomStatus:
        data = await self._request("GET", _status_path(calendar_name))
        return CustomStatus.model_validate(data)

    async def set_status(self, calendar_name: str, status: CustomStatus) -> CustomStatus:
        data = await self._request("PUT", _status_path(calendar_name), json=status.model_dump())
        return CustomStatus.model_validate(data)

    async def clear_status(self, calendar_name: str) -> CustomStatus:
        data = await self._request("DELETE", _status_path(calendar_name))
        return CustomStatus.model_validate(data)
