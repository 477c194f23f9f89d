"""Retrieval of raw calendar bytes from files and URLs."""

# Standard library imports
import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from calendarapi.calendar.exceptions import (
    CalendarFetchError,
    CalendarNetworkError,
    CalendarTimeoutError,
    UnsupportedSourceError,
)
from calendarapi.calendar.models import CalendarSource, SourceOrigin
from calendarapi.core.http_client import get_shared_client

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0


class SourceFetcher:
    """Reads calendar feeds from the local filesystem or over HTTP(S)."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional HTTP client; the shared pooled client is used when omitted
        """
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client("calendarapi_fetcher")

    async def fetch(self, source: CalendarSource, timeout: float = DEFAULT_FETCH_TIMEOUT) -> bytes:
        """Return the raw ICS bytes for a source.

        Raises:
            CalendarFetchError: The file or URL could not be read
            CalendarNetworkError: Network failure while downloading
            CalendarTimeoutError: The download exceeded ``timeout``
            UnsupportedSourceError: Unknown origin or non-HTTP(S) URL
        """
        if source.origin == SourceOrigin.FILE:
            return await self._fetch_file(source.location)
        if source.origin == SourceOrigin.URL:
            return await self._fetch_url(source.location, timeout)
        raise UnsupportedSourceError(
            f"unsupported origin {source.origin!r}; the only supported values are 'file' or 'url'"
        )

    async def _fetch_file(self, path: str) -> bytes:
        logger.debug("Reading ICS file %s", path)
        try:
            return await asyncio.to_thread(Path(path).expanduser().read_bytes)
        except OSError as e:
            raise CalendarFetchError(
                f"unable to read iCal file {path}: {e}; check the path exists and is accessible"
            ) from e

    async def _fetch_url(self, url: str, timeout: float) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise UnsupportedSourceError(f"invalid calendar URL {url!r}")

        client = await self._get_client()
        logger.debug("Fetching ICS from %s", url)
        try:
            response = await client.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise CalendarTimeoutError(f"request to {url} timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise CalendarNetworkError(
                f"failed making request to {url}: {e}; verify the URL exists and is accessible"
            ) from e

        if response.status_code >= 400:
            raise CalendarFetchError(
                f"request to {url} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return response.content
