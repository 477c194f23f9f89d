"""Shared HTTP client manager for calendar feed downloads.

Keeps one pooled ``httpx.AsyncClient`` per client id so periodic refreshes
reuse connections instead of opening a new client for every source.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=30.0,
    write=10.0,
    pool=30.0,
)

# Some providers (Office365) reject obviously automated clients
DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) calendarapi/1.0",
    "Accept": "text/calendar, text/plain, application/octet-stream, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


async def get_shared_client(
    client_id: str = "default",
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            try:
                _shared_clients[client_id] = httpx.AsyncClient(
                    limits=limits or DEFAULT_LIMITS,
                    timeout=timeout or DEFAULT_TIMEOUT,
                    follow_redirects=True,
                    verify=True,
                    headers=DEFAULT_HEADERS,
                )
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

            logger.debug("Created shared HTTP client '%s'", client_id)

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown to release pooled connections.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
