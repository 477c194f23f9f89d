"""aiohttp REST server plus background refresh.

Wires the long-lived collaborators together:
- an AggregationCache refreshed by a RefreshScheduler
- a CustomStatusStore written by API calls
- a ConfigWatcher that reloads the config file and restarts the scheduler
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Optional

from aiohttp import web

from calendarapi.api.middleware import correlation_id_middleware, error_middleware
from calendarapi.api.routes import register_api_routes
from calendarapi.calendar.fetcher import SourceFetcher
from calendarapi.core.config_manager import ConfigProvider
from calendarapi.core.config_watcher import ConfigWatcher
from calendarapi.core.http_client import close_all_clients
from calendarapi.core.timezone_utils import now_local
from calendarapi.domain.aggregation_cache import AggregationCache, TimeProvider
from calendarapi.domain.scheduler import RefreshScheduler
from calendarapi.domain.status_store import CustomStatusStore

logger = logging.getLogger(__name__)


class CalendarService:
    """Owns the cache, status store, scheduler and config watcher of one process."""

    def __init__(
        self,
        provider: ConfigProvider,
        fetcher: Optional[SourceFetcher] = None,
        time_provider: TimeProvider = now_local,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.cache = AggregationCache(provider, fetcher=fetcher, time_provider=time_provider)
        self.status_store = CustomStatusStore()
        self.scheduler = RefreshScheduler(self.cache, provider.refresh_interval())
        self.watcher = ConfigWatcher(provider, self._on_config_reload)
        self.host = provider.config.server_host if host is None else host
        self.port = provider.config.server_port if port is None else port
        self._config_endpoint = (provider.config.server_host, provider.config.server_port)

    async def _on_config_reload(self, provider: ConfigProvider) -> None:
        config = provider.config
        if (config.server_host, config.server_port) != self._config_endpoint:
            logger.error(
                "Unable to change host or port at runtime! (configured %s:%d, serving %s:%d)",
                config.server_host,
                config.server_port,
                self.host,
                self.port,
            )
        await self.scheduler.restart(provider.refresh_interval())

    async def start(self) -> None:
        """Start background refresh and config watching."""
        self.scheduler.start()
        self.watcher.start()

    async def stop(self) -> None:
        """Stop background tasks and release HTTP connections."""
        await self.watcher.stop()
        await self.scheduler.stop()
        await close_all_clients()


def make_app(service: CalendarService) -> web.Application:
    """Create the aiohttp application with routes wired to the service."""
    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])
    app["service"] = service
    register_api_routes(app, service.cache, service.status_store)
    return app


async def serve(
    provider: ConfigProvider,
    host: Optional[str] = None,
    port: Optional[int] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the REST server and background tasks until signalled to stop.

    Args:
        provider: Loaded configuration
        host: Bind address override
        port: Port override
        stop_event: Optional event to signal shutdown. When provided, signal
            handlers are not registered (the caller owns signal handling).
    """
    service = CalendarService(provider, host=host, port=port)

    app = make_app(service)
    runner = web.AppRunner(app)
    await runner.setup()

    bind_host = service.host or None
    site = web.TCPSite(runner, host=bind_host, port=service.port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", service.host, service.port)
        await runner.cleanup()
        raise

    logger.info("REST API listening on %s:%d", service.host or "*", service.port)
    await service.start()

    owned_stop_event = stop_event is None
    stop_event = stop_event or asyncio.Event()
    if owned_stop_event:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        await service.stop()
        await runner.cleanup()
