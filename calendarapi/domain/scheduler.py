"""Background refresh loop management."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta
from typing import Optional

from calendarapi.domain.aggregation_cache import AggregationCache

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Drives periodic cache refreshes on a single background task.

    Each loop refreshes immediately and then once per interval. Restarting
    cancels the running loop before starting the next one, so a reload never
    leaves two timers firing.
    """

    def __init__(self, cache: AggregationCache, interval: timedelta) -> None:
        self.cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        """Whether a refresh loop task is active."""
        return self._task is not None and not self._task.done()

    async def _refresh_loop(self, stop_event: asyncio.Event, interval: float) -> None:
        logger.debug("Refresh loop starting with interval %.0f seconds", interval)
        while not stop_event.is_set():
            try:
                await self.cache.refresh()
            except Exception:
                logger.exception("Refresh loop unexpected error")

            # Sleep until the next tick unless asked to stop
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
        logger.debug("Refresh loop stopped")

    def start(self) -> None:
        """Start the refresh loop (initial refresh happens right away)."""
        if self.running:
            logger.debug("Refresh loop already running")
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._refresh_loop(self._stop_event, self.interval.total_seconds()),
            name="calendarapi-refresh",
        )
        logger.info("Calendar refresh scheduled every %s", self.interval)

    async def stop(self) -> None:
        """Stop the refresh loop and wait for it to exit."""
        task, self._task = self._task, None
        if self._stop_event is not None:
            self._stop_event.set()
        if task is None:
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def restart(self, interval: Optional[timedelta] = None) -> None:
        """Restart the loop, optionally with a new interval."""
        await self.stop()
        if interval is not None:
            self.interval = interval
        self.start()
