"""Polling watcher that reloads the configuration file when it changes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from typing import Callable, Optional

from calendarapi.core.config_manager import ConfigProvider

logger = logging.getLogger(__name__)

ReloadCallback = Callable[[ConfigProvider], Awaitable[None]]


class ConfigWatcher:
    """Watches a provider's config file and invokes a callback after reloads."""

    def __init__(
        self,
        provider: ConfigProvider,
        on_reload: ReloadCallback,
        poll_interval: float = 2.0,
    ) -> None:
        self.provider = provider
        self.on_reload = on_reload
        self.poll_interval = poll_interval
        self._task: Optional[asyncio.Task[None]] = None

    async def check_once(self) -> bool:
        """Reload and notify if the file changed. Returns True when a reload happened."""
        if not self.provider.has_changed():
            return False

        logger.info("Config file change detected. Reloading: %s", self.provider.path)
        if not self.provider.reload():
            return False

        try:
            await self.on_reload(self.provider)
        except Exception:
            logger.exception("Config reload callback failed")
        return True

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.check_once()

    def start(self) -> None:
        """Begin polling. No-op for providers without a backing file."""
        if self.provider.path is None or self._task is not None:
            return
        self._task = asyncio.create_task(self._watch(), name="calendarapi-config-watch")

    async def stop(self) -> None:
        """Stop polling."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
