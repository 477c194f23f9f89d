"""Aggregation cache: concurrent per-source refresh and atomically published snapshots."""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
from typing import Callable, Optional

from calendarapi.calendar.exceptions import CalendarSourceError
from calendarapi.calendar.fetcher import SourceFetcher
from calendarapi.calendar.models import (
    ALL_CALENDARS,
    CalendarEvent,
    CalendarSource,
    Snapshot,
    normalize_calendar_filter,
)
from calendarapi.core.config_manager import ConfigProvider
from calendarapi.core.timezone_utils import get_local_timezone, now_local
from calendarapi.domain.current_event import resolve_current_event
from calendarapi.domain.pipeline import load_events
from calendarapi.domain.rules import Rule

logger = logging.getLogger(__name__)

TimeProvider = Callable[[], datetime.datetime]


class _Accumulator:
    """Merge target shared by the per-source tasks of one refresh."""

    def __init__(self, started: datetime.datetime) -> None:
        self.lock = asyncio.Lock()
        self.entries: list[CalendarEvent] = []
        self.last_updated = started

    async def add(self, events: list[CalendarEvent], finished: datetime.datetime) -> None:
        async with self.lock:
            self.entries.extend(events)
            self.last_updated = finished

    def build(self) -> Snapshot:
        # Stable sort: per-source start order survives across merged sources
        ordered = sorted(self.entries, key=lambda e: e.start)
        return Snapshot(last_updated=self.last_updated, entries=tuple(ordered))


class AggregationCache:
    """Owns the published snapshot of today's events across all calendars.

    Refreshes fan out one task per configured source, join them all, and
    then swap in the new snapshot. Readers only ever see a fully built
    snapshot and never wait on fetch work.
    """

    def __init__(
        self,
        config_provider: ConfigProvider,
        fetcher: Optional[SourceFetcher] = None,
        time_provider: TimeProvider = now_local,
        tz: Optional[datetime.tzinfo] = None,
    ) -> None:
        """Create the cache with an empty, unpublished snapshot.

        Args:
            config_provider: Source of calendars, rules and the fetch timeout
            fetcher: Fetcher for raw feeds (defaults to a SourceFetcher using the shared client)
            time_provider: Callable returning the current aware datetime
            tz: Local timezone; detected from the process when omitted
        """
        self._config_provider = config_provider
        self._fetcher = fetcher or SourceFetcher()
        self._time_provider = time_provider
        self._tz = tz or get_local_timezone()

        self._snapshot = Snapshot(last_updated=time_provider())
        self._published = False
        self._refresh_seq = 0
        self._published_seq = 0
        self._snapshot_lock = asyncio.Lock()
        self._cold_start_lock = asyncio.Lock()

    @property
    def is_published(self) -> bool:
        """Whether at least one refresh has published a snapshot."""
        return self._published

    async def _load_source(
        self,
        source: CalendarSource,
        rules: list[Rule],
        timeout: float,
        accumulator: _Accumulator,
    ) -> None:
        started = time.monotonic()
        try:
            events = await asyncio.wait_for(
                load_events(
                    source,
                    rules,
                    self._fetcher,
                    now=self._time_provider(),
                    tz=self._tz,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except CalendarSourceError as e:
            logger.error("Unable to load events for calendar %s: %s", source.name, e)
            events = []
        except asyncio.TimeoutError:
            logger.error("Unable to load events for calendar %s: timed out after %.1fs", source.name, timeout)
            events = []

        await accumulator.add(events, self._time_provider())
        logger.info(
            "Refreshed calendar %s in %dms (%d events)",
            source.name,
            (time.monotonic() - started) * 1000,
            len(events),
        )

    async def refresh(self) -> Snapshot:
        """Fetch every configured source concurrently and publish a new snapshot.

        Failing sources contribute no events; the refresh itself never fails
        because of a single source.

        A refresh that finishes after a newer one has already published
        discards its own result.

        Returns:
            The snapshot current once this refresh completes
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        sources = self._config_provider.sources()
        rules = self._config_provider.rules()
        timeout = self._config_provider.fetch_timeout()

        if not sources:
            logger.warning("No calendars configured; publishing an empty snapshot")
        if not rules:
            logger.warning("No rules configured; every event will be dropped")

        accumulator = _Accumulator(self._time_provider())
        results = await asyncio.gather(
            *(self._load_source(source, rules, timeout, accumulator) for source in sources),
            return_exceptions=True,
        )
        for source, result in zip(sources, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.error(
                    "Unexpected error loading calendar %s",
                    source.name,
                    exc_info=(type(result), result, result.__traceback__),
                )

        snapshot = accumulator.build()
        async with self._snapshot_lock:
            if seq < self._published_seq:
                logger.debug(
                    "Discarding snapshot from refresh #%d; refresh #%d already published",
                    seq,
                    self._published_seq,
                )
                return self._snapshot
            self._snapshot = snapshot
            self._published = True
            self._published_seq = seq

        logger.debug(
            "Published snapshot with %d events from %d calendars", len(snapshot.entries), len(sources)
        )
        return snapshot

    def peek(self) -> Snapshot:
        """The current snapshot without triggering a cold-start refresh."""
        return self._snapshot

    async def read(self) -> Snapshot:
        """Return the current snapshot, refreshing once first on a cold start."""
        if not self._published:
            async with self._cold_start_lock:
                # Concurrent cold readers share the refresh done by the first one
                if not self._published:
                    logger.info("Experiencing cold start. Fetching events now!")
                    await self.refresh()

        async with self._snapshot_lock:
            return self._snapshot

    async def get_snapshot(self, calendar_name: Optional[str] = ALL_CALENDARS) -> Snapshot:
        """Snapshot narrowed to one calendar (``all``, ``*`` or empty for every calendar)."""
        snapshot = await self.read()
        return snapshot.for_calendar(calendar_name)

    async def current_event(self, calendar_name: Optional[str] = ALL_CALENDARS) -> Optional[CalendarEvent]:
        """The event happening now for a calendar (or across all calendars)."""
        snapshot = await self.read()
        return resolve_current_event(
            snapshot.entries, normalize_calendar_filter(calendar_name), self._time_provider()
        )
