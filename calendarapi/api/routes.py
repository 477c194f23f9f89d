"""REST routes exposing the aggregation cache and the custom status store."""

from __future__ import annotations

import logging

from aiohttp import web
from pydantic import ValidationError

from calendarapi.calendar.models import ALL_CALENDARS, CustomStatus
from calendarapi.domain.aggregation_cache import AggregationCache
from calendarapi.domain.status_store import CustomStatusStore

logger = logging.getLogger(__name__)


def register_api_routes(
    app: web.Application,
    cache: AggregationCache,
    status_store: CustomStatusStore,
) -> None:
    """Register the calendar and custom status routes.

    Args:
        app: aiohttp web application
        cache: Aggregation cache serving snapshots and current events
        status_store: Store backing the custom status endpoints
    """

    async def get_calendar(request: web.Request) -> web.Response:
        """Today's events, optionally narrowed to one calendar."""
        calendar_name = request.query.get("calendar", ALL_CALENDARS)
        snapshot = await cache.get_snapshot(calendar_name)
        return web.json_response(snapshot.model_dump(mode="json"))

    async def get_current_event(request: web.Request) -> web.Response:
        """The event in progress right now, or an empty object."""
        calendar_name = request.query.get("calendar", ALL_CALENDARS)
        event = await cache.current_event(calendar_name)
        if event is None:
            return web.json_response({})
        return web.json_response(event.model_dump(mode="json"))

    async def refresh_calendar(_request: web.Request) -> web.Response:
        """Synchronously refresh every calendar."""
        snapshot = await cache.refresh()
        return web.json_response(
            {
                "refreshed": True,
                "last_updated": int(snapshot.last_updated.timestamp()),
                "event_count": len(snapshot.entries),
            }
        )

    async def list_statuses(_request: web.Request) -> web.Response:
        """Every calendar with a custom status currently set."""
        statuses = status_store.all()
        return web.json_response(
            {name: s.model_dump(mode="json") for name, s in statuses.items() if s.is_set}
        )

    async def get_status(request: web.Request) -> web.Response:
        calendar_name = request.match_info["calendar"]
        return web.json_response(status_store.get(calendar_name).model_dump(mode="json"))

    async def set_status(request: web.Request) -> web.Response:
        calendar_name = request.match_info["calendar"]
        try:
            data = await request.json()
        except ValueError:
            return web.json_response({"error": "invalid json"}, status=400)

        if not isinstance(data, dict):
            return web.json_response({"error": "status must be a JSON object"}, status=400)

        try:
            status = CustomStatus.model_validate(data)
        except ValidationError as e:
            return web.json_response({"error": "invalid status", "details": str(e)}, status=400)

        status_store.set(calendar_name, status)
        return web.json_response(status_store.get(calendar_name).model_dump(mode="json"))

    async def clear_status(request: web.Request) -> web.Response:
        calendar_name = request.match_info["calendar"]
        status_store.clear(calendar_name)
        return web.json_response(status_store.get(calendar_name).model_dump(mode="json"))

    async def health_check(_request: web.Request) -> web.Response:
        """Liveness plus a summary of the cached snapshot (never triggers a fetch)."""
        snapshot = cache.peek()
        return web.json_response(
            {
                "status": "ok",
                "published": cache.is_published,
                "event_count": len(snapshot.entries),
                "last_updated": int(snapshot.last_updated.timestamp()),
            }
        )

    app.router.add_get("/api/calendar", get_calendar)
    app.router.add_get("/api/calendar/current", get_current_event)
    app.router.add_post("/api/calendar/refresh", refresh_calendar)
    app.router.add_get("/api/status", list_statuses)
    app.router.add_get("/api/status/{calendar}", get_status)
    app.router.add_put("/api/status/{calendar}", set_status)
    app.router.add_delete("/api/status/{calendar}", clear_status)
    app.router.add_get("/api/health", health_check)
