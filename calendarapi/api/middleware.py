"""Request middleware: correlation ids and JSON error responses.

The request id is stored in a context variable so every log line emitted
while handling a request can be tagged with it.
"""

import logging
import uuid
from collections.abc import Awaitable
from contextvars import ContextVar
from typing import Callable

from aiohttp import web

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@web.middleware
async def correlation_id_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Extract or generate a correlation id for request tracking.

    Uses X-Request-ID or X-Correlation-ID from the client when present,
    otherwise generates a UUID. The id is echoed in the response headers.
    """
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )
    token = request_id_var.set(correlation_id)
    request["correlation_id"] = correlation_id
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn unexpected handler failures into JSON 500 responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return web.json_response({"error": "internal server error"}, status=500)


def get_request_id() -> str:
    """Current request correlation id, or "no-request-id" outside a request."""
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
