"""Unit tests for calendarapi.api.middleware."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from calendarapi.api.middleware import correlation_id_middleware, error_middleware, get_request_id

pytestmark = pytest.mark.unit


@pytest_asyncio.fixture
async def client():
    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])

    async def echo(request: web.Request) -> web.Response:
        return web.json_response({"correlation_id": request["correlation_id"], "context_id": get_request_id()})

    async def explode(_request: web.Request) -> web.Response:
        raise RuntimeError("boom")

    async def missing(_request: web.Request) -> web.Response:
        raise web.HTTPNotFound()

    app.router.add_get("/echo", echo)
    app.router.add_get("/explode", explode)
    app.router.add_get("/missing", missing)

    async with TestClient(TestServer(app)) as test_client:
        yield test_client


class TestCorrelationIdMiddleware:
    """Tests for request id extraction and propagation."""

    async def test_uses_x_request_id_header(self, client):
        resp = await client.get("/echo", headers={"X-Request-ID": "req-123"})
        data = await resp.json()

        assert data == {"correlation_id": "req-123", "context_id": "req-123"}
        assert resp.headers["X-Request-ID"] == "req-123"

    async def test_falls_back_to_x_correlation_id(self, client):
        resp = await client.get("/echo", headers={"X-Correlation-ID": "corr-9"})

        assert (await resp.json())["correlation_id"] == "corr-9"

    async def test_generates_id_when_missing(self, client):
        first = await client.get("/echo")
        second = await client.get("/echo")

        first_id = first.headers["X-Request-ID"]
        assert len(first_id) == 36
        assert first_id != second.headers["X-Request-ID"]

    def test_get_request_id_outside_request(self):
        assert get_request_id() == "no-request-id"


class TestErrorMiddleware:
    """Tests for JSON error responses."""

    async def test_unexpected_error_returns_json_500(self, client):
        resp = await client.get("/explode")

        assert resp.status == 500
        assert await resp.json() == {"error": "internal server error"}

    async def test_http_exceptions_pass_through(self, client):
        resp = await client.get("/missing")

        assert resp.status == 404
