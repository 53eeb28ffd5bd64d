"""Pytest configuration and shared fixtures."""

import asyncio

import pytest
from aiohttp import web


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from nfpair.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


class FakeNotifyServer:
    """In-process stand-in for a NotifyForwarders server.

    Serves /api/version and /api/notify and records what it receives.
    """

    def __init__(self):
        self.version = "1.0"
        self.version_status = 200
        self.version_body: str | bytes | None = None  # Raw body overrides version
        self.notify_status = 200
        self.delay = 0.0  # Seconds before each response
        self.version_requests = 0
        self.notify_requests: list[dict] = []

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/version", self._handle_version)
        app.router.add_post("/api/notify", self._handle_notify)
        return app

    @property
    def last_code(self) -> str | None:
        """Code embedded in the most recent notification."""
        if not self.notify_requests:
            return None
        return self.notify_requests[-1]["json"]["description"][-6:]

    async def _handle_version(self, request: web.Request) -> web.Response:
        self.version_requests += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.version_body is not None:
            body = self.version_body
            if isinstance(body, str):
                body = body.encode("utf-8")
            return web.Response(
                status=self.version_status,
                body=body,
                content_type="application/json",
            )
        return web.json_response({"version": self.version}, status=self.version_status)

    async def _handle_notify(self, request: web.Request) -> web.Response:
        self.notify_requests.append(
            {
                "content_type": request.headers.get("Content-Type"),
                "json": await request.json(),
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return web.Response(status=self.notify_status)


@pytest.fixture
def fake_server():
    """Unstarted fake notification server."""
    return FakeNotifyServer()


@pytest.fixture
async def base_url(aiohttp_server, fake_server):
    """Start the fake server and return its base URL."""
    server = await aiohttp_server(fake_server.make_app())
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def dead_url(unused_tcp_port):
    """Base URL with nothing listening."""
    return f"http://127.0.0.1:{unused_tcp_port}"
