import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from alternator_console.adapters.device import TransportError, TransportResult
from alternator_console.notifications import NotificationSink
from alternator_console.render import MemoryRenderSink


@dataclass
class RecordedCall:
    method: str
    path: str
    body: Any
    operation: Optional[str]
    response_format: str


class ScriptedTransport:
    """Transport double returning queued results per (method, path).

    ``hold`` makes the next matching request wait until the returned event is
    set, which lets tests control completion order.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._results: dict[tuple[str, str], deque[TransportResult]] = defaultdict(deque)
        self._gates: dict[tuple[str, str], deque[asyncio.Event]] = defaultdict(deque)

    def respond(self, method: str, path: str, *results: TransportResult) -> None:
        self._results[(method, path)].extend(results)

    def respond_ok(self, method: str, path: str, value: Any = None) -> None:
        self.respond(method, path, TransportResult(value=value))

    def respond_error(
        self, method: str, path: str, kind: str = "network", status: Optional[int] = None
    ) -> None:
        error = TransportError(f"{method.lower()}_{path.strip('/')}", kind, "scripted", status=status)
        self.respond(method, path, TransportResult(error=error))

    def hold(self, method: str, path: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, path)].append(gate)
        return gate

    def calls_for(self, method: str, path: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.method == method and call.path == path]

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        operation: Optional[str] = None,
        response_format: str = "json",
    ) -> TransportResult:
        key = (method, path)
        self.calls.append(RecordedCall(method, path, body, operation, response_format))

        gates = self._gates.get(key)
        if gates:
            await gates.popleft().wait()

        results = self._results.get(key)
        if results:
            return results.popleft()
        error = TransportError(operation or path, "network", "no scripted response")
        return TransportResult(error=error)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def sink() -> MemoryRenderSink:
    return MemoryRenderSink()


@pytest.fixture
def notifier() -> NotificationSink:
    return NotificationSink()


class FakeRegulator:
    """In-process stand-in for the regulator's HTTP server."""

    def __init__(self) -> None:
        self.status: dict[str, Any] = {
            "voltage": 14.3,
            "current": 83.5,
            "pwm": 62,
            "alt_temp": 161,
            "batt_temp": 85,
            "rpm": 1450,
            "stage": "Bulk",
            "can_status": "OK",
            "last_can": "12:45:12",
            "bms_permission": True,
        }
        self.config: dict[str, Any] = {
            "targetVoltage": "14.5",
            "currentLimit": "90",
            "floatVoltage": "13.5",
            "derateTemp": "80",
            "canInput": False,
        }
        self.log_text = "boot ok\nfield enabled\n"
        self.enabled = False
        self.network_posts: list[dict[str, Any]] = []
        self.failing: set[str] = set()
        self.requests: list[tuple[str, str]] = []
        self.port = 0

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._record])
        app.router.add_get("/status", self._get_status)
        app.router.add_get("/config", self._get_config)
        app.router.add_post("/config", self._post_config)
        app.router.add_get("/log", self._get_log)
        app.router.add_get("/enable", self._get_enable)
        app.router.add_post("/enable", self._post_enable)
        app.router.add_post("/network", self._post_network)
        return app

    @web.middleware
    async def _record(self, request: web.Request, handler):
        self.requests.append((request.method, request.path))
        if request.path in self.failing:
            return web.Response(status=500, text="regulator busy")
        return await handler(request)

    async def _get_status(self, request: web.Request) -> web.Response:
        return web.json_response(self.status)

    async def _get_config(self, request: web.Request) -> web.Response:
        return web.json_response(self.config)

    async def _post_config(self, request: web.Request) -> web.Response:
        self.config = await request.json()
        return web.Response(text="Config saved")

    async def _get_log(self, request: web.Request) -> web.Response:
        return web.Response(text=self.log_text)

    async def _get_enable(self, request: web.Request) -> web.Response:
        return web.json_response({"enabled": self.enabled})

    async def _post_enable(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.enabled = body["enabled"] is True
        return web.Response(status=200)

    async def _post_network(self, request: web.Request) -> web.Response:
        self.network_posts.append(await request.json())
        return web.Response(status=200)


@pytest_asyncio.fixture
async def regulator():
    fake = FakeRegulator()
    runner = web.AppRunner(fake.build_app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    fake.port = runner.addresses[0][1]

    try:
        yield fake
    finally:
        await runner.cleanup()
