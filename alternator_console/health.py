"""Per-operation health of the regulator link, optionally served over HTTP."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from aiohttp import web

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class OperationStatus:
    name: str
    healthy: bool
    detail: Optional[str] = None
    consecutive_failures: int = 0
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "consecutiveFailures": self.consecutive_failures,
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }


class HealthReporter:
    """Tracks the last outcome of each device operation.

    All callers run on the same event loop, so updates need no locking.
    """

    def __init__(self) -> None:
        self._status: Dict[str, OperationStatus] = {}

    def record_success(self, name: str, detail: Optional[str] = None) -> None:
        self._status[name] = OperationStatus(name=name, healthy=True, detail=detail)

    def record_failure(self, name: str, detail: Optional[str] = None) -> None:
        previous = self._status.get(name)
        failures = 1
        if previous is not None and not previous.healthy:
            failures = previous.consecutive_failures + 1
        self._status[name] = OperationStatus(
            name=name, healthy=False, detail=detail, consecutive_failures=failures
        )

    def get(self, name: str) -> Optional[OperationStatus]:
        return self._status.get(name)

    def snapshot(self) -> Dict[str, object]:
        operations = [status.as_dict() for status in self._status.values()]
        overall = "ok" if all(item["healthy"] for item in operations) else "degraded"
        return {"status": overall, "operations": operations}


class HealthServer:
    """Serves the reporter snapshot at `/healthz`.

    Answers 200 while every recorded operation last succeeded and 503 once
    any of them is failing, so a supervisor can watch the headless console.
    """

    def __init__(self, reporter: HealthReporter, host: str, port: int) -> None:
        self._reporter = reporter
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    @property
    def port(self) -> int:
        """Bound port; resolves an ephemeral ``0`` once started."""
        if self._runner is not None:
            for address in self._runner.addresses:
                if isinstance(address, tuple) and len(address) >= 2:
                    return int(address[1])
        return self._port

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info(
            "Serving regulator link health on http://%s:%s/healthz", self._host, self.port
        )

    async def stop(self) -> None:
        # Runner cleanup also stops the bound site.
        runner, self._runner = self._runner, None
        self._site = None
        if runner is not None:
            await runner.cleanup()

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = self._reporter.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)
