"""Telemetry poller for the regulator's ``/status`` endpoint.

The poller owns the latest :class:`TelemetrySnapshot` and projects it into the
render sink. Design points:
- Fixed-rate ticks, measured from the start of the previous tick
- A failed tick keeps the previous snapshot on display
- Cancellable through :meth:`StatusPoller.stop`
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Optional

from . import constants
from .adapters.device import TransportError, TransportResult
from .health import HealthReporter
from .models import TelemetrySnapshot
from .notifications import NotificationSink, Severity
from .protocols import DeviceTransport
from .render import RenderSink

LOGGER = logging.getLogger(__name__)

STATUS_OPERATION = "fetch_status"
STATUS_FAILURE_MESSAGE = "Failed to fetch status"


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class StatusPoller:
    """Polls ``GET /status`` on a fixed interval until stopped."""

    def __init__(
        self,
        transport: DeviceTransport,
        sink: RenderSink,
        notifier: NotificationSink,
        *,
        interval_seconds: float = constants.DEFAULT_STATUS_INTERVAL_SECONDS,
        timeout_seconds: Optional[float] = None,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._transport = transport
        self._sink = sink
        self._notifier = notifier
        self._interval = max(interval_seconds, 0.01)
        self._timeout = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self._health = health
        self._snapshot: Optional[TelemetrySnapshot] = None
        self._state = PollerState.IDLE
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self._tick_waiters: list[asyncio.Future[bool]] = []

    @property
    def snapshot(self) -> Optional[TelemetrySnapshot]:
        """Latest successfully polled snapshot, if any."""
        return self._snapshot

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling; the first tick runs immediately."""
        if self.running:
            return

        self._stop_event.clear()
        self._state = PollerState.IDLE
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """Stop polling and wait for the loop to exit."""
        self._stop_event.set()

        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        for waiter in self._tick_waiters:
            waiter.cancel()
        self._tick_waiters.clear()
        self._state = PollerState.STOPPED

    def next_tick(self) -> asyncio.Future[bool]:
        """Future resolved with the outcome of the next tick to finish."""
        waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._tick_waiters.append(waiter)
        return waiter

    async def poll_once(self) -> bool:
        """Run a single tick. Returns True when the snapshot was replaced."""

        ok = await self._tick()
        waiters, self._tick_waiters = self._tick_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(ok)
        return ok

    async def _tick(self) -> bool:
        self._state = PollerState.POLLING
        try:
            result = await self._fetch()
        finally:
            if self._state is PollerState.POLLING:
                self._state = PollerState.IDLE

        error = result.error
        snapshot: Optional[TelemetrySnapshot] = None
        if error is None:
            try:
                snapshot = TelemetrySnapshot.from_payload(result.value)
            except TypeError as exc:
                error = TransportError(STATUS_OPERATION, "decode", str(exc))
                LOGGER.warning("Device request %s", error)

        if snapshot is None:
            if self._health is not None:
                self._health.record_failure("status", str(error))
            self._notifier.notify(STATUS_FAILURE_MESSAGE, Severity.ERROR)
            return False

        self._apply(snapshot)
        if self._health is not None:
            self._health.record_success("status")
        return True

    async def _fetch(self) -> TransportResult:
        if self._timeout is None:
            return await self._transport.request(
                "GET", "/status", operation=STATUS_OPERATION
            )

        try:
            async with asyncio.timeout(self._timeout):
                return await self._transport.request(
                    "GET", "/status", operation=STATUS_OPERATION
                )
        except TimeoutError:
            error = TransportError(
                STATUS_OPERATION,
                "timeout",
                f"no response within {self._timeout:.1f}s",
            )
            LOGGER.warning("Device request %s", error)
            return TransportResult(error=error)

    def _apply(self, snapshot: TelemetrySnapshot) -> None:
        # Compute every slot first so the sink sees one uninterrupted pass.
        values = snapshot.display_values()
        self._snapshot = snapshot
        for slot, text in values.items():
            self._sink.set_text(slot, text)
        LOGGER.debug(
            "Telemetry: %s",
            ", ".join(f"{slot}={text}" for slot, text in values.items()),
        )

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()

        while not self._stop_event.is_set():
            started = loop.time()
            await self.poll_once()

            # Overrunning ticks are followed immediately by the next one.
            delay = max(0.0, started + self._interval - loop.time())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break  # Stop event was set
            except asyncio.TimeoutError:
                continue
