"""Enable/disable control for the regulator.

Toggling is optimistic: the control and header flip in the same task turn,
then the new value is submitted to ``POST /enable``. The controller keeps a
tagged state:

``Confirmed(value)``
    The device acknowledged ``value``; the display shows it.
``Pending(optimistic, previous)``
    The display shows ``optimistic``; ``previous`` is what a failed request
    rolls back to.

Submissions go through a single-slot queue. At most one request is in flight.
A toggle made meanwhile replaces whatever was queued, so rapid flips collapse
into one follow-up request instead of racing each other.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from .health import HealthReporter
from .models import Confirmed, EnableState, Pending, displayed_enable
from .notifications import NotificationSink, Severity
from .protocols import DeviceTransport
from .render import (
    ENABLE_STATUS_SLOT,
    ENABLE_TOGGLE_SLOT,
    HEADER_COLOR_SLOT,
    RenderSink,
)

LOGGER = logging.getLogger(__name__)

HEADER_ENABLED_COLOR = "#2563eb"
HEADER_DISABLED_COLOR = "#4b5563"


class EnableController:
    def __init__(
        self,
        transport: DeviceTransport,
        sink: RenderSink,
        notifier: NotificationSink,
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._transport = transport
        self._sink = sink
        self._notifier = notifier
        self._health = health
        self._state: EnableState = Confirmed(False)
        self._confirmed = False
        self._confirmations = 0
        self._queued: Optional[bool] = None
        self._drain_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> EnableState:
        return self._state

    @property
    def displayed(self) -> bool:
        return displayed_enable(self._state)

    @property
    def confirmed(self) -> bool:
        """Last value acknowledged by the device."""
        return self._confirmed

    @property
    def in_flight(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    async def load(self) -> bool:
        confirmations = self._confirmations
        result = await self._transport.request("GET", "/enable", operation="load_enable")

        enabled: Optional[bool] = None
        if result.ok:
            if isinstance(result.value, dict):
                enabled = result.value.get("enabled") is True
            else:
                LOGGER.warning("Unexpected /enable payload: %r", result.value)

        if enabled is None:
            if self._health is not None:
                self._health.record_failure("enable", str(result.error or "bad payload"))
            self._notifier.notify("Failed to fetch enable state", Severity.ERROR)
            return False

        if self._confirmations != confirmations:
            # A submission was acknowledged after this read was sent.
            LOGGER.debug("Discarding stale /enable read (enabled=%s)", enabled)
        elif isinstance(self._state, Pending):
            # A toggle is already under way; only its rollback target moves.
            self._confirmed = enabled
            self._state = Pending(optimistic=self._state.optimistic, previous=enabled)
        else:
            self._confirmed = enabled
            self._state = Confirmed(enabled)
            self._render(enabled)

        if self._health is not None:
            self._health.record_success("enable")
        return True

    def toggle(self, enabled: bool) -> asyncio.Task[None]:
        """Flip the control now and submit ``enabled`` in the background.

        Must be called from a running event loop. Returns the task draining
        the submission queue; awaiting it is optional.
        """

        enabled = bool(enabled)
        self._state = Pending(optimistic=enabled, previous=self._confirmed)
        self._render(enabled)
        self._queued = enabled

        if not self.in_flight:
            self._drain_task = asyncio.create_task(self._drain())
        return self._drain_task

    async def wait_idle(self) -> None:
        """Wait until no submission is in flight or queued."""
        while self.in_flight:
            task = self._drain_task
            if task is not None:
                await asyncio.shield(task)

    async def aclose(self) -> None:
        """Abandon queued and in-flight submissions."""
        self._queued = None
        task = self._drain_task
        self._drain_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _drain(self) -> None:
        submitted_any = False

        while self._queued is not None:
            value = self._queued
            self._queued = None

            if submitted_any and value == self._confirmed:
                # Superseded toggles returned to the acknowledged value.
                LOGGER.debug("Skipping enable=%s; already confirmed", value)
                self._settle()
                continue

            submitted_any = True
            await self._submit(value)

    async def _submit(self, value: bool) -> None:
        LOGGER.info("Submitting enable=%s", value)
        result = await self._transport.request(
            "POST",
            "/enable",
            {"enabled": value},
            operation="set_enable",
            response_format="none",
        )

        if result.ok:
            self._confirmed = value
            self._confirmations += 1
            self._settle()
            if self._health is not None:
                self._health.record_success("enable")
            if value:
                self._notifier.notify("Enabled", Severity.INFO)
            else:
                self._notifier.notify("Disabled", Severity.WARNING)
            return

        if self._health is not None:
            self._health.record_failure("enable", str(result.error))
        LOGGER.warning("Rolling back enable toggle to %s", self._confirmed)
        self._settle()
        self._notifier.notify("Failed to change enable state", Severity.ERROR)

    def _settle(self) -> None:
        """Re-derive the state from the acknowledged value and the queue."""
        if self._queued is None:
            self._state = Confirmed(self._confirmed)
            self._render(self._confirmed)
        else:
            self._state = Pending(optimistic=self._queued, previous=self._confirmed)
            self._render(self._queued)

    def _render(self, enabled: bool) -> None:
        self._sink.set_checked(ENABLE_TOGGLE_SLOT, enabled)
        self._sink.set_text(
            HEADER_COLOR_SLOT, HEADER_ENABLED_COLOR if enabled else HEADER_DISABLED_COLOR
        )
        self._sink.set_text(
            ENABLE_STATUS_SLOT, "Status: Enabled" if enabled else "Status: Disabled"
        )
