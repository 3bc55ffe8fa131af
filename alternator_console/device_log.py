"""Verbatim view of the regulator's ``/log`` output."""

from __future__ import annotations

from typing import Optional

from .health import HealthReporter
from .notifications import NotificationSink, Severity
from .protocols import DeviceTransport
from .render import LOG_OUTPUT_SLOT, RenderSink

LOG_ERROR_TEXT = "Error loading logs."


class DeviceLogView:
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
        self.text: Optional[str] = None

    async def load(self) -> bool:
        result = await self._transport.request(
            "GET", "/log", operation="load_log", response_format="text"
        )

        if not result.ok:
            self._sink.set_text(LOG_OUTPUT_SLOT, LOG_ERROR_TEXT)
            if self._health is not None:
                self._health.record_failure("log", str(result.error))
            self._notifier.notify("Error loading logs", Severity.ERROR)
            return False

        self.text = result.value
        self._sink.set_text(LOG_OUTPUT_SLOT, self.text)
        if self._health is not None:
            self._health.record_success("log")
        return True
