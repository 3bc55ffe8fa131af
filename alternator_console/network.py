"""One-shot submission of Wi-Fi credentials to the regulator."""

from __future__ import annotations

import logging
from typing import Optional

from .health import HealthReporter
from .models import NetworkCredentials
from .notifications import NotificationSink, Severity
from .protocols import DeviceTransport
from .render import PASSWORD_SLOT, SSID_SLOT, RenderSink

LOGGER = logging.getLogger(__name__)


class NetworkSettingsSubmitter:
    """Holds the SSID/password fields and posts them to ``/network``.

    The device restarts after accepting new credentials, so a successful
    submission is never followed by a confirmation read. Fields are not
    validated client-side; the device decides what it accepts.
    """

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
        self._credentials = NetworkCredentials()

    @property
    def credentials(self) -> NetworkCredentials:
        return self._credentials

    def set_ssid(self, ssid: str) -> None:
        self._credentials = NetworkCredentials(ssid=ssid, password=self._credentials.password)
        self._sink.set_text(SSID_SLOT, ssid)

    def set_password(self, password: str) -> None:
        self._credentials = NetworkCredentials(ssid=self._credentials.ssid, password=password)
        self._sink.set_text(PASSWORD_SLOT, password)

    async def submit(self) -> bool:
        credentials = self._credentials
        LOGGER.info("Submitting network settings for SSID %r", credentials.ssid)
        result = await self._transport.request(
            "POST",
            "/network",
            credentials.to_payload(),
            operation="submit_network",
            response_format="none",
        )

        if not result.ok:
            if self._health is not None:
                self._health.record_failure("network", str(result.error))
            self._notifier.notify("Failed to save network settings", Severity.ERROR)
            return False

        if self._health is not None:
            self._health.record_success("network", "device restarting")
        self._notifier.notify("Network settings saved, rebooting...", Severity.INFO)
        return True
