"""Main application entry-point for alternator-console."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .adapters import DeviceClient
from .config import ConsoleConfig, load_config
from .config_sync import ConfigSynchronizer
from .device_log import DeviceLogView
from .enable import EnableController
from .health import HealthReporter, HealthServer
from .logging import configure_logging
from .network import NetworkSettingsSubmitter
from .notifications import NotificationSink
from .poller import StatusPoller
from .protocols import DeviceTransport
from .render import LoggingRenderSink, RenderSink

LOGGER = logging.getLogger(__name__)


class ConsoleState(str, Enum):
    COLD_START = "cold_start"
    ACTIVE = "active"
    STOPPING = "stopping"
    STOPPED = "stopped"


class AlternatorConsole:
    """Coordinates the console's components over one device link.

    Startup issues the four initial reads (status, config, log, enable state)
    concurrently, then leaves the status poller running until :meth:`stop`.
    The transport and render sink can be injected for testing or to drive a
    different display.
    """

    def __init__(
        self,
        config: Optional[ConsoleConfig] = None,
        *,
        transport: Optional[DeviceTransport] = None,
        sink: Optional[RenderSink] = None,
        notifier: Optional[NotificationSink] = None,
    ) -> None:
        self._config = config or load_config()
        self._client: Optional[DeviceClient] = None
        if transport is None:
            self._client = DeviceClient(self._config.device)
            transport = self._client
        self._transport = transport

        self.sink: RenderSink = sink if sink is not None else LoggingRenderSink()
        self.notifier = notifier or NotificationSink(
            visible_seconds=self._config.notifications.visible_seconds,
            fade_seconds=self._config.notifications.fade_seconds,
        )
        self.health = HealthReporter()

        self.poller = StatusPoller(
            transport,
            self.sink,
            self.notifier,
            interval_seconds=self._config.polling.status_interval_seconds,
            timeout_seconds=self._config.polling.status_timeout_seconds,
            health=self.health,
        )
        self.config_sync = ConfigSynchronizer(
            transport, self.sink, self.notifier, health=self.health
        )
        self.enable = EnableController(
            transport, self.sink, self.notifier, health=self.health
        )
        self.network = NetworkSettingsSubmitter(
            transport, self.sink, self.notifier, health=self.health
        )
        self.device_log = DeviceLogView(
            transport, self.sink, self.notifier, health=self.health
        )

        self._health_server: Optional[HealthServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._state = ConsoleState.COLD_START

    @property
    def config(self) -> ConsoleConfig:
        return self._config

    @property
    def state(self) -> ConsoleState:
        return self._state

    @property
    def health_server(self) -> Optional[HealthServer]:
        return self._health_server

    async def start(self) -> dict[str, bool]:
        """Render defaults, run the startup reads and start polling.

        Returns the outcome of each startup read keyed by name.
        """

        self.config_sync.render_defaults()

        if self._config.health.enabled and self._health_server is None:
            self._health_server = HealthServer(
                self.health, self._config.health.host, self._config.health.port
            )
            await self._health_server.start()

        LOGGER.info("Connecting to regulator at %s", self._config.device.url)

        first_tick = self.poller.next_tick()
        self.poller.start()
        status_ok, config_ok, log_ok, enable_ok = await asyncio.gather(
            first_tick,
            self.config_sync.load(),
            self.device_log.load(),
            self.enable.load(),
        )
        self._state = ConsoleState.ACTIVE

        outcome = {
            "status": status_ok,
            "config": config_ok,
            "log": log_ok,
            "enable": enable_ok,
        }
        failed = [name for name, ok in outcome.items() if not ok]
        if failed:
            LOGGER.warning("Startup reads failed: %s", ", ".join(failed))
        else:
            LOGGER.info("Startup reads complete")
        return outcome

    async def stop(self) -> None:
        if self._state in (ConsoleState.STOPPING, ConsoleState.STOPPED):
            return
        self._state = ConsoleState.STOPPING

        await self.poller.stop()
        await self.enable.aclose()
        self.notifier.clear()

        if self._health_server is not None:
            await self._health_server.stop()
            self._health_server = None

        if self._client is not None:
            await self._client.aclose()

        self._state = ConsoleState.STOPPED
        LOGGER.info("alternator-console stopped")

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def run(self) -> None:
        """Run until :meth:`request_shutdown` is called or the task is cancelled."""

        self._shutdown_event = asyncio.Event()
        LOGGER.info("alternator-console starting with config: %s", self._config.path)

        try:
            await self.start()
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("alternator-console received shutdown signal")
            raise
        finally:
            await self.stop()

    @classmethod
    def launch(cls, config: Optional[ConsoleConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("alternator-console received shutdown signal")
