"""Synchronizes the regulator configuration form with ``/config``.

Each setting is tracked as a :class:`ConfigField` with two values:

``current``
    Last value known to be persisted on the device. Shown read-only next to
    the input as the baseline annotation.
``pending``
    The operator's edit buffer. Only an explicit :meth:`ConfigSynchronizer.save`
    sends it to the device.

The baseline follows every successful save, so it always reflects what the
device accepted last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Optional, Union

from .health import HealthReporter
from .models import CONFIG_WIRE_KEYS, DeviceConfig
from .notifications import NotificationSink, Severity
from .protocols import DeviceTransport
from .render import RenderSink, baseline_slot

LOGGER = logging.getLogger(__name__)

ConfigValue = Union[str, bool]


@dataclass(slots=True)
class ConfigField:
    current: ConfigValue
    pending: ConfigValue

    @property
    def dirty(self) -> bool:
        return self.current != self.pending


def _coerce(attr: str, value: Any) -> ConfigValue:
    if attr == "can_input":
        return bool(value)
    return "" if value is None else str(value)


def _resolve_key(key: str) -> str:
    """Accept either the attribute name or the wire key."""
    if key in CONFIG_WIRE_KEYS:
        return key
    for attr, wire_key in CONFIG_WIRE_KEYS.items():
        if wire_key == key:
            return attr
    raise KeyError(f"Unknown config key: {key!r}")


class ConfigSynchronizer:
    def __init__(
        self,
        transport: DeviceTransport,
        sink: RenderSink,
        notifier: NotificationSink,
        *,
        defaults: Optional[DeviceConfig] = None,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._transport = transport
        self._sink = sink
        self._notifier = notifier
        self._health = health
        initial = defaults or DeviceConfig()
        self._fields: dict[str, ConfigField] = {
            item.name: ConfigField(
                current=getattr(initial, item.name), pending=getattr(initial, item.name)
            )
            for item in fields(DeviceConfig)
        }

    def field(self, key: str) -> ConfigField:
        return self._fields[_resolve_key(key)]

    def pending_config(self) -> DeviceConfig:
        """The edit buffer as a :class:`DeviceConfig`."""
        return DeviceConfig(
            **{attr: config_field.pending for attr, config_field in self._fields.items()}
        )

    def baseline_config(self) -> DeviceConfig:
        return DeviceConfig(
            **{attr: config_field.current for attr, config_field in self._fields.items()}
        )

    def dirty_keys(self) -> list[str]:
        return [attr for attr, config_field in self._fields.items() if config_field.dirty]

    def render_defaults(self) -> None:
        """Project the whole form, edit buffer and baseline alike."""
        for attr in self._fields:
            self._render_pending(attr)
            self._render_baseline(attr)

    def edit(self, key: str, value: Any) -> None:
        """Change one value in the edit buffer; the device is not contacted."""
        attr = _resolve_key(key)
        self._fields[attr].pending = _coerce(attr, value)
        self._render_pending(attr)

    async def load(self) -> bool:
        result = await self._transport.request("GET", "/config", operation="load_config")

        loaded: Optional[DeviceConfig] = None
        detail = str(result.error) if result.error else None
        if result.ok:
            try:
                loaded = DeviceConfig.from_payload(result.value)
            except TypeError as exc:
                detail = str(exc)
                LOGGER.warning("Unexpected /config payload: %s", exc)

        if loaded is None:
            if self._health is not None:
                self._health.record_failure("config", detail)
            self._notifier.notify("Failed to load configuration", Severity.ERROR)
            return False

        for attr, config_field in self._fields.items():
            value = getattr(loaded, attr)
            config_field.current = value
            config_field.pending = value
            self._render_pending(attr)
            self._render_baseline(attr)

        if self._health is not None:
            self._health.record_success("config")
        LOGGER.info("Loaded device configuration: %s", loaded)
        return True

    async def save(self) -> bool:
        submitted = self.pending_config()
        result = await self._transport.request(
            "POST",
            "/config",
            submitted.to_payload(),
            operation="save_config",
            response_format="text",
        )

        if not result.ok:
            if self._health is not None:
                self._health.record_failure("config", str(result.error))
            self._notifier.notify("Failed to save config", Severity.ERROR)
            return False

        LOGGER.info("Config saved: %s", (result.value or "").strip())
        # Later edits made while the request was in flight stay pending.
        for attr, config_field in self._fields.items():
            config_field.current = getattr(submitted, attr)
            self._render_baseline(attr)

        if self._health is not None:
            self._health.record_success("config")
        self._notifier.notify("Config saved successfully", Severity.INFO)
        return True

    def _render_pending(self, attr: str) -> None:
        value = self._fields[attr].pending
        wire_key = CONFIG_WIRE_KEYS[attr]
        if isinstance(value, bool):
            self._sink.set_checked(wire_key, value)
        else:
            self._sink.set_text(wire_key, value)

    def _render_baseline(self, attr: str) -> None:
        value = self._fields[attr].current
        text = ("true" if value else "false") if isinstance(value, bool) else value
        self._sink.set_text(baseline_slot(CONFIG_WIRE_KEYS[attr]), text)
