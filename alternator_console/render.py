"""Render sinks: keyed display slots that components project their state into.

Sinks are write-only from the components' point of view. Nothing in the
package reads a slot back to decide what to do next.
"""

from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)

TELEMETRY_SLOTS: tuple[str, ...] = (
    "voltage",
    "current",
    "field_pwm",
    "alt_temp",
    "batt_temp",
    "rpm",
    "stage",
    "can_status",
    "last_can",
    "bms_permission",
)

LOG_OUTPUT_SLOT = "logOutput"
ENABLE_TOGGLE_SLOT = "enableToggle"
ENABLE_STATUS_SLOT = "enableStatus"
HEADER_COLOR_SLOT = "header_color"
SSID_SLOT = "ssid"
PASSWORD_SLOT = "password"

BASELINE_SUFFIX = ".baseline"


def baseline_slot(key: str) -> str:
    return f"{key}{BASELINE_SUFFIX}"


class RenderSink(Protocol):
    """Minimal contract for whatever displays the console's state."""

    def set_text(self, slot: str, text: str) -> None:
        ...

    def set_checked(self, slot: str, checked: bool) -> None:
        ...


class MemoryRenderSink:
    """Keeps the latest value per slot.

    With ``keep_history`` every write is also appended, in order, to
    ``history``.
    """

    def __init__(self, *, keep_history: bool = True) -> None:
        self.texts: dict[str, str] = {}
        self.checked: dict[str, bool] = {}
        self.history: list[tuple[str, object]] = []
        self._keep_history = keep_history

    def set_text(self, slot: str, text: str) -> None:
        self.texts[slot] = text
        if self._keep_history:
            self.history.append((slot, text))

    def set_checked(self, slot: str, checked: bool) -> None:
        self.checked[slot] = checked
        if self._keep_history:
            self.history.append((slot, checked))


class LoggingRenderSink(MemoryRenderSink):
    """Memory sink that logs each slot whose value changed.

    Used by the headless service, where the log is the only display.
    """

    _MASKED_SLOTS = frozenset({PASSWORD_SLOT})

    def __init__(self) -> None:
        super().__init__(keep_history=False)

    def set_text(self, slot: str, text: str) -> None:
        changed = self.texts.get(slot) != text
        super().set_text(slot, text)
        if changed:
            shown = "***" if slot in self._MASKED_SLOTS else text
            if slot == LOG_OUTPUT_SLOT:
                LOGGER.info("Device log (%d lines):\n%s", len(text.splitlines()), text)
            else:
                LOGGER.debug("%s = %s", slot, shown)

    def set_checked(self, slot: str, checked: bool) -> None:
        changed = self.checked.get(slot) != checked
        super().set_checked(slot, checked)
        if changed:
            LOGGER.debug("%s = %s", slot, "on" if checked else "off")
