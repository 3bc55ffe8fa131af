"""Constants used across the alternator-console package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "alternator-console"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_LOG_PATH = Path.home() / ".local" / "state" / APP_NAME / f"{APP_NAME}.log"

# Regulator access point address when it runs its own Wi-Fi network.
DEFAULT_DEVICE_HOST = "192.168.4.1"
DEFAULT_DEVICE_PORT = 80

DEFAULT_STATUS_INTERVAL_SECONDS = 5.0

DEFAULT_NOTIFICATION_VISIBLE_SECONDS = 3.0
DEFAULT_NOTIFICATION_FADE_SECONDS = 1.0

PLACEHOLDER = "—"
