"""Configuration loader for alternator-console."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class EndpointConfig:
    url: str = f"http://{constants.DEFAULT_DEVICE_HOST}:{constants.DEFAULT_DEVICE_PORT}"


@dataclass(slots=True)
class PollingConfig:
    status_interval_seconds: float = constants.DEFAULT_STATUS_INTERVAL_SECONDS
    status_timeout_seconds: float = 0.0  # 0 disables the per-tick timeout


@dataclass(slots=True)
class NotificationConfig:
    visible_seconds: float = constants.DEFAULT_NOTIFICATION_VISIBLE_SECONDS
    fade_seconds: float = constants.DEFAULT_NOTIFICATION_FADE_SECONDS


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    log_network: bool = False


@dataclass(slots=True)
class HealthConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 0


@dataclass(slots=True)
class ConsoleConfig:
    device: EndpointConfig
    polling: PollingConfig
    notifications: NotificationConfig
    logging: LoggingConfig
    health: HealthConfig
    raw: ConfigParser
    path: Path


def _parse_optional_path(value: Optional[str]) -> Optional[Path]:
    if value is None or not value.strip():
        return None
    return Path(value.strip()).expanduser()


def load_config(path: Optional[Path] = None) -> ConsoleConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "device": {
                "url": EndpointConfig().url,
            },
            "polling": {
                "status_interval_seconds": str(
                    constants.DEFAULT_STATUS_INTERVAL_SECONDS
                ),
                "status_timeout_seconds": "0",
            },
            "notifications": {
                "visible_seconds": str(constants.DEFAULT_NOTIFICATION_VISIBLE_SECONDS),
                "fade_seconds": str(constants.DEFAULT_NOTIFICATION_FADE_SECONDS),
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "log_network": "false",
            },
            "health": {
                "enabled": "false",
                "host": "127.0.0.1",
                "port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    url_value = parser.get("device", "url").strip()
    if "://" not in url_value:
        url_value = f"http://{url_value}"
        parser.set("device", "url", url_value)

    device = EndpointConfig(url=url_value.rstrip("/"))

    polling_defaults = PollingConfig()
    try:
        interval_value = parser.getfloat(
            "polling",
            "status_interval_seconds",
            fallback=polling_defaults.status_interval_seconds,
        )
    except ValueError:
        interval_value = polling_defaults.status_interval_seconds

    polling = PollingConfig(
        status_interval_seconds=max(0.1, interval_value),
        status_timeout_seconds=max(
            0.0,
            parser.getfloat("polling", "status_timeout_seconds", fallback=0.0),
        ),
    )

    notification_defaults = NotificationConfig()
    notifications = NotificationConfig(
        visible_seconds=max(
            0.0,
            parser.getfloat(
                "notifications",
                "visible_seconds",
                fallback=notification_defaults.visible_seconds,
            ),
        ),
        fade_seconds=max(
            0.0,
            parser.getfloat(
                "notifications",
                "fade_seconds",
                fallback=notification_defaults.fade_seconds,
            ),
        ),
    )

    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=_parse_optional_path(parser.get("logging", "path", fallback=None)),
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    health = HealthConfig(
        enabled=parser.getboolean("health", "enabled", fallback=False),
        host=parser.get("health", "host", fallback="127.0.0.1"),
        port=max(0, parser.getint("health", "port", fallback=0)),
    )

    return ConsoleConfig(
        device=device,
        polling=polling,
        notifications=notifications,
        logging=logging_config,
        health=health,
        raw=parser,
        path=config_path,
    )

