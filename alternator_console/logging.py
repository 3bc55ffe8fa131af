"""Root logger setup for the console and its one-shot CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# aiohttp loggers that echo every regulator request and health check.
_NETWORK_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.server")


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_network: bool = False
) -> None:
    """Replace the root handlers with a stderr handler and an optional log file.

    ``level`` is a level name; unknown names fall back to INFO. ``log_path``
    adds a file handler, creating its directory first. Traffic from aiohttp
    is held at WARNING unless ``log_network`` is set.
    """

    root = logging.getLogger()
    logging.captureWarnings(True)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    network_level = logging.NOTSET if log_network else logging.WARNING
    for name in _NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(network_level)
