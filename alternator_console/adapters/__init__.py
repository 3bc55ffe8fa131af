"""Adapter modules for external integrations."""

from .device import (
    KNOWN_PATHS,
    DeviceClient,
    TransportError,
    TransportResult,
)

__all__ = [
    "KNOWN_PATHS",
    "DeviceClient",
    "TransportError",
    "TransportResult",
]
