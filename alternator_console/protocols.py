"""Protocol definitions shared by the synchronizing components."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from .adapters.device import ResponseFormat, TransportResult


class DeviceTransport(Protocol):
    """Minimal contract for issuing requests to the regulator."""

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        operation: Optional[str] = None,
        response_format: ResponseFormat = "json",
    ) -> TransportResult:
        """Perform a request; transport failures come back in the result."""
        ...
