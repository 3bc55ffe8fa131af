"""HTTP adapter for the regulator's REST endpoints."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

import aiohttp

from ..config import EndpointConfig

LOGGER = logging.getLogger(__name__)

KNOWN_PATHS = frozenset({"/status", "/config", "/log", "/enable", "/network"})
KNOWN_METHODS = frozenset({"GET", "POST"})

ResponseFormat = Literal["json", "text", "none"]
ErrorKind = Literal["network", "status", "decode", "timeout"]


class TransportError(Exception):
    """A device request that did not produce a usable response."""

    def __init__(
        self,
        operation: str,
        kind: ErrorKind,
        detail: str,
        *,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(f"{operation} failed ({kind}): {detail}")
        self.operation = operation
        self.kind = kind
        self.detail = detail
        self.status = status


@dataclass(frozen=True, slots=True)
class TransportResult:
    """Outcome of a device request: a parsed body or a transport error."""

    value: Any = None
    error: Optional[TransportError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _default_operation(method: str, path: str) -> str:
    return f"{method.lower()}_{path.strip('/')}"


class DeviceClient:
    """Non-blocking client for the regulator's HTTP API.

    Transport problems never escape :meth:`request`; they are returned as a
    :class:`TransportResult` whose ``error`` names the failed operation.
    """

    def __init__(
        self,
        config: EndpointConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self._base_url = self.config.url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        operation: Optional[str] = None,
        response_format: ResponseFormat = "json",
    ) -> TransportResult:
        """Issue a request against one of the device endpoints.

        Args:
            method: ``GET`` or ``POST``.
            path: One of :data:`KNOWN_PATHS`.
            body: JSON-serialisable request body, if any.
            operation: Name reported in errors (defaults to ``<method>_<path>``).
            response_format: How to parse the response body.

        Raises:
            ValueError: If the method, path or response format is unsupported.
        """

        method_normalized = method.strip().upper()
        if method_normalized not in KNOWN_METHODS:
            raise ValueError(f"Unsupported device method: {method!r}")
        if path not in KNOWN_PATHS:
            raise ValueError(f"Unsupported device path: {path!r}")
        if response_format not in ("json", "text", "none"):
            raise ValueError(f"Unsupported response format: {response_format!r}")

        operation_name = operation or _default_operation(method_normalized, path)
        url = f"{self._base_url}{path}"
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body

        try:
            session = await self._ensure_session()
            async with session.request(method_normalized, url, **kwargs) as response:
                text = await response.text()
                if response.status < 200 or response.status >= 300:
                    return self._failure(
                        operation_name,
                        "status",
                        f"HTTP {response.status}: {text.strip()[:200]}",
                        status=response.status,
                    )
        except UnicodeDecodeError as exc:
            return self._failure(operation_name, "decode", f"undecodable body: {exc}")
        except (aiohttp.ClientError, OSError) as exc:
            return self._failure(operation_name, "network", str(exc) or type(exc).__name__)

        if response_format == "none":
            return TransportResult(value=None)
        if response_format == "text":
            return TransportResult(value=text)

        try:
            value = json.loads(text)
        except ValueError as exc:
            return self._failure(
                operation_name, "decode", f"invalid JSON: {exc}", status=response.status
            )
        return TransportResult(value=value)

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            # Timeouts are the caller's business.
            timeout = aiohttp.ClientTimeout(total=None)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    @staticmethod
    def _failure(
        operation: str,
        kind: ErrorKind,
        detail: str,
        *,
        status: Optional[int] = None,
    ) -> TransportResult:
        error = TransportError(operation, kind, detail, status=status)
        LOGGER.warning("Device request %s", error)
        return TransportResult(error=error)
