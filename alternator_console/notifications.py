"""Transient, self-dismissing operator notifications."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from . import constants

LOGGER = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationPhase(str, Enum):
    """Lifecycle of a single notification."""

    VISIBLE = "visible"
    """Shown at full opacity."""

    FADING = "fading"
    """Fade transition in progress."""

    REMOVED = "removed"
    """Gone from the display."""


@dataclass(eq=False)
class Notification:
    message: str
    severity: Severity
    created_at: float
    phase: NotificationPhase = NotificationPhase.VISIBLE
    _handles: list[asyncio.TimerHandle] = field(default_factory=list, repr=False)


NotificationListener = Callable[[Notification], None]

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.INFO,
    Severity.ERROR: logging.WARNING,
}


class NotificationSink:
    """Creates notifications that fade and disappear on their own timers.

    Every notification gets its own pair of loop timers; nothing is
    deduplicated, queued or throttled.
    """

    def __init__(
        self,
        *,
        visible_seconds: float = constants.DEFAULT_NOTIFICATION_VISIBLE_SECONDS,
        fade_seconds: float = constants.DEFAULT_NOTIFICATION_FADE_SECONDS,
    ) -> None:
        self._visible_seconds = visible_seconds
        self._fade_seconds = fade_seconds
        self._active: list[Notification] = []
        self._listeners: list[NotificationListener] = []

    @property
    def active(self) -> list[Notification]:
        """Notifications still on display, oldest first."""
        return list(self._active)

    def add_listener(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def notify(self, message: str, severity: Severity = Severity.INFO) -> Notification:
        """Show ``message`` immediately and schedule its fade and removal.

        Must be called from a running event loop.
        """

        loop = asyncio.get_running_loop()
        notification = Notification(
            message=message, severity=severity, created_at=loop.time()
        )
        LOGGER.log(_LOG_LEVELS[severity], "[%s] %s", severity.value, message)

        self._active.append(notification)
        notification._handles.append(
            loop.call_later(self._visible_seconds, self._begin_fade, notification)
        )
        self._emit(notification)
        return notification

    def clear(self) -> None:
        """Cancel every pending timer and drop all notifications."""

        for notification in self._active:
            for handle in notification._handles:
                handle.cancel()
            notification._handles.clear()
            notification.phase = NotificationPhase.REMOVED
        self._active.clear()

    def _begin_fade(self, notification: Notification) -> None:
        if notification.phase is not NotificationPhase.VISIBLE:
            return
        notification.phase = NotificationPhase.FADING
        loop = asyncio.get_running_loop()
        notification._handles.append(
            loop.call_later(self._fade_seconds, self._remove, notification)
        )
        self._emit(notification)

    def _remove(self, notification: Notification) -> None:
        if notification.phase is NotificationPhase.REMOVED:
            return
        notification.phase = NotificationPhase.REMOVED
        notification._handles.clear()
        if notification in self._active:
            self._active.remove(notification)
        self._emit(notification)

    def _emit(self, notification: Notification) -> None:
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:  # pragma: no cover
                LOGGER.exception("Notification listener failed")
