"""User-visible session status notifications."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from .models import NotificationKind

logger = structlog.stdlib.get_logger(__name__)

RESTORING_TITLE = "Restoring session"
RESTORING_MESSAGE = "Your session expired. Signing you back in..."
RESTORED_TITLE = "Session restored"
RELOGIN_FAILED_TITLE = "Please log in again"
RELOGIN_FAILED_MESSAGE = "We could not restore your session automatically."
EXPIRED_TITLE = "Session expired"
EXPIRED_MESSAGE = "Your session has expired. Please log in again."


@dataclass(frozen=True)
class Notification:
    """A recorded notification."""

    kind: NotificationKind
    title: str
    message: str


class Notifier(ABC):
    """Abstract notifier. ``notify`` is fire-and-forget and never awaited."""

    @abstractmethod
    def notify(self, kind: NotificationKind, title: str, message: str) -> None: ...


class InMemoryNotifier(Notifier):
    """In-memory notifier for testing."""

    def __init__(self) -> None:
        self._sent: list[Notification] = []

    @property
    def sent(self) -> list[Notification]:
        """Get a copy of sent notifications."""
        return list(self._sent)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self._sent]

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        self._sent.append(Notification(kind=kind, title=title, message=message))


class LoggingNotifier(Notifier):
    """Notifier that writes notifications to the structured log."""

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        if kind == NotificationKind.ERROR:
            logger.warning("user notification", title=title, message=message)
        else:
            logger.info("user notification", title=title, message=message)


def safe_notify(notifier: Notifier, kind: NotificationKind, title: str, message: str) -> None:
    """Deliver a notification; notifier failures never affect session control flow."""
    try:
        notifier.notify(kind, title, message)
    except Exception as e:
        logger.warning("notifier failed", title=title, error=str(e))
