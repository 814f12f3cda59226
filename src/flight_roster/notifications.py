"""Presentation-layer ports: informational notifications and confirmations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from rich.console import Console


class NotificationLevel:
    """Notification level constants"""
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class Notifier(Protocol):
    """Receives one notification per success/failure outcome."""

    def notify(self, notification: Notification) -> None: ...


# Blocking confirm/cancel prompt; resolves True only on an affirmative answer.
Confirmer = Callable[[str], Awaitable[bool]]


def success(notifier: Notifier, message: str) -> None:
    notifier.notify(Notification(NotificationLevel.SUCCESS, message))


def info(notifier: Notifier, message: str) -> None:
    notifier.notify(Notification(NotificationLevel.INFO, message))


def error(notifier: Notifier, message: str) -> None:
    notifier.notify(Notification(NotificationLevel.ERROR, message))


_PREFIXES = {
    NotificationLevel.SUCCESS: "✅",
    NotificationLevel.INFO: "ℹ️ ",
    NotificationLevel.ERROR: "❌",
}


class ConsoleNotifier:
    """Print notifications as status lines on a Rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify(self, notification: Notification) -> None:
        prefix = _PREFIXES.get(notification.level, "")
        self.console.print(f"{prefix} {notification.message}", highlight=False)


class RecordingNotifier:
    """Collect notifications in memory (headless clients and tests)."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.notifications]

    @property
    def last(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None

    def clear(self) -> None:
        self.notifications.clear()


async def always_confirm(message: str) -> bool:
    return True


async def never_confirm(message: str) -> bool:
    return False
