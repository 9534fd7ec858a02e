"""
Domain notifications broadcast to the presentation layer.

Rules:
- Exactly four kinds exist.
- Notifications are immutable value objects emitted by the reducer
  (wrapped in a Notify command) and delivered by the runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.errors import ErrorKind
from orchestrator.target import ConnectionTarget


class NotificationKind(str, Enum):
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"
    RECONNECTING = "RECONNECTING"
    DISCONNECTED = "DISCONNECTED"


class Notification:
    """
    Base notification type.

    kind is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    kind: NotificationKind

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Connected(Notification):
    target: ConnectionTarget
    kind: NotificationKind = NotificationKind.CONNECTED

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "target": self.target.to_dict()}


@dataclass(frozen=True)
class ErrorNotice(Notification):
    message: str
    error_kind: ErrorKind
    kind: NotificationKind = NotificationKind.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "error_kind": self.error_kind.value,
        }


@dataclass(frozen=True)
class Reconnecting(Notification):
    attempt: int
    max_attempts: int
    target: ConnectionTarget
    kind: NotificationKind = NotificationKind.RECONNECTING

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "target": self.target.to_dict(),
        }


@dataclass(frozen=True)
class Disconnected(Notification):
    kind: NotificationKind = NotificationKind.DISCONNECTED

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value}
