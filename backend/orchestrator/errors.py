"""
Link error taxonomy.

Rules:
- One ErrorKind per distinguishable fault.
- LinkError is pure data: kind plus the payload that kind carries.
- Human-readable text is derived, never stored separately by callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from constants import LIVENESS_MAX_MISSED, PORT_MAX, PORT_MIN


class ErrorKind(str, Enum):
    """
    Fault classification.

    Retry semantics by kind:

    HOST_UNREACHABLE / PORT_INVALID / INVALID_TARGET raised by connect():
        Input validation. Never retried.

    SEND_FAILURE / CONNECTION_TIMEOUT / HOST_UNREACHABLE from liveness:
        Recoverable. Retried with backoff.

    NETWORK_UNAVAILABLE:
        Outside the retry budget. Cleared only by an availability signal.

    MAX_RETRIES_EXCEEDED:
        Retry budget exhausted. Link resets to DISCONNECTED.

    WATCH_CONNECTION_LOST / WATCH_UNREACHABLE:
        Companion-side annotations. Never change the link state.
    """

    WATCH_CONNECTION_LOST = "WATCH_CONNECTION_LOST"
    WATCH_UNREACHABLE = "WATCH_UNREACHABLE"
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    HOST_UNREACHABLE = "HOST_UNREACHABLE"
    PORT_INVALID = "PORT_INVALID"
    SEND_FAILURE = "SEND_FAILURE"
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    INVALID_TARGET = "INVALID_TARGET"


@dataclass(frozen=True)
class LinkError:
    """
    A classified fault.

    Only the payload field matching `kind` is meaningful:
    - host    for HOST_UNREACHABLE
    - port    for PORT_INVALID
    - detail  for SEND_FAILURE
    """

    kind: ErrorKind
    host: str | None = None
    port: int | None = None
    detail: str | None = None

    @property
    def message(self) -> str:
        """User-facing description of the fault."""
        kind = self.kind

        if kind is ErrorKind.WATCH_CONNECTION_LOST:
            return (
                "Connection to the wearable was lost. Ensure it is nearby "
                "and both devices have Bluetooth enabled."
            )
        if kind is ErrorKind.WATCH_UNREACHABLE:
            return (
                "The wearable is not reachable. Check that it is nearby "
                "and Bluetooth is enabled."
            )
        if kind is ErrorKind.NETWORK_UNAVAILABLE:
            return (
                "Network connection is unavailable. Please check your "
                "Wi-Fi or cellular connection."
            )
        if kind is ErrorKind.HOST_UNREACHABLE:
            return (
                f"Cannot reach host: {self.host}. Verify the host is online "
                "and on the same network."
            )
        if kind is ErrorKind.PORT_INVALID:
            return (
                f"Invalid port number: {self.port}. Port must be between "
                f"{PORT_MIN} and {PORT_MAX}."
            )
        if kind is ErrorKind.SEND_FAILURE:
            return f"Failed to send data: {self.detail}"
        if kind is ErrorKind.CONNECTION_TIMEOUT:
            return "Connection timed out. The receiver may be offline or unreachable."
        if kind is ErrorKind.MAX_RETRIES_EXCEEDED:
            return (
                "Maximum reconnection attempts exceeded. Please try "
                "connecting again manually."
            )
        return "Invalid host or port. Please check your connection settings."

    def to_dict(self) -> dict[str, object]:
        """Serializable form used by notifications and the HTTP surface."""
        payload: dict[str, object] = {"kind": self.kind.value}
        if self.host is not None:
            payload["host"] = self.host
        if self.port is not None:
            payload["port"] = self.port
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


# =============================================================================
# Constructors
# =============================================================================

def host_unreachable(host: str) -> LinkError:
    return LinkError(kind=ErrorKind.HOST_UNREACHABLE, host=host)


def port_invalid(port: int) -> LinkError:
    return LinkError(kind=ErrorKind.PORT_INVALID, port=port)


def send_failure(detail: str) -> LinkError:
    return LinkError(kind=ErrorKind.SEND_FAILURE, detail=detail)


def simple(kind: ErrorKind) -> LinkError:
    """Error kinds that carry no payload."""
    return LinkError(kind=kind)


def connection_lost_message(host: str) -> str:
    """Text reported when the missed-ping budget runs out."""
    return (
        f"Connection lost: No response from {host} after "
        f"{LIVENESS_MAX_MISSED} ping attempts"
    )
