"""
Transport adapter contract.

This module defines the *interface only*. No retries, timers or
orchestration decisions live here.

Key invariants:
- Sends are synchronous and fire-and-forget: returning normally means the
  datagram left the host, nothing more.
- Failure is raised as TransportError; the runtime converts it into a
  result event. Adapters never touch link state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TransportError(Exception):
    """
    Raised when a datagram could not be handed to the network.

    `reason` is a short human-readable description surfaced in
    SEND_FAILURE messages.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class Transport(ABC):
    """
    Abstract avatar-link transport.

    Implementations are responsible for:
    - Encoding the reachability ping and heart-rate value
    - Sending them to host:port

    Non-responsibilities:
    - No validation of host/port beyond what the socket layer enforces
    - No retries
    """

    @abstractmethod
    def send_ping(self, host: str, port: int) -> None:
        """Send one reachability ping. Raises TransportError on failure."""
        raise NotImplementedError

    @abstractmethod
    def send_telemetry(self, value: float, host: str, port: int) -> None:
        """Send one heart-rate value. Raises TransportError on failure."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any held sockets. Default: nothing to release."""
