"""
OSC-over-UDP transport.

One datagram per message, no connection, no acknowledgment. The ping
carries int 1 on the ping address; telemetry carries the heart rate as
float32, clamped to the physiological range before encoding.
"""

from __future__ import annotations

import socket

from adapters.osc.base import Transport, TransportError
from constants import (
    HEART_RATE_MAX_BPM,
    HEART_RATE_MIN_BPM,
    OSC_HEART_RATE_ADDRESS,
    OSC_PING_ADDRESS,
    OSC_PING_VALUE,
)
from protocol.osc import OscEncodingError, encode_message


def clamp_heart_rate(value: float) -> float:
    return max(HEART_RATE_MIN_BPM, min(HEART_RATE_MAX_BPM, float(value)))


class UdpOscTransport(Transport):
    """
    Sends OSC messages over a lazily created UDP socket.

    The socket is reused across sends and recreated after close().
    """

    def __init__(self) -> None:
        self._sock: socket.socket | None = None

    def _socket(self) -> socket.socket:
        if self._sock is None:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        return self._sock

    def _send(self, payload: bytes, host: str, port: int) -> None:
        try:
            self._socket().sendto(payload, (host, port))
        except socket.gaierror as e:
            raise TransportError(f"Cannot resolve host {host}: {e}") from e
        # Over-long IDNA labels raise UnicodeError, embedded NULs raise
        # ValueError or TypeError depending on the interpreter.
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot resolve host {host}: {e}") from e
        except (OSError, OverflowError) as e:
            raise TransportError(str(e)) from e

    def send_ping(self, host: str, port: int) -> None:
        try:
            payload = encode_message(OSC_PING_ADDRESS, OSC_PING_VALUE)
        except OscEncodingError as e:
            raise TransportError(str(e)) from e
        self._send(payload, host, port)

    def send_telemetry(self, value: float, host: str, port: int) -> None:
        try:
            payload = encode_message(OSC_HEART_RATE_ADDRESS, clamp_heart_rate(value))
        except OscEncodingError as e:
            raise TransportError(str(e)) from e
        self._send(payload, host, port)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
