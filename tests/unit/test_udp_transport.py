# pylint: disable=missing-module-docstring,missing-function-docstring,protected-access
import socket
from typing import Iterator

import pytest

from adapters.osc.base import TransportError
from adapters.osc.udp import UdpOscTransport, clamp_heart_rate
from protocol.osc import decode_message


@pytest.fixture(name="receiver")
def fixture_receiver() -> Iterator[socket.socket]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def test_ping_reaches_receiver(receiver: socket.socket):
    transport = UdpOscTransport()
    port = receiver.getsockname()[1]
    try:
        transport.send_ping("127.0.0.1", port)
        data, _ = receiver.recvfrom(1024)
    finally:
        transport.close()

    message = decode_message(data)
    assert message.address == "/avatar/parameters/HeartRatePing"
    assert message.arguments == (1,)


def test_telemetry_is_clamped_before_sending(receiver: socket.socket):
    transport = UdpOscTransport()
    port = receiver.getsockname()[1]
    try:
        transport.send_telemetry(250.0, "127.0.0.1", port)
        data, _ = receiver.recvfrom(1024)
    finally:
        transport.close()

    message = decode_message(data)
    assert message.address == "/avatar/parameters/HeartRate"
    assert message.arguments == (220.0,)


@pytest.mark.parametrize(("value", "expected"), [(10.0, 30.0), (72.0, 72.0), (300, 220.0)])
def test_clamp_heart_rate(value: float, expected: float):
    assert clamp_heart_rate(value) == expected


class _BrokenSocket:
    def sendto(self, _payload: bytes, _addr: tuple[str, int]) -> int:
        raise OSError("Network is unreachable")

    def close(self) -> None:
        pass


def test_socket_errors_become_transport_errors():
    transport = UdpOscTransport()
    transport._sock = _BrokenSocket()  # type: ignore[assignment]

    with pytest.raises(TransportError) as excinfo:
        transport.send_ping("10.0.0.1", 9000)

    assert excinfo.value.reason == "Network is unreachable"


@pytest.mark.parametrize("host", ["ä" * 70, "bad\x00host"], ids=["idna-label-too-long", "nul-byte"])
def test_unencodable_host_becomes_transport_error(host: str):
    transport = UdpOscTransport()
    try:
        with pytest.raises(TransportError) as excinfo:
            transport.send_ping(host, 9000)
    finally:
        transport.close()

    assert excinfo.value.reason.startswith("Cannot resolve host")
