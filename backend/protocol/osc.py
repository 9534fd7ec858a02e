# backend/protocol/osc.py
"""
Minimal OSC 1.0 message codec for the avatar-control receiver.

Wire layout (all fields 4-byte aligned, big-endian):
    address      OSC-string   e.g. "/avatar/parameters/HeartRate"
    type tags    OSC-string   "," followed by one tag per argument
    arguments    int32 ("i") | float32 ("f") | OSC-string ("s")

An OSC-string is the UTF-8 bytes, a terminating NUL, then NUL padding
up to the next multiple of 4.

Usage example:

    payload = encode_message(OSC_HEART_RATE_ADDRESS, 72.0)
    sock.sendto(payload, (host, port))

decode_message() is the receiving half. The link itself only sends;
decoding serves loopback receivers that check what actually went on
the wire.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass


# -------------------------
# Exceptions
# -------------------------

class OscEncodingError(Exception):
    """Base class for OSC codec errors."""


class InvalidAddress(OscEncodingError):
    """Raised when an address pattern does not start with '/'."""


class UnsupportedArgument(OscEncodingError):
    """Raised when an argument type has no OSC type tag mapping."""


class MalformedPacket(OscEncodingError):
    """Raised when a received packet cannot be decoded."""


# -------------------------
# Low-level helpers
# -------------------------

_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1


def _pad4(length: int) -> int:
    return (4 - length % 4) % 4


def _osc_string(value: str) -> bytes:
    raw = value.encode("utf-8") + b"\x00"
    return raw + b"\x00" * _pad4(len(raw))


def _read_osc_string(buf: bytes, offset: int) -> tuple[str, int]:
    end = buf.find(b"\x00", offset)
    if end < 0:
        raise MalformedPacket(f"Unterminated OSC-string at offset {offset}")
    text = buf[offset:end].decode("utf-8")
    size = end - offset + 1
    return text, offset + size + _pad4(size)


def _encode_argument(value: object) -> tuple[str, bytes]:
    # bool is an int subclass; OSC T/F tags are not supported here
    if isinstance(value, bool):
        raise UnsupportedArgument("bool arguments are not supported")
    if isinstance(value, int):
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise UnsupportedArgument(f"int out of int32 range: {value}")
        return "i", struct.pack(">i", value)
    if isinstance(value, float):
        return "f", struct.pack(">f", value)
    if isinstance(value, str):
        return "s", _osc_string(value)
    raise UnsupportedArgument(f"Unsupported OSC argument type: {type(value).__name__}")


# -------------------------
# Encode / decode
# -------------------------

@dataclass(frozen=True)
class OscMessage:
    address: str
    arguments: tuple[int | float | str, ...]


def encode_message(address: str, *arguments: int | float | str) -> bytes:
    """
    Encode one OSC message.

    Raises:
        InvalidAddress: address is empty or not '/'-prefixed
        UnsupportedArgument: an argument is not int32, float or str
    """
    if not address.startswith("/"):
        raise InvalidAddress(f"OSC address must start with '/': {address!r}")

    tags = ","
    body = b""
    for arg in arguments:
        tag, data = _encode_argument(arg)
        tags += tag
        body += data

    return _osc_string(address) + _osc_string(tags) + body


def decode_message(payload: bytes) -> OscMessage:
    """
    Decode one OSC message (the subset produced by encode_message).

    Raises:
        MalformedPacket: truncated, misaligned or unknown tag
    """
    if len(payload) % 4 != 0:
        raise MalformedPacket(f"OSC packet length {len(payload)} is not 4-byte aligned")

    address, offset = _read_osc_string(payload, 0)
    if not address.startswith("/"):
        raise MalformedPacket(f"Invalid OSC address: {address!r}")

    tags, offset = _read_osc_string(payload, offset)
    if not tags.startswith(","):
        raise MalformedPacket(f"Invalid type tag string: {tags!r}")

    args: list[int | float | str] = []
    for tag in tags[1:]:
        if tag in ("i", "f"):
            if offset + 4 > len(payload):
                raise MalformedPacket("Truncated OSC argument")
            fmt = ">i" if tag == "i" else ">f"
            args.append(struct.unpack_from(fmt, payload, offset)[0])
            offset += 4
        elif tag == "s":
            text, offset = _read_osc_string(payload, offset)
            args.append(text)
        else:
            raise MalformedPacket(f"Unsupported type tag: {tag!r}")

    return OscMessage(address=address, arguments=tuple(args))
