"""
Authoritative connection state enumeration.

Rules:
- This enum defines ONLY the link states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """
    Link state between the companion host and the avatar-control receiver.

    No state is terminal: every state can return to CONNECTING or
    DISCONNECTED.
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"
