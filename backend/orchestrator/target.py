"""
Connection target value object.

Rules:
- A target is only ever stored after validation succeeds.
- This module defines structure and validation, not behavior.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import EMPTY_HOST_LABEL, is_valid_port
from orchestrator.errors import LinkError, host_unreachable, port_invalid


@dataclass(frozen=True)
class ConnectionTarget:
    """
    Avatar-control receiver endpoint.

    Invariant (when produced by validate_target):
    - host is non-empty
    - 1 <= port <= 65535
    """

    host: str
    port: int

    def to_dict(self) -> dict[str, object]:
        return {"host": self.host, "port": self.port}


def validate_target(host: str, port: int) -> ConnectionTarget | LinkError:
    """
    Validate a candidate endpoint.

    Returns the target on success, or the validation fault:
    - empty host  -> HOST_UNREACHABLE("Empty hostname")
    - bad port    -> PORT_INVALID(port)

    Host is checked first, matching connect() ordering.
    """
    if not host:
        return host_unreachable(EMPTY_HOST_LABEL)

    if not is_valid_port(port):
        return port_invalid(port)

    return ConnectionTarget(host=host, port=port)
