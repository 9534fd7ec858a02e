"""
Probe purpose enumeration.

Rules:
- Identifies WHY a ping was issued, so its result can be routed.
- It must NOT encode behavior or lifecycle rules.
"""

from __future__ import annotations

from enum import Enum


class ProbePurpose(str, Enum):
    """
    CONNECT:
        Reachability check issued by connect(); resolves the attempt.

    LIVENESS:
        Keepalive issued by the liveness monitor while connected.
    """

    CONNECT = "CONNECT"
    LIVENESS = "LIVENESS"
