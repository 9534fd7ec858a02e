"""
Execution mode enumeration.

Modes are orthogonal to connection states:
- State answers: "Is the receiver reachable?"
- Mode answers:  "How hard may we work to keep it that way?"
"""

from __future__ import annotations

from enum import Enum


class ExecutionMode(str, Enum):
    """
    Whether the host process is foregrounded.

    FOREGROUND:
        Short liveness ticks, fine-grained telemetry forwarding.

    BACKGROUND:
        Longer liveness ticks, coarser telemetry forwarding,
        keepalive skipped while telemetry proves liveness.
    """

    FOREGROUND = "FOREGROUND"
    BACKGROUND = "BACKGROUND"
