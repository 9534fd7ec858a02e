"""
Authoritative link state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from orchestrator.enums.mode import ExecutionMode
from orchestrator.enums.state import ConnectionState
from orchestrator.errors import LinkError
from orchestrator.liveness import LivenessState
from orchestrator.retry import RetryAttempt
from orchestrator.target import ConnectionTarget
from orchestrator.throttle import ThrottleState


@dataclass(frozen=True)
class LinkState:
    """Immutable snapshot of all link-owned state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: ConnectionState = ConnectionState.DISCONNECTED
    mode: ExecutionMode = ExecutionMode.FOREGROUND

    # Last accepted target; survives disconnect so availability
    # recovery and auto-connect can reuse it.
    target: ConnectionTarget | None = None

    # ------------------------------------------------------------------
    # Epoch tracking
    # ------------------------------------------------------------------
    # Bumped on every accepted connect(). Timer and transport-result
    # events carrying a different epoch are ignored.
    epoch: int = 0

    # Connect probe outstanding and connect-timeout armed
    connect_in_flight: bool = False

    # Backoff timer armed
    reconnect_pending: bool = False

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    current_error: LinkError | None = None
    last_error: str | None = None

    # ------------------------------------------------------------------
    # Retry / liveness / throttle bookkeeping
    # ------------------------------------------------------------------
    retry: RetryAttempt = field(default_factory=RetryAttempt)
    liveness: LivenessState = field(default_factory=LivenessState)
    throttle: ThrottleState = field(default_factory=ThrottleState)

    # ------------------------------------------------------------------
    # Telemetry counters
    # ------------------------------------------------------------------
    forwarded_count: int = 0
    last_forwarded_ts_ms: int | None = None

    # ------------------------------------------------------------------
    # Companion relay
    # ------------------------------------------------------------------
    bpm: float | None = None
    sample_count: int = 0
    last_sample_ts_ms: int | None = None
    watch_reachable: bool = False
    workout_active: bool = False

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------
    network_available: bool = True
