"""
Pure telemetry throttling logic.

This module contains NO side effects and NO timing primitives.
It is a deterministic function over:
- the last value actually forwarded (and when)
- the incoming sample (and when)
- the execution mode

IMPORTANT CONTRACT WITH REDUCER / RUNTIME:

- This module never updates ThrottleState. The reducer records the
  forwarded value only after the transport reports success.
- Timestamps must come from the same monotonic clock.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import (
    THROTTLE_BACKGROUND_DELTA_BPM,
    THROTTLE_BACKGROUND_MIN_INTERVAL_MS,
    THROTTLE_FOREGROUND_DELTA_BPM,
    THROTTLE_FOREGROUND_MIN_INTERVAL_MS,
)
from orchestrator.enums.mode import ExecutionMode


# =============================================================================
# Parameters
# =============================================================================

@dataclass(frozen=True)
class ThrottleParams:
    """Forwarding thresholds for one execution mode."""
    delta_bpm: float
    min_interval_ms: int


FOREGROUND_PARAMS = ThrottleParams(
    delta_bpm=THROTTLE_FOREGROUND_DELTA_BPM,
    min_interval_ms=THROTTLE_FOREGROUND_MIN_INTERVAL_MS,
)

BACKGROUND_PARAMS = ThrottleParams(
    delta_bpm=THROTTLE_BACKGROUND_DELTA_BPM,
    min_interval_ms=THROTTLE_BACKGROUND_MIN_INTERVAL_MS,
)


def params_for(mode: ExecutionMode) -> ThrottleParams:
    if mode is ExecutionMode.BACKGROUND:
        return BACKGROUND_PARAMS
    return FOREGROUND_PARAMS


# =============================================================================
# State
# =============================================================================

@dataclass(frozen=True)
class ThrottleState:
    """
    Last successfully forwarded sample.

    None values mean nothing has been forwarded since the last connect,
    in which case the next sample is always forwarded.
    """
    last_sent_value: float | None = None
    last_sent_ts_ms: int | None = None


# =============================================================================
# Decision
# =============================================================================

@dataclass(frozen=True)
class ThrottleDecision:
    """
    Result of a throttle evaluation.

    reason is one of: "first_sample", "delta", "interval", "suppressed".
    """
    forward: bool
    reason: str
    delta_bpm: float | None = None
    elapsed_ms: int | None = None


def evaluate_sample(
    *,
    throttle: ThrottleState,
    bpm: float,
    now_ms: int,
    mode: ExecutionMode,
) -> ThrottleDecision:
    """
    Decide whether a sample should go on the wire.

    Forwards iff |bpm - last_sent| >= delta OR elapsed >= min_interval.
    """
    if throttle.last_sent_value is None or throttle.last_sent_ts_ms is None:
        return ThrottleDecision(forward=True, reason="first_sample")

    params = params_for(mode)
    delta = abs(bpm - throttle.last_sent_value)
    elapsed_ms = now_ms - throttle.last_sent_ts_ms

    if delta >= params.delta_bpm:
        return ThrottleDecision(
            forward=True, reason="delta", delta_bpm=delta, elapsed_ms=elapsed_ms
        )

    if elapsed_ms >= params.min_interval_ms:
        return ThrottleDecision(
            forward=True, reason="interval", delta_bpm=delta, elapsed_ms=elapsed_ms
        )

    return ThrottleDecision(
        forward=False, reason="suppressed", delta_bpm=delta, elapsed_ms=elapsed_ms
    )
