"""
Pure liveness policy.

This module contains NO side effects and NO timing primitives.
Each liveness tick is evaluated as a function of:
- probe bookkeeping (LivenessState)
- tick timestamp
- execution mode and last telemetry forward time

The reducer turns the returned verdict into state and commands.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from constants import (
    BACKGROUND_KEEPALIVE_IDLE_MS,
    LIVENESS_MAX_MISSED,
    LIVENESS_PROBE_TIMEOUT_MS,
    LIVENESS_TICK_BACKGROUND_MS,
    LIVENESS_TICK_FOREGROUND_MS,
)
from orchestrator.enums.mode import ExecutionMode


@dataclass(frozen=True)
class LivenessState:
    """Probe bookkeeping for the active connection."""
    last_probe_ts_ms: int | None = None
    waiting_for_response: bool = False
    missed_count: int = 0


class TickVerdict(str, Enum):
    """
    PROBE:
        Issue a new keepalive probe.

    LOST:
        Missed-probe budget exhausted; the receiver is unreachable.

    WAIT:
        A probe is outstanding and still inside its timeout window.

    SKIP:
        Background mode and recent telemetry already proved liveness.
    """

    PROBE = "PROBE"
    LOST = "LOST"
    WAIT = "WAIT"
    SKIP = "SKIP"


def tick_interval_ms(mode: ExecutionMode) -> int:
    if mode is ExecutionMode.BACKGROUND:
        return LIVENESS_TICK_BACKGROUND_MS
    return LIVENESS_TICK_FOREGROUND_MS


def needs_keepalive(
    *,
    mode: ExecutionMode,
    now_ms: int,
    last_forwarded_ts_ms: int | None,
) -> bool:
    """
    Foreground always probes. Background probes only when no telemetry
    went out within BACKGROUND_KEEPALIVE_IDLE_MS.
    """
    if mode is ExecutionMode.FOREGROUND:
        return True
    if last_forwarded_ts_ms is None:
        return True
    return now_ms - last_forwarded_ts_ms > BACKGROUND_KEEPALIVE_IDLE_MS


def evaluate_tick(
    *,
    liveness: LivenessState,
    now_ms: int,
    mode: ExecutionMode,
    last_forwarded_ts_ms: int | None,
) -> tuple[LivenessState, TickVerdict]:
    """
    Evaluate one liveness tick.

    Returns the updated bookkeeping and a verdict. On PROBE the returned
    state already records the probe as outstanding at now_ms.
    """
    state = liveness

    if (
        state.waiting_for_response
        and state.last_probe_ts_ms is not None
        and now_ms - state.last_probe_ts_ms > LIVENESS_PROBE_TIMEOUT_MS
    ):
        state = replace(
            state,
            missed_count=state.missed_count + 1,
            waiting_for_response=False,
        )

    if state.missed_count >= LIVENESS_MAX_MISSED:
        return state, TickVerdict.LOST

    if state.waiting_for_response:
        return state, TickVerdict.WAIT

    if not needs_keepalive(
        mode=mode,
        now_ms=now_ms,
        last_forwarded_ts_ms=last_forwarded_ts_ms,
    ):
        return state, TickVerdict.SKIP

    return (
        replace(state, waiting_for_response=True, last_probe_ts_ms=now_ms),
        TickVerdict.PROBE,
    )


def acknowledge(liveness: LivenessState) -> LivenessState:
    """
    Record a liveness positive.

    A successful send is the only acknowledgment available; it clears
    the outstanding probe and the missed counter.
    """
    return replace(liveness, waiting_for_response=False, missed_count=0)
