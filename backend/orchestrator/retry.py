"""
Reconnect policy helpers.

Purpose:
- Centralize the backoff and attempt-cap rules
- Keep reducer pure
- Allow runtime to arm deterministic reconnect timers

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass

from constants import (
    RECONNECT_BACKOFF_BASE_MS,
    RECONNECT_BACKOFF_CAP_MS,
    RECONNECT_MAX_ATTEMPTS,
)


# =============================================================================
# Retry State
# =============================================================================

@dataclass(frozen=True)
class RetryAttempt:
    """
    Immutable reconnect attempt counter.

    Semantics:
    - attempt == 0 means no reconnect has fired since the last reset.
    - attempt is incremented when a reconnect timer fires, before
      the new connect() runs.
    - Reset on every successful connect and on explicit disconnect.
    """
    attempt: int = 0
    max_attempts: int = RECONNECT_MAX_ATTEMPTS


def next_attempt(current: RetryAttempt) -> RetryAttempt:
    """
    Advance to the next reconnect attempt.

    Returns a new RetryAttempt with attempt incremented by 1.
    """
    return RetryAttempt(
        attempt=current.attempt + 1,
        max_attempts=current.max_attempts,
    )


def reset_attempt() -> RetryAttempt:
    """Returns a fresh attempt counter."""
    return RetryAttempt(attempt=0)


# =============================================================================
# Policy
# =============================================================================

def retries_exhausted(attempt: RetryAttempt) -> bool:
    """
    Returns True once the attempt budget is spent.

    attempt = number of reconnects already fired
    """
    return attempt.attempt >= attempt.max_attempts


# =============================================================================
# Delay Calculation
# =============================================================================

def get_reconnect_delay_ms(attempt: RetryAttempt) -> int:
    """
    Returns delay before the next reconnect.

    Exponential backoff: 1s, 2s, 4s, 8s, 16s ... capped at 30s.
    """
    # Clamp the exponent so huge counters cannot overflow the cap check
    exponent = min(attempt.attempt, 16)
    return min(RECONNECT_BACKOFF_BASE_MS * (2 ** exponent), RECONNECT_BACKOFF_CAP_MS)
