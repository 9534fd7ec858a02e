"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral limits of the link engine.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Connection target
# =============================================================================

PORT_MIN: Final[int] = 1
PORT_MAX: Final[int] = 65_535

# Default avatar-control receiver port (VRChat OSC input)
DEFAULT_TARGET_PORT: Final[int] = 9000

EMPTY_HOST_LABEL: Final[str] = "Empty hostname"

# =============================================================================
# Connect attempt
# =============================================================================

CONNECT_TIMEOUT_MS: Final[int] = 5_000

# =============================================================================
# Reconnection backoff
# =============================================================================

RECONNECT_MAX_ATTEMPTS: Final[int] = 5
RECONNECT_BACKOFF_BASE_MS: Final[int] = 1_000
RECONNECT_BACKOFF_CAP_MS: Final[int] = 30_000

# =============================================================================
# Liveness monitoring
# =============================================================================

LIVENESS_TICK_FOREGROUND_MS: Final[int] = 10_000
LIVENESS_TICK_BACKGROUND_MS: Final[int] = 30_000
LIVENESS_PROBE_TIMEOUT_MS: Final[int] = 5_000
LIVENESS_MAX_MISSED: Final[int] = 3

# Background keepalive is skipped if telemetry went out within this window
BACKGROUND_KEEPALIVE_IDLE_MS: Final[int] = 60_000

# Foreground only: companion considered silent after this long without samples
COMPANION_SILENCE_MS: Final[int] = 30_000

# =============================================================================
# Telemetry throttling
# =============================================================================

THROTTLE_FOREGROUND_DELTA_BPM: Final[float] = 1.0
THROTTLE_FOREGROUND_MIN_INTERVAL_MS: Final[int] = 1_000

THROTTLE_BACKGROUND_DELTA_BPM: Final[float] = 3.0
THROTTLE_BACKGROUND_MIN_INTERVAL_MS: Final[int] = 3_000

# =============================================================================
# OSC wire (avatar parameters)
# =============================================================================

OSC_PING_ADDRESS: Final[str] = "/avatar/parameters/HeartRatePing"
OSC_HEART_RATE_ADDRESS: Final[str] = "/avatar/parameters/HeartRate"
OSC_PING_VALUE: Final[int] = 1

# Physiological clamp applied before a value goes on the wire
HEART_RATE_MIN_BPM: Final[float] = 30.0
HEART_RATE_MAX_BPM: Final[float] = 220.0

# =============================================================================
# Companion relay commands
# =============================================================================

COMPANION_START_WORKOUT: Final[str] = "startWorkout"
COMPANION_STOP_WORKOUT: Final[str] = "stopWorkout"

# =============================================================================
# Helper Functions
# =============================================================================

def is_valid_port(port: int) -> bool:
    """Return True if `port` is a usable UDP port number."""
    return PORT_MIN <= port <= PORT_MAX


def ms_to_seconds(duration_ms: int) -> float:
    """
    Convert milliseconds to seconds for asyncio.sleep.

    Defensive behavior:
    - Negative input returns 0.0 instead of propagating an error.
    """
    if duration_ms <= 0:
        return 0.0
    return duration_ms / 1000.0
