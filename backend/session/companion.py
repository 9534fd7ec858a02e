"""
Companion relay messages.

The companion device forwards wearable readings as small JSON objects:

    {"heartRate": 72.5}          reading as float
    {"hr": 72}                   reading as int (older relays)
    {"workoutStatus": "started"} workout session started / "stopped"

Anything else is not a companion message and is ignored by the caller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Union


class CompanionSendError(Exception):
    """Raised by a companion channel when a command could not be delivered."""


@dataclass(frozen=True)
class HeartRateReading:
    bpm: float


@dataclass(frozen=True)
class WorkoutStatusUpdate:
    active: bool


CompanionMessage = Union[HeartRateReading, WorkoutStatusUpdate]

_WORKOUT_STATUSES = {"started": True, "stopped": False}


def _as_bpm(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    bpm = float(value)
    if not math.isfinite(bpm):
        return None
    return bpm


def parse_companion_message(payload: Mapping[str, Any]) -> CompanionMessage | None:
    """
    Interpret one relay payload.

    "heartRate" wins over "hr" when both are present. Returns None for
    payloads that carry nothing usable.
    """
    for key in ("heartRate", "hr"):
        if key in payload:
            bpm = _as_bpm(payload[key])
            if bpm is not None:
                return HeartRateReading(bpm=bpm)

    status = payload.get("workoutStatus")
    if isinstance(status, str) and status in _WORKOUT_STATUSES:
        return WorkoutStatusUpdate(active=_WORKOUT_STATUSES[status])

    return None
