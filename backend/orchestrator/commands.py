"""
Side-effect command definitions for the link reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.enums.purpose import ProbePurpose
from orchestrator.events import EventType
from orchestrator.notifications import Notification
from orchestrator.target import ConnectionTarget

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Transport
    SEND_PING = "SEND_PING"
    SEND_TELEMETRY = "SEND_TELEMETRY"

    # Persistence
    SAVE_TARGET = "SAVE_TARGET"

    # Companion relay
    SEND_COMPANION_COMMAND = "SEND_COMPANION_COMMAND"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Presentation
    NOTIFY = "NOTIFY"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Transport Commands
# =============================================================================

@dataclass(frozen=True)
class SendPing(Command):
    """
    Send one reachability ping.

    The runtime must feed back exactly one PingSucceeded or PingFailed
    carrying the same epoch and purpose.
    """
    epoch: int
    purpose: ProbePurpose
    target: ConnectionTarget
    command_type: CommandType = CommandType.SEND_PING


@dataclass(frozen=True)
class SendTelemetry(Command):
    """
    Send one heart-rate value.

    The runtime must feed back exactly one TelemetrySent or
    TelemetryFailed carrying the same epoch.
    """
    epoch: int
    bpm: float
    target: ConnectionTarget
    command_type: CommandType = CommandType.SEND_TELEMETRY


# =============================================================================
# Persistence Commands
# =============================================================================

@dataclass(frozen=True)
class SaveTarget(Command):
    """Persist the last accepted target."""
    target: ConnectionTarget
    command_type: CommandType = CommandType.SAVE_TARGET


# =============================================================================
# Companion Commands
# =============================================================================

@dataclass(frozen=True)
class SendCompanionCommand(Command):
    """
    Forward a control command to the companion relay.

    On failure the runtime feeds back WorkoutCommandFailed.
    """
    command: str
    start: bool
    command_type: CommandType = CommandType.SEND_COMPANION_COMMAND


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start (or replace) a named timer.

    On expiration, the runtime must inject the specified timeout event
    carrying `epoch`. A repeating timer re-fires every duration_ms until
    cancelled or replaced.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    epoch: int
    repeat: bool = False
    target: ConnectionTarget | None = None
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Presentation Commands
# =============================================================================

@dataclass(frozen=True)
class Notify(Command):
    """Broadcast one notification to all subscribers."""
    notification: Notification
    command_type: CommandType = CommandType.NOTIFY


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
