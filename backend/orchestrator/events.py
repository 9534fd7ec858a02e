"""
Unified event definitions for the link reducer.

Rules:
- Events describe facts that have occurred (or requests that arrived).
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer and transport-result events must carry epoch for stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.purpose import ProbePurpose
from orchestrator.target import ConnectionTarget


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Caller requests
    # ------------------------------------------------------------------
    CONNECT_REQUESTED = "CONNECT_REQUESTED"
    DISCONNECT_REQUESTED = "DISCONNECT_REQUESTED"

    # ------------------------------------------------------------------
    # Transport results
    # ------------------------------------------------------------------
    PING_SUCCEEDED = "PING_SUCCEEDED"
    PING_FAILED = "PING_FAILED"
    TELEMETRY_SENT = "TELEMETRY_SENT"
    TELEMETRY_FAILED = "TELEMETRY_FAILED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    CONNECT_TIMEOUT = "CONNECT_TIMEOUT"
    RECONNECT_DUE = "RECONNECT_DUE"
    LIVENESS_TICK = "LIVENESS_TICK"

    # ------------------------------------------------------------------
    # Telemetry ingest
    # ------------------------------------------------------------------
    SAMPLE_RECEIVED = "SAMPLE_RECEIVED"

    # ------------------------------------------------------------------
    # Network availability
    # ------------------------------------------------------------------
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    NETWORK_AVAILABLE = "NETWORK_AVAILABLE"

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------
    ENTERED_BACKGROUND = "ENTERED_BACKGROUND"
    ENTERED_FOREGROUND = "ENTERED_FOREGROUND"
    WILL_TERMINATE = "WILL_TERMINATE"

    # ------------------------------------------------------------------
    # Companion relay
    # ------------------------------------------------------------------
    COMPANION_REACHABILITY = "COMPANION_REACHABILITY"
    WORKOUT_STATUS = "WORKOUT_STATUS"
    WORKOUT_COMMAND_REQUESTED = "WORKOUT_COMMAND_REQUESTED"
    WORKOUT_COMMAND_FAILED = "WORKOUT_COMMAND_FAILED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: monotonic timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class EpochEvent(Event):
    """
    Base class for events bound to one connect() attempt.

    The reducer MUST ignore events whose epoch does not match the
    current epoch.
    """

    epoch: int


# =============================================================================
# Caller Requests
# =============================================================================

@dataclass(frozen=True)
class ConnectRequested(Event):
    """
    Caller asked to connect.

    port is int | None: None means the caller's input could not be
    interpreted as a port number at all.
    """
    host: str
    port: int | None


@dataclass(frozen=True)
class DisconnectRequested(Event):
    """Caller asked to disconnect."""


# =============================================================================
# Transport Results
# =============================================================================

@dataclass(frozen=True)
class PingSucceeded(EpochEvent):
    """Ping left the host without a transport error."""
    purpose: ProbePurpose


@dataclass(frozen=True)
class PingFailed(EpochEvent):
    """Transport rejected a ping."""
    purpose: ProbePurpose
    reason: str


@dataclass(frozen=True)
class TelemetrySent(EpochEvent):
    """Heart-rate value left the host without a transport error."""
    bpm: float


@dataclass(frozen=True)
class TelemetryFailed(EpochEvent):
    """Transport rejected a heart-rate value."""
    bpm: float
    reason: str


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class ConnectTimeout(EpochEvent):
    """Connect probe did not resolve within CONNECT_TIMEOUT_MS."""


@dataclass(frozen=True)
class ReconnectDue(EpochEvent):
    """Backoff delay elapsed."""
    target: ConnectionTarget


@dataclass(frozen=True)
class LivenessTick(EpochEvent):
    """Periodic liveness evaluation while connected."""


# =============================================================================
# Telemetry Ingest
# =============================================================================

@dataclass(frozen=True)
class SampleReceived(Event):
    """
    One heart-rate reading from the wearable.

    ts_ms is the local receive time; source_ts_ms is whatever the
    wearable stamped, kept for display only.
    """
    bpm: float
    source_ts_ms: int | None = None


# =============================================================================
# Network Availability
# =============================================================================

@dataclass(frozen=True)
class NetworkUnavailable(Event):
    """External monitor reports the network is down."""


@dataclass(frozen=True)
class NetworkAvailable(Event):
    """External monitor reports the network is back."""


# =============================================================================
# Host Lifecycle
# =============================================================================

@dataclass(frozen=True)
class EnteredBackground(Event):
    """Host process moved to the background."""


@dataclass(frozen=True)
class EnteredForeground(Event):
    """Host process returned to the foreground."""


@dataclass(frozen=True)
class WillTerminate(Event):
    """Host process is about to exit."""


# =============================================================================
# Companion Relay
# =============================================================================

@dataclass(frozen=True)
class CompanionReachability(Event):
    """Companion relay became reachable or unreachable."""
    reachable: bool


@dataclass(frozen=True)
class WorkoutStatus(Event):
    """Companion reported workout session start/stop."""
    active: bool


@dataclass(frozen=True)
class WorkoutCommandRequested(Event):
    """Caller asked the companion to start or stop its workout session."""
    start: bool


@dataclass(frozen=True)
class WorkoutCommandFailed(Event):
    """Companion channel rejected a workout command."""
    start: bool
    reason: str
