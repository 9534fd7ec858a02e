"""
Link session facade.

- Explicitly constructed; owns exactly one Runtime
- Stamps every caller event with the injected monotonic clock
- Exposes every link operation and read-only status accessors
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Mapping

from observability.logger import log_event
from orchestrator.enums.mode import ExecutionMode
from orchestrator.enums.state import ConnectionState
from orchestrator.errors import ErrorKind
from orchestrator.events import (
    CompanionReachability,
    ConnectRequested,
    DisconnectRequested,
    EnteredBackground,
    EnteredForeground,
    EventType,
    NetworkAvailable,
    NetworkUnavailable,
    SampleReceived,
    WillTerminate,
    WorkoutCommandRequested,
    WorkoutStatus,
)
from orchestrator.runtime import Clock, Runtime, Sleep
from orchestrator.runtime_context import (
    CompanionChannelProtocol,
    ConfigStoreProtocol,
    RuntimeExecutionContext,
    TransportProtocol,
)
from orchestrator.state_dataclass import LinkState
from orchestrator.target import ConnectionTarget
from session.companion import (
    HeartRateReading,
    WorkoutStatusUpdate,
    parse_companion_message,
)
from session.notifier import EventNotifier, Subscriber, Unsubscribe


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def coerce_port(port: Any) -> int | None:
    """
    Interpret caller input as a port number.

    Returns None when the input is not an integer at all; range checks
    are left to target validation.
    """
    if isinstance(port, bool):
        return None
    if isinstance(port, int):
        return port
    if isinstance(port, float) and port.is_integer():
        return int(port)
    if isinstance(port, str):
        try:
            return int(port.strip())
        except ValueError:
            return None
    return None


class LinkSession:
    """Owner of one wearable-to-avatar link."""

    def __init__(
        self,
        *,
        transport: TransportProtocol,
        settings_store: ConfigStoreProtocol,
        session_id: str | None = None,
        clock: Clock = monotonic_ms,
        sleep: Sleep = asyncio.sleep,
        notifier: EventNotifier | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.transport = transport
        self.settings_store = settings_store
        self.notifier = notifier or EventNotifier(session_id=self.session_id)
        self.companion_channel: CompanionChannelProtocol | None = None
        self._clock = clock

        self.runtime = Runtime(
            initial_state=LinkState(),
            context=RuntimeExecutionContext(self),
            clock=clock,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach_companion_channel(self, channel: CompanionChannelProtocol) -> None:
        self.companion_channel = channel

    def detach_companion_channel(self, channel: CompanionChannelProtocol) -> None:
        # A newer channel may already have replaced this one
        if self.companion_channel is channel:
            self.companion_channel = None

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        return self.notifier.subscribe(callback)

    # ------------------------------------------------------------------
    # Connection control
    # ------------------------------------------------------------------

    async def connect(self, host: str, port: Any) -> None:
        await self.runtime.handle_event(ConnectRequested(
            event_type=EventType.CONNECT_REQUESTED,
            ts_ms=self._clock(),
            host=host,
            port=coerce_port(port),
        ))

    async def connect_saved(self) -> bool:
        """
        Connect to the persisted target if one exists.

        Returns False (and does nothing) when no host has been saved.
        """
        saved = self.settings_store.load()
        if not saved.host:
            return False
        await self.connect(saved.host, saved.port)
        return True

    async def disconnect(self) -> None:
        await self.runtime.handle_event(DisconnectRequested(
            event_type=EventType.DISCONNECT_REQUESTED,
            ts_ms=self._clock(),
        ))

    # ------------------------------------------------------------------
    # Heart-rate source
    # ------------------------------------------------------------------

    async def process_sample(self, bpm: float, timestamp: int | None = None) -> None:
        await self.runtime.handle_event(SampleReceived(
            event_type=EventType.SAMPLE_RECEIVED,
            ts_ms=self._clock(),
            bpm=float(bpm),
            source_ts_ms=timestamp,
        ))

    # ------------------------------------------------------------------
    # Network availability
    # ------------------------------------------------------------------

    async def network_became_unavailable(self) -> None:
        await self.runtime.handle_event(NetworkUnavailable(
            event_type=EventType.NETWORK_UNAVAILABLE,
            ts_ms=self._clock(),
        ))

    async def network_became_available(self) -> None:
        await self.runtime.handle_event(NetworkAvailable(
            event_type=EventType.NETWORK_AVAILABLE,
            ts_ms=self._clock(),
        ))

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    async def entered_background(self) -> None:
        await self.runtime.handle_event(EnteredBackground(
            event_type=EventType.ENTERED_BACKGROUND,
            ts_ms=self._clock(),
        ))

    async def entered_foreground(self) -> None:
        await self.runtime.handle_event(EnteredForeground(
            event_type=EventType.ENTERED_FOREGROUND,
            ts_ms=self._clock(),
        ))

    async def will_terminate(self) -> None:
        await self.runtime.handle_event(WillTerminate(
            event_type=EventType.WILL_TERMINATE,
            ts_ms=self._clock(),
        ))
        await self.runtime.shutdown()

    async def shutdown(self) -> None:
        await self.runtime.shutdown()

    # ------------------------------------------------------------------
    # Companion relay
    # ------------------------------------------------------------------

    async def on_companion_message(self, payload: Mapping[str, Any]) -> None:
        message = parse_companion_message(payload)

        if isinstance(message, HeartRateReading):
            await self.process_sample(message.bpm)
        elif isinstance(message, WorkoutStatusUpdate):
            await self.runtime.handle_event(WorkoutStatus(
                event_type=EventType.WORKOUT_STATUS,
                ts_ms=self._clock(),
                active=message.active,
            ))
        else:
            log_event({
                "ts_ms": self._clock(),
                "event_type": "COMPANION_MESSAGE_IGNORED",
                "session_id": self.session_id,
                "keys": sorted(str(k) for k in payload.keys()),
            })

    async def companion_reachability_changed(self, reachable: bool) -> None:
        await self.runtime.handle_event(CompanionReachability(
            event_type=EventType.COMPANION_REACHABILITY,
            ts_ms=self._clock(),
            reachable=reachable,
        ))

    async def request_workout(self, start: bool) -> None:
        await self.runtime.handle_event(WorkoutCommandRequested(
            event_type=EventType.WORKOUT_COMMAND_REQUESTED,
            ts_ms=self._clock(),
            start=start,
        ))

    # ------------------------------------------------------------------
    # Status accessors (read-only)
    # ------------------------------------------------------------------

    @property
    def link_state(self) -> LinkState:
        return self.runtime.state

    @property
    def state(self) -> ConnectionState:
        return self.runtime.state.state

    @property
    def current_error(self) -> ErrorKind | None:
        error = self.runtime.state.current_error
        return error.kind if error else None

    @property
    def last_error(self) -> str | None:
        return self.runtime.state.last_error

    @property
    def target(self) -> ConnectionTarget | None:
        return self.runtime.state.target

    @property
    def forwarded_count(self) -> int:
        return self.runtime.state.forwarded_count

    @property
    def last_forwarded_ts_ms(self) -> int | None:
        return self.runtime.state.last_forwarded_ts_ms

    @property
    def mode(self) -> ExecutionMode:
        return self.runtime.state.mode

    @property
    def retry_attempt(self) -> int:
        return self.runtime.state.retry.attempt

    @property
    def bpm(self) -> float | None:
        return self.runtime.state.bpm

    @property
    def watch_reachable(self) -> bool:
        return self.runtime.state.watch_reachable

    @property
    def workout_active(self) -> bool:
        return self.runtime.state.workout_active

    def snapshot(self) -> dict[str, Any]:
        s = self.runtime.state
        return {
            "session_id": self.session_id,
            "state": s.state.value,
            "mode": s.mode.value,
            "target": s.target.to_dict() if s.target else None,
            "current_error": s.current_error.kind.value if s.current_error else None,
            "last_error": s.last_error,
            "retry_attempt": s.retry.attempt,
            "max_attempts": s.retry.max_attempts,
            "forwarded_count": s.forwarded_count,
            "last_forwarded_ts_ms": s.last_forwarded_ts_ms,
            "bpm": s.bpm,
            "sample_count": s.sample_count,
            "watch_reachable": s.watch_reachable,
            "workout_active": s.workout_active,
            "network_available": s.network_available,
        }
