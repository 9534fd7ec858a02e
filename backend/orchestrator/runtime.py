"""
Runtime execution shell for a single link session.

Responsibilities:
- Own link state
- Call pure reducer
- Execute commands with side effects (transport, settings, companion,
  notifications, logging)
- Schedule and cancel timers
- Convert timer expiry and transport outcomes into events
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Awaitable, Callable

from adapters.osc.base import TransportError
from constants import ms_to_seconds
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.commands import (
    CancelTimer,
    Command,
    LogEvent,
    Notify,
    SaveTarget,
    SendCompanionCommand,
    SendPing,
    SendTelemetry,
    StartTimer,
)
from orchestrator.events import (
    ConnectTimeout,
    Event,
    EventType,
    LivenessTick,
    PingFailed,
    PingSucceeded,
    ReconnectDue,
    TelemetryFailed,
    TelemetrySent,
    WorkoutCommandFailed,
)
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import LinkState
from session.companion import CompanionSendError

if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


Clock = Callable[[], int]
Sleep = Callable[[float], Awaitable[None]]


class Runtime:
    """
    Runtime execution boundary for a single link session.

    Architectural role:
    Runtime is the bridge between the pure orchestration layer
    (reducer + immutable state) and the imperative world
    (sockets, files, websockets, time).

    Guarantees:
    - Reducer is called exactly once per event
    - Events are processed one at a time, in arrival order. Events raised
      while a previous event's commands are executing (transport results,
      timer expiries) are queued and reduced afterwards, so commands of
      one reduction never interleave with another's.
    - Concurrent callers (HTTP handlers, WebSocket readers, timers) are
      serialized; each returns only after its own event is applied
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    - Timers emit events back into handle_event (single entry point)
    """

    def __init__(
        self,
        *,
        initial_state: LinkState,
        context: RuntimeExecutionContext,
        clock: Clock,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._clock = clock
        self._sleep = sleep
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._pending: deque[Event] = deque()
        self._lock = asyncio.Lock()
        self._dispatcher: asyncio.Task[object] | None = None

    @property
    def state(self) -> LinkState:
        """
        Return the current immutable link state.

        State is only replaced internally by Runtime via the reducer.
        """
        return self._state

    def active_timers(self) -> tuple[str, ...]:
        """Ids of timers that are armed and not yet finished."""
        return tuple(
            timer_id for timer_id, task in self._timers.items() if not task.done()
        )

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        1. Pass the current state and event to the pure reducer
        2. Swap in the new state
        3. Execute all emitted commands sequentially

        Calls made while commands execute (transport results, companion
        failures) only enqueue; the dispatching call drains the queue.
        Calls from any other task wait for the running dispatch to
        finish, so when handle_event() returns the caller's event has
        been reduced and its commands executed.
        """
        if self._dispatcher is not None and asyncio.current_task() is self._dispatcher:
            self._pending.append(event)
            return

        async with self._lock:
            self._dispatcher = asyncio.current_task()
            self._pending.append(event)
            try:
                while self._pending:
                    next_event = self._pending.popleft()
                    new_state, commands = reduce(self._state, next_event)
                    self._state = new_state

                    for cmd in commands:
                        await self._execute_command(cmd)
            finally:
                self._dispatcher = None

    async def shutdown(self) -> None:
        """
        Cancel all in-flight timers and wait for them to finish.
        """
        tasks = list(self._timers.values())
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, SendPing):
            host, port = cmd.target.host, cmd.target.port
            try:
                with timed(
                    "osc_send_ping",
                    session_id=self._ctx.session_id,
                    state=self._state.state.value,
                    details={"purpose": cmd.purpose.value},
                ):
                    self._ctx.transport.send_ping(host, port)
            except TransportError as e:
                await self.handle_event(PingFailed(
                    event_type=EventType.PING_FAILED,
                    ts_ms=self._clock(),
                    epoch=cmd.epoch,
                    purpose=cmd.purpose,
                    reason=e.reason,
                ))
            else:
                await self.handle_event(PingSucceeded(
                    event_type=EventType.PING_SUCCEEDED,
                    ts_ms=self._clock(),
                    epoch=cmd.epoch,
                    purpose=cmd.purpose,
                ))

        elif isinstance(cmd, SendTelemetry):
            host, port = cmd.target.host, cmd.target.port
            try:
                with timed(
                    "osc_send_telemetry",
                    session_id=self._ctx.session_id,
                    state=self._state.state.value,
                ):
                    self._ctx.transport.send_telemetry(cmd.bpm, host, port)
            except TransportError as e:
                await self.handle_event(TelemetryFailed(
                    event_type=EventType.TELEMETRY_FAILED,
                    ts_ms=self._clock(),
                    epoch=cmd.epoch,
                    bpm=cmd.bpm,
                    reason=e.reason,
                ))
            else:
                await self.handle_event(TelemetrySent(
                    event_type=EventType.TELEMETRY_SENT,
                    ts_ms=self._clock(),
                    epoch=cmd.epoch,
                    bpm=cmd.bpm,
                ))

        elif isinstance(cmd, SaveTarget):
            try:
                self._ctx.config_store.save(cmd.target.host, cmd.target.port)
            except OSError as e:
                # Persistence is best effort; the link keeps going
                log_event({
                    "ts_ms": self._clock(),
                    "event_type": "SETTINGS_SAVE_FAILED",
                    "session_id": self._ctx.session_id,
                    "error": str(e),
                })

        elif isinstance(cmd, SendCompanionCommand):
            channel = self._ctx.companion_channel
            reason: str | None = None
            if channel is None:
                reason = "companion channel not attached"
            else:
                try:
                    await channel.send_command(cmd.command)
                except CompanionSendError as e:
                    reason = str(e)

            if reason is not None:
                await self.handle_event(WorkoutCommandFailed(
                    event_type=EventType.WORKOUT_COMMAND_FAILED,
                    ts_ms=self._clock(),
                    start=cmd.start,
                    reason=reason,
                ))

        elif isinstance(cmd, Notify):
            self._ctx.notifier.publish(cmd.notification)

        elif isinstance(cmd, StartTimer):
            self._start_timer(cmd)

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            raise ValueError(f"Unknown command type: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _start_timer(self, cmd: StartTimer) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire. Dispatch is
        shielded so a timer cancelled by its own event's commands does
        not abort that event's remaining commands.
        """
        # Cancel existing timer if present (idempotent)
        self._cancel_timer(cmd.timer_id)

        async def _timer_task() -> None:
            try:
                while True:
                    await self._sleep(ms_to_seconds(cmd.duration_ms))
                    event = self._construct_timeout_event(cmd)
                    await asyncio.shield(self.handle_event(event))
                    if not cmd.repeat:
                        return
            except asyncio.CancelledError:
                # Timer was cancelled - this is normal
                return

        self._timers[cmd.timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _construct_timeout_event(self, cmd: StartTimer) -> Event:
        """
        Build the timeout event for an expired timer.

        The epoch is the one captured when the timer was armed, so an
        expiry that races a newer connect() is ignored by the reducer.
        """
        ts = self._clock()

        if cmd.timeout_event_type is EventType.CONNECT_TIMEOUT:
            return ConnectTimeout(
                event_type=EventType.CONNECT_TIMEOUT,
                ts_ms=ts,
                epoch=cmd.epoch,
            )

        if cmd.timeout_event_type is EventType.RECONNECT_DUE:
            assert cmd.target is not None, "reconnect timer without target"
            return ReconnectDue(
                event_type=EventType.RECONNECT_DUE,
                ts_ms=ts,
                epoch=cmd.epoch,
                target=cmd.target,
            )

        if cmd.timeout_event_type is EventType.LIVENESS_TICK:
            return LivenessTick(
                event_type=EventType.LIVENESS_TICK,
                ts_ms=ts,
                epoch=cmd.epoch,
            )

        raise ValueError(
            f"Unknown timeout event type: {cmd.timeout_event_type} "
            f"for timer_id: {cmd.timer_id}"
        )
