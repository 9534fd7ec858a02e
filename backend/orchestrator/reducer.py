# pylint: disable=too-many-lines
"""
Pure link reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

# Reducer owns timer semantics; runtime must not cancel timers implicitly.

from __future__ import annotations

from dataclasses import replace
from typing import Any

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
from orchestrator.enums.mode import ExecutionMode
from orchestrator.enums.purpose import ProbePurpose
from orchestrator.enums.state import ConnectionState
from orchestrator.errors import (
    ErrorKind,
    LinkError,
    connection_lost_message,
    host_unreachable,
    send_failure,
    simple,
)
from orchestrator.events import (
    CompanionReachability,
    ConnectRequested,
    ConnectTimeout,
    DisconnectRequested,
    EnteredBackground,
    EnteredForeground,
    EpochEvent,
    Event,
    EventType,
    LivenessTick,
    NetworkAvailable,
    NetworkUnavailable,
    PingFailed,
    PingSucceeded,
    ReconnectDue,
    SampleReceived,
    TelemetryFailed,
    TelemetrySent,
    WillTerminate,
    WorkoutCommandFailed,
    WorkoutCommandRequested,
    WorkoutStatus,
)
from orchestrator.liveness import (
    LivenessState,
    TickVerdict,
    acknowledge,
    evaluate_tick,
    tick_interval_ms,
)
from orchestrator.notifications import (
    Connected,
    Disconnected,
    ErrorNotice,
    Reconnecting,
)
from orchestrator.retry import (
    get_reconnect_delay_ms,
    next_attempt,
    reset_attempt,
    retries_exhausted,
)
from orchestrator.state_dataclass import LinkState
from orchestrator.target import ConnectionTarget, validate_target
from orchestrator.throttle import ThrottleState, evaluate_sample
from constants import (
    COMPANION_SILENCE_MS,
    COMPANION_START_WORKOUT,
    COMPANION_STOP_WORKOUT,
    CONNECT_TIMEOUT_MS,
)


# =============================================================================
# Invariants
# =============================================================================
# - Epoch is bumped ONLY by an accepted connect (validation passed)
# - Every timer / transport-result event is gated on epoch AND on the
#   pending flag it resolves (connect_in_flight, reconnect_pending)
# - Entering ERROR or DISCONNECTED always cancels the liveness timer
# - MAX_RETRIES_EXCEEDED lands in DISCONNECTED, every other fault in ERROR
# - A scheduled reconnect moves ERROR to CONNECTING and keeps current_error
# - NETWORK_UNAVAILABLE never schedules a reconnect

Result = tuple[LinkState, tuple[Command, ...]]

# =============================================================================
# Timer IDs
# =============================================================================

TIMER_CONNECT_TIMEOUT = "connect_timeout"
TIMER_RECONNECT = "reconnect_backoff"
TIMER_LIVENESS = "liveness_tick"

ALL_TIMERS = (TIMER_CONNECT_TIMEOUT, TIMER_RECONNECT, TIMER_LIVENESS)

_COMPANION_ERROR_KINDS = frozenset({
    ErrorKind.WATCH_CONNECTION_LOST,
    ErrorKind.WATCH_UNREACHABLE,
})


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: LinkState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "mode": state.mode.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "epoch": state.epoch,
            "retry_attempt": state.retry.attempt,
            "error_kind": (
                state.current_error.kind.value if state.current_error else None
            ),
            "details": details or {},
        }
    )


def _state_changed(
    prev: LinkState,
    new: LinkState,
    event: Event,
    source: str,
) -> tuple[Command, ...]:
    if prev.state is new.state:
        return ()
    return (
        _log(
            new,
            event,
            "state_changed",
            {
                "from_state": prev.state.value,
                "to_state": new.state.value,
                "source": source,
            },
        ),
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(state: LinkState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _is_stale(state: LinkState, event: EpochEvent) -> bool:
    return event.epoch != state.epoch


def _cancel_all_timers() -> tuple[Command, ...]:
    return tuple(CancelTimer(timer_id=t) for t in ALL_TIMERS)


def _error_notice(error: LinkError, message: str | None = None) -> Notify:
    return Notify(ErrorNotice(message=message or error.message, error_kind=error.kind))


def _annotate_companion_error(
    state: LinkState,
    error: LinkError,
    message: str | None = None,
) -> LinkState | None:
    """
    Record a companion-side fault without touching the link state.

    Link-level errors take precedence: returns None when the current
    error is a link fault that must not be overwritten.
    """
    current = state.current_error
    if current is not None and current.kind not in _COMPANION_ERROR_KINDS:
        return None
    return replace(
        state,
        current_error=error,
        last_error=message or error.message,
    )


# =============================================================================
# Connect / reconnect building blocks
# =============================================================================

def _reject_target(state: LinkState, event: Event, error: LinkError) -> Result:
    """
    Validation fault: terminal for this connect() call only.

    No epoch bump, no reconnect.
    """
    new_state = replace(
        state,
        state=ConnectionState.ERROR,
        current_error=error,
        last_error=error.message,
        connect_in_flight=False,
        reconnect_pending=False,
    )
    return new_state, _logs_last(
        _cancel_all_timers()
        + (
            _error_notice(error),
            _log(new_state, event, "target_rejected", error.to_dict()),
        )
        + _state_changed(state, new_state, event, "target_rejected")
    )


def _begin_connect(
    state: LinkState,
    event: Event,
    host: str,
    port: int | None,
) -> Result:
    """
    connect(target): validate, persist, bump epoch, probe.

    The connect timeout is armed BEFORE the probe is issued so a
    synchronous probe result can cancel it.
    """
    if port is None:
        return _reject_target(state, event, simple(ErrorKind.INVALID_TARGET))

    validated = validate_target(host, port)
    if isinstance(validated, LinkError):
        return _reject_target(state, event, validated)

    target: ConnectionTarget = validated
    epoch = state.epoch + 1
    new_state = replace(
        state,
        state=ConnectionState.CONNECTING,
        target=target,
        epoch=epoch,
        connect_in_flight=True,
        reconnect_pending=False,
    )

    return new_state, _logs_last((
        CancelTimer(timer_id=TIMER_RECONNECT),
        CancelTimer(timer_id=TIMER_LIVENESS),
        SaveTarget(target=target),
        StartTimer(
            timer_id=TIMER_CONNECT_TIMEOUT,
            duration_ms=CONNECT_TIMEOUT_MS,
            timeout_event_type=EventType.CONNECT_TIMEOUT,
            epoch=epoch,
        ),
        SendPing(epoch=epoch, purpose=ProbePurpose.CONNECT, target=target),
        _log(new_state, event, "connect_started", target.to_dict()),
    ) + _state_changed(state, new_state, event, "connect"))


def _schedule_reconnect(state: LinkState, event: Event) -> Result:
    """
    Arm the backoff timer, or give up once the budget is spent.

    Giving up resets to DISCONNECTED (not ERROR) with
    MAX_RETRIES_EXCEEDED as the current error.
    """
    target = state.target
    if target is None:
        return state, (_log(state, event, "reconnect_skipped", {"reason": "no_target"}),)

    if retries_exhausted(state.retry):
        error = simple(ErrorKind.MAX_RETRIES_EXCEEDED)
        new_state = replace(
            state,
            state=ConnectionState.DISCONNECTED,
            retry=reset_attempt(),
            current_error=error,
            last_error=error.message,
            reconnect_pending=False,
        )
        return new_state, _logs_last((
            _error_notice(error),
            _log(
                new_state,
                event,
                "max_retries_exceeded",
                {"max_attempts": state.retry.max_attempts},
            ),
        ) + _state_changed(state, new_state, event, "max_retries_exceeded"))

    # CONNECTING for the whole backoff; the fault stays queryable until
    # the next connect succeeds.
    delay_ms = get_reconnect_delay_ms(state.retry)
    new_state = replace(
        state,
        state=ConnectionState.CONNECTING,
        reconnect_pending=True,
    )
    return new_state, _logs_last((
        StartTimer(
            timer_id=TIMER_RECONNECT,
            duration_ms=delay_ms,
            timeout_event_type=EventType.RECONNECT_DUE,
            epoch=state.epoch,
            target=target,
        ),
        _log(
            new_state,
            event,
            "reconnect_scheduled",
            {"attempt": state.retry.attempt, "delay_ms": delay_ms},
        ),
    ) + _state_changed(state, new_state, event, "reconnect_scheduled"))


def _fail(
    state: LinkState,
    event: Event,
    error: LinkError,
    *,
    retry: bool,
    message: str | None = None,
) -> Result:
    """
    Enter ERROR for a runtime fault: freeze timers, notify, maybe retry.

    `message` replaces the kind's default text in last_error and the
    Error notification.
    """
    err_state = replace(
        state,
        state=ConnectionState.ERROR,
        current_error=error,
        last_error=message or error.message,
        connect_in_flight=False,
        reconnect_pending=False,
    )
    cmds: tuple[Command, ...] = (
        CancelTimer(timer_id=TIMER_CONNECT_TIMEOUT),
        CancelTimer(timer_id=TIMER_LIVENESS),
        _error_notice(error, message),
        _log(err_state, event, "enter_error", error.to_dict()),
    ) + _state_changed(state, err_state, event, "enter_error")

    if not retry:
        return err_state, _logs_last(cmds)

    final_state, more = _schedule_reconnect(err_state, event)
    return final_state, _logs_last(cmds + more)


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: LinkState, event: Event) -> Result:
    """
    Pure reducer for the link state machine.

    Given the current link state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Epoch-safe: ignores timer/transport events from superseded attempts
    """
    # ------------------------------------------------------------------
    # Caller requests
    # ------------------------------------------------------------------
    if isinstance(event, ConnectRequested):
        return _begin_connect(state, event, event.host, event.port)

    if isinstance(event, DisconnectRequested):
        was_active = (
            state.state is not ConnectionState.DISCONNECTED
            or state.reconnect_pending
            or state.connect_in_flight
        )
        new_state = replace(
            state,
            state=ConnectionState.DISCONNECTED,
            retry=reset_attempt(),
            current_error=None,
            last_error=None,
            connect_in_flight=False,
            reconnect_pending=False,
            liveness=LivenessState(),
            throttle=ThrottleState(),
        )
        cmds: tuple[Command, ...] = _cancel_all_timers()
        if was_active:
            cmds += (Notify(Disconnected()),)
        return new_state, _logs_last(
            cmds
            + (_log(new_state, event, "disconnect", {"notified": was_active}),)
            + _state_changed(state, new_state, event, "disconnect")
        )

    # ------------------------------------------------------------------
    # Connect probe / timeout
    # ------------------------------------------------------------------
    if isinstance(event, ConnectTimeout):
        if _is_stale(state, event):
            return _ignore(state, event, "connect_timeout_stale")
        if not state.connect_in_flight:
            return _ignore(state, event, "connect_timeout_not_in_flight")
        return _fail(state, event, simple(ErrorKind.CONNECTION_TIMEOUT), retry=True)

    if isinstance(event, PingSucceeded):
        if _is_stale(state, event):
            return _ignore(state, event, "ping_result_stale")

        if event.purpose is ProbePurpose.CONNECT:
            if not state.connect_in_flight:
                return _ignore(state, event, "connect_probe_not_in_flight")
            assert state.target is not None, "connect in flight without target"

            new_state = replace(
                state,
                state=ConnectionState.CONNECTED,
                connect_in_flight=False,
                retry=reset_attempt(),
                current_error=None,
                last_error=None,
                liveness=LivenessState(),
                throttle=ThrottleState(),
            )
            return new_state, _logs_last((
                CancelTimer(timer_id=TIMER_CONNECT_TIMEOUT),
                StartTimer(
                    timer_id=TIMER_LIVENESS,
                    duration_ms=tick_interval_ms(new_state.mode),
                    timeout_event_type=EventType.LIVENESS_TICK,
                    epoch=new_state.epoch,
                    repeat=True,
                ),
                Notify(Connected(target=state.target)),
                _log(new_state, event, "connected", state.target.to_dict()),
            ) + _state_changed(state, new_state, event, "connect_probe_ok"))

        if state.state is not ConnectionState.CONNECTED:
            return _ignore(state, event, "liveness_probe_not_connected")
        new_state = replace(state, liveness=acknowledge(state.liveness))
        return new_state, (_log(new_state, event, "probe_acknowledged"),)

    if isinstance(event, PingFailed):
        if _is_stale(state, event):
            return _ignore(state, event, "ping_result_stale")

        if event.purpose is ProbePurpose.CONNECT:
            if not state.connect_in_flight:
                return _ignore(state, event, "connect_probe_not_in_flight")
            return _fail(state, event, send_failure(event.reason), retry=True)

        if state.state is not ConnectionState.CONNECTED:
            return _ignore(state, event, "liveness_probe_not_connected")
        return _fail(
            state,
            event,
            send_failure(event.reason),
            retry=state.network_available,
        )

    # ------------------------------------------------------------------
    # Reconnect backoff
    # ------------------------------------------------------------------
    if isinstance(event, ReconnectDue):
        if _is_stale(state, event):
            return _ignore(state, event, "reconnect_stale")
        if not state.reconnect_pending:
            return _ignore(state, event, "reconnect_not_pending")

        bumped = replace(
            state,
            retry=next_attempt(state.retry),
            reconnect_pending=False,
        )
        notice: tuple[Command, ...] = (
            Notify(
                Reconnecting(
                    attempt=bumped.retry.attempt,
                    max_attempts=bumped.retry.max_attempts,
                    target=event.target,
                )
            ),
            _log(bumped, event, "reconnecting", {"attempt": bumped.retry.attempt}),
        )
        new_state, more = _begin_connect(
            bumped, event, event.target.host, event.target.port
        )
        return new_state, _logs_last(notice + more)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------
    if isinstance(event, LivenessTick):
        if _is_stale(state, event):
            return _ignore(state, event, "liveness_tick_stale")
        if state.state is not ConnectionState.CONNECTED:
            return _ignore(state, event, "liveness_tick_not_connected")
        assert state.target is not None, "connected without target"

        cmds = ()
        working = state

        # Companion silence: annotate only, never transition
        if (
            working.mode is ExecutionMode.FOREGROUND
            and working.watch_reachable
            and working.last_sample_ts_ms is not None
            and event.ts_ms - working.last_sample_ts_ms > COMPANION_SILENCE_MS
            and (
                working.current_error is None
                or working.current_error.kind is not ErrorKind.WATCH_CONNECTION_LOST
            )
        ):
            annotated = _annotate_companion_error(
                working, simple(ErrorKind.WATCH_CONNECTION_LOST)
            )
            if annotated is not None:
                working = annotated
                cmds += (
                    _log(
                        working,
                        event,
                        "companion_silent",
                        {"silent_ms": event.ts_ms - working.last_sample_ts_ms},
                    ),
                )

        liveness, verdict = evaluate_tick(
            liveness=working.liveness,
            now_ms=event.ts_ms,
            mode=working.mode,
            last_forwarded_ts_ms=working.last_forwarded_ts_ms,
        )
        working = replace(working, liveness=liveness)
        details = {
            "verdict": verdict.value,
            "missed_count": liveness.missed_count,
        }

        if verdict is TickVerdict.LOST:
            new_state, more = _fail(
                working,
                event,
                host_unreachable(state.target.host),
                retry=working.network_available,
                message=connection_lost_message(state.target.host),
            )
            return new_state, _logs_last(
                cmds + (_log(working, event, "liveness_lost", details),) + more
            )

        if verdict is TickVerdict.PROBE:
            cmds += (
                SendPing(
                    epoch=working.epoch,
                    purpose=ProbePurpose.LIVENESS,
                    target=state.target,
                ),
            )

        return working, _logs_last(cmds + (_log(working, event, "liveness_tick", details),))

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------
    if isinstance(event, SampleReceived):
        new_state = replace(
            state,
            bpm=event.bpm,
            sample_count=state.sample_count + 1,
            last_sample_ts_ms=event.ts_ms,
        )
        if (
            new_state.current_error is not None
            and new_state.current_error.kind is ErrorKind.WATCH_CONNECTION_LOST
        ):
            new_state = replace(new_state, current_error=None, last_error=None)

        if new_state.state is not ConnectionState.CONNECTED:
            return new_state, (
                _log(new_state, event, "sample_recorded", {"bpm": event.bpm, "forward": False}),
            )
        assert new_state.target is not None, "connected without target"

        decision = evaluate_sample(
            throttle=new_state.throttle,
            bpm=event.bpm,
            now_ms=event.ts_ms,
            mode=new_state.mode,
        )
        details = {
            "bpm": event.bpm,
            "forward": decision.forward,
            "reason": decision.reason,
            "delta_bpm": decision.delta_bpm,
            "elapsed_ms": decision.elapsed_ms,
        }
        if not decision.forward:
            return new_state, (_log(new_state, event, "sample_throttled", details),)

        return new_state, _logs_last((
            SendTelemetry(epoch=new_state.epoch, bpm=event.bpm, target=new_state.target),
            _log(new_state, event, "sample_forwarded", details),
        ))

    if isinstance(event, TelemetrySent):
        if _is_stale(state, event):
            return _ignore(state, event, "telemetry_result_stale")
        if state.state is not ConnectionState.CONNECTED:
            return _ignore(state, event, "telemetry_result_not_connected")
        new_state = replace(
            state,
            throttle=ThrottleState(last_sent_value=event.bpm, last_sent_ts_ms=event.ts_ms),
            forwarded_count=state.forwarded_count + 1,
            last_forwarded_ts_ms=event.ts_ms,
            liveness=acknowledge(state.liveness),
        )
        return new_state, (
            _log(
                new_state,
                event,
                "telemetry_sent",
                {"bpm": event.bpm, "forwarded_count": new_state.forwarded_count},
            ),
        )

    if isinstance(event, TelemetryFailed):
        if _is_stale(state, event):
            return _ignore(state, event, "telemetry_result_stale")
        if state.state is not ConnectionState.CONNECTED:
            return _ignore(state, event, "telemetry_result_not_connected")
        return _fail(
            state,
            event,
            send_failure(event.reason),
            retry=state.network_available,
        )

    # ------------------------------------------------------------------
    # Network availability
    # ------------------------------------------------------------------
    if isinstance(event, NetworkUnavailable):
        marked = replace(state, network_available=False)
        link_active = (
            state.state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING)
            or state.reconnect_pending
        )
        if not link_active:
            return marked, (_log(marked, event, "network_down_idle"),)

        error = simple(ErrorKind.NETWORK_UNAVAILABLE)
        new_state = replace(
            marked,
            state=ConnectionState.ERROR,
            current_error=error,
            last_error=error.message,
            connect_in_flight=False,
            reconnect_pending=False,
        )
        return new_state, _logs_last(
            _cancel_all_timers()
            + (
                _error_notice(error),
                _log(new_state, event, "network_down"),
            )
            + _state_changed(state, new_state, event, "network_down")
        )

    if isinstance(event, NetworkAvailable):
        marked = replace(state, network_available=True)
        if not (
            state.state is ConnectionState.ERROR
            and state.current_error is not None
            and state.current_error.kind is ErrorKind.NETWORK_UNAVAILABLE
        ):
            return marked, (_log(marked, event, "network_up_idle"),)

        cleared = replace(marked, current_error=None, last_error=None)
        if state.target is None:
            return cleared, (_log(cleared, event, "network_up_no_target"),)

        cleared = replace(cleared, retry=reset_attempt())
        new_state, more = _begin_connect(
            cleared, event, state.target.host, state.target.port
        )
        return new_state, _logs_last(
            (_log(cleared, event, "network_up_reconnect"),) + more
        )

    # ------------------------------------------------------------------
    # Execution mode / lifecycle
    # ------------------------------------------------------------------
    if isinstance(event, (EnteredBackground, EnteredForeground)):
        mode = (
            ExecutionMode.BACKGROUND
            if isinstance(event, EnteredBackground)
            else ExecutionMode.FOREGROUND
        )
        if mode is state.mode:
            return _ignore(state, event, "mode_unchanged")

        new_state = replace(state, mode=mode)
        cmds = ()
        if state.state is ConnectionState.CONNECTED:
            # Re-arm with the new cadence; probe bookkeeping restarts
            new_state = replace(new_state, liveness=LivenessState())
            cmds += (
                StartTimer(
                    timer_id=TIMER_LIVENESS,
                    duration_ms=tick_interval_ms(mode),
                    timeout_event_type=EventType.LIVENESS_TICK,
                    epoch=state.epoch,
                    repeat=True,
                ),
            )
        return new_state, _logs_last(
            cmds
            + (
                _log(
                    new_state,
                    event,
                    "mode_changed",
                    {"from_mode": state.mode.value, "to_mode": mode.value},
                ),
            )
        )

    if isinstance(event, WillTerminate):
        new_state = replace(state, connect_in_flight=False, reconnect_pending=False)
        return new_state, _logs_last(
            _cancel_all_timers() + (_log(new_state, event, "will_terminate"),)
        )

    # ------------------------------------------------------------------
    # Companion relay
    # ------------------------------------------------------------------
    if isinstance(event, CompanionReachability):
        new_state = replace(state, watch_reachable=event.reachable)
        if state.watch_reachable and not event.reachable:
            new_state = replace(new_state, bpm=None, workout_active=False)
        return new_state, (
            _log(new_state, event, "companion_reachability", {"reachable": event.reachable}),
        )

    if isinstance(event, WorkoutStatus):
        new_state = replace(state, workout_active=event.active)
        return new_state, (
            _log(new_state, event, "workout_status", {"active": event.active}),
        )

    if isinstance(event, WorkoutCommandRequested):
        command = COMPANION_START_WORKOUT if event.start else COMPANION_STOP_WORKOUT
        if not state.watch_reachable:
            annotated = _annotate_companion_error(
                state, simple(ErrorKind.WATCH_UNREACHABLE)
            )
            new_state = annotated or state
            return new_state, (
                _log(new_state, event, "workout_command_unreachable", {"command": command}),
            )
        return state, _logs_last((
            SendCompanionCommand(command=command, start=event.start),
            _log(state, event, "workout_command_sent", {"command": command}),
        ))

    if isinstance(event, WorkoutCommandFailed):
        verb = "start" if event.start else "stop"
        annotated = _annotate_companion_error(
            state,
            send_failure(event.reason),
            f"Failed to {verb} workout: {event.reason}",
        )
        new_state = annotated or state
        return new_state, (
            _log(new_state, event, "workout_command_failed", {"reason": event.reason}),
        )

    return _ignore(state, event, "unhandled_event")
