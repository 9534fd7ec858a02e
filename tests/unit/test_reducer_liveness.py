# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

from orchestrator.commands import SendPing
from orchestrator.enums.mode import ExecutionMode
from orchestrator.enums.purpose import ProbePurpose
from orchestrator.enums.state import ConnectionState
from orchestrator.errors import ErrorKind
from orchestrator.notifications import ErrorNotice
from orchestrator.reducer import TIMER_LIVENESS, TIMER_RECONNECT, reduce
from orchestrator.state_dataclass import LinkState

from reducer_helpers import (
    cancelled_timers,
    companion_reachability,
    connected_state,
    decisions,
    drive,
    liveness_tick,
    notifications,
    of_type,
    ping_failed,
    ping_succeeded,
    sample,
    started_timers,
)


def _probes(commands) -> list[SendPing]:
    return [c for c in of_type(commands, SendPing) if c.purpose is ProbePurpose.LIVENESS]


# ---------------------------------------------------------------------
# Probe cadence
# ---------------------------------------------------------------------

def test_foreground_tick_issues_probe():
    state = connected_state()

    new_state, commands = reduce(state, liveness_tick(state.epoch, 10_000))

    assert len(_probes(commands)) == 1
    assert new_state.liveness.waiting_for_response
    assert new_state.liveness.last_probe_ts_ms == 10_000


def test_outstanding_probe_within_timeout_waits():
    state = connected_state()
    state, _ = reduce(state, liveness_tick(state.epoch, 10_000))

    new_state, commands = reduce(state, liveness_tick(state.epoch, 14_000))

    assert _probes(commands) == []
    assert new_state.liveness.missed_count == 0
    assert new_state.liveness.waiting_for_response


def test_probe_success_acknowledges():
    state = connected_state()
    state, _ = reduce(state, liveness_tick(state.epoch, 10_000))

    new_state, commands = reduce(state, ping_succeeded(state.epoch, ProbePurpose.LIVENESS))

    assert not new_state.liveness.waiting_for_response
    assert new_state.liveness.missed_count == 0
    assert decisions(commands) == ["probe_acknowledged"]


# ---------------------------------------------------------------------
# Missed-probe budget
# ---------------------------------------------------------------------

def test_three_missed_probes_mark_host_unreachable_and_schedule_reconnect():
    state = connected_state("vr-pc.local", 9000)

    for ts in (10_000, 20_000, 30_000):
        state, commands = reduce(state, liveness_tick(state.epoch, ts))
        assert len(_probes(commands)) == 1

    assert state.liveness.missed_count == 2

    new_state, commands = reduce(state, liveness_tick(state.epoch, 40_000))

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.HOST_UNREACHABLE
    assert new_state.current_error.host == "vr-pc.local"
    assert new_state.last_error == (
        "Connection lost: No response from vr-pc.local after 3 ping attempts"
    )
    assert new_state.reconnect_pending
    assert TIMER_LIVENESS in cancelled_timers(commands)
    assert len(started_timers(commands, TIMER_RECONNECT)) == 1

    notes = notifications(commands)
    assert len(notes) == 1
    assert isinstance(notes[0], ErrorNotice)
    assert notes[0].message == new_state.last_error
    assert "liveness_lost" in decisions(commands)


def test_probe_send_failure_is_immediate_error():
    state = connected_state()

    new_state, commands = reduce(
        state, ping_failed(state.epoch, ProbePurpose.LIVENESS, reason="No route to host")
    )

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.SEND_FAILURE
    assert new_state.last_error == "Failed to send data: No route to host"
    assert new_state.reconnect_pending
    assert TIMER_LIVENESS in cancelled_timers(commands)


def test_probe_failure_while_network_down_does_not_reconnect():
    state = replace(connected_state(), network_available=False)

    new_state, commands = reduce(state, ping_failed(state.epoch, ProbePurpose.LIVENESS))

    assert new_state.state is ConnectionState.ERROR
    assert not new_state.reconnect_pending
    assert started_timers(commands, TIMER_RECONNECT) == []


# ---------------------------------------------------------------------
# Background keepalive skip
# ---------------------------------------------------------------------

def test_background_tick_skips_probe_after_recent_telemetry():
    state = replace(
        connected_state(),
        mode=ExecutionMode.BACKGROUND,
        last_forwarded_ts_ms=20_000,
    )

    new_state, commands = reduce(state, liveness_tick(state.epoch, 30_000))

    assert _probes(commands) == []
    assert not new_state.liveness.waiting_for_response


def test_background_tick_probes_after_idle_window():
    state = replace(
        connected_state(),
        mode=ExecutionMode.BACKGROUND,
        last_forwarded_ts_ms=20_000,
    )

    _, commands = reduce(state, liveness_tick(state.epoch, 90_000))

    assert len(_probes(commands)) == 1


# ---------------------------------------------------------------------
# Gating
# ---------------------------------------------------------------------

def test_stale_tick_is_ignored():
    state = connected_state()

    new_state, commands = reduce(state, liveness_tick(state.epoch - 1, 10_000))

    assert new_state == state
    assert decisions(commands) == ["ignore"]


def test_tick_outside_connected_is_ignored():
    state = LinkState(state=ConnectionState.ERROR, epoch=3)

    new_state, commands = reduce(state, liveness_tick(3, 10_000))

    assert new_state == state
    assert decisions(commands) == ["ignore"]


# ---------------------------------------------------------------------
# Companion silence
# ---------------------------------------------------------------------

def test_silent_companion_is_annotated_without_transition():
    state = connected_state()
    state, _ = reduce(state, companion_reachability(True))
    state, _ = drive(state, sample(72.0, 1_000))

    new_state, commands = reduce(state, liveness_tick(state.epoch, 32_000))

    assert new_state.state is ConnectionState.CONNECTED
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.WATCH_CONNECTION_LOST
    assert notifications(commands) == []

    cleared, _ = drive(new_state, sample(73.0, 33_000))
    assert cleared.current_error is None
    assert cleared.last_error is None


def test_silence_is_not_checked_in_background():
    state = replace(connected_state(), mode=ExecutionMode.BACKGROUND)
    state, _ = reduce(state, companion_reachability(True))
    state, _ = drive(state, sample(72.0, 1_000))

    new_state, _ = reduce(state, liveness_tick(state.epoch, 32_000))

    assert new_state.current_error is None
