# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.commands import LogEvent, SaveTarget, SendPing
from orchestrator.enums.purpose import ProbePurpose
from orchestrator.enums.state import ConnectionState
from orchestrator.errors import ErrorKind
from orchestrator.notifications import (
    Connected,
    Disconnected,
    ErrorNotice,
    NotificationKind,
    Reconnecting,
)
from orchestrator.reducer import (
    TIMER_CONNECT_TIMEOUT,
    TIMER_LIVENESS,
    TIMER_RECONNECT,
    reduce,
)
from orchestrator.state_dataclass import LinkState
from orchestrator.target import ConnectionTarget

from reducer_helpers import (
    cancelled_timers,
    connect_requested,
    connect_timeout,
    connected_state,
    decisions,
    disconnect_requested,
    drive,
    fire_timer,
    notifications,
    of_type,
    ping_succeeded,
    started_timers,
)


# ---------------------------------------------------------------------
# 1. Reducer shape & purity
# ---------------------------------------------------------------------

def test_reducer_returns_state_and_tuple():
    new_state, commands = reduce(LinkState(), connect_requested())

    assert isinstance(new_state, LinkState)
    assert isinstance(commands, tuple)


def test_reducer_does_not_mutate_input_state():
    state = LinkState()

    reduce(state, connect_requested())

    assert state.state is ConnectionState.DISCONNECTED
    assert state.epoch == 0
    assert state.target is None


# ---------------------------------------------------------------------
# 2. Target validation
# ---------------------------------------------------------------------

def test_empty_host_is_rejected_without_retry():
    new_state, commands = reduce(LinkState(), connect_requested(host="", port=9000))

    assert new_state.state is ConnectionState.ERROR
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.HOST_UNREACHABLE
    assert new_state.current_error.host == "Empty hostname"
    assert new_state.epoch == 0
    assert not new_state.reconnect_pending
    assert started_timers(commands) == []
    assert of_type(commands, SendPing) == []

    notes = notifications(commands)
    assert len(notes) == 1
    assert isinstance(notes[0], ErrorNotice)
    assert notes[0].error_kind is ErrorKind.HOST_UNREACHABLE


def test_port_zero_is_rejected():
    new_state, commands = reduce(LinkState(), connect_requested(port=0))

    assert new_state.state is ConnectionState.ERROR
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.PORT_INVALID
    assert new_state.current_error.port == 0
    assert started_timers(commands) == []


def test_port_above_range_is_rejected():
    new_state, _ = reduce(LinkState(), connect_requested(port=70000))

    assert new_state.state is ConnectionState.ERROR
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.PORT_INVALID
    assert new_state.current_error.port == 70000
    assert new_state.last_error == (
        "Invalid port number: 70000. Port must be between 1 and 65535."
    )


def test_non_numeric_port_is_invalid_target():
    new_state, commands = reduce(LinkState(), connect_requested(port=None))

    assert new_state.state is ConnectionState.ERROR
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.INVALID_TARGET
    assert len(notifications(commands)) == 1


def test_rejected_target_cancels_pending_reconnect():
    failing, _ = drive(LinkState(), connect_requested(), ping_ok=False)
    assert failing.reconnect_pending

    new_state, commands = reduce(failing, connect_requested(host=""))

    assert not new_state.reconnect_pending
    assert TIMER_RECONNECT in cancelled_timers(commands)


# ---------------------------------------------------------------------
# 3. Connect outcomes
# ---------------------------------------------------------------------

def test_connect_arms_timeout_before_probe():
    new_state, commands = reduce(LinkState(), connect_requested("10.0.0.5", 9001))

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state.epoch == 1
    assert new_state.connect_in_flight
    assert new_state.target == ConnectionTarget("10.0.0.5", 9001)

    kinds = [type(c).__name__ for c in commands if type(c).__name__ in ("StartTimer", "SendPing")]
    assert kinds == ["StartTimer", "SendPing"]

    timeout = started_timers(commands, TIMER_CONNECT_TIMEOUT)[0]
    assert timeout.duration_ms == 5000
    assert timeout.epoch == 1

    saves = of_type(commands, SaveTarget)
    assert saves == [SaveTarget(target=ConnectionTarget("10.0.0.5", 9001))]


def test_successful_probe_connects_and_starts_liveness():
    new_state, commands = drive(LinkState(), connect_requested())

    assert new_state.state is ConnectionState.CONNECTED
    assert new_state.retry.attempt == 0
    assert new_state.current_error is None
    assert not new_state.connect_in_flight

    assert TIMER_CONNECT_TIMEOUT in cancelled_timers(commands)
    liveness = started_timers(commands, TIMER_LIVENESS)
    assert len(liveness) == 1
    assert liveness[0].repeat
    assert liveness[0].duration_ms == 10000

    notes = notifications(commands)
    assert notes == [Connected(target=ConnectionTarget("h", 9000))]


def test_failed_connect_ping_reports_error_and_backs_off_in_connecting():
    new_state, commands = drive(LinkState(), connect_requested(), ping_ok=False)

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.SEND_FAILURE
    assert new_state.last_error == "Failed to send data: boom"
    assert new_state.reconnect_pending

    reconnect = started_timers(commands, TIMER_RECONNECT)
    assert len(reconnect) == 1
    assert reconnect[0].duration_ms == 1000
    assert reconnect[0].target == ConnectionTarget("h", 9000)

    assert [n.kind for n in notifications(commands)] == [NotificationKind.ERROR]

    # Fault is reported in ERROR, then the backoff runs in CONNECTING
    changes = [
        c.event["details"]["to_state"]
        for c in of_type(commands, LogEvent)
        if c.event["decision"] == "state_changed"
    ]
    assert changes == ["CONNECTING", "ERROR", "CONNECTING"]


def test_connect_timeout_backs_off_in_connecting():
    connecting, _ = reduce(LinkState(), connect_requested())

    new_state, commands = reduce(connecting, connect_timeout(epoch=1, ts_ms=5000))

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state.current_error is not None
    assert new_state.current_error.kind is ErrorKind.CONNECTION_TIMEOUT
    assert new_state.reconnect_pending
    assert len(started_timers(commands, TIMER_RECONNECT)) == 1


def test_probe_result_after_timeout_is_ignored():
    connecting, _ = reduce(LinkState(), connect_requested())
    timed_out, _ = reduce(connecting, connect_timeout(epoch=1))

    new_state, commands = reduce(timed_out, ping_succeeded(1, ProbePurpose.CONNECT))

    assert new_state == timed_out
    assert decisions(commands) == ["ignore"]


def test_timeout_after_success_is_ignored():
    connected = connected_state()

    new_state, commands = reduce(connected, connect_timeout(epoch=connected.epoch))

    assert new_state == connected
    assert decisions(commands) == ["ignore"]


# ---------------------------------------------------------------------
# 4. Epoch gating (critical invariant)
# ---------------------------------------------------------------------

def test_probe_result_from_superseded_connect_is_ignored():
    first, _ = reduce(LinkState(), connect_requested("a", 9000))
    second, _ = reduce(first, connect_requested("b", 9000))
    assert second.epoch == 2

    new_state, commands = reduce(second, ping_succeeded(1, ProbePurpose.CONNECT))

    assert new_state.state is ConnectionState.CONNECTING
    assert new_state == second
    assert commands[0].event["details"]["reason"] == "ping_result_stale"


def test_stale_timeout_does_not_touch_new_connection():
    first, _ = reduce(LinkState(), connect_requested())
    second, _ = drive(first, connect_requested())

    new_state, _ = reduce(second, connect_timeout(epoch=1))

    assert new_state.state is ConnectionState.CONNECTED


# ---------------------------------------------------------------------
# 5. Reconnect / retry budget
# ---------------------------------------------------------------------

def test_reconnect_fires_notifies_and_connects():
    failed, commands = drive(LinkState(), connect_requested(), ping_ok=False)
    timer = started_timers(commands, TIMER_RECONNECT)[0]

    new_state, commands = drive(failed, fire_timer(timer, ts_ms=1000))

    assert new_state.state is ConnectionState.CONNECTED
    assert new_state.retry.attempt == 0

    notes = notifications(commands)
    assert notes[0] == Reconnecting(
        attempt=1, max_attempts=5, target=ConnectionTarget("h", 9000)
    )
    assert isinstance(notes[1], Connected)


def test_always_failing_pings_exhaust_retries():
    state, commands = drive(LinkState(), connect_requested(), ping_ok=False)
    delays: list[int] = []
    fired = 0

    while state.reconnect_pending:
        timer = started_timers(commands, TIMER_RECONNECT)[-1]
        delays.append(timer.duration_ms)
        state, commands = drive(state, fire_timer(timer, ts_ms=0), ping_ok=False)
        fired += 1

    assert fired == 5
    assert delays == [1000, 2000, 4000, 8000, 16000]
    assert state.state is ConnectionState.DISCONNECTED
    assert state.current_error is not None
    assert state.current_error.kind is ErrorKind.MAX_RETRIES_EXCEEDED
    assert state.retry.attempt == 0

    # Last failure: SEND_FAILURE error, then MAX_RETRIES error
    kinds = [n.error_kind for n in notifications(commands) if isinstance(n, ErrorNotice)]
    assert kinds == [ErrorKind.SEND_FAILURE, ErrorKind.MAX_RETRIES_EXCEEDED]
    assert "max_retries_exceeded" in decisions(commands)


def test_reconnect_timer_is_ignored_after_disconnect():
    failed, commands = drive(LinkState(), connect_requested(), ping_ok=False)
    timer = started_timers(commands, TIMER_RECONNECT)[0]
    disconnected, _ = reduce(failed, disconnect_requested())

    new_state, commands = reduce(disconnected, fire_timer(timer, ts_ms=1000))

    assert new_state == disconnected
    assert decisions(commands) == ["ignore"]


# ---------------------------------------------------------------------
# 6. Disconnect
# ---------------------------------------------------------------------

def test_disconnect_from_connected_notifies_once_and_cancels_timers():
    connected = connected_state()

    new_state, commands = reduce(connected, disconnect_requested())

    assert new_state.state is ConnectionState.DISCONNECTED
    assert new_state.retry.attempt == 0
    assert new_state.current_error is None
    assert notifications(commands) == [Disconnected()]
    assert set(cancelled_timers(commands)) == {
        TIMER_CONNECT_TIMEOUT,
        TIMER_RECONNECT,
        TIMER_LIVENESS,
    }

    again, commands = reduce(new_state, disconnect_requested())
    assert again.state is ConnectionState.DISCONNECTED
    assert notifications(commands) == []


def test_disconnect_during_backoff_clears_error_and_notifies():
    failed, _ = drive(LinkState(), connect_requested(), ping_ok=False)

    new_state, commands = reduce(failed, disconnect_requested())

    assert new_state.state is ConnectionState.DISCONNECTED
    assert not new_state.reconnect_pending
    assert new_state.current_error is None
    assert new_state.last_error is None
    assert notifications(commands) == [Disconnected()]


def test_target_survives_disconnect():
    connected = connected_state("192.168.1.9", 9000)

    new_state, _ = reduce(connected, disconnect_requested())

    assert new_state.target == ConnectionTarget("192.168.1.9", 9000)
