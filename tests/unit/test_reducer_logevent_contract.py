# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.commands import LogEvent
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import LinkState

from reducer_helpers import connect_requested, drive, sample


REQUIRED_FIELDS = {
    "ts_ms",
    "state",
    "mode",
    "event_type",
    "decision",
    "epoch",
    "retry_attempt",
    "error_kind",
    "details",
}


def test_reducer_emits_logevent_with_required_fields():
    _, commands = reduce(LinkState(), connect_requested(ts_ms=123))

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event
    assert REQUIRED_FIELDS <= set(payload)
    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "CONNECT_REQUESTED"
    assert payload["mode"] == "FOREGROUND"


def test_every_transition_is_logged_after_other_commands():
    _, commands = drive(LinkState(), connect_requested())

    # Per reduction: side effects first, then logs, state changes last
    _, first = reduce(LinkState(), connect_requested())
    kinds = ["log" if isinstance(c, LogEvent) else "cmd" for c in first]
    assert kinds == sorted(kinds)
    assert first[-1].event["decision"] == "state_changed"

    changes = [
        c.event["details"]["to_state"]
        for c in commands
        if isinstance(c, LogEvent) and c.event["decision"] == "state_changed"
    ]
    assert changes == ["CONNECTING", "CONNECTED"]


def test_throttle_decision_is_logged_with_details():
    state, _ = drive(LinkState(), connect_requested())
    state, _ = drive(state, sample(70.0, 1_000))

    _, commands = reduce(state, sample(70.4, 1_200))

    payload = commands[0].event
    assert payload["decision"] == "sample_throttled"
    assert payload["details"]["reason"] == "suppressed"
    assert payload["details"]["elapsed_ms"] == 200
