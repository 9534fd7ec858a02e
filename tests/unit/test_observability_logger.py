# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger, metrics
from orchestrator.enums.state import ConnectionState


@pytest.fixture(name="captured")
def fixture_captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_enabled", True)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_enums_serialize_by_value(captured: list[str]) -> None:
    logger.log_event({"state": ConnectionState.CONNECTED})

    assert json.loads(captured[0]) == {"state": "CONNECTED"}


def test_unserializable_payload_falls_back(captured: list[str]) -> None:
    logger.log_event({"ts_ms": 5, "obj": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5


def test_disabled_logger_writes_nothing(captured: list[str]) -> None:
    logger.set_enabled(False)
    try:
        logger.log_event({"event_type": "TEST"})
    finally:
        logger.set_enabled(True)

    assert captured == []


def test_timed_emits_one_metric_even_on_error(captured: list[str]) -> None:
    with pytest.raises(RuntimeError):
        with metrics.timed("osc_send_ping", session_id="s1"):
            raise RuntimeError("boom")

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "osc_send_ping"
    assert decoded["session_id"] == "s1"
    assert decoded["value_ms"] >= 0
    assert decoded["outcome"] == "error"
    assert decoded["details"] == {"error_type": "RuntimeError"}


def test_timed_success_outcome(captured: list[str]) -> None:
    with metrics.timed("osc_send_telemetry", details={"bpm": 72.0}):
        pass

    decoded = json.loads(captured[0])
    assert decoded["outcome"] == "ok"
    assert decoded["details"] == {"bpm": 72.0}


def test_stop_unknown_timer_returns_none(captured: list[str]) -> None:
    assert metrics.stop_timer("timer_missing") is None
    assert captured == []
