"""
Timing metrics for link I/O.

Each measured operation (a ping or telemetry send, a settings write)
produces exactly one METRIC_TIMER line through observability.logger.
Nothing is aggregated in-process.

Durations come from the monotonic clock. ts_ms is wall-clock so the
line can be lined up with other logs.
"""

from __future__ import annotations

import itertools
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from observability.logger import log_event


@dataclass(frozen=True)
class _RunningTimer:
    metric: str
    started_ns: int


_running: dict[str, _RunningTimer] = {}
_ids = itertools.count(1)


def start_timer(metric: str) -> str:
    """
    Start measuring `metric`; returns the handle for stop_timer().

    Prefer timed(), which cannot leak a handle.
    """
    handle = f"{metric}#{next(_ids)}"
    _running[handle] = _RunningTimer(metric=metric, started_ns=time.monotonic_ns())
    return handle


def stop_timer(
    handle: str,
    *,
    session_id: str | None = None,
    state: str | None = None,
    outcome: str = "ok",
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Emit the METRIC_TIMER line for `handle`.

    Returns the elapsed milliseconds, or None for an unknown handle.
    """
    timer = _running.pop(handle, None)
    if timer is None:
        return None

    elapsed_ms = (time.monotonic_ns() - timer.started_ns) // 1_000_000
    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "metric": timer.metric,
        "value_ms": elapsed_ms,
        "outcome": outcome,
        "session_id": session_id,
        "state": state,
        "details": details or {},
    })
    return elapsed_ms


@contextmanager
def timed(
    metric: str,
    *,
    session_id: str | None = None,
    state: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Measure the enclosed block.

    The line is emitted once whether or not the block raises; a raising
    block is recorded with outcome "error" and the exception type, and
    the exception propagates unchanged.

        with timed("osc_send_ping", session_id=ctx.session_id):
            transport.send_ping(host, port)
    """
    handle = start_timer(metric)
    outcome = "ok"
    extra = dict(details or {})
    try:
        yield
    except BaseException as e:
        outcome = "error"
        extra["error_type"] = type(e).__name__
        raise
    finally:
        stop_timer(
            handle,
            session_id=session_id,
            state=state,
            outcome=outcome,
            details=extra,
        )
