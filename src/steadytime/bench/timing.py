"""Timed execution of a benchmark payload.

Measures wall-clock time around one call, or around a block of N
consecutive calls, using ``time.perf_counter_ns``.  The payload's return
value is stored in a :class:`ResultSink` from inside the timed region so
the call has an observable effect; the fingerprint of that value is
computed only after the end timestamp has been taken.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

_NS_PER_MS = 1_000_000.0

Payload = Callable[[], Any]


# ---------------------------------------------------------------------------
# Retained-result slot
# ---------------------------------------------------------------------------


class ResultSink:
    """Single-owner cell holding the most recent payload result.

    One sink is created per benchmark invocation and handed to every
    component that calls the payload.  It is never shared between
    threads.
    """

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value: Any = None


def fingerprint(value: Any) -> int:
    """Derive an integer fingerprint from a payload result.

    Hashable values use ``hash()``; unhashable ones (lists, dicts, ...)
    fall back to their identity.
    """
    try:
        return hash(value)
    except TypeError:
        return id(value)


# ---------------------------------------------------------------------------
# TimedRun
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimedRun:
    """Per-call duration of a timed block and the retained result's fingerprint."""

    duration_ms: float
    fingerprint: int


def execute_once(payload: Payload, sink: ResultSink) -> TimedRun:
    """Time exactly one invocation of *payload*."""
    start = time.perf_counter_ns()
    sink.value = payload()
    end = time.perf_counter_ns()
    return TimedRun(
        duration_ms=(end - start) / _NS_PER_MS,
        fingerprint=fingerprint(sink.value),
    )


def execute_many(payload: Payload, n: int, sink: ResultSink) -> TimedRun:
    """Time *n* consecutive invocations of *payload* as one block.

    Args:
        payload: Zero-argument callable under test.
        n: Batch size, at least 1.  ``n == 1`` is the same as
            :func:`execute_once`.
        sink: Slot receiving the result of the final invocation.

    Returns:
        TimedRun whose duration is the block time divided by *n*.

    Raises:
        ValueError: If *n* is less than 1.
    """
    if n < 1:
        raise ValueError(f"Batch size must be at least 1 (got {n}).")
    if n == 1:
        return execute_once(payload, sink)

    # The loop body stays minimal: every extra bytecode here is billed to
    # the payload.
    calls = range(n - 1)
    start = time.perf_counter_ns()
    for _ in calls:
        payload()
    sink.value = payload()
    end = time.perf_counter_ns()
    return TimedRun(
        duration_ms=(end - start) / _NS_PER_MS / n,
        fingerprint=fingerprint(sink.value),
    )
