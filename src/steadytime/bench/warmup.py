"""Warm-up before measurement.

Drives the payload until the interpreter has plausibly settled: caches
filled, specialized bytecode in place, lazily imported modules loaded.
Both an iteration floor and an elapsed-time floor must be met.  A fast
payload needs many calls before its bytecode is specialized, while a
slow one needs wall time whatever the call count.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from steadytime.bench.timing import Payload, ResultSink

log = logging.getLogger("steadytime")


@dataclass(frozen=True)
class WarmupReport:
    """How much warm-up was done."""

    iterations: int
    elapsed_s: float


def warm_up(
    payload: Payload,
    *,
    iterations: int = 10,
    seconds: float = 10.0,
    sink: ResultSink | None = None,
    verbose: bool = False,
    clock: Callable[[], float] = time.monotonic,
) -> WarmupReport:
    """Call *payload* until both warm-up floors are satisfied.

    Args:
        payload: Zero-argument callable under test.
        iterations: Minimum number of calls.
        seconds: Minimum elapsed wall time.
        sink: Slot receiving each result.
        verbose: Narrate progress at INFO instead of DEBUG.
        clock: Monotonic clock in seconds.
    """
    level = logging.INFO if verbose else logging.DEBUG
    sink = sink if sink is not None else ResultSink()

    log.log(level, "Warming up (at least %d calls and %.1fs)...", iterations, seconds)
    start = clock()
    count = 0
    elapsed = 0.0
    while count < iterations or elapsed < seconds:
        sink.value = payload()
        count += 1
        elapsed = clock() - start

    log.log(level, "Warm-up complete: %d calls in %.2fs", count, elapsed)
    return WarmupReport(iterations=count, elapsed_s=elapsed)
