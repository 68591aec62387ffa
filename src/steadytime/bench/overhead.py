"""Estimation of the harness's own per-call timing overhead.

Benchmarks a constant no-op at the batch size already chosen for the
real payload.  What remains is the cost of the timing loop itself.
The per-trial collection and interference checks are skipped: a no-op
does not allocate enough to provoke a collection, and skipping them
keeps the estimate fast.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from steadytime.bench.config import BenchConfig
from steadytime.bench.stats import median
from steadytime.bench.timing import ResultSink
from steadytime.bench.trials import TrialRunner, TrialSeriesController
from steadytime.bench.warmup import warm_up

log = logging.getLogger("steadytime")

STAGE = "overhead estimation"


def _no_op() -> None:
    return None


@dataclass(frozen=True)
class OverheadEstimate:
    """Fixed per-call overhead of the measurement loop."""

    overhead_ms: float


def estimate_timing_overhead(
    config: BenchConfig,
    batch_size: int,
    *,
    sink: ResultSink | None = None,
) -> OverheadEstimate:
    """Measure the per-call overhead at *batch_size*.

    Args:
        config: Invocation configuration; warm-up floors and the trial
            target are reused.
        batch_size: Batch size chosen for the real payload.
        sink: Result slot for the no-op.
    """
    sink = sink if sink is not None else ResultSink()
    log.log(config.narration_level, "Estimating timing overhead at batch size %d...", batch_size)

    warm_up(
        _no_op,
        iterations=config.warmup_iterations,
        seconds=config.warmup_seconds,
        sink=sink,
        verbose=config.verbose,
    )
    runner = TrialRunner(_no_op, None, config, sink=sink, check_interference=False)
    series = TrialSeriesController(runner, config).run(
        batch_size, config.target_trial_count, stage=STAGE
    )
    return OverheadEstimate(overhead_ms=median(series.durations))
