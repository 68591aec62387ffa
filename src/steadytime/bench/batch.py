"""Adaptive batch-size estimation.

A payload that runs in a few microseconds cannot be timed one call at
a time: timer resolution and the cost of the timing code itself swamp
it.  Instead the payload is run N times per timed block.  This module
finds the smallest N whose block lasts at least the configured minimum
execution time.

Starting at N = 1, a short probe series is run at N.  If the fastest
per-call duration times N meets the threshold, N is the answer.
Otherwise the next candidate is ``ceil(threshold / fastest) + 1``,
forced above the current N.  Candidates strictly increase and are
bounded by ``threshold / floor``, so the search terminates.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from steadytime.bench.config import BenchConfig
from steadytime.bench.trials import TrialSeriesController

log = logging.getLogger("steadytime")

STAGE = "batch-size estimation"


@dataclass
class BatchEstimate:
    """Chosen batch size and every size tried on the way."""

    batch_size: int
    tried: list[int] = field(default_factory=list)
    min_duration_ms: float = 0.0  # fastest per-call duration at the chosen size


def next_batch_size(current: int, min_duration_ms: float, threshold_ms: float) -> int:
    """Candidate batch size after *current* fell short of *threshold_ms*."""
    candidate = math.ceil(threshold_ms / min_duration_ms) + 1
    return max(candidate, current + 1)


def estimate_batch_size(
    controller: TrialSeriesController,
    config: BenchConfig,
) -> BatchEstimate:
    """Find the batch size needed to reach the minimum execution time.

    Raises:
        CleanRunUnobtainable: If a probe series cannot collect enough
            clean trials within its failure budgets.
    """
    threshold = config.min_execution_time_ms
    level = config.narration_level
    estimate = BatchEstimate(batch_size=1)
    n = 1

    while True:
        estimate.tried.append(n)
        series = controller.run(n, config.probe_trial_count, stage=STAGE)
        min_duration = max(min(series.durations), config.min_duration_floor_ms)

        if min_duration * n >= threshold:
            estimate.batch_size = n
            estimate.min_duration_ms = min_duration
            log.log(
                level,
                "Batch size %d selected (%.6fms per call, tried %s)",
                n,
                min_duration,
                estimate.tried,
            )
            return estimate

        next_n = next_batch_size(n, min_duration, threshold)
        log.log(
            level,
            "Batch size %d too short (%.6fms per call x %d < %.1fms); trying %d",
            n,
            min_duration,
            n,
            threshold,
            next_n,
        )
        n = next_n
