"""Single trials and series of trials.

A trial is one measurement:

1. Best-effort forced collection.
2. Settling pause.
3. Interference snapshot (before).
4. Timed execution of one batch.
5. Settling pause, so late signals land on this trial.
6. Interference snapshot (after), flags derived by inequality.

A series repeats trials until the target number of clean trials is
reached or one failure counter reaches its budget.  The same series
controller is used for batch-size probing, for the main measurement
and for overhead estimation; only its parameters differ.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from steadytime.bench.config import BenchConfig
from steadytime.bench.errors import CleanRunUnobtainable
from steadytime.bench.results import TrialOutcome, TrialSeries
from steadytime.bench.signals import InterferenceKind, SignalProbe, request_gc
from steadytime.bench.timing import Payload, ResultSink, execute_many

log = logging.getLogger("steadytime")


# ---------------------------------------------------------------------------
# TrialRunner
# ---------------------------------------------------------------------------


class TrialRunner:
    """Runs one trial of a payload at a given batch size.

    With ``check_interference=False`` the collection, settling pauses
    and snapshots are skipped and every trial counts as clean.
    """

    def __init__(
        self,
        payload: Payload,
        probe: SignalProbe | None,
        config: BenchConfig,
        *,
        sink: ResultSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        check_interference: bool = True,
    ) -> None:
        if check_interference and probe is None:
            raise ValueError("A signal probe is required when checking interference.")
        self.payload = payload
        self.probe = probe
        self.config = config
        self.sink = sink if sink is not None else ResultSink()
        self.sleep = sleep
        self.check_interference = check_interference

    def run(self, batch_size: int) -> TrialOutcome:
        """Execute one trial and classify it."""
        if not self.check_interference:
            timed = execute_many(self.payload, batch_size, self.sink)
            return TrialOutcome(duration_ms=timed.duration_ms, fingerprint=timed.fingerprint)

        assert self.probe is not None
        level = self.config.narration_level
        log.log(level, "Requesting GC...")
        passes = request_gc(self.config.gc_attempts)
        log.log(level, "GC requested (%d passes)", passes)
        self.sleep(self.config.settle_seconds)

        before = self.probe.snapshot()
        timed = execute_many(self.payload, batch_size, self.sink)
        self.sleep(self.config.settle_seconds)
        after = self.probe.snapshot()

        outcome = TrialOutcome(
            duration_ms=timed.duration_ms,
            fingerprint=timed.fingerprint,
            gc_occurred=self.probe.occurred(before, after, InterferenceKind.GC),
            compilation_occurred=self.probe.occurred(before, after, InterferenceKind.COMPILATION),
            class_loading_occurred=self.probe.occurred(
                before, after, InterferenceKind.CLASS_LOADING
            ),
        )
        if not outcome.clean:
            log.log(
                level,
                "Trial discarded (gc=%s, compilation=%s, class loading=%s)",
                outcome.gc_occurred,
                outcome.compilation_occurred,
                outcome.class_loading_occurred,
            )
        return outcome


# ---------------------------------------------------------------------------
# TrialSeriesController
# ---------------------------------------------------------------------------


class TrialSeriesController:
    """Collects clean trials up to a target count within failure budgets."""

    def __init__(self, trial_runner: TrialRunner, config: BenchConfig) -> None:
        self.trial_runner = trial_runner
        self.config = config

    def run(self, batch_size: int, target: int, *, stage: str = "measurement") -> TrialSeries:
        """Run trials until *target* clean ones are collected.

        Args:
            batch_size: Calls per timed block.
            target: Number of clean trials required.
            stage: Name of the calling stage, used in errors and logs.

        Returns:
            TrialSeries with exactly *target* clean outcomes.

        Raises:
            CleanRunUnobtainable: If any failure counter reaches its
                budget first.
        """
        series = TrialSeries()
        level = self.config.narration_level

        while series.clean_count < target:
            log.log(
                level,
                "Running trial %d/%d (%s, batch size %d)...",
                series.clean_count + 1,
                target,
                stage,
                batch_size,
            )
            series.record(self.trial_runner.run(batch_size))

            if self._budget_reached(series):
                log.error(
                    "Failure budget reached during %s: gc=%d, compilation=%d, class loading=%d",
                    stage,
                    series.gc_failures,
                    series.compilation_failures,
                    series.class_loading_failures,
                )
                raise CleanRunUnobtainable(
                    stage=stage,
                    gc_failures=series.gc_failures,
                    compilation_failures=series.compilation_failures,
                    class_loading_failures=series.class_loading_failures,
                    series=series,
                )

        log.log(
            level,
            "Series complete (%s): %d clean trials, failures gc=%d compilation=%d "
            "class loading=%d",
            stage,
            series.clean_count,
            series.gc_failures,
            series.compilation_failures,
            series.class_loading_failures,
        )
        return series

    def _budget_reached(self, series: TrialSeries) -> bool:
        return (
            series.gc_failures >= self.config.gc_failure_budget
            or series.compilation_failures >= self.config.compilation_failure_budget
            or series.class_loading_failures >= self.config.class_loading_failure_budget
        )
