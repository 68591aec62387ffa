"""Benchmark execution engine.

Orchestrates:
1. Configuration validation
2. Warm-up
3. Batch-size estimation
4. The main series of clean trials
5. A final, timed forced collection
6. Aggregation into robust statistics
7. Optional timing-overhead estimation

States::

    IDLE → WARMING_UP → ESTIMATING_BATCH_SIZE → RUNNING_SERIES
         → FINAL_COLLECTION → AGGREGATING → DONE

Any exception escaping a stage moves the runner to FAILED and is
re-raised.  Nothing is retried beyond the failure budgets; the caller
may call :meth:`BenchRunner.run` again.

Only one benchmark may run at a time in a process: forced collections
and the interference counters are process-wide.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable

import click

from steadytime.bench.batch import estimate_batch_size
from steadytime.bench.config import BenchConfig, ReportingMode, config_from_options, validate_config
from steadytime.bench.errors import InsufficientExecutionTime
from steadytime.bench.gclog import active_gc_log, disable_gc_log
from steadytime.bench.overhead import estimate_timing_overhead
from steadytime.bench.results import BenchmarkResult, TrialSeries
from steadytime.bench.signals import RuntimeSignalProbe, SignalProbe, request_gc
from steadytime.bench.stats import summarize
from steadytime.bench.timing import Payload, ResultSink
from steadytime.bench.trials import TrialRunner, TrialSeriesController
from steadytime.bench.warmup import warm_up

log = logging.getLogger("steadytime")


class BenchState(enum.Enum):
    """Stages of a benchmark invocation."""

    IDLE = "idle"
    WARMING_UP = "warming_up"
    ESTIMATING_BATCH_SIZE = "estimating_batch_size"
    RUNNING_SERIES = "running_series"
    FINAL_COLLECTION = "final_collection"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Benchmarks one payload according to a BenchConfig.

    Usage::

        runner = BenchRunner(lambda: sorted(data), BenchConfig())
        result = runner.run()

    Args:
        payload: Zero-argument callable under test.
        config: Invocation configuration.
        probe: Interference source.  Defaults to a
            :class:`RuntimeSignalProbe` for this process, built when the
            run starts.
        sleep: Blocking sleep used for the settling pauses.
    """

    def __init__(
        self,
        payload: Payload,
        config: BenchConfig,
        *,
        probe: SignalProbe | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.payload = payload
        self.config = config
        self.probe = probe
        self.sleep = sleep
        self.state = BenchState.IDLE
        self.history: list[BenchState] = []
        self.tried_batch_sizes: list[int] = []

    def _enter(self, state: BenchState) -> None:
        self.state = state
        self.history.append(state)
        log.debug("Benchmark state: %s", state.value)

    def run(self) -> BenchmarkResult:
        """Execute the full benchmark.

        Returns:
            BenchmarkResult for the clean trials.

        Raises:
            ValueError: If the configuration is invalid.
            CleanRunUnobtainable: If a failure budget is reached.
            InsufficientExecutionTime: If the measured batches fell
                short of the minimum execution time.
            OSError: If the GC log cannot be opened.
        """
        self.history = []
        self.tried_batch_sizes = []
        self._enter(BenchState.IDLE)

        # A GC log writer installed for this run is removed when it ends.
        owns_gc_log = self.probe is None and active_gc_log() is None
        try:
            self._validate()
            return self._run_stages()
        except BaseException:
            self._enter(BenchState.FAILED)
            raise
        finally:
            if owns_gc_log:
                disable_gc_log()

    def _validate(self) -> None:
        errors = validate_config(self.config)
        fatal = [e for e in errors if e.severity == "error"]
        for w in errors:
            if w.severity == "warning":
                log.warning("Config warning: %s: %s", w.field, w.message)
        if fatal:
            messages = [f"  {e.field}: {e.message}" for e in fatal]
            raise ValueError("Invalid benchmark configuration:\n" + "\n".join(messages))

    def _run_stages(self) -> BenchmarkResult:
        config = self.config
        level = config.narration_level
        probe = self.probe
        if probe is None:
            probe = RuntimeSignalProbe.from_runtime(config.gc_log)
        sink = ResultSink()

        # Phase 1: Warm-up.
        self._enter(BenchState.WARMING_UP)
        warm_up(
            self.payload,
            iterations=config.warmup_iterations,
            seconds=config.warmup_seconds,
            sink=sink,
            verbose=config.verbose,
        )

        trial_runner = TrialRunner(self.payload, probe, config, sink=sink, sleep=self.sleep)
        controller = TrialSeriesController(trial_runner, config)

        # Phase 2: Batch size.
        self._enter(BenchState.ESTIMATING_BATCH_SIZE)
        estimate = estimate_batch_size(controller, config)
        self.tried_batch_sizes = list(estimate.tried)
        batch_size = estimate.batch_size

        # Phase 3: Main series.
        self._enter(BenchState.RUNNING_SERIES)
        series = controller.run(batch_size, config.target_trial_count)
        self._check_execution_time(series, batch_size)

        # Phase 4: Final collection (reported, not used).
        self._enter(BenchState.FINAL_COLLECTION)
        gc_start = time.perf_counter_ns()
        request_gc(config.gc_attempts)
        final_gc_ms = (time.perf_counter_ns() - gc_start) / 1_000_000.0
        log.log(level, "Final GC took %.3fms", final_gc_ms)

        # Phase 5: Aggregate.
        self._enter(BenchState.AGGREGATING)
        summary = summarize(series.durations)
        result = BenchmarkResult(
            timed_run_count=series.clean_count,
            gc_failures=series.gc_failures,
            compilation_failures=series.compilation_failures,
            class_loading_failures=series.class_loading_failures,
            mean=summary.mean,
            median=summary.median,
            mad=summary.mad,
            sample_stdev=summary.sample_stdev,
            final_gc_duration_ms=final_gc_ms,
            batch_size=batch_size,
            trials=list(series.outcomes),
        )
        if config.calc_timing_overhead:
            overhead = estimate_timing_overhead(config, batch_size)
            result.timing_overhead_ms = overhead.overhead_ms
            log.log(
                level,
                "Timing overhead: %.6fms (%.2f%% of median)",
                overhead.overhead_ms,
                result.overhead_pct,
            )

        self._enter(BenchState.DONE)
        return result

    def _check_execution_time(self, series: TrialSeries, batch_size: int) -> None:
        measured = summarize(series.durations).median * batch_size
        required = self.config.min_execution_fraction * self.config.min_execution_time_ms
        if measured < required:
            log.error(
                "Measured %.3fms per batch of %d, below %.3fms",
                measured,
                batch_size,
                required,
            )
            raise InsufficientExecutionTime(
                measured_ms=measured,
                required_ms=required,
                batch_size=batch_size,
                series=series,
            )


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def bench(
    payload: Payload,
    *,
    quick: bool = False,
    probe: SignalProbe | None = None,
    **options: Any,
) -> BenchmarkResult:
    """Benchmark *payload* with keyword options merged over the defaults.

    In human reporting mode the report is also printed to stdout.

    Example::

        bench(lambda: sum(range(1000)), target_trial_count=10)
    """
    from steadytime.bench.display import format_report

    config = config_from_options(quick=quick, **options)
    result = BenchRunner(payload, config, probe=probe).run()
    if config.reporting_mode is ReportingMode.HUMAN:
        click.echo(format_report(result))
    return result
