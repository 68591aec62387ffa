"""Shared test fixtures for benchmark tests."""

from __future__ import annotations

import dataclasses
from typing import Iterable

from steadytime.bench.config import BenchConfig
from steadytime.bench.results import BenchmarkResult, TrialOutcome, TrialSeries
from steadytime.bench.signals import InterferenceKind, InterferenceSnapshot, SignalProbe

GC = InterferenceKind.GC
COMPILATION = InterferenceKind.COMPILATION
CLASS_LOADING = InterferenceKind.CLASS_LOADING


class ScriptedProbe(SignalProbe):
    """Probe replaying a script of interference per trial.

    ``script[i]`` is the set of kinds that "occur" during trial *i*.
    Trials beyond the script are clean.  Snapshots are taken in
    before/after pairs, so the markers are bumped on every second call.
    """

    def __init__(self, script: Iterable[Iterable[InterferenceKind]] = ()) -> None:
        self.script = [set(kinds) for kinds in script]
        self.markers = {kind: 0 for kind in InterferenceKind}
        self.snapshots = 0

    @property
    def trials(self) -> int:
        return self.snapshots // 2

    def snapshot(self) -> InterferenceSnapshot:
        if self.snapshots % 2 == 1:
            trial = self.snapshots // 2
            if trial < len(self.script):
                for kind in self.script[trial]:
                    self.markers[kind] += 1
        self.snapshots += 1
        return InterferenceSnapshot(
            gc_marker=self.markers[GC],
            compile_marker=self.markers[COMPILATION],
            class_load_marker=self.markers[CLASS_LOADING],
        )


class FakeClock:
    """Monotonic clock advancing by *step* seconds on every read."""

    def __init__(self, step: float) -> None:
        self.step = step
        self.now = 0.0
        self.reads = 0

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        self.reads += 1
        return value


class SleepRecorder:
    """Stand-in for time.sleep that records instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_config(**kwargs: object) -> BenchConfig:
    """Create a BenchConfig with fast test defaults."""
    defaults: dict[str, object] = {
        "target_trial_count": 5,
        "min_execution_time_ms": 3.0,
        "warmup_iterations": 2,
        "warmup_seconds": 0.0,
        "settle_seconds": 0.0,
        "gc_attempts": 1,
    }
    defaults.update(kwargs)
    return dataclasses.replace(BenchConfig(), **defaults)  # type: ignore[arg-type]


def make_series(durations: list[float], **counters: int) -> TrialSeries:
    """Create a TrialSeries of clean outcomes with the given durations."""
    series = TrialSeries(**counters)
    series.outcomes = [TrialOutcome(duration_ms=d, fingerprint=i) for i, d in enumerate(durations)]
    return series


def make_result(**kwargs: object) -> BenchmarkResult:
    """Create a BenchmarkResult with sensible defaults."""
    defaults: dict[str, object] = {
        "timed_run_count": 3,
        "gc_failures": 1,
        "compilation_failures": 0,
        "class_loading_failures": 2,
        "mean": 1.5,
        "median": 1.25,
        "mad": 0.05,
        "sample_stdev": 0.1,
        "final_gc_duration_ms": 4.0,
        "batch_size": 8,
        "trials": [
            TrialOutcome(duration_ms=1.2, fingerprint=11),
            TrialOutcome(duration_ms=1.25, fingerprint=11),
            TrialOutcome(duration_ms=2.05, fingerprint=11),
        ],
    }
    defaults.update(kwargs)
    return BenchmarkResult(**defaults)  # type: ignore[arg-type]
