"""Benchmark result data structures.

Hierarchy::

    BenchmarkResult (one invocation)
      → trials: list[TrialOutcome]   (clean trials only)
      → summary figures: mean, median, MAD, sample stdev

    TrialSeries (working set while trials are collected)
      → outcomes: list[TrialOutcome]
      → gc / compilation / class loading failure counters
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Trial-level result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrialOutcome:
    """Result of one timed trial."""

    duration_ms: float  # per call
    fingerprint: int
    gc_occurred: bool = False
    compilation_occurred: bool = False
    class_loading_occurred: bool = False

    @property
    def clean(self) -> bool:
        """True if no interference was detected during the trial."""
        return not (self.gc_occurred or self.compilation_occurred or self.class_loading_occurred)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the raw per-trial data."""
        return {
            "duration_ms": self.duration_ms,
            "fingerprint": self.fingerprint,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrialOutcome:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


# ---------------------------------------------------------------------------
# Series of trials
# ---------------------------------------------------------------------------


@dataclass
class TrialSeries:
    """Clean trials collected so far, plus per-kind failure counters."""

    outcomes: list[TrialOutcome] = field(default_factory=list)
    gc_failures: int = 0
    compilation_failures: int = 0
    class_loading_failures: int = 0

    def record(self, outcome: TrialOutcome) -> None:
        """Keep a clean outcome, or count each kind of interference it saw."""
        if outcome.clean:
            self.outcomes.append(outcome)
            return
        if outcome.gc_occurred:
            self.gc_failures += 1
        if outcome.compilation_occurred:
            self.compilation_failures += 1
        if outcome.class_loading_occurred:
            self.class_loading_failures += 1

    @property
    def clean_count(self) -> int:
        return len(self.outcomes)

    @property
    def durations(self) -> list[float]:
        """Per-call durations of the clean trials, in order."""
        return [o.duration_ms for o in self.outcomes]


# ---------------------------------------------------------------------------
# Invocation-level result
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkResult:
    """Everything reported for one benchmark invocation.

    Times are per call, in milliseconds.
    """

    timed_run_count: int
    gc_failures: int
    compilation_failures: int
    class_loading_failures: int
    mean: float
    median: float
    mad: float
    sample_stdev: float
    final_gc_duration_ms: float
    batch_size: int = 1
    timing_overhead_ms: float | None = None
    trials: list[TrialOutcome] = field(default_factory=list)

    @property
    def overhead_pct(self) -> float | None:
        """Timing overhead as a percentage of the median."""
        if self.timing_overhead_ms is None:
            return None
        if self.median == 0:
            return float("inf")
        return self.timing_overhead_ms / self.median * 100.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the structured report record."""
        d: dict[str, Any] = {
            "timed_run_count": self.timed_run_count,
            "gc_failure_count": self.gc_failures,
            "compilation_failure_count": self.compilation_failures,
            "class_loading_failure_count": self.class_loading_failures,
            "mean": self.mean,
            "median": self.median,
            "mad": self.mad,
            "sample_stdev": self.sample_stdev,
            "final_gc_duration_ms": self.final_gc_duration_ms,
            "batch_size": self.batch_size,
            "trials": [t.to_dict() for t in self.trials],
        }
        if self.timing_overhead_ms is not None:
            d["timing_overhead_ms"] = self.timing_overhead_ms
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkResult:
        """Deserialize from a structured report record."""
        return cls(
            timed_run_count=data["timed_run_count"],
            gc_failures=data.get("gc_failure_count", 0),
            compilation_failures=data.get("compilation_failure_count", 0),
            class_loading_failures=data.get("class_loading_failure_count", 0),
            mean=data["mean"],
            median=data["median"],
            mad=data["mad"],
            sample_stdev=data["sample_stdev"],
            final_gc_duration_ms=data.get("final_gc_duration_ms", 0.0),
            batch_size=data.get("batch_size", 1),
            timing_overhead_ms=data.get("timing_overhead_ms"),
            trials=[TrialOutcome.from_dict(t) for t in data.get("trials", [])],
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
