"""Exceptions and warnings raised by the measurement core.

Fatal conditions carry whatever partial data was collected before the
benchmark gave up, so callers can inspect why a clean run could not be
obtained.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from steadytime.bench.results import TrialSeries


class ConfigurationWarning(UserWarning):
    """A measurement source is unavailable; detection is degraded."""


class DegenerateInput(ValueError):
    """A statistics function was given an empty sequence."""


class BenchmarkError(RuntimeError):
    """Base class for errors that abort a benchmark invocation."""


class CleanRunUnobtainable(BenchmarkError):
    """A failure budget was reached before enough clean trials were collected."""

    def __init__(
        self,
        *,
        stage: str,
        gc_failures: int,
        compilation_failures: int,
        class_loading_failures: int,
        series: TrialSeries | None = None,
    ) -> None:
        self.stage = stage
        self.gc_failures = gc_failures
        self.compilation_failures = compilation_failures
        self.class_loading_failures = class_loading_failures
        self.series = series
        clean = len(series.outcomes) if series is not None else 0
        super().__init__(
            f"Could not obtain a clean run during {stage} "
            f"({clean} clean trials): "
            f"GC failures={gc_failures}, "
            f"compilation failures={compilation_failures}, "
            f"class loading failures={class_loading_failures}"
        )


class InsufficientExecutionTime(BenchmarkError):
    """The measured time per batch fell below the required fraction of the minimum."""

    def __init__(
        self,
        *,
        measured_ms: float,
        required_ms: float,
        batch_size: int,
        series: TrialSeries | None = None,
    ) -> None:
        self.measured_ms = measured_ms
        self.required_ms = required_ms
        self.batch_size = batch_size
        self.series = series
        super().__init__(
            f"Insufficient execution time: batch of {batch_size} calls measured "
            f"{measured_ms:.3f}ms, below the required {required_ms:.3f}ms. "
            f"Collection pressure may have shrunk the per-call estimate; "
            f"try a larger minimum execution time."
        )
