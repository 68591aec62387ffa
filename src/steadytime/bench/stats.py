"""Robust statistics for benchmark aggregation.

Provides mean, unbiased sample variance and standard deviation, median,
and median absolute deviation (MAD) in pure Python.  The median and MAD
are the headline figures: a single trial disturbed by an unnoticed pause
moves the mean but leaves them untouched.

All functions take a non-empty sequence and raise
:class:`~steadytime.bench.errors.DegenerateInput` when given an empty
one.  No default is ever substituted for missing data.

References:
    MAD: Hampel, F. R. (1974). "The influence curve and its role in
        robust estimation." JASA 69(346): 383-393.  The value here is
        not scaled by 1.4826 to normal consistency.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from steadytime.bench.errors import DegenerateInput


def _require_values(values: Sequence[float], name: str) -> None:
    if len(values) == 0:
        raise DegenerateInput(f"{name}() requires at least one value")


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean."""
    _require_values(values, "mean")
    return math.fsum(values) / len(values)


def median(values: Sequence[float]) -> float:
    """Median of a sample.

    Odd n returns the middle value; even n returns the average of the
    two central values.
    """
    _require_values(values, "median")
    sorted_v = sorted(values)
    n = len(sorted_v)
    mid = n // 2
    if n % 2:
        return float(sorted_v[mid])
    return (sorted_v[mid - 1] + sorted_v[mid]) / 2.0


# ---------------------------------------------------------------------------
# Dispersion
# ---------------------------------------------------------------------------


def sample_variance(values: Sequence[float]) -> float:
    """Unbiased sample variance, sum((x - mean)^2) / (n - 1).

    A single value has variance 0.0 rather than being an error.
    """
    _require_values(values, "sample_variance")
    n = len(values)
    if n == 1:
        return 0.0
    m = mean(values)
    return math.fsum((x - m) ** 2 for x in values) / (n - 1)


def sample_stdev(values: Sequence[float]) -> float:
    """Sample standard deviation (square root of the unbiased variance)."""
    return math.sqrt(sample_variance(values))


def mad(values: Sequence[float]) -> float:
    """Median absolute deviation: median(|x - median(x)|)."""
    _require_values(values, "mad")
    centre = median(values)
    return median([abs(x - centre) for x in values])


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RobustSummary:
    """The aggregate figures reported for a series of clean trials."""

    n: int
    mean: float
    median: float
    mad: float
    sample_stdev: float

    def to_dict(self) -> dict[str, float | int]:
        """Serialize to a dict."""
        return {
            "n": self.n,
            "mean": self.mean,
            "median": self.median,
            "mad": self.mad,
            "sample_stdev": self.sample_stdev,
        }


def summarize(values: Sequence[float]) -> RobustSummary:
    """Compute every aggregate over *values* in one call."""
    _require_values(values, "summarize")
    return RobustSummary(
        n=len(values),
        mean=mean(values),
        median=median(values),
        mad=mad(values),
        sample_stdev=sample_stdev(values),
    )
