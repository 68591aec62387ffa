"""Terminal display formatting for benchmark results.

The human-readable report is deliberately short: the median and the MAD
per call, and the timing overhead when it was requested.
"""

from __future__ import annotations

from pathlib import Path

from steadytime.bench.results import BenchmarkResult
from steadytime.bench.signals import InterferenceSnapshot, MemoryUsage
from steadytime.formatting import format_millis, format_sparkline, format_table


def format_report(result: BenchmarkResult) -> str:
    """Format the human-readable report for a finished benchmark."""
    lines = [
        f"Time taken (median): {format_millis(result.median)}",
        f"Median absolute deviation: {format_millis(result.mad)}",
    ]
    if result.timing_overhead_ms is not None:
        pct = result.overhead_pct
        pct_text = "N/A" if pct is None else f"{pct:.2f}%"
        lines.append(
            f"Timing overhead: {format_millis(result.timing_overhead_ms)} ({pct_text} of median)"
        )
    return "\n".join(lines)


def format_trials(result: BenchmarkResult) -> str:
    """Format the clean trials and failure counts as a table."""
    lines: list[str] = []
    lines.append(
        f"Trials: {result.timed_run_count} clean at batch size {result.batch_size} "
        f"(discarded: gc={result.gc_failures}, "
        f"compilation={result.compilation_failures}, "
        f"class loading={result.class_loading_failures})"
    )
    durations = [t.duration_ms for t in result.trials]
    if durations:
        lines.append(f"  {format_sparkline(durations)}")
    rows = [
        [str(i), format_millis(t.duration_ms), f"{t.fingerprint:#x}"]
        for i, t in enumerate(result.trials, 1)
    ]
    lines.append(format_table(["#", "per call", "fingerprint"], rows, alignments=["r", "r", "l"]))
    lines.append(
        f"Mean: {format_millis(result.mean)}  "
        f"Std dev: {format_millis(result.sample_stdev)}  "
        f"Final GC: {format_millis(result.final_gc_duration_ms)}"
    )
    return "\n".join(lines)


def format_snapshot(snapshot: InterferenceSnapshot, gc_log: Path | None) -> str:
    """Format the interference sources and their current markers."""

    def _marker(value: int | None) -> str:
        return "unknown" if value is None else str(value)

    rows = [
        ["gc", str(gc_log) if gc_log is not None else "(disabled)", _marker(snapshot.gc_marker)],
        ["compilation", "audit hook", _marker(snapshot.compile_marker)],
        ["class loading", "sys.modules", _marker(snapshot.class_load_marker)],
    ]
    return "Interference sources:\n" + format_table(
        ["kind", "source", "marker"], rows, alignments=["l", "l", "r"]
    )


def format_memory(usage: MemoryUsage) -> str:
    """Format the memory used by one call."""
    return f"Memory retained: {usage.retained_mb:.3f} MB\nPeak during call: {usage.peak_mb:.3f} MB"
