"""Shared text formatting helpers for steadytime.

Provides functions for formatting durations, tables and sparklines used
by the benchmark reports and the CLI.
"""

from __future__ import annotations

import math

_SPARK_CHARS = "▁▂▃▄▅▆▇█"

# (scale from ms, unit); each unit holds values below 1000 once rounded
_TIME_UNITS: list[tuple[float, str]] = [
    (1e6, "ns"),
    (1e3, "µs"),
    (1.0, "ms"),
]


def format_millis(millis: float, precision: int = 2) -> str:
    """Format a duration in milliseconds with a unit chosen by magnitude.

    Examples: ``'812.00 ns'``, ``'3.25 µs'``, ``'100.40 ms'``, ``'2.50 s'``.
    """
    if math.isnan(millis):
        return "N/A"
    for scale, unit in _TIME_UNITS:
        scaled = millis * scale
        if abs(round(scaled, precision)) < 1000:
            return f"{scaled:.{precision}f} {unit}"
    return f"{millis / 1e3:.{precision}f} s"


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    indent: int = 2,
) -> str:
    """Format a list of rows as an aligned text table.

    Args:
        headers: Column header strings.
        rows: List of rows, each a list of cell strings.
        alignments: Per-column alignment, ``'l'`` or ``'r'``.
        indent: Number of leading spaces per line.
    """
    if not headers:
        return ""

    ncols = len(headers)
    aligns = list(alignments or [])
    aligns += ["l"] * (ncols - len(aligns))

    cells = [(list(row) + [""] * ncols)[:ncols] for row in rows]
    widths = [max([len(headers[i])] + [len(row[i]) for row in cells]) for i in range(ncols)]

    def _line(row: list[str]) -> str:
        parts = [
            row[i].rjust(widths[i]) if aligns[i] == "r" else row[i].ljust(widths[i])
            for i in range(ncols)
        ]
        return " " * indent + "  ".join(parts).rstrip()

    return "\n".join([_line(list(headers))] + [_line(row) for row in cells])


def format_sparkline(values: list[float], width: int = 30) -> str:
    """Format a series of values as a sparkline using block characters.

    Longer series are sampled down to *width* characters; shorter ones
    keep one character per value.
    """
    if not values:
        return ""

    if len(values) > width:
        step = len(values) / width
        sampled = [values[int(i * step)] for i in range(width)]
    else:
        sampled = list(values)

    lo = min(sampled)
    span = max(sampled) - lo
    top = len(_SPARK_CHARS) - 1
    if span == 0:
        return _SPARK_CHARS[top // 2] * len(sampled)
    return "".join(_SPARK_CHARS[int((v - lo) / span * top)] for v in sampled)
