"""Interference signals from the host interpreter.

Captures the cumulative counters that reveal whether the runtime did
something during a timed region that could distort the measurement:

- GC: byte size of the GC log (see :mod:`steadytime.bench.gclog`).
- Compilation: number of ``compile`` audit events, counted by a
  process-wide audit hook.
- Class loading: number of entries in ``sys.modules``.

A marker of ``None`` means the source is unavailable.  Two unknown
markers compare equal, so an unavailable source never reports an
occurrence.

Also home to the best-effort forced collection routine and a memory
usage helper.
"""

from __future__ import annotations

import enum
import gc
import logging
import os
import re
import sys
import tracemalloc
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Sequence

from steadytime.bench.errors import ConfigurationWarning
from steadytime.bench.gclog import enable_gc_log

log = logging.getLogger("steadytime")

GC_LOG_ENV_VAR = "STEADYTIME_GC_LOG"
_GC_LOG_FLAG = re.compile(r"^-X\s*gclog=(?P<path>.+)$")
# Interpreter options whose value may be the next argument.
_VALUED_OPTIONS = frozenset({"-X", "-W", "--check-hash-based-pycs"})


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class InterferenceKind(enum.Enum):
    """A runtime event capable of distorting a timing measurement."""

    GC = "gc"
    COMPILATION = "compilation"
    CLASS_LOADING = "class_loading"


@dataclass(frozen=True)
class InterferenceSnapshot:
    """Cumulative interference counters captured at one point in time."""

    gc_marker: int | None
    compile_marker: int | None
    class_load_marker: int | None

    def marker(self, kind: InterferenceKind) -> int | None:
        """Return the marker for *kind*."""
        if kind is InterferenceKind.GC:
            return self.gc_marker
        if kind is InterferenceKind.COMPILATION:
            return self.compile_marker
        return self.class_load_marker

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "gc_marker": self.gc_marker,
            "compile_marker": self.compile_marker,
            "class_load_marker": self.class_load_marker,
        }


# ---------------------------------------------------------------------------
# Probe interface
# ---------------------------------------------------------------------------


class SignalProbe:
    """Source of interference snapshots.

    Subclasses implement :meth:`snapshot`.  Tests inject their own
    subclass to replay synthetic snapshots.
    """

    def snapshot(self) -> InterferenceSnapshot:
        raise NotImplementedError

    def occurred(
        self,
        before: InterferenceSnapshot,
        after: InterferenceSnapshot,
        kind: InterferenceKind,
    ) -> bool:
        """True iff the marker for *kind* changed between the snapshots."""
        return before.marker(kind) != after.marker(kind)


class _CompileCounter:
    """Audit hook counting ``compile`` events."""

    def __init__(self) -> None:
        self.count = 0
        self.installed = False

    def __call__(self, event: str, args: tuple[Any, ...]) -> None:
        if event == "compile":
            self.count += 1

    def install(self) -> None:
        # Audit hooks cannot be removed once added.
        if not self.installed:
            sys.addaudithook(self)
            self.installed = True


_compile_counter = _CompileCounter()


class RuntimeSignalProbe(SignalProbe):
    """Reads interference counters from the running interpreter.

    Args:
        gc_log: Path of the GC log to watch.  When ``None``, GC
            detection is disabled: a :class:`ConfigurationWarning` is
            issued once and GC markers are reported as unknown.
    """

    def __init__(self, gc_log: str | Path | None = None) -> None:
        self.gc_log = Path(gc_log) if gc_log is not None else None
        _compile_counter.install()
        if self.gc_log is None:
            message = (
                "No GC log configured; collections during trials will not be "
                f"detected. Start Python with -X gclog=PATH, set {GC_LOG_ENV_VAR}, "
                "or pass --gc-log."
            )
            warnings.warn(message, ConfigurationWarning, stacklevel=2)

    @classmethod
    def from_runtime(cls, gc_log: str | Path | None = None) -> RuntimeSignalProbe:
        """Build a probe for this process.

        Uses *gc_log* if given, otherwise the path discovered from the
        interpreter's startup flags, and makes sure a GC log writer is
        appending to it.
        """
        path = Path(gc_log) if gc_log is not None else discover_gc_log_path()
        if path is not None:
            enable_gc_log(path)
            log.debug("Watching GC log %s", path)
        return cls(path)

    @property
    def gc_detection_enabled(self) -> bool:
        return self.gc_log is not None

    def snapshot(self) -> InterferenceSnapshot:
        return InterferenceSnapshot(
            gc_marker=self._gc_marker(),
            compile_marker=_compile_counter.count,
            class_load_marker=len(sys.modules),
        )

    def _gc_marker(self) -> int | None:
        if self.gc_log is None:
            return None
        try:
            return self.gc_log.stat().st_size
        except FileNotFoundError:
            return 0


def _interpreter_options(argv: Sequence[str]) -> Iterator[str]:
    """Yield the interpreter's own options, each joined with its value.

    Stops at the script, ``-m``, ``-c`` or ``-``: what follows belongs
    to the program, not to the interpreter.
    """
    args = list(argv)[1:]
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-", "--") or not arg.startswith("-") or arg.startswith(("-m", "-c")):
            return
        if arg in _VALUED_OPTIONS and i + 1 < len(args):
            yield arg + args[i + 1]
            i += 2
        else:
            yield arg
            i += 1


def discover_gc_log_path(
    argv: Sequence[str] | None = None,
    xoptions: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path | None:
    """Find the GC log path in the interpreter's startup configuration.

    Looks, in order, for ``-X gclog=PATH`` (or ``-Xgclog=PATH``) among
    the interpreter options of the original command line, a ``gclog`` entry in ``sys._xoptions``, and
    the ``STEADYTIME_GC_LOG`` environment variable.

    Returns:
        The configured path, or None if none is set.
    """
    if argv is None:
        argv = getattr(sys, "orig_argv", sys.argv)
    if xoptions is None:
        xoptions = getattr(sys, "_xoptions", {})
    if environ is None:
        environ = os.environ

    for option in _interpreter_options(argv):
        match = _GC_LOG_FLAG.match(option)
        if match:
            return Path(match.group("path"))

    value = xoptions.get("gclog")
    if isinstance(value, str) and value:
        return Path(value)

    env_value = environ.get(GC_LOG_ENV_VAR, "")
    if env_value:
        return Path(env_value)
    return None


# ---------------------------------------------------------------------------
# Forced collection
# ---------------------------------------------------------------------------


def request_gc(attempts: int = 5) -> int:
    """Ask the collector to run until the heap looks settled.

    Runs up to *attempts* full collections, stopping early once a pass
    finds nothing unreachable, ``gc.garbage`` stops growing and the
    allocated block count is unchanged.  There is no guarantee that all
    garbage is gone afterwards.

    Returns:
        Number of collection passes run.
    """
    blocks = sys.getallocatedblocks()
    garbage = len(gc.garbage)
    passes = 0
    for _ in range(attempts):
        found = gc.collect()
        passes += 1
        new_blocks = sys.getallocatedblocks()
        new_garbage = len(gc.garbage)
        if found == 0 and new_garbage == garbage and new_blocks == blocks:
            break
        blocks, garbage = new_blocks, new_garbage
    return passes


# ---------------------------------------------------------------------------
# Memory usage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemoryUsage:
    """Memory allocated by one payload call, in megabytes."""

    retained_mb: float  # still allocated after the call returned
    peak_mb: float  # high-water mark during the call


def measure_memory_usage(payload: Callable[[], Any]) -> MemoryUsage:
    """Measure the memory one call of *payload* allocates.

    Collects garbage first, then traces allocations around a single
    call.  The returned value is kept alive until the measurement is
    taken, so it counts as retained.
    """
    request_gc()
    was_tracing = tracemalloc.is_tracing()
    if not was_tracing:
        tracemalloc.start()
    try:
        tracemalloc.reset_peak()
        before, _ = tracemalloc.get_traced_memory()
        result = payload()
        after, peak = tracemalloc.get_traced_memory()
        del result
    finally:
        if not was_tracing:
            tracemalloc.stop()
    return MemoryUsage(
        retained_mb=max(after - before, 0) / 1048576.0,
        peak_mb=max(peak - before, 0) / 1048576.0,
    )
