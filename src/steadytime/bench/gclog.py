"""GC log for the host interpreter.

CPython does not write a collection log of its own, so this module
provides one: a ``gc.callbacks`` hook that appends a line to a text file
after every collection pass.  The interference probe only ever looks at
the size of the file, so the line format is for humans::

    12345.678901 gen=0 collected=12 uncollectable=0 pause_ms=0.041

At most one writer is active per process.
"""

from __future__ import annotations

import gc
import logging
import time
from pathlib import Path
from typing import IO, Any

log = logging.getLogger("steadytime")


class GcLogWriter:
    """Appends one line per completed collection to *path*."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fh: IO[str] | None = None
        self._started_at = 0.0

    @property
    def installed(self) -> bool:
        return self._fh is not None

    def install(self) -> None:
        """Open the log for appending and register the collection hook."""
        if self._fh is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Line buffered: each collection is on disk before the hook returns.
        self._fh = open(self.path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115
        gc.callbacks.append(self._on_collection)
        log.debug("GC log writer installed: %s", self.path)

    def uninstall(self) -> None:
        """Remove the collection hook and close the log."""
        if self._fh is None:
            return
        if self._on_collection in gc.callbacks:
            gc.callbacks.remove(self._on_collection)
        self._fh.close()
        self._fh = None
        log.debug("GC log writer removed: %s", self.path)

    def _on_collection(self, phase: str, info: dict[str, Any]) -> None:
        if phase == "start":
            self._started_at = time.perf_counter()
            return
        if self._fh is None:
            return
        pause_ms = (time.perf_counter() - self._started_at) * 1000.0
        self._fh.write(
            f"{time.monotonic():.6f} gen={info.get('generation')} "
            f"collected={info.get('collected', 0)} "
            f"uncollectable={info.get('uncollectable', 0)} "
            f"pause_ms={pause_ms:.3f}\n"
        )


# ---------------------------------------------------------------------------
# Process-wide writer
# ---------------------------------------------------------------------------

_active: GcLogWriter | None = None


def enable_gc_log(path: str | Path) -> GcLogWriter:
    """Make sure a writer for *path* is installed.

    Replaces a writer installed for a different path.  Calling it twice
    for the same path is a no-op.
    """
    global _active
    target = Path(path)
    if _active is not None:
        if _active.path == target and _active.installed:
            return _active
        _active.uninstall()
    _active = GcLogWriter(target)
    _active.install()
    return _active


def disable_gc_log() -> None:
    """Remove the active writer, if any."""
    global _active
    if _active is not None:
        _active.uninstall()
        _active = None


def active_gc_log() -> Path | None:
    """Path of the log the active writer appends to."""
    if _active is None or not _active.installed:
        return None
    return _active.path
