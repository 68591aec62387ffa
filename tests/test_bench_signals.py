"""Tests for steadytime.bench.signals and steadytime.bench.gclog."""

from __future__ import annotations

import gc
import sys
import tempfile
import types
import unittest
import warnings
from pathlib import Path

from steadytime.bench.errors import ConfigurationWarning
from steadytime.bench.gclog import active_gc_log, disable_gc_log, enable_gc_log
from steadytime.bench.signals import (
    InterferenceKind,
    InterferenceSnapshot,
    MemoryUsage,
    RuntimeSignalProbe,
    SignalProbe,
    discover_gc_log_path,
    measure_memory_usage,
    request_gc,
)


def _quiet_probe(gc_log: Path | None = None) -> RuntimeSignalProbe:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConfigurationWarning)
        return RuntimeSignalProbe(gc_log)


# ---------------------------------------------------------------------------
# Snapshot and interface
# ---------------------------------------------------------------------------


class TestInterferenceSnapshot(unittest.TestCase):
    def test_marker_by_kind(self) -> None:
        snap = InterferenceSnapshot(gc_marker=1, compile_marker=2, class_load_marker=3)
        self.assertEqual(snap.marker(InterferenceKind.GC), 1)
        self.assertEqual(snap.marker(InterferenceKind.COMPILATION), 2)
        self.assertEqual(snap.marker(InterferenceKind.CLASS_LOADING), 3)

    def test_to_dict(self) -> None:
        snap = InterferenceSnapshot(gc_marker=None, compile_marker=0, class_load_marker=5)
        self.assertEqual(
            snap.to_dict(),
            {"gc_marker": None, "compile_marker": 0, "class_load_marker": 5},
        )


class TestOccurred(unittest.TestCase):
    def setUp(self) -> None:
        self.probe = SignalProbe()

    def test_changed_marker_occurred(self) -> None:
        before = InterferenceSnapshot(1, 1, 1)
        after = InterferenceSnapshot(2, 1, 1)
        self.assertTrue(self.probe.occurred(before, after, InterferenceKind.GC))
        self.assertFalse(self.probe.occurred(before, after, InterferenceKind.COMPILATION))
        self.assertFalse(self.probe.occurred(before, after, InterferenceKind.CLASS_LOADING))

    def test_unknown_never_occurs(self) -> None:
        before = InterferenceSnapshot(None, 1, 1)
        after = InterferenceSnapshot(None, 1, 1)
        self.assertFalse(self.probe.occurred(before, after, InterferenceKind.GC))

    def test_base_snapshot_not_implemented(self) -> None:
        with self.assertRaises(NotImplementedError):
            self.probe.snapshot()


# ---------------------------------------------------------------------------
# RuntimeSignalProbe
# ---------------------------------------------------------------------------


class TestRuntimeSignalProbe(unittest.TestCase):
    def tearDown(self) -> None:
        disable_gc_log()

    def test_missing_gc_log_warns_and_degrades(self) -> None:
        with self.assertWarns(ConfigurationWarning):
            probe = RuntimeSignalProbe(None)
        self.assertFalse(probe.gc_detection_enabled)
        self.assertIsNone(probe.snapshot().gc_marker)

    def test_missing_gc_log_warning_not_also_logged(self) -> None:
        with self.assertNoLogs("steadytime", level="WARNING"):
            with self.assertWarns(ConfigurationWarning):
                RuntimeSignalProbe(None)

    def test_gc_marker_is_log_size(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "gc.out"
            probe = _quiet_probe(log_path)
            self.assertEqual(probe.snapshot().gc_marker, 0)
            log_path.write_text("0.1 gen=0\n")
            self.assertEqual(probe.snapshot().gc_marker, len("0.1 gen=0\n"))

    def test_compile_marker_counts_compiles(self) -> None:
        probe = _quiet_probe()
        before = probe.snapshot()
        compile("1 + 1", "<steadytime-test>", "eval")
        after = probe.snapshot()
        self.assertTrue(probe.occurred(before, after, InterferenceKind.COMPILATION))

    def test_class_load_marker_tracks_modules(self) -> None:
        probe = _quiet_probe()
        before = probe.snapshot()
        name = "_steadytime_fake_module"
        sys.modules[name] = types.ModuleType(name)
        try:
            after = probe.snapshot()
        finally:
            del sys.modules[name]
        self.assertTrue(probe.occurred(before, after, InterferenceKind.CLASS_LOADING))

    def test_quiet_interval_is_clean(self) -> None:
        probe = _quiet_probe()
        before = probe.snapshot()
        sum(range(100))
        after = probe.snapshot()
        for kind in InterferenceKind:
            self.assertFalse(probe.occurred(before, after, kind))

    def test_from_runtime_detects_collection(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "gc.out"
            probe = RuntimeSignalProbe.from_runtime(log_path)
            self.assertEqual(active_gc_log(), log_path)
            before = probe.snapshot()
            gc.collect()
            after = probe.snapshot()
            self.assertTrue(probe.occurred(before, after, InterferenceKind.GC))
            disable_gc_log()


class TestDiscoverGcLogPath(unittest.TestCase):
    def test_separate_x_flag(self) -> None:
        path = discover_gc_log_path(["python", "-X", "gclog=gc.out", "bench.py"], {}, {})
        self.assertEqual(path, Path("gc.out"))

    def test_joined_x_flag(self) -> None:
        path = discover_gc_log_path(["python", "-Xgclog=/tmp/gc.log"], {}, {})
        self.assertEqual(path, Path("/tmp/gc.log"))

    def test_xoptions(self) -> None:
        path = discover_gc_log_path([], {"gclog": "from-xoptions.log"}, {})
        self.assertEqual(path, Path("from-xoptions.log"))

    def test_valueless_xoption_ignored(self) -> None:
        self.assertIsNone(discover_gc_log_path([], {"gclog": True}, {}))

    def test_environment(self) -> None:
        path = discover_gc_log_path([], {}, {"STEADYTIME_GC_LOG": "env.log"})
        self.assertEqual(path, Path("env.log"))

    def test_command_line_wins(self) -> None:
        path = discover_gc_log_path(
            ["python", "-X", "gclog=argv.log"],
            {"gclog": "x.log"},
            {"STEADYTIME_GC_LOG": "env.log"},
        )
        self.assertEqual(path, Path("argv.log"))

    def test_script_arguments_ignored(self) -> None:
        argv = ["python", "app.py", "-X", "gclog=foo"]
        self.assertIsNone(discover_gc_log_path(argv, {}, {}))

    def test_module_arguments_ignored(self) -> None:
        argv = ["python", "-m", "steadytime", "-X", "gclog=x.log"]
        self.assertIsNone(discover_gc_log_path(argv, {}, {}))

    def test_command_arguments_ignored(self) -> None:
        argv = ["python", "-c", "pass", "-Xgclog=x.log"]
        self.assertIsNone(discover_gc_log_path(argv, {}, {}))

    def test_flag_before_module(self) -> None:
        argv = ["python", "-W", "ignore", "-X", "gclog=a.log", "-m", "steadytime", "run"]
        self.assertEqual(discover_gc_log_path(argv, {}, {}), Path("a.log"))

    def test_script_arguments_fall_back_to_environment(self) -> None:
        argv = ["python", "bench.py", "-Xgclog=argv.log"]
        path = discover_gc_log_path(argv, {}, {"STEADYTIME_GC_LOG": "env.log"})
        self.assertEqual(path, Path("env.log"))

    def test_not_configured(self) -> None:
        self.assertIsNone(discover_gc_log_path(["python", "-X", "dev"], {"dev": True}, {}))


# ---------------------------------------------------------------------------
# GC log writer
# ---------------------------------------------------------------------------


class TestGcLog(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.log_path = Path(self._tmpdir.name) / "gc.out"

    def tearDown(self) -> None:
        disable_gc_log()
        self._tmpdir.cleanup()

    def test_collection_appends_line(self) -> None:
        enable_gc_log(self.log_path)
        gc.collect()
        content = self.log_path.read_text()
        self.assertIn("gen=2", content)
        self.assertIn("pause_ms=", content)

    def test_enable_same_path_is_idempotent(self) -> None:
        first = enable_gc_log(self.log_path)
        second = enable_gc_log(self.log_path)
        self.assertIs(first, second)
        self.assertEqual(gc.callbacks.count(first._on_collection), 1)

    def test_enable_other_path_replaces_writer(self) -> None:
        first = enable_gc_log(self.log_path)
        other = Path(self._tmpdir.name) / "other.out"
        enable_gc_log(other)
        self.assertFalse(first.installed)
        self.assertEqual(active_gc_log(), other)

    def test_disable_stops_logging(self) -> None:
        enable_gc_log(self.log_path)
        disable_gc_log()
        self.assertIsNone(active_gc_log())
        size = self.log_path.stat().st_size
        gc.collect()
        self.assertEqual(self.log_path.stat().st_size, size)


# ---------------------------------------------------------------------------
# Forced collection and memory
# ---------------------------------------------------------------------------


class TestRequestGc(unittest.TestCase):
    def test_bounded_attempts(self) -> None:
        passes = request_gc(3)
        self.assertGreaterEqual(passes, 1)
        self.assertLessEqual(passes, 3)

    def test_collects_cycles(self) -> None:
        class Node:
            pass

        a, b = Node(), Node()
        a.other, b.other = b, a  # type: ignore[attr-defined]
        del a, b
        self.assertGreaterEqual(request_gc(5), 1)


class TestMeasureMemoryUsage(unittest.TestCase):
    def test_retained_allocation(self) -> None:
        usage = measure_memory_usage(lambda: bytearray(5 * 1024 * 1024))
        self.assertIsInstance(usage, MemoryUsage)
        self.assertGreater(usage.retained_mb, 4.5)
        self.assertGreaterEqual(usage.peak_mb, usage.retained_mb)

    def test_temporary_allocation_peaks_only(self) -> None:
        def temporary() -> int:
            return len(bytearray(4 * 1024 * 1024))

        usage = measure_memory_usage(temporary)
        self.assertGreater(usage.peak_mb, 3.5)
        self.assertLess(usage.retained_mb, 1.0)


if __name__ == "__main__":
    unittest.main()
