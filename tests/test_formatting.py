"""Tests for steadytime.formatting."""

from __future__ import annotations

import unittest

from steadytime.formatting import format_millis, format_sparkline, format_table


class TestFormatMillis(unittest.TestCase):
    def test_nanoseconds(self) -> None:
        self.assertEqual(format_millis(0.0005), "500.00 ns")

    def test_zero(self) -> None:
        self.assertEqual(format_millis(0.0), "0.00 ns")

    def test_microseconds(self) -> None:
        self.assertEqual(format_millis(0.0125), "12.50 µs")

    def test_milliseconds(self) -> None:
        self.assertEqual(format_millis(1.0), "1.00 ms")
        self.assertEqual(format_millis(100.4), "100.40 ms")

    def test_seconds(self) -> None:
        self.assertEqual(format_millis(1000.0), "1.00 s")
        self.assertEqual(format_millis(2500.0), "2.50 s")

    def test_rounding_up_moves_to_next_unit(self) -> None:
        self.assertEqual(format_millis(0.000999996), "1.00 µs")
        self.assertEqual(format_millis(0.999996), "1.00 ms")
        self.assertEqual(format_millis(999.996), "1.00 s")

    def test_largest_value_kept_in_unit(self) -> None:
        self.assertEqual(format_millis(999.99), "999.99 ms")
        self.assertEqual(format_millis(0.5, precision=0), "500 µs")

    def test_precision(self) -> None:
        self.assertEqual(format_millis(1.5, precision=0), "2 ms")

    def test_nan(self) -> None:
        self.assertEqual(format_millis(float("nan")), "N/A")


class TestFormatTable(unittest.TestCase):
    def test_basic(self) -> None:
        text = format_table(["Name", "Count"], [["alpha", "1"], ["b", "200"]])
        lines = text.splitlines()
        self.assertEqual(len(lines), 3)  # header + 2 rows
        self.assertTrue(all(line.startswith("  ") for line in lines))
        self.assertIn("alpha", lines[1])

    def test_right_alignment(self) -> None:
        text = format_table(["n"], [["1"], ["100"]], alignments=["r"], indent=0)
        self.assertEqual(text.splitlines(), ["  n", "  1", "100"])

    def test_short_rows_padded(self) -> None:
        text = format_table(["a", "b"], [["x"]], indent=0)
        self.assertEqual(text.splitlines()[1], "x")

    def test_no_headers(self) -> None:
        self.assertEqual(format_table([], [["x"]]), "")


class TestFormatSparkline(unittest.TestCase):
    def test_rising(self) -> None:
        self.assertEqual(format_sparkline([1.0, 2.0, 3.0]), "▁▄█")

    def test_constant(self) -> None:
        self.assertEqual(format_sparkline([5.0] * 4), "▄▄▄▄")

    def test_empty(self) -> None:
        self.assertEqual(format_sparkline([]), "")

    def test_sampled_to_width(self) -> None:
        self.assertEqual(len(format_sparkline([float(i) for i in range(100)], width=30)), 30)


if __name__ == "__main__":
    unittest.main()
