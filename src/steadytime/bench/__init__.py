"""Measurement core for steadytime.

Warm-up, interference detection, adaptive batch sizing, trial series
and robust aggregation for timing short Python callables.
"""
