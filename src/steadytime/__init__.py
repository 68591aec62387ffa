"""steadytime: GC-aware statistical microbenchmarks for Python callables."""

__version__ = "0.1.0"

from steadytime.bench.runner import bench  # noqa: E402

__all__ = ["__version__", "bench"]
