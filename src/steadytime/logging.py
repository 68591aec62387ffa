"""Logging setup for steadytime.

Benchmark narration ("Warming up...", "Batch size 4 selected") is logged
at INFO when a run is verbose and at DEBUG otherwise.  The console
handler prints INFO records as bare lines so narration reads like
progress output, while warnings and errors keep a level prefix.  All
console output goes to stderr, leaving stdout to the report itself.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "steadytime"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_PREFIXED_FORMAT = "%(levelname)s: %(message)s"


class _NarrationFormatter(logging.Formatter):
    """Bare message for INFO, ``LEVEL: message`` for everything else."""

    def __init__(self) -> None:
        super().__init__(_PREFIXED_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return super().format(record)


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the root steadytime logger.

    Args:
        verbose: Show DEBUG records on the console.
        quiet: Show only warnings and errors.  Ignored if *verbose* is True.
        log_file: Also write every record, at DEBUG, to this path.

    Calling it again replaces the handlers from the previous call.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if verbose:
        console_level = logging.DEBUG
    elif quiet:
        console_level = logging.WARNING
    else:
        console_level = logging.INFO

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_NarrationFormatter())
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger ``steadytime.<name>``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
