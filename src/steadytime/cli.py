"""Command-line interface for steadytime.

Subcommands:
    steadytime run      Benchmark a callable
    steadytime probe    Show the interference sources of this interpreter
    steadytime memory   Measure the memory one call allocates
"""

from __future__ import annotations

import contextlib
import importlib
import sys
import warnings
from pathlib import Path
from typing import Any, Callable, Iterator

import click

from steadytime import __version__
from steadytime.logging import get_logger, setup_logging

log = get_logger("cli")


def load_payload(target: str, paths: tuple[str, ...] = ()) -> Callable[[], Any]:
    """Import a zero-argument callable from a ``module:attribute`` target.

    Args:
        target: ``package.module:function`` (dotted attributes allowed
            after the colon).
        paths: Directories prepended to ``sys.path`` before importing.

    Raises:
        click.BadParameter: If the target is malformed, missing, or
            not callable.
    """
    if ":" not in target:
        raise click.BadParameter(f"Expected 'module:callable', got '{target}'.", param_hint="TARGET")
    module_name, _, attr_path = target.partition(":")
    if not module_name or not attr_path:
        raise click.BadParameter(f"Expected 'module:callable', got '{target}'.", param_hint="TARGET")

    for p in reversed(paths):
        if p not in sys.path:
            sys.path.insert(0, p)

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(
            f"Cannot import '{module_name}': {exc}", param_hint="TARGET"
        ) from exc
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise click.BadParameter(
                f"'{module_name}' has no attribute '{attr_path}'.", param_hint="TARGET"
            ) from exc
    if not callable(obj):
        raise click.BadParameter(f"'{target}' is not callable.", param_hint="TARGET")
    return obj  # type: ignore[no-any-return]


@contextlib.contextmanager
def configuration_warnings_logged() -> Iterator[None]:
    """Print ConfigurationWarning once, through the console log handler.

    Other warnings are shown the usual way.
    """
    from steadytime.bench.errors import ConfigurationWarning

    show = warnings.showwarning

    def relay(message, category, filename, lineno, file=None, line=None):  # type: ignore[no-untyped-def]
        if issubclass(category, ConfigurationWarning):
            log.warning("%s", message)
        else:
            show(message, category, filename, lineno, file, line)

    with warnings.catch_warnings():
        warnings.simplefilter("always", ConfigurationWarning)
        warnings.showwarning = relay
        yield


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """steadytime: GC-aware statistical microbenchmarks for Python callables."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("target")
@click.option(
    "--path",
    "paths",
    type=click.Path(exists=True, file_okay=False),
    multiple=True,
    help="Directory to prepend to sys.path (repeatable).",
)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML profile with benchmark options.",
)
@click.option("--trials", type=int, default=None, help="Clean trials to collect (default: 30).")
@click.option("--quick", is_flag=True, default=False, help="Quick mode: 7 trials.")
@click.option(
    "--min-time",
    "min_time_ms",
    type=float,
    default=None,
    help="Minimum execution time per timed batch, in ms (default: 300).",
)
@click.option(
    "--warmup-seconds",
    type=float,
    default=None,
    help="Minimum warm-up time in seconds (default: 10).",
)
@click.option(
    "--overhead", is_flag=True, default=False, help="Also estimate the timing overhead."
)
@click.option(
    "--gc-log",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="GC log to write and watch (default: from -X gclog= or STEADYTIME_GC_LOG).",
)
@click.option("--json", "as_json", is_flag=True, help="Print the structured result as JSON.")
@click.option("--show-trials", is_flag=True, help="Also list every clean trial.")
@click.option("-v", "--verbose", is_flag=True, help="Narrate each stage.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def run(  # noqa: PLR0913
    target: str,
    paths: tuple[str, ...],
    profile_path: Path | None,
    trials: int | None,
    quick: bool,
    min_time_ms: float | None,
    warmup_seconds: float | None,
    overhead: bool,
    gc_log: Path | None,
    as_json: bool,
    show_trials: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark the zero-argument callable TARGET.

    TARGET is given as ``module:callable``.

    \b
    Examples:
        # Default run: 30 clean trials, 300ms per timed batch
        steadytime run mypkg.hot:parse_header

        # Quick structured run with a GC log
        python -X gclog=gc.out -m steadytime run mypkg.hot:parse_header --quick --json
    """
    from steadytime.bench.config import ReportingMode, config_from_profile, load_profile
    from steadytime.bench.display import format_report, format_trials
    from steadytime.bench.errors import BenchmarkError
    from steadytime.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    payload = load_payload(target, paths)
    cli_overrides: dict[str, Any] = {
        "target_trial_count": trials,
        "min_execution_time_ms": min_time_ms,
        "warmup_seconds": warmup_seconds,
        "calc_timing_overhead": overhead or None,
        "gc_log": gc_log,
        "verbose": verbose or None,
        "reporting_mode": ReportingMode.STRUCTURED if as_json else None,
    }
    try:
        profile_data = load_profile(profile_path) if profile_path else {}
        config = config_from_profile(profile_data, cli_overrides=cli_overrides, quick=quick)
        with configuration_warnings_logged():
            result = BenchRunner(payload, config).run()
    except (BenchmarkError, ValueError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if config.reporting_mode is ReportingMode.STRUCTURED:
        click.echo(result.to_json())
        return
    if show_trials:
        click.echo(format_trials(result))
        click.echo()
    click.echo(format_report(result))


# ---------------------------------------------------------------------------
# probe
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--gc-log",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="GC log to write and watch.",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def probe(gc_log: Path | None, as_json: bool) -> None:
    """Show the interference sources available to this interpreter."""
    import json

    from steadytime.bench.display import format_snapshot
    from steadytime.bench.errors import ConfigurationWarning
    from steadytime.bench.signals import RuntimeSignalProbe

    # The missing-GC-log warning is part of the output below.
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConfigurationWarning)
            signal_probe = RuntimeSignalProbe.from_runtime(gc_log)
    except OSError as exc:
        click.echo(f"Error: cannot open GC log: {exc}", err=True)
        raise SystemExit(1) from exc
    snapshot = signal_probe.snapshot()

    if as_json:
        data = snapshot.to_dict()
        data["gc_log"] = str(signal_probe.gc_log) if signal_probe.gc_log else None
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(format_snapshot(snapshot, signal_probe.gc_log))


# ---------------------------------------------------------------------------
# memory
# ---------------------------------------------------------------------------


@main.command()
@click.argument("target")
@click.option(
    "--path",
    "paths",
    type=click.Path(exists=True, file_okay=False),
    multiple=True,
    help="Directory to prepend to sys.path (repeatable).",
)
def memory(target: str, paths: tuple[str, ...]) -> None:
    """Measure the memory one call of TARGET allocates."""
    from steadytime.bench.display import format_memory
    from steadytime.bench.signals import measure_memory_usage

    payload = load_payload(target, paths)
    log.debug("Measuring memory usage of %s", target)
    click.echo(format_memory(measure_memory_usage(payload)))


if __name__ == "__main__":
    main()
