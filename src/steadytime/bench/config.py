"""Benchmark configuration.

Handles:
- The immutable :class:`BenchConfig` built once per invocation.
- Merging keyword options over the defaults.
- Loading option sets from YAML profiles, with CLI values winning.
- Validating the final configuration before execution.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

log = logging.getLogger("steadytime")

DEFAULT_TRIAL_COUNT = 30
QUICK_TRIAL_COUNT = 7


class ReportingMode(enum.Enum):
    """How a finished benchmark is reported."""

    HUMAN = "human"
    STRUCTURED = "structured"


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchConfig:
    """Resolved configuration for one benchmark invocation."""

    # Reporting
    target_trial_count: int = DEFAULT_TRIAL_COUNT
    min_execution_time_ms: float = 300.0
    reporting_mode: ReportingMode = ReportingMode.HUMAN
    verbose: bool = False
    calc_timing_overhead: bool = False

    # Failure budgets (per interference kind)
    gc_failure_budget: int = 10
    compilation_failure_budget: int = 10
    class_loading_failure_budget: int = 5

    # Warm-up floors; both must be met
    warmup_iterations: int = 10
    warmup_seconds: float = 10.0

    # Trial protocol
    settle_seconds: float = 0.3
    gc_attempts: int = 5
    probe_trial_count: int = 3
    min_duration_floor_ms: float = 1e-6
    min_execution_fraction: float = 0.75

    # Interference source; None means discover from startup flags
    gc_log: Path | None = None

    @property
    def narration_level(self) -> int:
        """Log level for progress narration."""
        return logging.INFO if self.verbose else logging.DEBUG

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d = dataclasses.asdict(self)
        d["reporting_mode"] = self.reporting_mode.value
        d["gc_log"] = str(self.gc_log) if self.gc_log is not None else None
        return d


_FIELD_NAMES = frozenset(f.name for f in dataclasses.fields(BenchConfig))


def config_from_options(*, quick: bool = False, **options: Any) -> BenchConfig:
    """Merge keyword options over the defaults.

    Args:
        quick: Use the quick trial count unless ``target_trial_count``
            is given explicitly.
        **options: BenchConfig field values.  ``None`` values are
            ignored so callers can pass unset CLI options straight
            through.  ``reporting_mode`` may be a string.

    Raises:
        ValueError: On an unknown option name or reporting mode.
    """
    unknown = sorted(set(options) - _FIELD_NAMES)
    if unknown:
        raise ValueError(f"Unknown benchmark option(s): {', '.join(unknown)}")

    values = {k: v for k, v in options.items() if v is not None}
    if quick and "target_trial_count" not in values:
        values["target_trial_count"] = QUICK_TRIAL_COUNT
    if isinstance(values.get("reporting_mode"), str):
        values["reporting_mode"] = ReportingMode(values["reporting_mode"])
    if values.get("gc_log") is not None:
        values["gc_log"] = Path(values["gc_log"])
    return BenchConfig(**values)


def quick_config(config: BenchConfig) -> BenchConfig:
    """Return a copy of *config* using the quick trial count."""
    return dataclasses.replace(config, target_trial_count=QUICK_TRIAL_COUNT)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    for name in ("target_trial_count", "probe_trial_count", "warmup_iterations", "gc_attempts"):
        value = getattr(config, name)
        if value < 1:
            errors.append(ValidationError(field=name, message=f"Must be at least 1 (got {value})."))

    for name in ("gc_failure_budget", "compilation_failure_budget", "class_loading_failure_budget"):
        value = getattr(config, name)
        if value < 1:
            errors.append(
                ValidationError(
                    field=name,
                    message=f"Failure budget must be at least 1 (got {value}).",
                )
            )

    if config.min_execution_time_ms <= 0:
        errors.append(
            ValidationError(
                field="min_execution_time_ms",
                message=(
                    f"Minimum execution time must be positive (got {config.min_execution_time_ms})."
                ),
            )
        )

    if config.min_duration_floor_ms <= 0:
        errors.append(
            ValidationError(
                field="min_duration_floor_ms",
                message=f"Duration floor must be positive (got {config.min_duration_floor_ms}).",
            )
        )

    if not 0 < config.min_execution_fraction <= 1:
        errors.append(
            ValidationError(
                field="min_execution_fraction",
                message=(
                    f"Minimum execution fraction must be in (0, 1] "
                    f"(got {config.min_execution_fraction})."
                ),
            )
        )

    for name in ("warmup_seconds", "settle_seconds"):
        value = getattr(config, name)
        if value < 0:
            errors.append(ValidationError(field=name, message=f"Cannot be negative (got {value})."))

    if config.settle_seconds == 0:
        errors.append(
            ValidationError(
                field="settle_seconds",
                message=(
                    "No settling pause: late interference signals may be "
                    "attributed to the wrong trial."
                ),
                severity="warning",
            )
        )

    if config.target_trial_count < 3:
        errors.append(
            ValidationError(
                field="target_trial_count",
                message=(
                    f"Fewer than 3 trials (got {config.target_trial_count}); "
                    f"median and MAD will be unstable."
                ),
                severity="warning",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load benchmark options from a YAML file.

    Profile format::

        target_trial_count: 30
        min_execution_time_ms: 500
        calc_timing_overhead: true
        gc_failure_budget: 20
        warmup_seconds: 5

    Keys are BenchConfig field names.

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")
    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
    quick: bool = False,
) -> BenchConfig:
    """Build a BenchConfig from a parsed profile.

    CLI overrides that are not ``None`` take precedence over profile
    values.
    """
    merged = dict(profile_data)
    for key, value in (cli_overrides or {}).items():
        if value is not None:
            merged[key] = value
    return config_from_options(quick=quick, **merged)
