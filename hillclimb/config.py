"""
Run configuration and project settings for hillclimb.

This module provides:

- ConfigurationError: The one user-facing error class
- RunConfiguration: Immutable, validated parameters of a single run
- find_config_file / deep_merge: Locate and layer `.hillclimb.toml` files
- Settings: Optional defaults for command-line options

Settings are loaded from `.hillclimb.toml` with optional `.hillclimb.local.toml`
overrides from the same directory:

    [run]
    dimensions = 2
    seed = 1234
    quiet = false
    summary = true
    time_limit = 30.0
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hillclimb.benchmarks import BenchmarkFunction

CONFIG_FILENAME = ".hillclimb.toml"
LOCAL_CONFIG_FILENAME = ".hillclimb.local.toml"

MIN_WORKERS = 1
MAX_WORKERS = 8
DEFAULT_DIMENSIONS = 2
NEIGHBORS = 4  # candidates generated per search batch
PERTURBATION_FRACTION = 0.10  # neighbour radius as a fraction of the bound


class ConfigurationError(ValueError):
    """Raised when a run cannot be configured from the given inputs."""

    pass


def _check_worker_count(worker_count: int) -> None:
    if worker_count > MAX_WORKERS:
        raise ConfigurationError("Too many climbers.")
    if worker_count < MIN_WORKERS:
        raise ConfigurationError("Too few climbers.")


@dataclass(frozen=True)
class RunConfiguration:
    """
    Immutable parameters of a run.

    Attributes:
        worker_count: Number of concurrent climbers, 1..8.
        benchmark: The function being minimized.
        dimensions: Length of every position.
        seed: Root seed for the run's random sources (None for time-based).
    """

    worker_count: int
    benchmark: BenchmarkFunction
    dimensions: int = DEFAULT_DIMENSIONS
    seed: int | None = None

    def __post_init__(self) -> None:
        _check_worker_count(self.worker_count)
        if self.dimensions < 1:
            raise ConfigurationError(
                f"Dimensions must be at least 1, got {self.dimensions}."
            )

    @property
    def bound(self) -> float:
        """Half-width of the search domain in every dimension."""
        return self.benchmark.bound

    @property
    def perturbation(self) -> float:
        """Half-width of the neighbour perturbation in every dimension."""
        return self.benchmark.bound * PERTURBATION_FRACTION

    @classmethod
    def create(
        cls,
        worker_count: int,
        function_id: int,
        *,
        dimensions: int = DEFAULT_DIMENSIONS,
        seed: int | None = None,
    ) -> RunConfiguration:
        """
        Validate raw selectors and build a configuration.

        Worker count is checked before the function id, matching the order
        in which the command line is read.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        from hillclimb.benchmarks import get_benchmark

        # get_benchmark runs before __post_init__, so check workers here first
        _check_worker_count(worker_count)

        return cls(
            worker_count=worker_count,
            benchmark=get_benchmark(function_id),
            dimensions=dimensions,
            seed=seed,
        )


# ---------------------------------------------------------------------------
# Project settings
# ---------------------------------------------------------------------------


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """
    Walk up from *start_dir* to find `.hillclimb.toml`.

    Args:
        start_dir: Directory to start searching from. Defaults to ``Path.cwd()``.

    Returns:
        Path to the config file, or ``None`` if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts. *override* wins for leaf values.

    Neither input is mutated; a new dict is returned.
    """
    merged: dict[str, Any] = {}

    for key in base.keys() | override.keys():
        if key in base and key in override:
            base_val = base[key]
            over_val = override[key]
            if isinstance(base_val, dict) and isinstance(over_val, dict):
                merged[key] = deep_merge(base_val, over_val)
            else:
                merged[key] = over_val
        elif key in base:
            merged[key] = base[key]
        else:
            merged[key] = override[key]

    return merged


@dataclass(frozen=True)
class Settings:
    """
    Defaults for command-line options, read from the ``[run]`` table.

    Attributes:
        dimensions: Position length.
        seed: Fixed root seed, or None for a time-based seed.
        quiet: Suppress per-improvement output.
        summary: Print a per-climber summary table after the run.
        time_limit: Stop automatically after this many seconds.
        source: File the settings were loaded from, if any.
    """

    dimensions: int = DEFAULT_DIMENSIONS
    seed: int | None = None
    quiet: bool = False
    summary: bool = False
    time_limit: float | None = None
    source: Path | None = None

    @classmethod
    def load(cls, start_dir: Path | None = None) -> Settings:
        """
        Find and load settings, falling back to defaults when no file exists.

        Args:
            start_dir: Directory to start searching from.

        Raises:
            ConfigurationError: If a file exists but cannot be parsed.
        """
        config_path = find_config_file(start_dir)
        if config_path is None:
            return cls()

        data = _read_toml(config_path)

        local_path = config_path.parent / LOCAL_CONFIG_FILENAME
        if local_path.is_file():
            data = deep_merge(data, _read_toml(local_path))

        return cls.from_dict(data, source=config_path)

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> Settings:
        """
        Create settings from a parsed TOML dict.

        Unknown keys in ``[run]`` are rejected so typos do not pass silently.
        """
        run = data.get("run", {})
        if not isinstance(run, dict):
            raise ConfigurationError("The [run] setting must be a table")
        unknown = sorted(set(run) - _RUN_SETTING_TYPES.keys())
        if unknown:
            raise ConfigurationError(
                f"Unknown [run] settings: {', '.join(unknown)}"
            )

        for key, value in run.items():
            expected = _RUN_SETTING_TYPES[key]
            # bool is an int subclass; only the bool settings accept it
            if not isinstance(value, expected) or (
                isinstance(value, bool) and bool not in expected
            ):
                raise _invalid_setting(key, value, expected)

        time_limit = run.get("time_limit")
        return cls(
            dimensions=run.get("dimensions", DEFAULT_DIMENSIONS),
            seed=run.get("seed"),
            quiet=run.get("quiet", False),
            summary=run.get("summary", False),
            time_limit=float(time_limit) if time_limit is not None else None,
            source=source,
        )


_RUN_SETTING_TYPES: dict[str, tuple[type, ...]] = {
    "dimensions": (int,),
    "seed": (int,),
    "quiet": (bool,),
    "summary": (bool,),
    "time_limit": (int, float),
}


def _invalid_setting(
    key: str, value: Any, expected: tuple[type, ...]
) -> ConfigurationError:
    names = " or ".join(t.__name__ for t in expected)
    return ConfigurationError(
        f"Invalid [run] setting {key!r}: expected {names}, got {value!r}"
    )


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e
