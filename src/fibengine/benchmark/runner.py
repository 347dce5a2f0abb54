"""Timing sweeps over Fibonacci indices and strategies.

A sweep opens a device session, walks the configured index range and, at
each index, samples every configured strategy until its timings settle.
The reader sweep walks the range forwards and back, reading values.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import yaml

from fibengine.benchmark.database import Session, SweepResult
from fibengine.benchmark.stats import run_until_stable
from fibengine.device import DeviceReading, FibonacciDevice
from fibengine.dispatcher import Strategy
from fibengine.errors import ConfigError, UnknownStrategyError

logger = logging.getLogger(__name__)

DEFAULT_STRATEGIES = (
    Strategy.NATIVE,
    Strategy.FAST_DOUBLING,
    Strategy.FAST_DOUBLING_CLZ,
)


@dataclass
class SweepConfig:
    """Configuration for a timing sweep.

    Attributes:
        name: Sweep identifier, stored with saved sessions.
        start: First index timed.
        stop: Last index timed (inclusive).
        strategies: Strategies timed at each index, in column order.
        warmup: Discarded samples per cell.
        min_runs: Samples per cell before checking stability.
        max_runs: Hard limit on samples per cell.
        target_cv: Coefficient of variation at which sampling stops.
    """

    name: str = "fibonacci"
    start: int = 0
    stop: int = 93
    strategies: list[Strategy] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    warmup: int = 3
    min_runs: int = 5
    max_runs: int = 50
    target_cv: float = 0.05


@dataclass
class SweepProgress:
    """Progress callback information.

    Attributes:
        index: Index being timed.
        strategy: Strategy being timed.
        cells_completed: Cells finished so far.
        total_cells: Cells in the whole sweep.
    """

    index: int
    strategy: Strategy
    cells_completed: int
    total_cells: int


ProgressCallback = Callable[[SweepProgress], None]


def _parse_strategies(names: object) -> list[Strategy]:
    if not isinstance(names, list) or not names:
        raise ConfigError(f"strategies must be a non-empty list, got {names!r}")
    try:
        return [Strategy.from_name(str(name)) for name in names]
    except UnknownStrategyError as e:
        raise ConfigError(str(e)) from e


def load_sweep_config(config_path: Path | str) -> SweepConfig:
    """Load a sweep configuration from YAML.

    The settings may sit at top level or under a ``sweep`` key, so one file
    can also carry an ``engine`` section.

    Raises:
        ConfigError: If the file is unreadable or holds invalid values.
    """
    path = Path(config_path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot load {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    section = data.get("sweep", data)
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'sweep' must be a mapping")

    defaults = SweepConfig()
    strategies = defaults.strategies
    if "strategies" in section:
        strategies = _parse_strategies(section["strategies"])

    config = SweepConfig(
        name=section.get("name", defaults.name),
        start=section.get("start", defaults.start),
        stop=section.get("stop", defaults.stop),
        strategies=strategies,
        warmup=section.get("warmup", defaults.warmup),
        min_runs=section.get("min_runs", defaults.min_runs),
        max_runs=section.get("max_runs", defaults.max_runs),
        target_cv=section.get("target_cv", defaults.target_cv),
    )
    validate_sweep_config(config)
    return config


def validate_sweep_config(config: SweepConfig, max_length: int | None = None) -> None:
    """Reject ranges and run counts the runner cannot honour.

    Args:
        config: Configuration to check.
        max_length: Device index limit; ``stop`` must not exceed it.

    Raises:
        ConfigError: On the first invalid setting found.
    """
    if config.start < 0 or config.stop < config.start:
        raise ConfigError(f"invalid index range {config.start}..{config.stop}")
    if max_length is not None and config.stop > max_length:
        raise ConfigError(f"stop {config.stop} exceeds device max_length {max_length}")
    if config.min_runs < 1 or config.max_runs < config.min_runs:
        raise ConfigError(
            f"invalid run counts min_runs={config.min_runs} max_runs={config.max_runs}"
        )
    if config.warmup < 0:
        raise ConfigError(f"warmup must be non-negative, got {config.warmup}")


@dataclass
class SweepRunner:
    """Runs a timing sweep against a device session.

    Attributes:
        config: Sweep configuration.
        device: Session to drive; a default one is created if omitted.
            A session that is already open stays open after the sweep;
            one the runner opened itself is closed when the sweep ends.
        progress_callback: Optional callback invoked before each cell.
    """

    config: SweepConfig
    device: FibonacciDevice | None = None
    progress_callback: ProgressCallback | None = None

    def run(self, description: str | None = None) -> Session:
        """Time every configured strategy at every index in range.

        Raises:
            ConfigError: If the range exceeds the device's max_length.
            DeviceBusyError: If another session holds the device.
        """
        device = self.device or FibonacciDevice()
        validate_sweep_config(self.config, device.max_length)

        indices = range(self.config.start, self.config.stop + 1)
        total = len(indices) * len(self.config.strategies)
        results: list[SweepResult] = []

        logger.info(
            "Sweep %r: indices %d..%d, strategies %s",
            self.config.name,
            self.config.start,
            self.config.stop,
            ", ".join(s.label for s in self.config.strategies),
        )

        opened_here = not device.is_open
        device.open()
        try:
            for index in indices:
                device.seek(index)
                for strategy in self.config.strategies:
                    if self.progress_callback:
                        self.progress_callback(
                            SweepProgress(
                                index=index,
                                strategy=strategy,
                                cells_completed=len(results),
                                total_cells=total,
                            )
                        )
                    stats = run_until_stable(
                        functools.partial(device.write, strategy),
                        min_runs=self.config.min_runs,
                        max_runs=self.config.max_runs,
                        target_cv=self.config.target_cv,
                        warmup=self.config.warmup,
                    )
                    results.append(SweepResult(index=index, strategy=strategy, stats=stats))
        finally:
            if opened_here:
                device.close()

        return Session(
            timestamp=datetime.now(),
            name=self.config.name,
            description=description,
            git_commit=None,
            results=results,
        )


def read_sweep(device: FibonacciDevice, stop: int) -> Iterator[tuple[int, DeviceReading]]:
    """Read indices ``0..stop`` forwards, then ``stop..0`` backwards.

    The device must already be open. Positions are clamped by ``seek``, so
    the yielded index is the position actually read.
    """
    order = [*range(stop + 1), *range(stop, -1, -1)]
    for offset in order:
        index = device.seek(offset)
        yield index, device.read()


def format_timing_table(session: Session) -> str:
    """Render mean durations as ``index t1 t2 ...`` rows.

    Columns follow the strategy order of the first index in the session;
    missing cells print as ``-``.
    """
    rows: dict[int, dict[Strategy, float]] = {}
    columns: list[Strategy] = []
    for result in session.results:
        rows.setdefault(result.index, {})[result.strategy] = result.stats.mean
        if result.strategy not in columns:
            columns.append(result.strategy)

    width = 10 + 20 * len(columns)
    lines = ["=" * width, f"TIMINGS: {session.name} (mean ns)", "=" * width]

    header = f"{'index':<10}" + "".join(f"{s.label:>20}" for s in columns)
    lines.append(header)
    lines.append("-" * width)

    for index in sorted(rows):
        row = f"{index:<10}"
        for strategy in columns:
            mean = rows[index].get(strategy)
            row += f"{'-':>20}" if mean is None else f"{mean:>20.0f}"
        lines.append(row)

    return "\n".join(lines)
