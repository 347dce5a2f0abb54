"""Integration tests for fibengine.benchmark.runner module."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from fibengine.benchmark.runner import (
    SweepConfig,
    SweepProgress,
    SweepRunner,
    format_timing_table,
    load_sweep_config,
    read_sweep,
    validate_sweep_config,
)
from fibengine.device import FibonacciDevice
from fibengine.dispatcher import Strategy
from fibengine.errors import ConfigError


def quick_config(**overrides: object) -> SweepConfig:
    config = SweepConfig(name="quick", start=0, stop=3, warmup=0, min_runs=2, max_runs=3)
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


class TestLoadSweepConfig:
    """Tests for YAML sweep configuration."""

    def test_sweep_section(self, tmp_path: Path) -> None:
        """Test settings under a sweep key."""
        path = tmp_path / "sweep.yaml"
        path.write_text(
            "engine:\n"
            "  max_length: 100\n"
            "sweep:\n"
            "  name: small\n"
            "  start: 5\n"
            "  stop: 10\n"
            "  strategies: [bignum, fast-doubling-skip]\n"
            "  target_cv: 0.1\n"
        )

        config = load_sweep_config(path)

        assert config.name == "small"
        assert (config.start, config.stop) == (5, 10)
        assert config.strategies == [Strategy.BIGNUM, Strategy.FAST_DOUBLING_CLZ]
        assert config.target_cv == 0.1
        assert config.min_runs == 5

    def test_defaults(self, tmp_path: Path) -> None:
        """Test an empty file gives the driver's defaults."""
        path = tmp_path / "sweep.yaml"
        path.write_text("")

        config = load_sweep_config(path)

        assert (config.start, config.stop) == (0, 93)
        assert config.strategies == [
            Strategy.NATIVE,
            Strategy.FAST_DOUBLING,
            Strategy.FAST_DOUBLING_CLZ,
        ]

    def test_shipped_config(self) -> None:
        """Test the repository's default configuration loads."""
        path = Path(__file__).parents[2] / "benchmarks" / "sweep.yaml"
        assert load_sweep_config(path).stop == 93

    @pytest.mark.parametrize(
        "content",
        [
            "strategies: [native, recursive]\n",
            "strategies: []\n",
            "start: 10\nstop: 2\n",
            "min_runs: 10\nmax_runs: 5\n",
            "sweep: 3\n",
        ],
    )
    def test_invalid(self, tmp_path: Path, content: str) -> None:
        """Test invalid settings raise ConfigError."""
        path = tmp_path / "sweep.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_sweep_config(path)

    def test_stop_beyond_device(self) -> None:
        """Test the range must fit the device's max_length."""
        with pytest.raises(ConfigError):
            validate_sweep_config(quick_config(stop=101), max_length=100)


class TestSweepRunner:
    """Tests for SweepRunner."""

    def test_every_cell_timed(self) -> None:
        """Test one result per index and strategy, in sweep order."""
        lock = threading.Lock()
        runner = SweepRunner(quick_config(), device=FibonacciDevice(lock=lock))

        session = runner.run(description="unit")

        assert session.name == "quick"
        assert session.description == "unit"
        assert len(session.results) == 4 * 3
        assert [(r.index, r.strategy) for r in session.results[:3]] == [
            (0, Strategy.NATIVE),
            (0, Strategy.FAST_DOUBLING),
            (0, Strategy.FAST_DOUBLING_CLZ),
        ]
        assert all(2 <= len(r.stats.samples) <= 3 for r in session.results)
        assert not lock.locked()

    def test_caller_session_left_open(self) -> None:
        """Test a device opened by the caller is still open after the sweep."""
        lock = threading.Lock()
        device = FibonacciDevice(lock=lock)
        device.open()
        try:
            SweepRunner(quick_config(stop=1), device=device).run()

            assert device.is_open
            assert lock.locked()
            assert device.read().text == "1"
        finally:
            device.close()
        assert not lock.locked()

    def test_progress_callback(self) -> None:
        """Test progress is reported before each cell."""
        seen: list[SweepProgress] = []
        runner = SweepRunner(
            quick_config(stop=1, strategies=[Strategy.BIGNUM]),
            device=FibonacciDevice(lock=threading.Lock()),
            progress_callback=seen.append,
        )

        runner.run()

        assert [(p.index, p.cells_completed, p.total_cells) for p in seen] == [
            (0, 0, 2),
            (1, 1, 2),
        ]

    def test_rejects_range_beyond_device(self) -> None:
        """Test the runner refuses indices the device would clamp."""
        runner = SweepRunner(
            quick_config(start=0, stop=150),
            device=FibonacciDevice(lock=threading.Lock()),
        )
        with pytest.raises(ConfigError):
            runner.run()


class TestReadSweep:
    """Tests for read_sweep."""

    def test_forwards_then_backwards(self) -> None:
        """Test the reader visits the range in both directions."""
        with FibonacciDevice(lock=threading.Lock()) as device:
            readings = list(read_sweep(device, 3))

        assert [index for index, _ in readings] == [0, 1, 2, 3, 3, 2, 1, 0]
        assert [r.text for _, r in readings] == ["0", "1", "1", "2", "2", "1", "1", "0"]

    def test_clamped_stop(self) -> None:
        """Test indices past max_length read at the clamp."""
        with FibonacciDevice(max_length=2, lock=threading.Lock()) as device:
            indices = [index for index, _ in read_sweep(device, 3)]

        assert indices == [0, 1, 2, 2, 2, 2, 1, 0]


class TestFormatTimingTable:
    """Tests for format_timing_table."""

    def test_columns_and_rows(self) -> None:
        """Test one column per strategy and one row per index."""
        runner = SweepRunner(
            quick_config(stop=2, strategies=[Strategy.NATIVE, Strategy.BIGNUM]),
            device=FibonacciDevice(lock=threading.Lock()),
        )
        table = format_timing_table(runner.run())
        lines = table.splitlines()

        header = next(line for line in lines if line.startswith("index"))
        assert "native" in header
        assert "bignum" in header
        assert "fast-doubling" not in header
        assert sum(1 for line in lines if line[:1].isdigit()) == 3
