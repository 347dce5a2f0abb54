"""Latency benchmarks for the Fibonacci engine.

This package provides:
- Adaptive sampling per (index, strategy) cell targeting a stable CV
- Forward/backward reader sweeps over a device session
- SQLite-based session storage and comparison
"""

from __future__ import annotations

from fibengine.benchmark.database import BenchmarkDatabase, Session, SweepResult
from fibengine.benchmark.runner import (
    SweepConfig,
    SweepRunner,
    load_sweep_config,
    read_sweep,
)
from fibengine.benchmark.stats import TimingStats, run_until_stable

__all__ = [
    "BenchmarkDatabase",
    "Session",
    "SweepConfig",
    "SweepResult",
    "SweepRunner",
    "TimingStats",
    "load_sweep_config",
    "read_sweep",
    "run_until_stable",
]
