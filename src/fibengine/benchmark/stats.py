"""Statistics over nanosecond timing samples.

Single measurements of a Fibonacci computation are noisy at nanosecond
resolution, so each (index, strategy) cell is sampled repeatedly:
- Samples are collected until the coefficient of variation drops below a
  target or a run limit is hit
- IQR outliers are reported and excluded from the summary
- A 95% confidence interval is given for the mean
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

# Two-tailed 95% Student t critical values, keyed by sample count
_T_95 = (
    (2, 12.706),
    (3, 4.303),
    (4, 3.182),
    (5, 2.776),
    (6, 2.571),
    (7, 2.447),
    (8, 2.365),
    (9, 2.306),
    (10, 2.262),
    (15, 2.145),
    (20, 2.093),
    (30, 2.045),
    (50, 2.009),
    (100, 1.984),
)
_Z_95 = 1.96

_UNIT_SCALE = {"ns": 1.0, "us": 1e-3, "ms": 1e-6}


@dataclass(frozen=True)
class TimingStats:
    """Summary of repeated duration samples.

    Attributes:
        samples: Raw durations in nanoseconds, in collection order.
        mean: Mean of the retained samples (ns).
        median: Median of the retained samples (ns).
        stddev: Sample standard deviation (ns).
        cv: Coefficient of variation, stddev / mean.
        min: Smallest retained sample (ns).
        max: Largest retained sample (ns).
        iqr: Interquartile range of the retained samples (ns).
        outliers: Samples outside the IQR fences.
        confidence_95: 95% confidence interval for the mean (ns).
        runs_to_stable: Samples taken before the CV target was met.
    """

    samples: tuple[int, ...]
    mean: float
    median: float
    stddev: float
    cv: float
    min: float
    max: float
    iqr: float
    outliers: tuple[int, ...] = field(default_factory=tuple)
    confidence_95: tuple[float, float] = (0.0, 0.0)
    runs_to_stable: int = 0


EMPTY_STATS = TimingStats(
    samples=(), mean=0.0, median=0.0, stddev=0.0, cv=0.0, min=0.0, max=0.0, iqr=0.0
)


def compute_quartiles(data: Sequence[float]) -> tuple[float, float, float]:
    """Return (Q1, median, Q3) using medians of the lower and upper halves.

    Fewer than 4 values give the median for all three.
    """
    ordered = sorted(data)
    n = len(ordered)
    median = statistics.median(ordered)
    if n < 4:
        return median, median, median

    half = n // 2
    lower = ordered[:half]
    upper = ordered[half + n % 2 :]
    return statistics.median(lower), median, statistics.median(upper)


def detect_outliers(data: Sequence[int], factor: float = 1.5) -> list[int]:
    """Samples outside ``[Q1 - factor*IQR, Q3 + factor*IQR]``."""
    if len(data) < 4:
        return []

    q1, _, q3 = compute_quartiles(data)
    spread = factor * (q3 - q1)
    low, high = q1 - spread, q3 + spread
    return [x for x in data if x < low or x > high]


def _t_critical(n: int) -> float:
    for size, t in _T_95:
        if n <= size:
            return t
    return _Z_95


def compute_confidence_interval(data: Sequence[float]) -> tuple[float, float]:
    """95% confidence interval for the mean of ``data``."""
    n = len(data)
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return float(data[0]), float(data[0])

    mean = statistics.mean(data)
    margin = _t_critical(n) * statistics.stdev(data) / math.sqrt(n)
    return mean - margin, mean + margin


def compute_stats(
    samples: Sequence[int], remove_outliers: bool = True, runs_to_stable: int = 0
) -> TimingStats:
    """Summarise duration samples.

    Args:
        samples: Durations in nanoseconds.
        remove_outliers: Exclude IQR outliers from the summary figures.
        runs_to_stable: Recorded as-is in the result.
    """
    if not samples:
        return EMPTY_STATS

    outliers = detect_outliers(samples)
    kept: Sequence[int] = samples
    if remove_outliers and outliers:
        rejected = set(outliers)
        filtered = [s for s in samples if s not in rejected]
        # Need two points for a standard deviation
        if len(filtered) >= 2:
            kept = filtered

    mean = statistics.mean(kept)
    stddev = statistics.stdev(kept) if len(kept) > 1 else 0.0
    q1, median, q3 = compute_quartiles(kept)

    return TimingStats(
        samples=tuple(samples),
        mean=float(mean),
        median=float(median),
        stddev=stddev,
        cv=stddev / mean if mean > 0 else 0.0,
        min=float(min(kept)),
        max=float(max(kept)),
        iqr=float(q3 - q1),
        outliers=tuple(outliers),
        confidence_95=compute_confidence_interval(kept),
        runs_to_stable=runs_to_stable,
    )


def _cv(samples: Sequence[int]) -> float:
    mean = statistics.mean(samples)
    if mean <= 0:
        return 0.0
    return statistics.stdev(samples) / mean


def run_until_stable(
    sampler: Callable[[], int],
    min_runs: int = 5,
    max_runs: int = 50,
    target_cv: float = 0.05,
    warmup: int = 3,
    batch_size: int = 5,
) -> TimingStats:
    """Sample until the coefficient of variation reaches ``target_cv``.

    Warmup samples are taken and discarded first. After ``min_runs``
    samples, batches of ``batch_size`` are added until the CV is at or
    below the target or ``max_runs`` samples exist.

    Args:
        sampler: Returns one duration in nanoseconds per call.
        min_runs: Samples taken before the first CV check.
        max_runs: Hard limit on retained samples.
        target_cv: CV at which sampling stops.
        warmup: Discarded samples taken first.
        batch_size: Samples added per unstable round.
    """
    for _ in range(warmup):
        sampler()

    samples = [sampler() for _ in range(min_runs)]

    while len(samples) < max_runs:
        if len(samples) > 1 and _cv(samples) <= target_cv:
            break
        for _ in range(min(batch_size, max_runs - len(samples))):
            samples.append(sampler())

    return compute_stats(samples, remove_outliers=True, runs_to_stable=len(samples))


def format_stats(stats: TimingStats, unit: str = "ns") -> str:
    """Render a one-line summary, e.g. ``"512.0ns +/- 3.1ns (CV=0.61%, 12 runs)"``.

    Args:
        stats: Summary to render.
        unit: ``"ns"``, ``"us"`` or ``"ms"``.
    """
    scale = _UNIT_SCALE[unit]
    mean = stats.mean * scale
    stddev = stats.stddev * scale
    return (
        f"{mean:.1f}{unit} +/- {stddev:.1f}{unit} "
        f"(CV={stats.cv * 100:.2f}%, {len(stats.samples)} runs)"
    )
