"""Unit tests for fibengine.benchmark.stats module."""

from __future__ import annotations

import dataclasses

import pytest

from fibengine.benchmark.stats import (
    EMPTY_STATS,
    TimingStats,
    compute_confidence_interval,
    compute_quartiles,
    compute_stats,
    detect_outliers,
    format_stats,
    run_until_stable,
)


def make_stats(**overrides: object) -> TimingStats:
    values: dict[str, object] = {
        "samples": (485, 490, 480),
        "mean": 485.0,
        "median": 485.0,
        "stddev": 5.0,
        "cv": 0.0103,
        "min": 480.0,
        "max": 490.0,
        "iqr": 5.0,
        "confidence_95": (480.0, 490.0),
        "runs_to_stable": 3,
    }
    values.update(overrides)
    return TimingStats(**values)  # type: ignore[arg-type]


class TestComputeQuartiles:
    """Tests for compute_quartiles function."""

    def test_even_length(self) -> None:
        """Test quartiles of an even-length sample."""
        assert compute_quartiles([100, 200, 300, 400, 500, 600, 700, 800]) == (
            250,
            450,
            650,
        )

    def test_odd_length(self) -> None:
        """Test the median is excluded from both halves."""
        assert compute_quartiles([700, 100, 300, 200, 600, 400, 500]) == (200, 400, 600)

    def test_small_sample(self) -> None:
        """Test fewer than 4 samples collapse to the median."""
        assert compute_quartiles([10, 20, 30]) == (20, 20, 20)


class TestDetectOutliers:
    """Tests for detect_outliers function."""

    def test_no_outliers(self) -> None:
        """Test a tight cluster has no outliers."""
        assert detect_outliers([1000, 1010, 1005, 1002, 1008, 1011, 1003]) == []

    def test_both_tails(self) -> None:
        """Test outliers on both sides are found."""
        outliers = detect_outliers([1000, 1100, 1050, 1020, 1080, 100, 10_000])
        assert sorted(outliers) == [100, 10_000]

    def test_small_sample(self) -> None:
        """Test too few samples yields nothing."""
        assert detect_outliers([1, 2, 1000]) == []

    def test_factor(self) -> None:
        """Test a smaller factor flags at least as many values."""
        data = [1000, 1100, 1050, 1020, 1080, 1500]
        assert len(detect_outliers(data, factor=0.5)) >= len(detect_outliers(data))


class TestComputeConfidenceInterval:
    """Tests for compute_confidence_interval function."""

    def test_brackets_mean(self) -> None:
        """Test the interval contains the mean."""
        data = [1000, 1050, 950, 1020, 980]
        lower, upper = compute_confidence_interval(data)

        assert lower < sum(data) / len(data) < upper

    def test_degenerate(self) -> None:
        """Test empty and single-sample inputs."""
        assert compute_confidence_interval([]) == (0.0, 0.0)
        assert compute_confidence_interval([700]) == (700.0, 700.0)

    def test_narrows_with_more_samples(self) -> None:
        """Test more samples give a narrower interval."""
        few = [1000, 1050, 950]
        many = [1000, 1050, 950, 1020, 980, 1010, 990, 1030, 970, 1000]

        lo_few, hi_few = compute_confidence_interval(few)
        lo_many, hi_many = compute_confidence_interval(many)

        assert hi_many - lo_many < hi_few - lo_few


class TestComputeStats:
    """Tests for compute_stats function."""

    def test_summary(self) -> None:
        """Test the summary figures of a clean sample."""
        stats = compute_stats([100, 110, 90, 100, 105])

        assert stats.mean == pytest.approx(101.0)
        assert stats.median == 100
        assert stats.min == 90
        assert stats.max == 110
        assert stats.stddev > 0
        assert stats.cv == pytest.approx(stats.stddev / stats.mean)

    def test_empty(self) -> None:
        """Test no samples gives the empty summary."""
        assert compute_stats([]) == EMPTY_STATS

    def test_outliers_excluded(self) -> None:
        """Test outliers are reported and kept out of the mean."""
        stats = compute_stats([1000, 1010, 990, 1000, 1020, 10_000, 100])

        assert 10_000 in stats.outliers
        assert 900 < stats.mean < 1100

    def test_outliers_kept_on_request(self) -> None:
        """Test remove_outliers=False keeps every sample in the mean."""
        stats = compute_stats([1000, 1010, 990, 1000, 1020, 10_000], remove_outliers=False)
        assert stats.mean > 2000

    def test_samples_preserved(self) -> None:
        """Test raw samples are kept in collection order."""
        samples = [100, 101, 99, 1000]
        assert list(compute_stats(samples).samples) == samples


class TestRunUntilStable:
    """Tests for run_until_stable function."""

    def test_stops_when_stable(self) -> None:
        """Test constant samples stop after the first check."""
        calls = 0

        def sampler() -> int:
            nonlocal calls
            calls += 1
            return 500

        stats = run_until_stable(sampler, min_runs=5, max_runs=50, warmup=2)

        assert len(stats.samples) == 5
        assert stats.cv == 0.0
        assert calls == 2 + 5

    def test_respects_max_runs(self) -> None:
        """Test noisy samples stop at max_runs."""
        calls = 0

        def sampler() -> int:
            nonlocal calls
            calls += 1
            return 100 * calls

        stats = run_until_stable(
            sampler, min_runs=5, max_runs=15, target_cv=0.001, warmup=2
        )

        assert len(stats.samples) == 15
        assert stats.runs_to_stable == 15
        assert calls == 2 + 15

    def test_warmup_discarded(self) -> None:
        """Test warmup samples are not part of the result."""
        produced: list[int] = []

        def sampler() -> int:
            value = 1000 + 10 * len(produced)
            produced.append(value)
            return value

        stats = run_until_stable(sampler, min_runs=5, max_runs=10, target_cv=1.0, warmup=3)

        assert stats.samples[0] == 1030


class TestFormatStats:
    """Tests for format_stats function."""

    def test_nanoseconds(self) -> None:
        """Test the default nanosecond rendering."""
        text = format_stats(make_stats())

        assert "485.0ns" in text
        assert "5.0ns" in text
        assert "1.03%" in text
        assert "3 runs" in text

    def test_microseconds(self) -> None:
        """Test rescaling to microseconds."""
        text = format_stats(make_stats(mean=48_500.0, stddev=500.0), unit="us")
        assert text.startswith("48.5us +/- 0.5us")


class TestTimingStatsDataclass:
    """Tests for the TimingStats dataclass."""

    def test_is_frozen(self) -> None:
        """Test TimingStats is immutable."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            make_stats().mean = 1.0  # type: ignore[misc]

    def test_defaults(self) -> None:
        """Test defaults of the optional fields."""
        stats = TimingStats(
            samples=(1,), mean=1.0, median=1.0, stddev=0.0, cv=0.0, min=1.0, max=1.0, iqr=0.0
        )

        assert stats.outliers == ()
        assert stats.confidence_95 == (0.0, 0.0)
        assert stats.runs_to_stable == 0
