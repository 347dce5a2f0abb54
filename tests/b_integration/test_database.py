"""Integration tests for fibengine.benchmark.database module."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest

from fibengine.benchmark.database import BenchmarkDatabase, Session, SweepResult
from fibengine.benchmark.stats import compute_stats
from fibengine.dispatcher import Strategy


def make_session(scale: float = 1.0, name: str = "fibonacci") -> Session:
    results = [
        SweepResult(
            index=index,
            strategy=strategy,
            stats=compute_stats([int((100 + index + int(strategy)) * scale)] * 5),
        )
        for index in (10, 20)
        for strategy in (Strategy.NATIVE, Strategy.FAST_DOUBLING_CLZ)
    ]
    return Session(
        timestamp=datetime(2024, 5, 1, 12, 30),
        name=name,
        description="test run",
        git_commit="abc123def456",
        results=results,
    )


@pytest.fixture
def db(tmp_path: Path) -> Iterator[BenchmarkDatabase]:
    with BenchmarkDatabase(tmp_path / "results.db") as database:
        yield database


class TestSaveLoad:
    """Tests for session persistence."""

    def test_round_trip(self, db: BenchmarkDatabase) -> None:
        """Test a saved session loads back with its metadata and means."""
        session = make_session()
        session_id = db.save_session(session)

        loaded = db.load_session(session_id)

        assert loaded is not None
        assert session.id == loaded.id == session_id
        assert loaded.name == "fibonacci"
        assert loaded.description == "test run"
        assert loaded.git_commit == "abc123def456"
        assert loaded.timestamp == session.timestamp
        assert [(r.index, r.strategy, r.stats.mean) for r in loaded.results] == [
            (r.index, r.strategy, r.stats.mean) for r in session.results
        ]
        assert all(r.stats.samples == () for r in loaded.results)

    def test_unknown_id(self, db: BenchmarkDatabase) -> None:
        """Test loading a missing session returns None."""
        assert db.load_session(42) is None

    def test_requires_open(self, tmp_path: Path) -> None:
        """Test operations on a closed database raise."""
        database = BenchmarkDatabase(tmp_path / "closed.db")
        with pytest.raises(RuntimeError):
            database.list_sessions()


class TestListing:
    """Tests for list_sessions and get_latest_session_id."""

    def test_empty(self, db: BenchmarkDatabase) -> None:
        """Test a fresh database has no sessions."""
        assert db.list_sessions() == []
        assert db.get_latest_session_id() is None

    def test_newest_first(self, db: BenchmarkDatabase) -> None:
        """Test sessions are listed newest first."""
        first = db.save_session(make_session(name="one"))
        second = db.save_session(make_session(name="two"))

        listed = db.list_sessions()

        assert [row[0] for row in listed] == [second, first]
        assert [row[2] for row in listed] == ["two", "one"]
        assert db.get_latest_session_id() == second


class TestCompare:
    """Tests for compare_sessions."""

    def test_ratios(self, db: BenchmarkDatabase) -> None:
        """Test cell-by-cell ratios between two sessions."""
        id1 = db.save_session(make_session())
        id2 = db.save_session(make_session(scale=2.0))

        comparison = db.compare_sessions(id1, id2)

        assert sorted(comparison) == [10, 20]
        mean1, mean2, ratio = comparison[10][Strategy.NATIVE]
        assert mean1 == 110
        assert mean2 == 220
        assert ratio == pytest.approx(2.0)

    def test_missing_cells(self, db: BenchmarkDatabase) -> None:
        """Test cells absent from the second session get a zero ratio."""
        partial = make_session()
        partial.results = partial.results[:1]
        id1 = db.save_session(make_session())
        id2 = db.save_session(partial)

        comparison = db.compare_sessions(id1, id2)

        assert comparison[20][Strategy.FAST_DOUBLING_CLZ] == (122.0, 0.0, 0.0)

    def test_unknown_session(self, db: BenchmarkDatabase) -> None:
        """Test comparing with a missing session gives nothing."""
        session_id = db.save_session(make_session())
        assert db.compare_sessions(session_id, 99) == {}
