"""SQLite storage for timing sweep sessions.

Each session keeps one row per (index, strategy) cell so that two sweeps
can be compared cell by cell later.
"""

from __future__ import annotations

import logging
import sqlite3
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fibengine.benchmark.stats import TimingStats
from fibengine.dispatcher import Strategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Timing summary for one strategy at one index.

    Attributes:
        index: Fibonacci index.
        strategy: Algorithm that was timed.
        stats: Summary of the nanosecond samples.
    """

    index: int
    strategy: Strategy
    stats: TimingStats


@dataclass
class Session:
    """One timing sweep.

    Attributes:
        timestamp: When the sweep ran.
        name: Sweep name from the configuration.
        description: Optional free text.
        git_commit: Commit hash at time of run.
        results: Per-cell results.
        id: Database ID, None until saved.
    """

    timestamp: datetime
    name: str
    description: str | None
    git_commit: str | None
    results: list[SweepResult]
    id: int | None = None


def _get_git_commit() -> str | None:
    """Short hash of the current git commit, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None
    if result.returncode == 0:
        return result.stdout.strip()[:12]
    return None


class BenchmarkDatabase:
    """SQLite database of sweep sessions."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.conn: sqlite3.Connection | None = None

    def __enter__(self) -> BenchmarkDatabase:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Open the database and create tables if needed."""
        self.conn = sqlite3.connect(self.db_path)
        self._init_schema()

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def _cursor(self) -> sqlite3.Cursor:
        if not self.conn:
            raise RuntimeError("Database not open")
        return self.conn.cursor()

    def _init_schema(self) -> None:
        cursor = self._cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY,
                timestamp TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                git_commit TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS results (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL,
                fib_index INTEGER NOT NULL,
                strategy INTEGER NOT NULL,
                mean_ns REAL,
                median_ns REAL,
                stddev_ns REAL,
                cv REAL,
                ci_lower REAL,
                ci_upper REAL,
                min_ns REAL,
                max_ns REAL,
                runs INTEGER,
                runs_to_stable INTEGER,
                outliers_removed INTEGER,
                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)

        self.conn.commit()  # type: ignore[union-attr]

    def save_session(self, session: Session) -> int:
        """Insert a session and its results.

        Returns:
            The new session ID, also stored on ``session.id``.
        """
        cursor = self._cursor()
        git_commit = session.git_commit or _get_git_commit()

        cursor.execute(
            """
            INSERT INTO sessions (timestamp, name, description, git_commit)
            VALUES (?, ?, ?, ?)
            """,
            (session.timestamp.isoformat(), session.name, session.description, git_commit),
        )
        session_id = cursor.lastrowid
        if session_id is None:
            raise RuntimeError("Failed to get session ID")

        cursor.executemany(
            """
            INSERT INTO results (
                session_id, fib_index, strategy,
                mean_ns, median_ns, stddev_ns, cv,
                ci_lower, ci_upper, min_ns, max_ns,
                runs, runs_to_stable, outliers_removed
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    session_id,
                    r.index,
                    int(r.strategy),
                    r.stats.mean,
                    r.stats.median,
                    r.stats.stddev,
                    r.stats.cv,
                    r.stats.confidence_95[0],
                    r.stats.confidence_95[1],
                    r.stats.min,
                    r.stats.max,
                    len(r.stats.samples),
                    r.stats.runs_to_stable,
                    len(r.stats.outliers),
                )
                for r in session.results
            ],
        )

        self.conn.commit()  # type: ignore[union-attr]
        session.id = session_id
        logger.info(
            "Saved session #%d (%d results) to %s",
            session_id,
            len(session.results),
            self.db_path,
        )
        return session_id

    def load_session(self, session_id: int) -> Session | None:
        """Load a session, or None if the ID is unknown.

        Raw samples are not stored, so loaded stats have empty ``samples``.
        """
        cursor = self._cursor()
        cursor.execute(
            "SELECT timestamp, name, description, git_commit FROM sessions WHERE id = ?",
            (session_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        timestamp, name, description, git_commit = row

        cursor.execute(
            """
            SELECT fib_index, strategy, mean_ns, median_ns, stddev_ns, cv,
                   ci_lower, ci_upper, min_ns, max_ns, runs_to_stable
            FROM results WHERE session_id = ?
            ORDER BY fib_index, strategy
            """,
            (session_id,),
        )

        results = [
            SweepResult(
                index=row[0],
                strategy=Strategy(row[1]),
                stats=TimingStats(
                    samples=(),
                    mean=row[2],
                    median=row[3],
                    stddev=row[4],
                    cv=row[5],
                    min=row[8],
                    max=row[9],
                    iqr=0.0,  # Not stored
                    confidence_95=(row[6], row[7]),
                    runs_to_stable=row[10],
                ),
            )
            for row in cursor.fetchall()
        ]

        return Session(
            id=session_id,
            timestamp=datetime.fromisoformat(timestamp),
            name=name,
            description=description,
            git_commit=git_commit,
            results=results,
        )

    def list_sessions(self) -> list[tuple[int, datetime, str, str | None, str | None]]:
        """All sessions, newest first.

        Returns:
            List of (id, timestamp, name, description, git_commit) tuples.
        """
        cursor = self._cursor()
        cursor.execute(
            "SELECT id, timestamp, name, description, git_commit "
            "FROM sessions ORDER BY id DESC"
        )
        return [
            (row[0], datetime.fromisoformat(row[1]), row[2], row[3], row[4])
            for row in cursor.fetchall()
        ]

    def get_latest_session_id(self) -> int | None:
        cursor = self._cursor()
        cursor.execute("SELECT MAX(id) FROM sessions")
        row = cursor.fetchone()
        return row[0] if row and row[0] else None

    def compare_sessions(
        self, id1: int, id2: int
    ) -> dict[int, dict[Strategy, tuple[float, float, float]]]:
        """Compare mean durations of two sessions cell by cell.

        Returns:
            Mapping of index to strategy to (mean1_ns, mean2_ns, ratio).
            Cells missing from the second session get mean2 and ratio 0.
        """
        session1 = self.load_session(id1)
        session2 = self.load_session(id2)
        if not session1 or not session2:
            return {}

        second = {(r.index, r.strategy): r.stats.mean for r in session2.results}

        comparison: dict[int, dict[Strategy, tuple[float, float, float]]] = {}
        for r in session1.results:
            mean1 = r.stats.mean
            mean2 = second.get((r.index, r.strategy), 0.0)
            ratio = mean2 / mean1 if mean1 > 0 else 0.0
            comparison.setdefault(r.index, {})[r.strategy] = (mean1, mean2, ratio)

        return comparison
