"""Command-line interface for the Fibonacci engine.

Provides the `fibengine` command with subcommands for:
- Running timing sweeps across strategies
- Reading values forwards and backwards through the index range
- Computing a single value
- Listing and comparing saved sweep sessions
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from fibengine.benchmark.database import BenchmarkDatabase
from fibengine.benchmark.runner import (
    SweepConfig,
    SweepProgress,
    SweepRunner,
    format_timing_table,
    load_sweep_config,
    read_sweep,
)
from fibengine.config import EngineConfig, load_engine_config
from fibengine.device import FibonacciDevice
from fibengine.dispatcher import BenchmarkDispatcher, Strategy
from fibengine.errors import ConfigError, FibEngineError, UnknownStrategyError

# Default paths
DEFAULT_CONFIG_PATH = (
    Path(__file__).parent.parent.parent.parent / "benchmarks" / "sweep.yaml"
)
DEFAULT_DB_PATH = (
    Path(__file__).parent.parent.parent.parent / "benchmarks" / "benchmark_results.db"
)


def _load_configs(args: argparse.Namespace) -> tuple[EngineConfig, SweepConfig]:
    """Engine and sweep settings from --config, or defaults if absent."""
    if args.config:
        path = Path(args.config)
        if not path.exists():
            raise ConfigError(f"configuration not found: {path}")
    elif DEFAULT_CONFIG_PATH.exists():
        path = DEFAULT_CONFIG_PATH
    else:
        return EngineConfig(), SweepConfig()
    return load_engine_config(path), load_sweep_config(path)


def _make_device(engine: EngineConfig) -> FibonacciDevice:
    return FibonacciDevice(BenchmarkDispatcher(config=engine))


def cmd_run(args: argparse.Namespace) -> int:
    """Run a timing sweep."""
    engine, sweep = _load_configs(args)

    # Command-line flags override the file
    if args.start is not None:
        sweep.start = args.start
    if args.stop is not None:
        sweep.stop = args.stop
    if args.strategies:
        try:
            sweep.strategies = [
                Strategy.from_name(name) for name in args.strategies.split(",")
            ]
        except UnknownStrategyError as e:
            raise ConfigError(str(e)) from e
    if args.min_runs is not None:
        sweep.min_runs = args.min_runs
    if args.max_runs is not None:
        sweep.max_runs = args.max_runs
    if args.warmup is not None:
        sweep.warmup = args.warmup
    if args.cv_target is not None:
        sweep.target_cv = args.cv_target

    def progress(p: SweepProgress) -> None:
        print(
            f"  [{p.cells_completed}/{p.total_cells}] fib({p.index}) {p.strategy.label}...",
            end="\r",
            flush=True,
        )

    runner = SweepRunner(
        config=sweep,
        device=_make_device(engine),
        progress_callback=None if args.quiet else progress,
    )

    print(f"Running sweep '{sweep.name}' (target CV: {sweep.target_cv * 100:.1f}%)...")
    print(f"  Indices: {sweep.start}..{sweep.stop}")
    print(f"  Strategies: {', '.join(s.label for s in sweep.strategies)}")
    print()

    session = runner.run(description=args.description)

    # Clear progress line
    print(" " * 60, end="\r")
    print(format_timing_table(session))

    if args.save:
        db_path = Path(args.db) if args.db else DEFAULT_DB_PATH
        with BenchmarkDatabase(db_path) as db:
            session_id = db.save_session(session)
        print(f"\nResults saved to session #{session_id}")

    return 0


def cmd_read(args: argparse.Namespace) -> int:
    """Read values forwards then backwards through the index range."""
    engine, _ = _load_configs(args)
    stop = args.stop if args.stop is not None else engine.max_length

    with _make_device(engine) as device:
        for index, reading in read_sweep(device, stop):
            print(f"Reading at offset {index}, returned the sequence {reading.text}.")

    return 0


def cmd_value(args: argparse.Namespace) -> int:
    """Print one Fibonacci value from both computation paths."""
    engine, _ = _load_configs(args)
    native_value, text = BenchmarkDispatcher(config=engine).read(args.index)

    print(f"fib({args.index})")
    print(f"  bignum: {text}")
    marker = "" if str(native_value) == text else "  (overflowed)"
    print(f"  native: {native_value}{marker}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List saved sessions."""
    db_path = Path(args.db) if args.db else DEFAULT_DB_PATH

    if not db_path.exists():
        print("No benchmark database found.")
        return 0

    with BenchmarkDatabase(db_path) as db:
        sessions = db.list_sessions()

    if not sessions:
        print("No sweep sessions recorded yet.")
        return 0

    print("Saved Sweep Sessions")
    print("=" * 80)
    print(f"{'ID':>5} {'Date':>20} {'Name':<14} {'Commit':>12} Description")
    print("-" * 80)

    for session_id, timestamp, name, description, git_commit in sessions:
        date_str = timestamp.strftime("%Y-%m-%d %H:%M")
        commit = git_commit[:12] if git_commit else "-"
        print(f"{session_id:>5} {date_str:>20} {name:<14} {commit:>12} {description or ''}")

    print("-" * 80)
    print(f"Total: {len(sessions)} session(s)")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two sessions."""
    db_path = Path(args.db) if args.db else DEFAULT_DB_PATH

    if not db_path.exists():
        print("No benchmark database found.")
        return 1

    with BenchmarkDatabase(db_path) as db:
        id1 = args.id1
        id2 = args.id2

        if id2 is None:
            id2 = db.get_latest_session_id()
            if id2 is None:
                print("No sessions to compare with.")
                return 1
            if id1 == id2:
                print("Only one session exists.")
                return 1

        for session_id in (id1, id2):
            if db.load_session(session_id) is None:
                print(f"Error: Session #{session_id} not found.")
                return 1

        comparison = db.compare_sessions(id1, id2)

    print(
        f"{'Index':>6} {'Strategy':<18} {'#' + str(id1):>12} "
        f"{'#' + str(id2):>12} {'Ratio':>8} {'Change':>14}"
    )
    print("-" * 75)

    for index, by_strategy in sorted(comparison.items()):
        for strategy, (mean1, mean2, ratio) in sorted(by_strategy.items()):
            mean2_str = f"{mean2:.0f}ns" if mean2 > 0 else "-"
            if ratio > 0:
                pct = (ratio - 1) * 100
                if pct < -5:
                    change = f"{pct:.1f}% BETTER"
                elif pct > 5:
                    change = f"+{pct:.1f}% WORSE"
                else:
                    change = "~same"
                ratio_str = f"{ratio:.2f}x"
            else:
                change = ratio_str = "-"

            print(
                f"{index:>6} {strategy.label:<18} {f'{mean1:.0f}ns':>12} "
                f"{mean2_str:>12} {ratio_str:>8} {change:>14}"
            )

    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fibengine",
        description="Fibonacci engine with per-strategy latency benchmarks",
    )
    parser.add_argument(
        "--config",
        help="Path to YAML configuration (default: benchmarks/sweep.yaml)",
    )
    parser.add_argument(
        "--db",
        help="Path to results database (default: benchmarks/benchmark_results.db)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run a timing sweep")
    run_parser.add_argument("--start", type=int, help="First index to time")
    run_parser.add_argument("--stop", type=int, help="Last index to time")
    run_parser.add_argument(
        "--strategies",
        help="Comma-separated strategies (native,fast-doubling,fast-doubling-clz,bignum)",
    )
    run_parser.add_argument(
        "--cv-target",
        type=float,
        help="Target coefficient of variation (default from config: 0.05 = 5%%)",
    )
    run_parser.add_argument(
        "--min-runs", type=int, help="Minimum samples per cell (default: 5)"
    )
    run_parser.add_argument(
        "--max-runs", type=int, help="Maximum samples per cell (default: 50)"
    )
    run_parser.add_argument(
        "--warmup", type=int, help="Discarded samples per cell (default: 3)"
    )
    run_parser.add_argument(
        "--save",
        action="store_true",
        help="Save results to database",
    )
    run_parser.add_argument(
        "-d",
        "--description",
        help="Description for this sweep",
    )
    run_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    run_parser.set_defaults(func=cmd_run)

    # read command
    read_parser = subparsers.add_parser(
        "read", help="Read values forwards then backwards"
    )
    read_parser.add_argument(
        "--stop", type=int, help="Last index to read (default: max_length)"
    )
    read_parser.set_defaults(func=cmd_read)

    # value command
    value_parser = subparsers.add_parser("value", help="Compute a single value")
    value_parser.add_argument("index", type=int, help="Fibonacci index")
    value_parser.set_defaults(func=cmd_value)

    # list command
    list_parser = subparsers.add_parser("list", help="List saved sessions")
    list_parser.set_defaults(func=cmd_list)

    # compare command
    compare_parser = subparsers.add_parser("compare", help="Compare two sessions")
    compare_parser.add_argument("id1", type=int, help="First session ID")
    compare_parser.add_argument(
        "id2",
        type=int,
        nargs="?",
        help="Second session ID (default: latest)",
    )
    compare_parser.set_defaults(func=cmd_compare)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except FibEngineError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
