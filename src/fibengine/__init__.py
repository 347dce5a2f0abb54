"""fibengine: big-integer Fibonacci engine with per-strategy timing."""

from __future__ import annotations

from fibengine.bigfib import fib_sequence_big
from fibengine.bignum import BigUint, add
from fibengine.dispatcher import (
    BenchmarkDispatcher,
    FibonacciRequest,
    Strategy,
    TimingResult,
    compute_duration,
    compute_value,
)
from fibengine.doubling import fast_doubling, fast_doubling_clz
from fibengine.native import fib_sequence

__all__ = [
    "BenchmarkDispatcher",
    "BigUint",
    "FibonacciRequest",
    "Strategy",
    "TimingResult",
    "add",
    "compute_duration",
    "compute_value",
    "fast_doubling",
    "fast_doubling_clz",
    "fib_sequence",
    "fib_sequence_big",
]
