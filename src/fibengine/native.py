"""Fibonacci by linear iteration on signed 64-bit accumulators."""

from __future__ import annotations

INT64_BITS = 64
_INT64_MOD = 1 << INT64_BITS
_INT64_SIGN = 1 << (INT64_BITS - 1)

# F(92) is the largest Fibonacci number a signed 64-bit accumulator holds
NATIVE_SAFE_INDEX = 92


def to_int64(value: int) -> int:
    """Wrap an integer to the two's complement signed 64-bit range."""
    value &= _INT64_MOD - 1
    return value - _INT64_MOD if value & _INT64_SIGN else value


def fib_sequence(k: int) -> int:
    """Compute F(k) with two wrapping 64-bit accumulators.

    Results past ``NATIVE_SAFE_INDEX`` wrap around silently.
    """
    if k == 0:
        return 0

    a, b = 0, 1
    for _ in range(2, k + 1):
        a, b = b, to_int64(a + b)
    return b
