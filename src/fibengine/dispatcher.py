"""Strategy selection and timing for Fibonacci requests.

The dispatcher runs one of four algorithms per request and reports how long
the computation took. The computed value is dropped on the timing path so
that only compute cost is measured, never conversion or transfer cost.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum

from fibengine.bigfib import fib_sequence_big
from fibengine.bignum import BigUint
from fibengine.config import EngineConfig
from fibengine.doubling import fast_doubling, fast_doubling_clz
from fibengine.errors import InvalidIndexError, UnknownStrategyError
from fibengine.native import fib_sequence

logger = logging.getLogger(__name__)


class Strategy(IntEnum):
    """Fibonacci algorithm selector.

    Values match the legacy write-size selectors of the device interface.
    """

    NATIVE = 0
    FAST_DOUBLING = 1
    FAST_DOUBLING_CLZ = 2
    BIGNUM = 3

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_name(cls, name: str) -> Strategy:
        """Look up a strategy by label or alias (case-insensitive).

        Raises:
            UnknownStrategyError: If the name is not known.
        """
        key = name.strip().lower().replace("_", "-")
        try:
            return _ALIASES[key]
        except KeyError:
            known = ", ".join(sorted(_ALIASES))
            raise UnknownStrategyError(
                f"unknown strategy {name!r} (known: {known})"
            ) from None


_LABELS = {
    Strategy.NATIVE: "native",
    Strategy.FAST_DOUBLING: "fast-doubling",
    Strategy.FAST_DOUBLING_CLZ: "fast-doubling-clz",
    Strategy.BIGNUM: "bignum",
}

_ALIASES = {
    "native": Strategy.NATIVE,
    "fast-doubling": Strategy.FAST_DOUBLING,
    "fast-doubling-fixed": Strategy.FAST_DOUBLING,
    "fast-doubling-clz": Strategy.FAST_DOUBLING_CLZ,
    "fast-doubling-skip": Strategy.FAST_DOUBLING_CLZ,
    "bignum": Strategy.BIGNUM,
}


@dataclass(frozen=True)
class FibonacciRequest:
    """A single request: which index, computed by which strategy."""

    index: int
    strategy: Strategy

    def __post_init__(self) -> None:
        _check_index(self.index)


@dataclass(frozen=True)
class TimingResult:
    """Elapsed compute time for one request.

    Attributes:
        index: Fibonacci index that was computed.
        strategy: Algorithm that computed it.
        duration_ns: Wall-clock duration in nanoseconds.
    """

    index: int
    strategy: Strategy
    duration_ns: int


def _check_index(index: int) -> None:
    if index < 0:
        raise InvalidIndexError(f"index must be non-negative, got {index}")


@dataclass
class BenchmarkDispatcher:
    """Runs and times Fibonacci strategies.

    Attributes:
        config: Engine settings; ``max_limbs`` bounds the bignum path.
        last_duration_ns: Most recent measurement, overwritten per dispatch.
    """

    config: EngineConfig = field(default_factory=EngineConfig)
    last_duration_ns: int = 0

    def _compute(self, index: int, strategy: Strategy) -> int | BigUint:
        if strategy is Strategy.NATIVE:
            return fib_sequence(index)
        if strategy is Strategy.FAST_DOUBLING:
            return fast_doubling(index)
        if strategy is Strategy.FAST_DOUBLING_CLZ:
            return fast_doubling_clz(index)
        return fib_sequence_big(index, self.config.max_limbs)

    def dispatch(self, index: int, selector: int) -> int:
        """Compute F(index) with the selected strategy and time it.

        Args:
            index: Fibonacci index, non-negative.
            selector: ``Strategy`` member or its integer value.

        Returns:
            Elapsed nanoseconds, or 0 when the selector is not recognised
            (no computation happens in that case).
        """
        _check_index(index)
        try:
            strategy = Strategy(selector)
        except ValueError:
            logger.debug("Ignoring unknown strategy selector %r", selector)
            return 0

        start = time.perf_counter_ns()
        result = self._compute(index, strategy)
        elapsed = time.perf_counter_ns() - start

        # Result is discarded; only the timing leaves this method
        if isinstance(result, BigUint):
            result.release()
        del result

        self.last_duration_ns = elapsed
        logger.debug("fib(%d) via %s took %d ns", index, strategy.label, elapsed)
        return elapsed

    def submit(self, request: FibonacciRequest) -> TimingResult:
        """Time a request given as an explicit structure."""
        duration = self.dispatch(request.index, request.strategy)
        return TimingResult(
            index=request.index,
            strategy=request.strategy,
            duration_ns=duration,
        )

    def read(self, index: int) -> tuple[int, str]:
        """Compute F(index) on the native and bignum paths.

        The two results disagree past index 92, where the native path
        wraps around.

        Returns:
            Tuple of (native_value, decimal_text).
        """
        _check_index(index)
        with fib_sequence_big(index, self.config.max_limbs) as big:
            text = big.to_decimal_string()
        return fib_sequence(index), text


def compute_duration(index: int, strategy: Strategy | str) -> int:
    """Nanoseconds taken to compute F(index) with ``strategy``."""
    if isinstance(strategy, str):
        strategy = Strategy.from_name(strategy)
    return BenchmarkDispatcher().dispatch(index, strategy)


def compute_value(index: int) -> tuple[int, str]:
    """Native magnitude and decimal text of F(index)."""
    return BenchmarkDispatcher().read(index)
