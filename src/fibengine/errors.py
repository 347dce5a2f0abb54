"""Exception hierarchy for the Fibonacci engine.

Arithmetic errors are fatal to the call that raised them; nothing in the
engine retries. The device and CLI layers decide what to do with them.
"""

from __future__ import annotations


class FibEngineError(Exception):
    """Base class for all engine errors."""


class AllocationError(FibEngineError, MemoryError):
    """Limb storage for a big integer could not be allocated.

    Raised instead of handing back a partially initialised value, either
    because the interpreter is out of memory or because the request exceeds
    the configured ``max_limbs`` ceiling.
    """


class ReleasedValueError(FibEngineError):
    """A big integer was used or released after its lifetime ended."""


class DeviceBusyError(FibEngineError):
    """Another session already holds the device."""


class DeviceClosedError(FibEngineError):
    """The device session is not open."""


class ConfigError(FibEngineError):
    """Configuration file is missing, malformed, or names unknown values."""


class InvalidIndexError(FibEngineError, ValueError):
    """A Fibonacci index outside the supported range was requested."""


class UnknownStrategyError(FibEngineError, ValueError):
    """A strategy name matches no known algorithm."""
