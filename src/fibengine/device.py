"""Position-addressed session over the Fibonacci engine.

A session behaves like a small file: the position is the Fibonacci index,
``read`` returns the value at that index, and ``write`` times one strategy
at that index, the write size selecting the strategy. Only one session in
the process may be open at a time.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass

from fibengine.dispatcher import BenchmarkDispatcher
from fibengine.errors import DeviceBusyError, DeviceClosedError

logger = logging.getLogger(__name__)

SEEK_SET = os.SEEK_SET
SEEK_CUR = os.SEEK_CUR
SEEK_END = os.SEEK_END

_DEVICE_LOCK = threading.Lock()


@dataclass(frozen=True)
class DeviceReading:
    """Value read at a device position.

    Attributes:
        native_value: F(index) from the 64-bit path; wraps past index 92.
        text: F(index) in decimal from the bignum path.
    """

    native_value: int
    text: str


class FibonacciDevice:
    """Single-accessor session over a ``BenchmarkDispatcher``."""

    def __init__(
        self,
        dispatcher: BenchmarkDispatcher | None = None,
        max_length: int | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        """Create a closed session.

        Args:
            dispatcher: Engine to drive; a default one is created if omitted.
            max_length: Highest seekable index; defaults to the
                dispatcher's configured ``max_length``.
            lock: Mutual-exclusion lock; defaults to the process-wide lock.
        """
        self.dispatcher = dispatcher or BenchmarkDispatcher()
        self.max_length = (
            max_length if max_length is not None else self.dispatcher.config.max_length
        )
        self._lock = lock or _DEVICE_LOCK
        self._is_open = False
        self.position = 0

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> FibonacciDevice:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Acquire the device without blocking.

        Raises:
            DeviceBusyError: If another session holds the device.
        """
        if self._is_open:
            return
        if not self._lock.acquire(blocking=False):
            logger.warning("Fibonacci device is in use")
            raise DeviceBusyError("Fibonacci device is in use")
        self._is_open = True
        self.position = 0

    def close(self) -> None:
        """Release the device if this session holds it."""
        if not self._is_open:
            return
        self._is_open = False
        self._lock.release()

    def _check_open(self) -> None:
        if not self._is_open:
            raise DeviceClosedError("device session is not open")

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """Move to a new index, clamped to ``[0, max_length]``.

        Args:
            offset: Offset interpreted according to ``whence``.
            whence: ``SEEK_SET``, ``SEEK_CUR`` or ``SEEK_END``. Any other
                value seeks to 0.

        Returns:
            The new position.
        """
        self._check_open()
        if whence == SEEK_SET:
            new_pos = offset
        elif whence == SEEK_CUR:
            new_pos = self.position + offset
        elif whence == SEEK_END:
            new_pos = self.max_length - offset
        else:
            new_pos = 0

        self.position = min(max(new_pos, 0), self.max_length)
        return self.position

    def tell(self) -> int:
        return self.position

    def read(self) -> DeviceReading:
        """Compute F(position) on both the native and bignum paths."""
        self._check_open()
        native_value, text = self.dispatcher.read(self.position)
        return DeviceReading(native_value=native_value, text=text)

    def write(self, size: int) -> int:
        """Time the strategy selected by ``size`` at the current position.

        Returns:
            Elapsed nanoseconds; 0 for an unrecognised size.
        """
        self._check_open()
        return self.dispatcher.dispatch(self.position, size)
