"""Arbitrary-precision unsigned integers built from 32-bit limbs.

Only the operations the Fibonacci algorithms need are provided:
- Exact-size allocation of zeroed limbs
- Addition with carry propagation
- Decimal rendering by repeated doubling of a digit buffer

Values are never mutated once published. Every addition allocates a new
result, and each value is released exactly once by its owner.
"""

from __future__ import annotations

from fibengine.errors import AllocationError, ReleasedValueError

LIMB_BITS = 32
LIMB_MAX = (1 << LIMB_BITS) - 1

_ZERO = ord("0")


class BigUint:
    """Little-endian multi-limb unsigned integer.

    Attributes:
        limbs: Limb values, index 0 least significant.
        size: Number of limbs in use; always ``len(limbs)``.
        sign: Sign flag, 0 for non-negative. Addition never sets it.
    """

    __slots__ = ("_released", "limbs", "sign", "size")

    def __init__(self, limbs: list[int], sign: int = 0) -> None:
        self.limbs = limbs
        self.size = len(limbs)
        self.sign = sign
        self._released = False

    @classmethod
    def new(cls, size: int, max_limbs: int | None = None) -> BigUint:
        """Allocate a zero value with ``size`` limbs.

        Args:
            size: Number of limbs, at least 1.
            max_limbs: Optional ceiling on the limb count.

        Returns:
            A fresh BigUint with every limb zero and sign 0.

        Raises:
            ValueError: If size is less than 1.
            AllocationError: If the limbs cannot be allocated.
        """
        if size < 1:
            raise ValueError(f"size must be at least 1, got {size}")
        if max_limbs is not None and size > max_limbs:
            raise AllocationError(f"{size} limbs requested, limit is {max_limbs}")
        try:
            limbs = [0] * size
        except MemoryError as e:
            raise AllocationError(f"cannot allocate {size} limbs") from e
        return cls(limbs)

    @classmethod
    def from_int(cls, value: int, max_limbs: int | None = None) -> BigUint:
        """Build a normalized BigUint holding ``value``."""
        if value < 0:
            raise ValueError(f"value must be non-negative, got {value}")
        size = max(1, -(-value.bit_length() // LIMB_BITS))
        num = cls.new(size, max_limbs)
        for i in range(size):
            num.limbs[i] = (value >> (LIMB_BITS * i)) & LIMB_MAX
        return num

    @property
    def released(self) -> bool:
        return self._released

    def _check_alive(self) -> None:
        if self._released:
            raise ReleasedValueError("BigUint used after release")

    def release(self) -> None:
        """End this value's lifetime and drop its limb storage."""
        self._check_alive()
        self._released = True
        self.limbs = []

    def to_decimal_string(self) -> str:
        """Render the value in base 10.

        Each bit, from the most significant limb's top bit down, doubles the
        decimal buffer and adds the bit into the last digit. Leading zeros
        are trimmed, keeping at least one digit.
        """
        self._check_alive()

        # log10(2) ~= 1/3.322, so 32 bits need at most 32/3 digits
        length = (LIMB_BITS * self.size) // 3 + 1 + self.sign
        digits = bytearray(b"0" * length)

        for limb in reversed(self.limbs):
            mask = 1 << (LIMB_BITS - 1)
            while mask:
                carry = 1 if limb & mask else 0
                for j in range(length - 1, -1, -1):
                    doubled = (digits[j] - _ZERO) * 2 + carry
                    carry = 1 if doubled > 9 else 0
                    digits[j] = _ZERO + doubled - 10 * carry
                mask >>= 1

        text = digits.decode("ascii").lstrip("0") or "0"
        if self.sign:
            text = "-" + text
        return text

    def __int__(self) -> int:
        self._check_alive()
        value = 0
        for limb in reversed(self.limbs):
            value = (value << LIMB_BITS) | limb
        return -value if self.sign else value

    def __str__(self) -> str:
        return self.to_decimal_string()

    def __repr__(self) -> str:
        if self._released:
            return "BigUint(<released>)"
        return f"BigUint({self.to_decimal_string()}, size={self.size})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BigUint):
            return int(self) == int(other)
        if isinstance(other, int):
            return int(self) == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __add__(self, other: BigUint) -> BigUint:
        if not isinstance(other, BigUint):
            return NotImplemented
        return add(self, other)

    def __enter__(self) -> BigUint:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self._released:
            self.release()


def add(a: BigUint, b: BigUint, max_limbs: int | None = None) -> BigUint:
    """Return a new BigUint holding ``a + b``.

    The result is allocated with one limb more than the wider operand. If
    that top limb ends up zero the size shrinks by one; no further leading
    zero limbs are stripped.

    Args:
        a: First operand; still owned by the caller.
        b: Second operand; still owned by the caller.
        max_limbs: Optional ceiling on the result's limb count.

    Returns:
        Newly owned sum.
    """
    a._check_alive()
    b._check_alive()

    size = max(a.size, b.size) + 1
    total = BigUint.new(size, max_limbs)

    carry = 0
    for i in range(size):
        x = a.limbs[i] if i < a.size else 0
        y = b.limbs[i] if i < b.size else 0
        s = x + y + carry
        total.limbs[i] = s & LIMB_MAX
        carry = 1 if s > LIMB_MAX else 0

    if total.limbs[-1] == 0:
        total.limbs.pop()
        total.size -= 1

    return total
