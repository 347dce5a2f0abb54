"""Fast-doubling Fibonacci on signed 64-bit integers.

Both variants walk the bits of ``n`` from most to least significant and
apply the doubling identities at each step:

    F(2k)   = F(k) * (2 * F(k+1) - F(k))
    F(2k+1) = F(k)^2 + F(k+1)^2

They differ only in where the scan starts. ``fast_doubling`` always starts
at bit ``SCAN_BITS - 1``; ``fast_doubling_clz`` starts at the highest set
bit of ``n`` and so skips the leading zeros.
"""

from __future__ import annotations

from fibengine.native import to_int64

SCAN_BITS = 32


def _highest_bit(n: int) -> int:
    """Position of the highest set bit. Undefined for 0."""
    return n.bit_length() - 1


def _doubling_counted(n: int, mask: int) -> tuple[int, int]:
    """Run the doubling loop from ``mask`` down; return (F(n), iterations)."""
    a, b = 0, 1
    steps = 0
    while mask:
        t1 = to_int64(a * to_int64(2 * b - a))  # F(2k)
        t2 = to_int64(a * a + b * b)  # F(2k+1)
        if n & mask:
            a, b = t2, to_int64(t1 + t2)
        else:
            a, b = t1, t2
        mask >>= 1
        steps += 1
    return a, steps


def _fixed_mask() -> int:
    return 1 << (SCAN_BITS - 1)


def fast_doubling(n: int) -> int:
    """Compute F(n) scanning all ``SCAN_BITS`` bit positions."""
    value, _ = _doubling_counted(n, _fixed_mask())
    return value


def fast_doubling_clz(n: int) -> int:
    """Compute F(n) scanning from the highest set bit of ``n``."""
    if n == 0:
        return 0
    value, _ = _doubling_counted(n, 1 << _highest_bit(n))
    return value


def doubling_steps(n: int, skip_leading_zeros: bool) -> int:
    """Number of doubling iterations a variant performs for ``n``.

    The count comes from running the same loop the variant runs.

    Args:
        n: Fibonacci index.
        skip_leading_zeros: True for ``fast_doubling_clz``, False for
            ``fast_doubling``.
    """
    if not skip_leading_zeros:
        _, steps = _doubling_counted(n, _fixed_mask())
        return steps
    if n == 0:
        return 0
    _, steps = _doubling_counted(n, 1 << _highest_bit(n))
    return steps
