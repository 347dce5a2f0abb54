"""Fibonacci by linear iteration on BigUint values."""

from __future__ import annotations

from fibengine.bignum import BigUint, add


def fib_sequence_big(k: int, max_limbs: int | None = None) -> BigUint:
    """Compute F(k) as a BigUint.

    Only the two most recent terms are alive at any time; each older term
    is released as soon as it is superseded.

    Args:
        k: Fibonacci index, non-negative.
        max_limbs: Optional limb ceiling passed to every allocation.

    Returns:
        Newly owned BigUint equal to F(k).
    """
    a = BigUint.new(1, max_limbs)  # F(0)
    if k == 0:
        return a

    b = BigUint.new(1, max_limbs)  # F(1)
    b.limbs[0] = 1

    try:
        for _ in range(2, k + 1):
            total = add(a, b, max_limbs)
            a.release()
            a, b = b, total
    except Exception:
        a.release()
        b.release()
        raise

    a.release()
    return b
