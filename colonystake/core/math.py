"""Integer helpers shared by the kernels.

All arithmetic is floor-rounded integer math; subtraction that could underflow
saturates to zero instead of raising.
"""

from __future__ import annotations


def require_int(name: str, value: object) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    return value


def require_uint(name: str, value: object) -> int:
    v = require_int(name, value)
    if v < 0:
        raise ValueError(f"{name} must be non-negative: {v}")
    return v


def require_range(name: str, value: object, lo: int, hi: int) -> int:
    v = require_int(name, value)
    if not (lo <= v <= hi):
        raise ValueError(f"{name} must be in [{lo}, {hi}]: {v}")
    return v


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def clamp(value: int, lo: int, hi: int) -> int:
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


def mul_div(a: int, b: int, denom: int) -> int:
    """floor(a * b / denom) for non-negative ints."""
    if denom <= 0:
        raise ValueError(f"denom must be positive: {denom}")
    if a < 0 or b < 0:
        raise ValueError("mul_div operands must be non-negative")
    return (a * b) // denom


def percent_of(amount: int, percent: int) -> int:
    return mul_div(amount, percent, 100)
