from __future__ import annotations

from typing import Iterable

from .errors import ArithmeticFault, ErrorCode
from .project_constants import U64_MAX


def ensure_u64(value: int) -> int:
    """Return `value` if it is an unsigned 64-bit integer, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticFault(
            ErrorCode.ARITHMETIC_OVERFLOW, f"Not an integer amount: {value!r}"
        )
    if value < 0:
        raise ArithmeticFault(ErrorCode.ARITHMETIC_UNDERFLOW, f"Negative amount: {value}")
    if value > U64_MAX:
        raise ArithmeticFault(ErrorCode.ARITHMETIC_OVERFLOW, f"Amount exceeds u64: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    result = ensure_u64(a) + ensure_u64(b)
    if result > U64_MAX:
        raise ArithmeticFault(ErrorCode.ARITHMETIC_OVERFLOW, f"{a} + {b} overflows u64")
    return result


def checked_sub(a: int, b: int) -> int:
    result = ensure_u64(a) - ensure_u64(b)
    if result < 0:
        raise ArithmeticFault(ErrorCode.ARITHMETIC_UNDERFLOW, f"{a} - {b} underflows")
    return result


def checked_mul(a: int, b: int) -> int:
    result = ensure_u64(a) * ensure_u64(b)
    if result > U64_MAX:
        raise ArithmeticFault(ErrorCode.ARITHMETIC_OVERFLOW, f"{a} * {b} overflows u64")
    return result


def checked_sum(values: Iterable[int]) -> int:
    total = 0
    for v in values:
        total = checked_add(total, v)
    return total
