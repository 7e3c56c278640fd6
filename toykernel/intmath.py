"""64-bit integer division helpers with two's-complement semantics."""

from __future__ import annotations

__all__ = ["udivmoddi4", "udivdi3", "umoddi3", "divdi3", "moddi3"]

_BITS = 64
_UMAX = (1 << _BITS) - 1
_SMIN = -(1 << (_BITS - 1))
_SMAX = (1 << (_BITS - 1)) - 1


def _check_unsigned(name: str, value: int) -> None:
    if not 0 <= value <= _UMAX:
        raise ValueError(f"{name}={value} is not an unsigned 64-bit integer")


def _check_signed(name: str, value: int) -> None:
    if not _SMIN <= value <= _SMAX:
        raise ValueError(f"{name}={value} is not a signed 64-bit integer")


def _to_signed(value: int) -> int:
    value &= _UMAX
    return value - (1 << _BITS) if value > _SMAX else value


def udivmoddi4(a: int, b: int) -> tuple[int, int]:
    """Unsigned 64-bit division: return ``(quotient, remainder)``."""
    _check_unsigned("a", a)
    _check_unsigned("b", b)
    if b == 0:
        raise ZeroDivisionError("unsigned 64-bit division by zero")
    return divmod(a, b)


def udivdi3(a: int, b: int) -> int:
    """Unsigned 64-bit quotient."""
    return udivmoddi4(a, b)[0]


def umoddi3(a: int, b: int) -> int:
    """Unsigned 64-bit remainder."""
    return udivmoddi4(a, b)[1]


def divdi3(a: int, b: int) -> int:
    """Signed 64-bit quotient, truncated toward zero.

    The result wraps like a 64-bit register, so the minimum value divided
    by -1 gives the minimum value back.
    """
    _check_signed("a", a)
    _check_signed("b", b)
    quotient, _ = udivmoddi4(abs(a), abs(b))
    if (a < 0) != (b < 0):
        quotient = -quotient
    return _to_signed(quotient)


def moddi3(a: int, b: int) -> int:
    """Signed 64-bit remainder, carrying the sign of the dividend."""
    _check_signed("a", a)
    _check_signed("b", b)
    _, remainder = udivmoddi4(abs(a), abs(b))
    if a < 0:
        remainder = -remainder
    return _to_signed(remainder)