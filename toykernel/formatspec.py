"""Parsing of printf-style conversion specifiers and fetching of their integer arguments."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator

CANONICAL_INT_DEFAULT = 0xDEADBEEF

PREFIX_HEX_LOWERCASE = "0x"
PREFIX_HEX_UPPERCASE = "0X"
PREFIX_OCTAL = "0"
PREFIX_BINARY = "0b"


class Length(enum.Enum):
    """Length modifier of an integer conversion."""

    NONE = enum.auto()
    SHORT = enum.auto()
    CHAR = enum.auto()
    INT = enum.auto()
    LONG = enum.auto()
    LONG_LONG = enum.auto()


class Conversion(enum.Enum):
    """Kind of conversion a specifier performs."""

    INVALID = enum.auto()
    PERCENT = enum.auto()
    UNKNOWN = enum.auto()
    DECIMAL = enum.auto()
    HEX_LOWERCASE = enum.auto()
    HEX_UPPERCASE = enum.auto()
    OCTAL = enum.auto()
    BINARY = enum.auto()
    CHAR = enum.auto()
    STRING = enum.auto()
    WRITE_COUNT = enum.auto()


class Flag(enum.IntFlag):
    """Flags that may precede the width of a specifier."""

    ALTERNATE_FORM = 1
    ZERO_PAD = 2
    PAD_RIGHT = 4
    SPACE = 8
    PLUS = 16
    DOT = 32


INTEGER_CONVERSIONS = frozenset(
    {
        Conversion.DECIMAL,
        Conversion.OCTAL,
        Conversion.HEX_LOWERCASE,
        Conversion.HEX_UPPERCASE,
        Conversion.BINARY,
    }
)

_BITS = {
    Length.NONE: None,
    Length.CHAR: 8,
    Length.SHORT: 16,
    Length.INT: 32,
    Length.LONG: 64,
    Length.LONG_LONG: 64,
}

# Pointers, size_t, ptrdiff_t and intmax_t are all 64 bits wide, the size of long.
_WORD_LENGTH = Length.LONG

_FLAG_CHARS = {
    "#": Flag.ALTERNATE_FORM,
    "0": Flag.ZERO_PAD,
    "-": Flag.PAD_RIGHT,
    " ": Flag.SPACE,
    "+": Flag.PLUS,
}

_ALTERNATE_PREFIXES = {
    "X": (Conversion.HEX_UPPERCASE, PREFIX_HEX_UPPERCASE),
    "x": (Conversion.HEX_LOWERCASE, PREFIX_HEX_LOWERCASE),
    "o": (Conversion.OCTAL, PREFIX_OCTAL),
    "b": (Conversion.BINARY, PREFIX_BINARY),
}


@dataclass
class Specifier:
    """Everything parsed out of one conversion specifier."""

    min_width: int = 0
    precision: int = 0
    prefix: str | None = None
    length: Length = Length.NONE
    conversion: Conversion = Conversion.INVALID
    flags: Flag = field(default_factory=lambda: Flag(0))
    unknown_char: str = ""
    is_signed: bool = False


def _next_arg(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise ValueError("not enough arguments for format string") from None


def _as_int(value: Any) -> int:
    if isinstance(value, str) and len(value) == 1:
        return ord(value)
    return int(value)


def _char(fmt: str, i: int) -> str:
    return fmt[i] if i < len(fmt) else ""


def _is_digit(c: str) -> bool:
    return c != "" and "0" <= c <= "9"


def _parse_flags(fmt: str, i: int, spec: Specifier) -> int:
    while (flag := _FLAG_CHARS.get(_char(fmt, i))) is not None:
        spec.flags |= flag
        i += 1
    return i


def _parse_number(fmt: str, i: int, spec: Specifier, args: Iterator[Any]) -> tuple[int, int]:
    if _char(fmt, i) == "*":
        raw = _as_int(_next_arg(args)) & 0xFFFFFFFF
        if raw >= 1 << 31:
            raw -= 1 << 32
        if raw < 0:
            spec.flags |= Flag.PAD_RIGHT
            return -raw, i + 1
        return raw, i + 1

    start = i
    while _is_digit(_char(fmt, i)):
        i += 1
    return (int(fmt[start:i]) if i > start else 0), i


def _apply_conversion(c: str, spec: Specifier) -> None:
    if c in ("d", "i"):
        spec.conversion = Conversion.DECIMAL
        spec.is_signed = True
    elif c == "u":
        spec.conversion = Conversion.DECIMAL
        spec.is_signed = False
    elif c == "p":
        spec.conversion = Conversion.HEX_UPPERCASE
        spec.is_signed = False
        spec.flags |= Flag.ZERO_PAD
        spec.min_width = 8 if spec.length is Length.INT else 16
    elif c in _ALTERNATE_PREFIXES:
        conversion, prefix = _ALTERNATE_PREFIXES[c]
        spec.conversion = conversion
        spec.is_signed = False
        if spec.flags & Flag.ALTERNATE_FORM:
            spec.prefix = prefix
    elif c == "n":
        spec.conversion = Conversion.WRITE_COUNT
    elif c == "%":
        spec.conversion = Conversion.PERCENT
    elif c == "":
        spec.conversion = Conversion.INVALID
    else:
        spec.conversion = Conversion.UNKNOWN
        spec.unknown_char = c


def parse_specifier(fmt: str, pos: int, args: Iterator[Any]) -> tuple[Specifier, int]:
    """Parse the specifier whose '%' sits at ``fmt[pos]``.

    Arguments requested by '*' are taken from the iterator ``args``.
    Returns the specifier and the index just past it.
    """
    if _char(fmt, pos) != "%":
        raise ValueError(f"no conversion specifier at position {pos}")

    spec = Specifier()
    i = pos + 1
    if i >= len(fmt):
        return spec, i

    i = _parse_flags(fmt, i, spec)
    spec.min_width, i = _parse_number(fmt, i, spec, args)
    if _char(fmt, i) == ".":
        spec.flags |= Flag.DOT
        spec.precision, i = _parse_number(fmt, i + 1, spec, args)

    c = _char(fmt, i)
    if c == "h":
        i += 1
        if _char(fmt, i) == "h":
            spec.length = Length.CHAR
            i += 1
        else:
            spec.length = Length.SHORT
    elif c == "l":
        i += 1
        if _char(fmt, i) == "l":
            spec.length = Length.LONG_LONG
            i += 1
        else:
            spec.length = Length.LONG
    elif c in ("j", "t", "z"):
        spec.length = _WORD_LENGTH
        i += 1
    elif c != "" and c in "dxXuoinb":
        spec.length = Length.INT

    c = _char(fmt, i)
    if c == "c":
        spec.length = Length.CHAR
        spec.conversion = Conversion.CHAR
        return spec, i + 1
    if c == "s":
        spec.length = _WORD_LENGTH
        spec.conversion = Conversion.STRING
        return spec, i + 1
    if c == "p":
        spec.length = _WORD_LENGTH

    _apply_conversion(c, spec)
    return spec, min(i + 1, len(fmt))


def fetch_integer(spec: Specifier, args: Iterator[Any]) -> tuple[int, bool]:
    """Take the integer argument for ``spec`` from ``args``.

    The value is cut to the width of the length modifier and returned as
    its magnitude together with whether it is negative.  Without a length
    modifier no argument is taken and a fixed marker value is returned.
    """
    bits = _BITS[spec.length]
    if bits is None:
        return CANONICAL_INT_DEFAULT, False

    raw = _as_int(_next_arg(args)) & ((1 << bits) - 1)
    if spec.is_signed and raw >= 1 << (bits - 1):
        return (1 << bits) - raw, True
    return raw, False