"""printf-style formatting into a bounded character buffer."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from toykernel.formatspec import (
    INTEGER_CONVERSIONS,
    Conversion,
    Flag,
    Specifier,
    fetch_integer,
    parse_specifier,
)
from toykernel.memory import strlen

__all__ = ["vsnprintf", "snprintf", "sprintf"]

_BASES = {
    Conversion.DECIMAL: (10, False),
    Conversion.OCTAL: (8, False),
    Conversion.BINARY: (2, False),
    Conversion.HEX_LOWERCASE: (16, False),
    Conversion.HEX_UPPERCASE: (16, True),
}


class _Sink:
    """Output of one conversion, bounded by the room left in the buffer.

    ``count`` is the number of characters the conversion reports as
    generated; ``parts`` holds the ones that fitted.  Single sign
    characters that do not fit are not counted, as the formatter has
    always done.
    """

    def __init__(self, capacity: int | None) -> None:
        self.capacity = capacity
        self.parts: list[str] = []
        self.count = 0

    def _has_room(self) -> bool:
        return self.capacity is None or self.count < self.capacity

    def put_char(self, c: str) -> None:
        if self._has_room():
            self.parts.append(c)
            self.count += 1

    def put_text(self, text: str) -> None:
        for c in text:
            if self._has_room():
                self.parts.append(c)
            self.count += 1


def _next_arg(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise ValueError("not enough arguments for format string") from None


def _digits(value: int, base: int, uppercase: bool) -> str:
    alphabet = "0123456789ABCDEF" if uppercase else "0123456789abcdef"
    out = []
    while True:
        value, digit = divmod(value, base)
        out.append(alphabet[digit])
        if value == 0:
            break
    return "".join(reversed(out))


def _emit_field(sink: _Sink, src: str, negative: bool, show_prefix: bool, spec: Specifier) -> None:
    flags = spec.flags
    positive_signed = spec.is_signed and not negative
    sign_char = ""
    if flags & Flag.PLUS and positive_signed:
        sign_char = "+"
    elif flags & Flag.SPACE and positive_signed:
        sign_char = " "

    width = len(src)
    max_width = width
    min_width = 0
    has_dot = bool(flags & Flag.DOT)
    if has_dot:
        if spec.conversion in INTEGER_CONVERSIONS:
            min_width = spec.precision
            if min_width == 0 and src == "0":
                max_width = 0
        elif spec.conversion is Conversion.STRING:
            max_width = spec.precision
    precision_zeros = max(min_width - width, 0)

    pad_right = bool(flags & Flag.PAD_RIGHT)
    zero_pad = not has_dot and not pad_right and bool(flags & Flag.ZERO_PAD)

    prefix = spec.prefix or ""
    total = max_width + len(prefix) + len(sign_char) + (1 if negative else 0) + precision_zeros
    padding = max(spec.min_width - total, 0)

    if not zero_pad and not pad_right:
        sink.put_text(" " * padding)
    if negative:
        sink.put_char("-")
    if sign_char:
        sink.put_char(sign_char)
    if show_prefix:
        sink.put_text(prefix)
    if zero_pad:
        sink.put_text("0" * padding)

    for _ in range(precision_zeros):
        sink.put_char("0")
    sink.put_text(src[:max_width])

    if pad_right:
        sink.put_text(" " * padding)


def _char_arg(value: Any) -> str:
    code = ord(value) if isinstance(value, str) and len(value) == 1 else int(value)
    c = chr(code & 0xFF)
    return "" if c == "\0" else c


def _render(spec: Specifier, args: Iterator[Any], sink: _Sink) -> None:
    conversion = spec.conversion
    if conversion is Conversion.INVALID:
        return

    show_prefix = bool(spec.flags & Flag.ALTERNATE_FORM)

    if conversion in INTEGER_CONVERSIONS:
        value, negative = fetch_integer(spec, args)
        if value == 0:
            show_prefix = False
        base, uppercase = _BASES[conversion]
        if conversion is not Conversion.DECIMAL:
            negative = False
        _emit_field(sink, _digits(value, base, uppercase), negative, show_prefix, spec)
        return

    if conversion is Conversion.STRING:
        text = _next_arg(args)
        if not isinstance(text, str):
            raise TypeError(f"%s expects a str argument, got {type(text).__name__}")
        src = text[:strlen(text)]
    elif conversion is Conversion.CHAR:
        src = _char_arg(_next_arg(args))
    elif conversion is Conversion.PERCENT:
        src = "%"
    elif conversion is Conversion.UNKNOWN:
        src = spec.unknown_char
    else:
        src = ""
    _emit_field(sink, src, False, show_prefix, spec)


def vsnprintf(size: int | None, fmt: str, args: Iterable[Any]) -> tuple[str, int]:
    """Format ``fmt`` with the values of ``args`` into a buffer of ``size`` characters.

    At most ``size - 1`` characters are kept, leaving room for the
    terminator; ``size`` of ``None`` means no limit.  Returns the kept
    text and the number of characters the full output would take.
    """
    if size is not None and size < 0:
        raise ValueError("size must not be negative")

    arg_iter = iter(args)
    fmt = fmt[:strlen(fmt)]
    out: list[str] = []
    generated = 0
    pos = 0

    while pos < len(fmt):
        if size is None:
            remaining: int | None = None
        else:
            remaining = size - 1 - generated if generated + 1 < size else 0

        if fmt[pos] == "%":
            spec, pos = parse_specifier(fmt, pos, arg_iter)
            sink = _Sink(remaining)
            _render(spec, arg_iter, sink)
            out.extend(sink.parts)
            generated += sink.count
        else:
            if remaining is None or remaining > 0:
                out.append(fmt[pos])
            generated += 1
            pos += 1

    return "".join(out), generated


def snprintf(size: int | None, fmt: str, *args: Any) -> tuple[str, int]:
    """Like :func:`vsnprintf`, with the values given as positional arguments."""
    return vsnprintf(size, fmt, args)


def sprintf(fmt: str, *args: Any) -> str:
    """Format ``fmt`` with ``args`` without any size limit."""
    text, _ = vsnprintf(None, fmt, args)
    return text