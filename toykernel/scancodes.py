"""Translation of PS/2 scancodes into key events."""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = ["KeyEventType", "KeyEvent", "parse_scancode", "TABLE_SIZE"]

TABLE_SIZE = 0xE0  # codes from here on start extended sequences


class KeyEventType(enum.Enum):
    """What happened to a key."""

    INVALID = enum.auto()
    PRESSED = enum.auto()
    RELEASED = enum.auto()


@dataclass(frozen=True)
class KeyEvent:
    """A key event with the ASCII character of the key, if it has one."""

    event_type: KeyEventType
    key: str | None = None


_INVALID = KeyEvent(KeyEventType.INVALID)

# Runs of consecutive scancodes, keyed by the first code of each run.
_PRESSED_RUNS = {
    1: "\x1b",
    2: "1234567890-=\x08",
    15: "QWERTYUIOP[]\n",
    29: "ASDFGHJKL;'`",
    42: "\\ZXCVBNM,./",
    54: "*",
    56: " ",
    70: "789-456+1230.",
}

_RELEASED_RUNS = {
    129: "\x1b",
    130: "1234567890-=\x08\t",
    144: "QWERTYUIOP[]\n",
    158: "ASDFGHJKL;'`",
    171: "\\ZXCVBNM,./",
    183: "*",
    185: " ",
    199: "789-456+1230.",
}


def _build_table() -> tuple[KeyEvent, ...]:
    table = [_INVALID] * TABLE_SIZE
    for event_type, runs in (
        (KeyEventType.PRESSED, _PRESSED_RUNS),
        (KeyEventType.RELEASED, _RELEASED_RUNS),
    ):
        for start, keys in runs.items():
            for code, key in enumerate(keys, start):
                table[code] = KeyEvent(event_type, key)
    return tuple(table)


_TABLE = _build_table()


def parse_scancode(scancode: int) -> KeyEvent:
    """Return the key event a single scancode byte stands for.

    Codes with no mapped key, including the extended range from 0xE0 on,
    give an invalid event.
    """
    if not 0 <= scancode <= 0xFF:
        raise ValueError(f"scancode {scancode} does not fit in a byte")
    if scancode >= TABLE_SIZE:
        return _INVALID
    return _TABLE[scancode]