"""VGA text-mode driver drawing through a scrollback shadow buffer."""

from __future__ import annotations

from toykernel.memory import memcpy, memset_word, strlen
from toykernel.ports import PortBus

__all__ = [
    "VgaTextDriver",
    "COLOR_DEFAULT",
    "COLOR_SUCCESS",
    "COLOR_FAILURE",
    "COLOR_BLUE_SCREEN",
    "WIDTH",
    "HEIGHT",
    "SHADOW_HEIGHT",
    "MAX_CHARS",
    "SHADOW_MAX_CHARS",
    "PORT_COMMAND",
    "PORT_DATA",
    "COMMAND_SET_CURSOR_HIGH_BYTE",
    "COMMAND_SET_CURSOR_LOW_BYTE",
]

COLOR_DEFAULT = 0x07
COLOR_SUCCESS = 0x02
COLOR_FAILURE = 0x04
COLOR_BLUE_SCREEN = 0x1F

WIDTH = 80
HEIGHT = 25
SHADOW_HEIGHT = 40
MAX_CHARS = WIDTH * HEIGHT
SHADOW_MAX_CHARS = WIDTH * SHADOW_HEIGHT

BLANK_LINES = 2
WRITABLE_LINES = HEIGHT - BLANK_LINES

LINE_SIZE = 2 * WIDTH
SCREEN_SIZE = LINE_SIZE * HEIGHT
SHADOW_SIZE = LINE_SIZE * SHADOW_HEIGHT

PORT_COMMAND = 0x3D4
PORT_DATA = 0x3D5
COMMAND_SET_CURSOR_HIGH_BYTE = 0x0E
COMMAND_SET_CURSOR_LOW_BYTE = 0x0F


def _blank_word(color: int) -> int:
    return ((color & 0xFF) << 8) | ord(" ")


class VgaTextDriver:
    """Text output into a simulated VGA buffer.

    Characters are written to a shadow buffer of ``SHADOW_HEIGHT`` lines;
    the visible ``memory`` (two bytes per cell: character, then colour) is
    refreshed from it on every newline and on :meth:`flush`, showing the
    last lines written while keeping the bottom two screen lines blank.
    The hardware cursor is moved through the CRT controller ports of
    ``bus``.
    """

    def __init__(self, bus: PortBus) -> None:
        self.bus = bus
        self.memory = bytearray(SCREEN_SIZE)
        self.shadow = bytearray(SHADOW_SIZE)
        self.shadow_line = 0
        self.offset = 0

    def init(self, initial_line: int = 0, copy_existing: bool = False) -> None:
        """Blank the shadow buffer and start writing at ``initial_line``.

        With ``copy_existing`` the current screen contents are taken over
        into the top of the shadow buffer.
        """
        if not 0 <= initial_line < SHADOW_HEIGHT:
            raise ValueError(
                f"initial line {initial_line} is outside 0..{SHADOW_HEIGHT - 1}"
            )
        memset_word(self.shadow, _blank_word(COLOR_DEFAULT), SHADOW_MAX_CHARS)
        self.shadow_line = initial_line
        if copy_existing:
            memcpy(self.shadow, self.memory, SCREEN_SIZE)

    def _line_feed(self) -> None:
        self.shadow_line += 1
        if self.shadow_line >= SHADOW_HEIGHT:
            self._scroll_shadow()
            self.shadow_line = SHADOW_HEIGHT - 1

    def _scroll_shadow(self) -> None:
        last = (SHADOW_HEIGHT - 1) * LINE_SIZE
        memcpy(self.shadow, self.shadow, last, 0, LINE_SIZE)
        memset_word(self.shadow, _blank_word(COLOR_DEFAULT), WIDTH, last)

    def flush(self) -> None:
        """Copy the visible window of the shadow buffer to the screen."""
        if self.shadow_line >= WRITABLE_LINES:
            first_line = self.shadow_line - WRITABLE_LINES + 1
        else:
            first_line = 0
        start = first_line * LINE_SIZE
        window = bytearray(self.shadow[start:start + SCREEN_SIZE])
        missing = SCREEN_SIZE - len(window)
        if missing:
            window += _blank_word(COLOR_DEFAULT).to_bytes(2, "little") * (missing // 2)
        self.memory[:] = window

    def _move_cursor(self) -> None:
        cursor_line = min(self.shadow_line, WRITABLE_LINES - 1)
        index = (cursor_line * WIDTH + self.offset) & 0xFFFF
        self.bus.write_byte(PORT_COMMAND, COMMAND_SET_CURSOR_HIGH_BYTE)
        self.bus.write_byte(PORT_DATA, index >> 8)
        self.bus.write_byte(PORT_COMMAND, COMMAND_SET_CURSOR_LOW_BYTE)
        self.bus.write_byte(PORT_DATA, index & 0xFF)

    def _put_char(self, color: int, char: str) -> None:
        if char == "\n":
            self._line_feed()
            self.offset = 0
            self.flush()
            self._move_cursor()
            return

        if self.offset >= WIDTH:
            self._line_feed()
            self.offset = 0

        index = 2 * (self.shadow_line * WIDTH + self.offset)
        self.shadow[index] = ord(char)
        self.shadow[index + 1] = color & 0xFF
        self.offset += 1

    def print_string(self, color: int, text: str) -> None:
        """Write ``text`` in ``color`` up to its first NUL character."""
        text = text[:strlen(text)]
        bad = next((c for c in text if ord(c) > 0xFF), None)
        if bad is not None:
            raise ValueError(f"character {bad!r} cannot be shown in text mode")
        for char in text:
            self._put_char(color, char)

    def clear(self, color: int = COLOR_DEFAULT) -> None:
        """Blank everything in ``color`` and move to the top-left corner."""
        memset_word(self.shadow, _blank_word(color), SHADOW_MAX_CHARS)
        self.shadow_line = 0
        self.offset = 0
        self.flush()
        self._move_cursor()

    def screen_text(self) -> list[str]:
        """The characters on screen, one string per row, without trailing blanks."""
        rows = []
        for row in range(HEIGHT):
            cells = self.memory[row * LINE_SIZE:(row + 1) * LINE_SIZE:2]
            rows.append(cells.decode("latin-1").rstrip(" \0"))
        return rows