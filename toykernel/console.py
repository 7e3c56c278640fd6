"""Console output with status reports and a terminal error screen."""

from __future__ import annotations

import enum
from typing import Any

from toykernel.printf import vsnprintf
from toykernel.vga import (
    COLOR_BLUE_SCREEN,
    COLOR_DEFAULT,
    COLOR_FAILURE,
    COLOR_SUCCESS,
    SHADOW_MAX_CHARS,
    VgaTextDriver,
)

__all__ = ["ReportStatus", "Console"]


class ReportStatus(enum.Enum):
    """Outcome shown in a status report line."""

    SUCCESS = enum.auto()
    FAILURE = enum.auto()


class Console:
    """Formatted text output on top of a VGA text driver.

    Once the blue error screen has been shown, all further output keeps
    its colours.
    """

    def __init__(self, driver: VgaTextDriver) -> None:
        self.driver = driver
        self.is_blue_screen = False

    def init(self, initial_line: int = 0, copy_existing: bool = False) -> None:
        """Prepare the driver to write from ``initial_line``."""
        self.driver.init(initial_line, copy_existing)

    def _print_colored(self, color: int, fmt: str, args: tuple[Any, ...]) -> None:
        text, _ = vsnprintf(SHADOW_MAX_CHARS, fmt, args)
        self.driver.print_string(color, text)

    def printf(self, fmt: str, *args: Any) -> None:
        """Format ``fmt`` with ``args`` and print it."""
        color = COLOR_BLUE_SCREEN if self.is_blue_screen else COLOR_DEFAULT
        self._print_colored(color, fmt, args)

    def report(self, message: str, status: ReportStatus) -> None:
        """Print ``message`` on its own line behind a coloured status tag."""
        self.printf("[")
        if status is ReportStatus.SUCCESS:
            self._print_colored(COLOR_SUCCESS, " SUCCESS ", ())
        elif status is ReportStatus.FAILURE:
            self._print_colored(COLOR_FAILURE, " FAILURE ", ())
        self.printf("] %s\n", message)

    def clear(self) -> None:
        """Blank the screen in the default colours."""
        self.driver.clear(COLOR_DEFAULT)

    def flush(self) -> None:
        """Show everything written so far."""
        self.driver.flush()

    def print_blue_screen(self, fmt: str, *args: Any) -> None:
        """Switch to the error screen for good and print the formatted message."""
        self.is_blue_screen = True
        self.driver.clear(COLOR_BLUE_SCREEN)
        self.driver.print_string(COLOR_BLUE_SCREEN, "An error has occurred:\n")
        self._print_colored(COLOR_BLUE_SCREEN, fmt, args)
        self.driver.flush()