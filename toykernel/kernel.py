"""A simulated machine running the kernel's boot path and keyboard echo loop."""

from __future__ import annotations

import argparse
import sys

from toykernel.console import Console, ReportStatus
from toykernel.interrupts import (
    IDT_SIZE,
    KEYBOARD_IRQ,
    OFFSET_PIC_MASTER,
    IdtDescriptor,
    InterruptHandler,
    IsrArgs,
    Pic,
    Vector,
    build_idt,
)
from toykernel.keyboard import PS2Keyboard
from toykernel.ports import PortBus
from toykernel.vga import VgaTextDriver

__all__ = ["Machine", "main", "KEYBOARD_DATA_PORT", "CONSOLE_INITIAL_LINE"]

KEYBOARD_DATA_PORT = 0x60
CONSOLE_INITIAL_LINE = 19

_ISR_STUB_BASE = 0x00108000
_ISR_STUB_STRIDE = 16
_BREAKPOINT_RIP = 0x00100040


class Machine:
    """The kernel together with its simulated ports, screen and keyboard."""

    def __init__(self) -> None:
        self.bus = PortBus()
        self.driver = VgaTextDriver(self.bus)
        self.console = Console(self.driver)
        self.keyboard = PS2Keyboard(self.bus, KEYBOARD_DATA_PORT)
        self.pic = Pic(self.bus)
        self.interrupts = InterruptHandler(self.console, self.pic, self.keyboard)
        self.idt: list[IdtDescriptor] = []
        self.interrupts_enabled = False

    def io_setup(self) -> None:
        """Set up the keyboard input and the console output."""
        self.keyboard = PS2Keyboard(self.bus, KEYBOARD_DATA_PORT)
        self.interrupts.keyboard = self.keyboard
        self.console.init(CONSOLE_INITIAL_LINE, True)

    def _interrupts_setup(self) -> None:
        self.idt = build_idt(
            _ISR_STUB_BASE + vector * _ISR_STUB_STRIDE for vector in range(IDT_SIZE)
        )
        self.pic.remap()
        self.interrupts_enabled = True

    def boot(self) -> None:
        """Run the kernel entry up to the point where it waits for keys."""
        self.io_setup()
        self.console.report("entered 64-bit long mode...", ReportStatus.SUCCESS)

        self._interrupts_setup()

        self.interrupts.handle(IsrArgs(isr_number=Vector.BREAKPOINT, rip=_BREAKPOINT_RIP))
        self.console.report(
            "finished handling a breakpoint interrupt. kernel took back control...",
            ReportStatus.SUCCESS,
        )

    def press(self, scancode: int) -> None:
        """Deliver ``scancode`` from the keyboard controller as an IRQ."""
        if not self.interrupts_enabled:
            raise RuntimeError("interrupts are not set up; boot the machine first")
        self.bus.feed(KEYBOARD_DATA_PORT, [scancode])
        self.interrupts.handle(IsrArgs(isr_number=OFFSET_PIC_MASTER + KEYBOARD_IRQ))

    def echo_pending(self) -> str:
        """Print every buffered character and return them."""
        echoed = []
        while (char := self.keyboard.read_char()) is not None:
            self.console.printf("%c", char)
            self.console.flush()
            echoed.append(char)
        return "".join(echoed)


def _scancode(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not 0 <= value <= 0xFF:
        raise argparse.ArgumentTypeError(f"scancode {text} does not fit in a byte")
    return value


def main(argv: list[str] | None = None) -> int:
    """Boot the machine, type the given scancodes and print the screen."""
    parser = argparse.ArgumentParser(
        prog="toykernel",
        description="Boot the simulated kernel and feed it keyboard scancodes.",
    )
    parser.add_argument(
        "scancodes",
        nargs="*",
        type=_scancode,
        help="scancode bytes to deliver, decimal or 0x-prefixed",
    )
    options = parser.parse_args(argv)

    machine = Machine()
    machine.boot()
    for code in options.scancodes:
        machine.press(code)
        machine.echo_pending()

    rows = machine.driver.screen_text()
    while rows and not rows[-1]:
        rows.pop()
    sys.stdout.write("\n".join(rows) + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())