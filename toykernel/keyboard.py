"""PS/2 keyboard driver on a simulated port bus."""

from __future__ import annotations

from toykernel.ports import PortBus
from toykernel.ringbuffer import RingBuffer, RingBufferFullError
from toykernel.scancodes import KeyEventType, parse_scancode

__all__ = ["PS2Keyboard", "DEFAULT_DATA_PORT", "BUFFER_SIZE"]

DEFAULT_DATA_PORT = 0x60
BUFFER_SIZE = 256


class PS2Keyboard:
    """Reads scancodes from the data port and buffers the typed characters.

    A character is queued when its key is released.  Characters that
    arrive while the buffer is full are dropped.
    """

    def __init__(self, bus: PortBus, data_port: int = DEFAULT_DATA_PORT) -> None:
        self.bus = bus
        self.data_port = data_port
        self.buffer = RingBuffer(BUFFER_SIZE)

    def handle_scancode(self) -> None:
        """Read one scancode from the data port and act on it."""
        event = parse_scancode(self.bus.read_byte(self.data_port))
        if event.event_type is KeyEventType.RELEASED and event.key is not None:
            try:
                self.buffer.try_write(event.key.encode("ascii"))
            except RingBufferFullError:
                pass

    def read_char(self) -> str | None:
        """Take the oldest buffered character, or ``None`` if none is waiting."""
        data = self.buffer.read(1)
        return data.decode("ascii") if data else None