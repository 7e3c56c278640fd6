"""A simulated x86 I/O port bus."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Iterable

WAIT_PORT = 0x80


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port {port:#x} is outside the 16-bit port space")


def _check_byte(value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"value {value:#x} does not fit in a byte")


class PortBus:
    """Byte-wide I/O ports.

    Every write is recorded in ``writes`` as a ``(port, value)`` pair.
    Reads return values queued with :meth:`feed` first; once a port's
    queue is empty they return the last byte written to it, or 0.
    """

    def __init__(self) -> None:
        self.writes: list[tuple[int, int]] = []
        self._pending: defaultdict[int, deque[int]] = defaultdict(deque)
        self._latched: dict[int, int] = {}

    def write_byte(self, port: int, value: int) -> None:
        """Output ``value`` on ``port``."""
        _check_port(port)
        _check_byte(value)
        self.writes.append((port, value))
        self._latched[port] = value

    def read_byte(self, port: int) -> int:
        """Input one byte from ``port``."""
        _check_port(port)
        queue = self._pending.get(port)
        if queue:
            return queue.popleft()
        return self._latched.get(port, 0)

    def wait(self) -> None:
        """Spend one I/O cycle by writing 0 to the unused wait port."""
        self.write_byte(WAIT_PORT, 0)

    def feed(self, port: int, values: Iterable[int]) -> None:
        """Queue ``values`` to be returned by later reads of ``port``."""
        _check_port(port)
        items = list(values)
        for value in items:
            _check_byte(value)
        self._pending[port].extend(items)