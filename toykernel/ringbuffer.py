"""A fixed-size byte ring buffer whose capacity is a power of two."""

from __future__ import annotations

__all__ = ["RingBufferFullError", "RingBuffer"]


class RingBufferFullError(Exception):
    """Raised when data does not fit into a ring buffer."""


class RingBuffer:
    """Byte FIFO over a fixed storage area.

    ``head`` counts bytes ever written and ``tail`` bytes ever consumed;
    their difference is the number of bytes held.  Positions in the
    storage are taken modulo the size, which must be a power of two.
    """

    def __init__(self, size: int) -> None:
        if size <= 0 or size & (size - 1):
            raise ValueError(f"ring buffer size must be a positive power of two, got {size}")
        self.size = size
        self.head = 0
        self.tail = 0
        self._storage = bytearray(size)
        self._mask = size - 1

    def __len__(self) -> int:
        return self.head - self.tail

    def remaining_space(self) -> int:
        """Number of bytes that can still be written without overwriting."""
        return self.size - (self.head - self.tail)

    def is_empty(self) -> bool:
        """Whether there is nothing to read."""
        return self.head == self.tail

    def is_full(self) -> bool:
        """Whether no byte can be written without overwriting."""
        return self.head - self.tail >= self.size

    def _store(self, data: bytes) -> None:
        for value in data:
            self._storage[self.head & self._mask] = value
            self.head += 1

    def force_write(self, data: bytes) -> None:
        """Write ``data``, dropping the oldest bytes if space runs out.

        Raises :class:`RingBufferFullError` if ``data`` is longer than the
        whole buffer.
        """
        data = bytes(data)
        remaining = self.remaining_space()
        if remaining < len(data):
            if len(data) > self.size:
                raise RingBufferFullError(
                    f"{len(data)} bytes cannot fit in a buffer of {self.size}"
                )
            self.tail += len(data) - remaining
        self._store(data)

    def try_write(self, data: bytes) -> None:
        """Write ``data`` whole, or raise :class:`RingBufferFullError` and write nothing."""
        data = bytes(data)
        if self.remaining_space() < len(data):
            raise RingBufferFullError(
                f"{len(data)} bytes requested, {self.remaining_space()} available"
            )
        self._store(data)

    def read(self, count: int) -> bytes:
        """Remove and return up to ``count`` of the oldest bytes."""
        if count < 0:
            raise ValueError("count must not be negative")
        out = bytearray()
        while len(out) < count and not self.is_empty():
            out.append(self._storage[self.tail & self._mask])
            self.tail += 1
        return bytes(out)