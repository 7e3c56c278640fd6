"""Second-stage boot steps: GDT switch to long mode and identity page tables."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import Iterable

from toykernel.memory import memset

__all__ = [
    "GdtDescriptor",
    "PageTableBuilder",
    "update_gdt",
    "PAGE_SIZE",
    "FLAGS",
    "MEMORY_SIZE_TO_MAP",
    "ENTRIES_PER_TABLE",
    "LONG_MODE_FLAGS",
]

PAGE_SIZE = 4 * 1024
FLAGS = 0b11
MEMORY_SIZE_TO_MAP = 0x40000000

ENTRIES_PER_TABLE = 512
PAGES_IN_PT = 512
PAGES_IN_PDT = PAGES_IN_PT * 512
PAGES_IN_PDPT = PAGES_IN_PDT * 512

# Granularity on, size flag off, long-mode flag on, reserved off.
LONG_MODE_FLAGS = 0b10100000
_EXECUTABLE_BIT = 0b1000

_GDT_FORMAT = struct.Struct("<HHBBBB")
_ENTRY_FORMAT = struct.Struct("<Q")

# Pages covered by one entry of a table at each level, PT first.
_PAGES_PER_ENTRY = (1, PAGES_IN_PT, PAGES_IN_PDT, PAGES_IN_PDPT)
_TOP_LEVEL = len(_PAGES_PER_ENTRY) - 1


@dataclass(frozen=True)
class GdtDescriptor:
    """One 8-byte segment descriptor of the global descriptor table."""

    limit_bottom: int
    base_bottom: int
    base_middle: int
    access_byte: int
    limit_top_plus_flags: int
    base_top: int

    @classmethod
    def from_bytes(cls, data: bytes) -> GdtDescriptor:
        """Decode a descriptor from its 8-byte in-memory form."""
        if len(data) != _GDT_FORMAT.size:
            raise ValueError(f"a GDT descriptor is {_GDT_FORMAT.size} bytes, got {len(data)}")
        return cls(*_GDT_FORMAT.unpack(bytes(data)))

    def pack(self) -> bytes:
        """The descriptor in its in-memory form."""
        return _GDT_FORMAT.pack(
            self.limit_bottom,
            self.base_bottom,
            self.base_middle,
            self.access_byte,
            self.limit_top_plus_flags,
            self.base_top,
        )

    @property
    def is_executable(self) -> bool:
        """Whether this is a code segment."""
        return self.access_byte & _EXECUTABLE_BIT != 0


def update_gdt(descriptors: Iterable[GdtDescriptor]) -> list[GdtDescriptor]:
    """Give every code segment the long-mode flags, keeping its limit bits."""
    updated = []
    for descriptor in descriptors:
        if descriptor.is_executable:
            stripped = descriptor.limit_top_plus_flags & 0b1111
            descriptor = replace(descriptor, limit_top_plus_flags=stripped | LONG_MODE_FLAGS)
        updated.append(descriptor)
    return updated


class PageTableBuilder:
    """Builds four-level identity-mapping page tables in ``memory``.

    ``memory`` stands for physical memory from address 0.  Tables are
    taken page by page from ``base_address`` on and zeroed as they are
    taken; mapped frames are handed out from physical address 0.
    """

    def __init__(self, memory: bytearray, base_address: int) -> None:
        if base_address < 0 or base_address % PAGE_SIZE:
            raise ValueError(f"base address {base_address:#x} is not page aligned")
        self.memory = memory
        self.next_free_address = base_address
        self.next_physical_address = 0

    def _allocate_table(self) -> int:
        address = self.next_free_address
        memset(self.memory, 0, PAGE_SIZE, address)
        self.next_free_address += PAGE_SIZE
        return address

    def _next_physical(self) -> int:
        address = self.next_physical_address
        self.next_physical_address += PAGE_SIZE
        return address

    def _set_entry(self, table: int, index: int, value: int) -> None:
        _ENTRY_FORMAT.pack_into(self.memory, table + index * _ENTRY_FORMAT.size, value)

    def _map_level(self, table: int, pages_count: int, level: int) -> None:
        if level == 0:
            for index in range(min(pages_count, ENTRIES_PER_TABLE)):
                self._set_entry(table, index, self._next_physical() | FLAGS)
            return

        span = _PAGES_PER_ENTRY[level]
        index = 0
        while pages_count > 0 and index < ENTRIES_PER_TABLE:
            child = self._allocate_table()
            self._map_level(child, pages_count, level - 1)
            self._set_entry(table, index, child | FLAGS)
            pages_count -= span
            index += 1

    def build_identity_map(self, memory_size: int = MEMORY_SIZE_TO_MAP) -> int:
        """Map the first ``memory_size`` bytes onto themselves.

        Returns the address of the top-level table.
        """
        if memory_size < 0:
            raise ValueError("memory size must not be negative")
        pml4 = self._allocate_table()
        self._map_level(pml4, memory_size // PAGE_SIZE, _TOP_LEVEL)
        return pml4