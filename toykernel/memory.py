"""Byte-level memory helpers working on mutable buffers."""

from __future__ import annotations

from typing import Union

Buffer = Union[bytearray, memoryview]


def _check_range(buf, offset: int, length: int) -> None:
    if offset < 0 or length < 0:
        raise ValueError("offset and length must not be negative")
    if offset + length > len(buf):
        raise IndexError(
            f"range {offset}..{offset + length} exceeds buffer of {len(buf)} bytes"
        )


def memset(buf: Buffer, value: int, length: int, offset: int = 0) -> Buffer:
    """Fill ``length`` bytes of ``buf`` from ``offset`` with the low byte of ``value``."""
    _check_range(buf, offset, length)
    buf[offset:offset + length] = bytes([value & 0xFF]) * length
    return buf


def memset_word(buf: Buffer, value: int, count: int, offset: int = 0) -> Buffer:
    """Fill ``count`` little-endian 16-bit words of ``buf`` from ``offset`` with ``value``."""
    _check_range(buf, offset, 2 * count)
    buf[offset:offset + 2 * count] = (value & 0xFFFF).to_bytes(2, "little") * count
    return buf


def memcpy(dst: Buffer, src, n: int, dst_offset: int = 0, src_offset: int = 0) -> Buffer:
    """Copy ``n`` bytes from ``src`` at ``src_offset`` into ``dst`` at ``dst_offset``."""
    _check_range(src, src_offset, n)
    _check_range(dst, dst_offset, n)
    dst[dst_offset:dst_offset + n] = bytes(src[src_offset:src_offset + n])
    return dst


def strlen(data) -> int:
    """Length of ``data`` up to its first NUL, or its whole length if it has none."""
    if isinstance(data, str):
        end = data.find("\0")
    else:
        end = bytes(data).find(0)
    return len(data) if end < 0 else end