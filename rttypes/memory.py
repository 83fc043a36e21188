"""Raw memory helpers: alignment math, pointer arithmetic and the handle heap.

A "pointer" is a writable ``memoryview`` whose first byte is the addressed
byte; pointer arithmetic is slicing. Values that own Python objects (text,
array buffers, element descriptors) keep a little-endian ``u64`` handle in
their raw bytes, and the handle indexes a :class:`Heap`. Handle ``0`` is the
null handle, so zero-filled memory never refers to a live resource.
"""

from __future__ import annotations

from typing import Any
import struct

from rttypes.errors import DanglingHandleError, LayoutError

NULL_HANDLE = 0
HANDLE = struct.Struct("<Q")


def _check_alignment(alignment: int) -> None:
    if alignment <= 0 or alignment & (alignment - 1):
        raise LayoutError(f"Alignment must be a positive power of two, got {alignment}")


def padding(offset: int, alignment: int) -> int:
    """Bytes needed after ``offset`` to reach the next multiple of ``alignment``."""
    _check_alignment(alignment)
    misalignment = offset & (alignment - 1)
    return alignment - misalignment if misalignment else 0


def align(offset: int, alignment: int) -> int:
    return offset + padding(offset, alignment)


def offset(ptr: memoryview, n: int) -> memoryview:
    return ptr[n:]


def allocate(size: int) -> memoryview:
    """Zero-filled raw buffer of ``size`` bytes."""
    if size < 0:
        raise LayoutError(f"Cannot allocate a negative number of bytes ({size})")
    return memoryview(bytearray(size))


def read_handle(ptr: memoryview) -> int:
    return HANDLE.unpack_from(ptr)[0]


def write_handle(ptr: memoryview, handle: int) -> None:
    HANDLE.pack_into(ptr, 0, handle)


class Heap:
    """Handle table for Python objects owned by values living in raw memory.

    Every ``new`` must be paired with exactly one ``free``; ``live_count``
    is what leak checks compare against.
    """

    def __init__(self) -> None:
        self._slots: dict[int, Any] = {}
        self._next = NULL_HANDLE + 1

    def new(self, obj: Any) -> int:
        handle = self._next
        self._next += 1
        self._slots[handle] = obj
        return handle

    def get(self, handle: int) -> Any:
        try:
            return self._slots[handle]
        except KeyError:
            raise DanglingHandleError(handle) from None

    def set(self, handle: int, obj: Any) -> None:
        if handle not in self._slots:
            raise DanglingHandleError(handle)
        self._slots[handle] = obj

    def free(self, handle: int) -> Any:
        try:
            return self._slots.pop(handle)
        except KeyError:
            raise DanglingHandleError(handle) from None

    def live_count(self) -> int:
        return len(self._slots)

    def __contains__(self, handle: object) -> bool:
        return handle in self._slots


heap = Heap()


_HEX_CHARS = "0123456789abcdef"


def hexdump(data: bytes | bytearray | memoryview) -> str:
    """Two lowercase hex digits per byte, no separators."""
    out = []
    for byte in bytes(data):
        out.append(_HEX_CHARS[(byte & 0xF0) >> 4])
        out.append(_HEX_CHARS[byte & 0x0F])
    return "".join(out)


def printable(data: bytes | bytearray | memoryview) -> str:
    """Each byte as ``" " + char``, with non-printable bytes shown as a space."""
    return "".join(" " + (chr(byte) if 0x20 <= byte <= 0x7E else " ") for byte in bytes(data))
