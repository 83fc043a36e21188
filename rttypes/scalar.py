"""Scalar descriptors: one fixed-layout value kind per descriptor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable
import struct

from rttypes.descriptor import TypeDescriptor
from rttypes.errors import RepresentationMismatchError, UnknownTypeError
from rttypes.memory import HANDLE, NULL_HANDLE, heap, read_handle, write_handle


class ScalarKind(ABC):
    """A value kind with a natural size and alignment."""

    name: str
    size: int
    alignment: int

    @abstractmethod
    def construct(self, ptr: memoryview) -> None: ...

    @abstractmethod
    def destruct(self, ptr: memoryview) -> None: ...

    @abstractmethod
    def load(self, ptr: memoryview) -> Any: ...

    @abstractmethod
    def store(self, ptr: memoryview, value: Any) -> None: ...


class PackedKind(ScalarKind):
    """Plain-old-data kind packed little-endian with :mod:`struct`."""

    def __init__(self, name: str, fmt: str, default: Any, numpy_dtype: str):
        self.name = name
        self._codec = struct.Struct("<" + fmt)
        self.size = self._codec.size
        self.alignment = self._codec.size
        self.default = default
        self.numpy_dtype = numpy_dtype

    def construct(self, ptr: memoryview) -> None:
        self._codec.pack_into(ptr, 0, self.default)

    def destruct(self, ptr: memoryview) -> None:
        # Nothing owned; the bytes stay readable until reused.
        pass

    def load(self, ptr: memoryview) -> Any:
        return self._codec.unpack_from(ptr)[0]

    def store(self, ptr: memoryview, value: Any) -> None:
        try:
            self._codec.pack_into(ptr, 0, value)
        except struct.error as exc:
            raise RepresentationMismatchError(
                value, self.name, f"Cannot store {value!r} as '{self.name}': {exc}"
            ) from exc


class TextKind(ScalarKind):
    """Heap-backed text; the raw bytes hold a handle to a Python ``str``."""

    name = "text"
    size = HANDLE.size
    alignment = HANDLE.size

    def construct(self, ptr: memoryview) -> None:
        write_handle(ptr, heap.new(""))

    def destruct(self, ptr: memoryview) -> None:
        heap.free(read_handle(ptr))
        write_handle(ptr, NULL_HANDLE)

    def load(self, ptr: memoryview) -> str:
        return heap.get(read_handle(ptr))

    def store(self, ptr: memoryview, value: Any) -> None:
        if not isinstance(value, str):
            raise RepresentationMismatchError(value, self.name, f"Cannot store {type(value).__name__} as 'text'")
        heap.set(read_handle(ptr), value)


_KINDS: dict[str, ScalarKind] = {
    kind.name: kind
    for kind in (
        PackedKind("bool", "?", False, "?"),
        PackedKind("i8", "b", 0, "<i1"),
        PackedKind("u8", "B", 0, "<u1"),
        PackedKind("i16", "h", 0, "<i2"),
        PackedKind("u16", "H", 0, "<u2"),
        PackedKind("i32", "i", 0, "<i4"),
        PackedKind("u32", "I", 0, "<u4"),
        PackedKind("i64", "q", 0, "<i8"),
        PackedKind("u64", "Q", 0, "<u8"),
        PackedKind("f32", "f", 0.0, "<f4"),
        PackedKind("f64", "d", 0.0, "<f8"),
        TextKind(),
    )
}


class ScalarType(TypeDescriptor):
    """Descriptor wrapping exactly one :class:`ScalarKind`."""

    kind = "scalar"

    def __init__(self, kind: ScalarKind | str):
        if isinstance(kind, str):
            kind = scalar_kind(kind)
        super().__init__(kind.size, kind.alignment)
        self._kind = kind

    @property
    def scalar_kind(self) -> ScalarKind:
        return self._kind

    @property
    def name(self) -> str:
        return self._kind.name

    @property
    def type_tag(self) -> Hashable:
        return ("scalar", self._kind.name)

    def clone(self) -> "ScalarType":
        return ScalarType(self._kind)

    def construct(self, ptr: memoryview) -> None:
        self._kind.construct(ptr)

    def destruct(self, ptr: memoryview) -> None:
        self._kind.destruct(ptr)

    def copy_data(self, dest: memoryview, src: memoryview) -> None:
        value = self._kind.load(src)
        self._kind.construct(dest)
        self._kind.store(dest, value)

    def load(self, ptr: memoryview) -> Any:
        return self._kind.load(ptr)

    def store(self, ptr: memoryview, value: Any) -> None:
        self._kind.store(ptr, value)

    def describe(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "size": self.size,
            "alignment": self.alignment,
        }


def scalar_kind(name: str) -> ScalarKind:
    try:
        return _KINDS[name]
    except KeyError:
        raise UnknownTypeError(f"Unknown scalar kind '{name}'") from None


def scalar(name: str) -> ScalarType:
    """Resolve a built-in scalar descriptor by name."""
    return ScalarType(scalar_kind(name))


def scalar_names() -> list[str]:
    return list(_KINDS)


def _factory(name: str) -> Callable[[], ScalarType]:
    def make() -> ScalarType:
        return ScalarType(_KINDS[name])

    make.__doc__ = f"Descriptor for the '{name}' scalar kind."
    return make


Bool = _factory("bool")
Int8 = _factory("i8")
UInt8 = _factory("u8")
Int16 = _factory("i16")
UInt16 = _factory("u16")
Int32 = _factory("i32")
UInt32 = _factory("u32")
Int64 = _factory("i64")
UInt64 = _factory("u64")
Float32 = _factory("f32")
Float64 = _factory("f64")
Text = _factory("text")
