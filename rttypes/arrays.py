"""Growable type-erased arrays and the descriptor that embeds them."""

from __future__ import annotations

from typing import Any, Hashable, Iterable, Iterator
import logging
import struct

from rttypes.descriptor import Representation, TypeDescriptor, check_representation, to_native
from rttypes.errors import IndexOutOfBoundsError, LayoutError, RepresentationMismatchError, RTTypesError
from rttypes.memory import NULL_HANDLE, allocate, heap

logger = logging.getLogger("rttypes.arrays")

# Control block: element type handle, data buffer handle, size, capacity.
CONTROL_BLOCK = struct.Struct("<QQQQ")
CONTROL_BLOCK_ALIGNMENT = 8
_SLOT = struct.Struct("<Q")
_ELEMENT_TYPE = 0
_DATA = 8
_SIZE = 16
_CAPACITY = 24


def _import_numpy():
    try:
        import numpy as np

        return np
    except Exception:
        return None


class GrowableArray:
    """Resizable contiguous buffer of homogeneous elements.

    The array itself is a view over a 32-byte control block. Elements
    ``[0, size)`` are constructed; slots ``[size, capacity)`` are raw bytes.
    A standalone array (``GrowableArray(Float32())``) allocates its own block
    and must be released, either explicitly or by using it as a context
    manager. ``GrowableArray(block=ptr)`` binds to a block constructed
    elsewhere, typically by :class:`ArrayType`.
    """

    __slots__ = ("_block",)

    def __init__(self, element_type: TypeDescriptor | None = None, *, block: memoryview | None = None):
        if block is None:
            if element_type is None:
                raise LayoutError("A standalone array needs an element type")
            block = allocate(CONTROL_BLOCK.size)
            self.initialize(block, element_type)
        elif element_type is not None:
            raise LayoutError("Pass either an element type or an existing control block, not both")
        self._block = block[: CONTROL_BLOCK.size]

    @staticmethod
    def initialize(block: memoryview, element_type: TypeDescriptor) -> None:
        """Write an empty array header bound to a clone of ``element_type``."""
        CONTROL_BLOCK.pack_into(block, 0, heap.new(element_type.clone()), NULL_HANDLE, 0, 0)

    def _get(self, slot: int) -> int:
        return _SLOT.unpack_from(self._block, slot)[0]

    def _put(self, slot: int, value: int) -> None:
        _SLOT.pack_into(self._block, slot, value)

    @property
    def element_type(self) -> TypeDescriptor:
        return heap.get(self._get(_ELEMENT_TYPE))

    @property
    def size(self) -> int:
        return self._get(_SIZE)

    @property
    def capacity(self) -> int:
        return self._get(_CAPACITY)

    @property
    def data(self) -> memoryview:
        """The raw backing buffer (``capacity * element_type.size`` bytes)."""
        handle = self._get(_DATA)
        if handle == NULL_HANDLE:
            return memoryview(bytearray())
        return memoryview(heap.get(handle))

    def _slot(self, index: int, element_size: int) -> memoryview:
        start = index * element_size
        return self.data[start : start + element_size]

    def index_pointer(self, index: int) -> memoryview:
        self._check_index(index)
        return self._slot(index, self.element_type.size)

    def index(self, index: int, as_type: Representation = None) -> Any:
        element_type = self.element_type
        check_representation(element_type, as_type)
        self._check_index(index)
        return element_type.load(self._slot(index, element_type.size))

    def set(self, index: int, value: Any, as_type: Representation = None) -> None:
        element_type = self.element_type
        check_representation(element_type, as_type)
        self._check_index(index)
        element_type.store(self._slot(index, element_type.size), value)

    def _check_index(self, index: int) -> None:
        size = self.size
        if not 0 <= index < size:
            raise IndexOutOfBoundsError(index, size)

    def resize(self, new_size: int) -> None:
        if new_size < 0:
            raise LayoutError(f"Array size cannot be negative ({new_size})")
        element_type = self.element_type
        element_size = element_type.size
        size = self.size
        if new_size > size:
            if self.capacity < new_size:
                self._reallocate(max(size * 2, new_size), element_type)
            data = self.data
            data[size * element_size : new_size * element_size] = bytes((new_size - size) * element_size)
            for i in range(size, new_size):
                element_type.construct(self._slot(i, element_size))
        else:
            for i in range(new_size, size):
                element_type.destruct(self._slot(i, element_size))
        self._put(_SIZE, new_size)

    def _reallocate(self, new_capacity: int, element_type: TypeDescriptor) -> None:
        element_size = element_type.size
        size = self.size
        old_data = self.data
        new_data = bytearray(new_capacity * element_size)
        new_view = memoryview(new_data)
        for i in range(size):
            start = i * element_size
            element_type.copy_data(new_view[start : start + element_size], old_data[start : start + element_size])
        for i in range(size):
            start = i * element_size
            element_type.destruct(old_data[start : start + element_size])

        old_handle = self._get(_DATA)
        if old_handle != NULL_HANDLE:
            heap.free(old_handle)
        self._put(_DATA, heap.new(new_data))
        logger.debug(
            "array of %s: capacity %d -> %d (%d live elements relocated)",
            element_type.name,
            self.capacity,
            new_capacity,
            size,
        )
        self._put(_CAPACITY, new_capacity)

    def grow(self, n: int = 1) -> None:
        self.resize(self.size + n)

    def append(self, value: Any) -> None:
        # Snapshot first: growing may relocate an element that value still views.
        value = to_native(value)
        self.grow()
        self.set(self.size - 1, value)

    def extend(self, values: Iterable[Any]) -> None:
        for value in [to_native(item) for item in values]:
            self.append(value)

    def assign(self, other: "GrowableArray") -> None:
        """Make this array a deep copy of ``other``; the buffer is never shared."""
        if self._get(_ELEMENT_TYPE) == other._get(_ELEMENT_TYPE):
            return
        element_type = self.element_type
        if not element_type.matches(other.element_type):
            raise RepresentationMismatchError(
                element_type,
                other.element_type,
                f"Cannot assign array of '{other.element_type.name}' to array of '{element_type.name}'",
            )
        element_size = element_type.size
        count = other.size
        self.resize(count)
        for i in range(count):
            dest = self._slot(i, element_size)
            element_type.destruct(dest)
            element_type.copy_data(dest, other._slot(i, element_size))

    def release(self) -> None:
        """Destruct every live element and free the buffer and element type."""
        self.resize(0)
        data_handle = self._get(_DATA)
        if data_handle != NULL_HANDLE:
            heap.free(data_handle)
        heap.free(self._get(_ELEMENT_TYPE))
        CONTROL_BLOCK.pack_into(self._block, 0, NULL_HANDLE, NULL_HANDLE, 0, 0)

    def to_native(self) -> list[Any]:
        return [to_native(item) for item in self]

    to_list = to_native

    def to_numpy(self):
        """Copy the live elements into a NumPy array (numeric scalar elements only)."""
        np = _import_numpy()
        if np is None:
            raise RTTypesError("NumPy is required to convert arrays with to_numpy().")
        element_type = self.element_type
        dtype = getattr(getattr(element_type, "scalar_kind", None), "numpy_dtype", None)
        if dtype is None:
            raise RepresentationMismatchError(
                element_type, "numeric scalar", f"Array of '{element_type.name}' has no NumPy representation"
            )
        live = bytes(self.data[: self.size * element_type.size])
        return np.frombuffer(live, dtype=np.dtype(dtype)).copy()

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.size):
            yield self.index(i)

    def __getitem__(self, index: int) -> Any:
        return self.index(index)

    def __setitem__(self, index: int, value: Any) -> None:
        self.set(index, value)

    def __enter__(self) -> "GrowableArray":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        handle = self._get(_ELEMENT_TYPE)
        if handle not in heap:
            return "<GrowableArray released>"
        return f"<GrowableArray of {self.element_type.name} size={self.size} capacity={self.capacity}>"


class ArrayType(TypeDescriptor):
    """Descriptor whose in-memory value is a :class:`GrowableArray` control block.

    Size and alignment are those of the control block, not of the elements,
    which is what lets arrays be struct fields or elements of other arrays.
    """

    kind = "vec"

    def __init__(self, element_type: TypeDescriptor):
        if not isinstance(element_type, TypeDescriptor):
            raise LayoutError(f"Array element must be a TypeDescriptor, got {type(element_type).__name__}")
        super().__init__(CONTROL_BLOCK.size, CONTROL_BLOCK_ALIGNMENT)
        self._element_type = element_type.clone()

    @property
    def element_type(self) -> TypeDescriptor:
        return self._element_type

    @property
    def name(self) -> str:
        return f"vec<{self._element_type.name}>"

    @property
    def type_tag(self) -> Hashable:
        return ("vec", self._element_type.type_tag)

    def view(self, ptr: memoryview) -> GrowableArray:
        return GrowableArray(block=ptr)

    def clone(self) -> "ArrayType":
        return ArrayType(self._element_type)

    def construct(self, ptr: memoryview) -> None:
        GrowableArray.initialize(ptr, self._element_type)

    def destruct(self, ptr: memoryview) -> None:
        self.view(ptr).release()

    def copy_data(self, dest: memoryview, src: memoryview) -> None:
        self.construct(dest)
        self.view(dest).assign(self.view(src))

    def load(self, ptr: memoryview) -> GrowableArray:
        return self.view(ptr)

    def store(self, ptr: memoryview, value: Any) -> None:
        array = self.view(ptr)
        if isinstance(value, GrowableArray):
            array.assign(value)
            return
        items = [to_native(item) for item in value]
        array.resize(0)
        array.extend(items)

    def describe(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "size": self.size,
            "alignment": self.alignment,
            "element": self._element_type.describe(),
        }
