"""Struct layout engine and field views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Iterator, Mapping, Union
import logging

from rttypes.descriptor import Representation, TypeDescriptor, check_representation, to_native
from rttypes.errors import DuplicateFieldError, IndexOutOfBoundsError, LayoutError, UnknownFieldError
from rttypes.memory import align, allocate

logger = logging.getLogger("rttypes.structs")

FieldKey = Union[int, str]


@dataclass(frozen=True)
class Field:
    """A named, typed slot at a fixed byte offset inside a struct."""

    name: str
    type: TypeDescriptor
    offset: int

    @property
    def end(self) -> int:
        return self.offset + self.type.size


class StructLayout(TypeDescriptor):
    """Append-only list of fields laid out in registration order.

    Each field starts at the first offset past the previous field that
    satisfies its own alignment. The struct's alignment is the largest field
    alignment and its size is rounded up to it, so arrays of the struct tile
    correctly. Field descriptors are cloned on registration and on copy; two
    layouts never share a descriptor object.
    """

    kind = "struct"

    # Mutable until the layout is fully registered.
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, name: str | None = None):
        super().__init__(size=0, alignment=1)
        self._name = name
        self._fields: list[Field] = []
        self._index: dict[str, int] = {}
        self._current_offset = 0

    @property
    def name(self) -> str:
        return self._name or "struct"

    @property
    def type_tag(self) -> Hashable:
        return ("struct", tuple((f.name, f.offset, f.type.type_tag) for f in self._fields))

    @property
    def fields(self) -> tuple[Field, ...]:
        return tuple(self._fields)

    @property
    def current_offset(self) -> int:
        return self._current_offset

    def add_field(self, name: str, descriptor: TypeDescriptor) -> int:
        """Register a field and return its index."""
        if not isinstance(descriptor, TypeDescriptor):
            raise LayoutError(f"Field '{name}' needs a TypeDescriptor, got {type(descriptor).__name__}")
        if name in self._index:
            raise DuplicateFieldError(f"Field '{name}' already defined in struct '{self.name}'")

        field_type = descriptor.clone()
        field_offset = align(self._current_offset, field_type.alignment)
        self._fields.append(Field(name, field_type, field_offset))
        self._index[name] = len(self._fields) - 1
        self._current_offset = field_offset + field_type.size

        self._alignment = max(self._alignment, field_type.alignment)
        self._size = align(self._current_offset, self._alignment)
        logger.debug(
            "struct %s: field %s (%s) at offset %d, size now %d align %d",
            self.name,
            name,
            field_type.name,
            field_offset,
            self._size,
            self._alignment,
        )
        return len(self._fields) - 1

    def field_index(self, name: str) -> int | None:
        return self._index.get(name)

    def field(self, key: FieldKey) -> Field:
        if isinstance(key, str):
            index = self.field_index(key)
            if index is None:
                raise UnknownFieldError(key, self.name)
            return self._fields[index]
        if not 0 <= key < len(self._fields):
            raise IndexOutOfBoundsError(key, len(self._fields), "field")
        return self._fields[key]

    def view(self, ptr: memoryview) -> "StructView":
        return StructView(self, ptr)

    def clone(self) -> "StructLayout":
        copy = StructLayout(self._name)
        copy._fields = [Field(f.name, f.type.clone(), f.offset) for f in self._fields]
        copy._index = dict(self._index)
        copy._current_offset = self._current_offset
        copy._size = self._size
        copy._alignment = self._alignment
        return copy

    def construct(self, ptr: memoryview) -> None:
        for f in self._fields:
            f.type.construct(ptr[f.offset:])

    def destruct(self, ptr: memoryview) -> None:
        for f in self._fields:
            f.type.destruct(ptr[f.offset:])

    def copy_data(self, dest: memoryview, src: memoryview) -> None:
        for f in self._fields:
            f.type.copy_data(dest[f.offset:], src[f.offset:])

    def load(self, ptr: memoryview) -> "StructView":
        return self.view(ptr)

    def store(self, ptr: memoryview, value: Any) -> None:
        """Assign from another view of a matching layout or from a mapping of field values."""
        if isinstance(value, StructView):
            check_representation(self, value.layout)
            # Stage through a temporary so that assigning a value to itself is safe.
            staged = allocate(self.size)
            self.copy_data(staged, value.pointer)
            try:
                self.destruct(ptr)
                self.copy_data(ptr, staged)
            finally:
                self.destruct(staged)
            return
        if isinstance(value, Mapping):
            # Apply to a staged copy so a failing field leaves the target untouched.
            staged = allocate(self.size)
            self.copy_data(staged, ptr)
            try:
                staged_view = self.view(staged)
                for key, item in value.items():
                    staged_view.set(key, item)
                self.destruct(ptr)
                self.copy_data(ptr, staged)
            finally:
                self.destruct(staged)
            return
        raise LayoutError(f"Cannot assign {type(value).__name__} to struct '{self.name}'")

    def describe(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "size": self.size,
            "alignment": self.alignment,
            "fields": [
                {"name": f.name, "offset": f.offset, "type": f.type.describe()} for f in self._fields
            ],
        }

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._index


class StructView:
    """Non-owning accessor binding a layout to one buffer."""

    __slots__ = ("layout", "pointer")

    def __init__(self, layout: StructLayout, pointer: memoryview):
        self.layout = layout
        self.pointer = pointer

    def field_pointer(self, key: FieldKey) -> memoryview:
        f = self.layout.field(key)
        return self.pointer[f.offset : f.end]

    def field(self, key: FieldKey, as_type: Representation = None) -> Any:
        f = self.layout.field(key)
        check_representation(f.type, as_type)
        return f.type.load(self.pointer[f.offset : f.end])

    def set(self, key: FieldKey, value: Any, as_type: Representation = None) -> None:
        f = self.layout.field(key)
        check_representation(f.type, as_type)
        f.type.store(self.pointer[f.offset : f.end], value)

    def __getitem__(self, key: FieldKey) -> Any:
        return self.field(key)

    def __setitem__(self, key: FieldKey, value: Any) -> None:
        self.set(key, value)

    def to_native(self) -> dict[str, Any]:
        return {f.name: to_native(self.field(f.name)) for f in self.layout}

    def __repr__(self) -> str:
        return f"<StructView {self.layout.name} fields={[f.name for f in self.layout]}>"
