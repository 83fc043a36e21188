"""Runtime type descriptor contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Hashable, Iterator, Union

from rttypes.errors import RepresentationMismatchError
from rttypes.memory import allocate


class TypeDescriptor(ABC):
    """Describes how to size, align, construct, destruct and copy a value.

    Every operation takes a pointer (``memoryview``) to caller-allocated memory
    of at least ``size`` bytes. ``size`` includes trailing padding so that
    consecutive values of this type stay aligned.
    """

    kind: str = "abstract"

    def __init__(self, size: int = 0, alignment: int = 1):
        self._size = size
        self._alignment = alignment

    @property
    def size(self) -> int:
        return self._size

    @property
    def alignment(self) -> int:
        return self._alignment

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable type name."""

    @property
    @abstractmethod
    def type_tag(self) -> Hashable:
        """Structural tag compared by checked typed accessors."""

    @abstractmethod
    def clone(self) -> "TypeDescriptor":
        """Return an independently owned descriptor with identical layout."""

    @abstractmethod
    def construct(self, ptr: memoryview) -> None:
        """Initialize a default value at ``ptr``."""

    @abstractmethod
    def destruct(self, ptr: memoryview) -> None:
        """Release resources owned by the value at ``ptr``."""

    @abstractmethod
    def copy_data(self, dest: memoryview, src: memoryview) -> None:
        """Construct at ``dest`` a deep copy of the value at ``src``."""

    @abstractmethod
    def load(self, ptr: memoryview) -> Any:
        """Read the value at ``ptr``."""

    @abstractmethod
    def store(self, ptr: memoryview, value: Any) -> None:
        """Overwrite the constructed value at ``ptr``."""

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Return a JSON-native description of this layout."""

    @contextmanager
    def instance(self) -> Iterator[memoryview]:
        """Allocate and construct a value, destructing it when the block exits."""
        ptr = allocate(self.size)
        self.construct(ptr)
        try:
            yield ptr
        finally:
            self.destruct(ptr)

    def matches(self, other: "TypeDescriptor") -> bool:
        return self.type_tag == other.type_tag

    def __copy__(self) -> "TypeDescriptor":
        return self.clone()

    def __deepcopy__(self, memo: dict[int, Any]) -> "TypeDescriptor":
        return self.clone()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeDescriptor):
            return NotImplemented
        return self.matches(other)

    def __hash__(self) -> int:
        return hash(self.type_tag)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} size={self.size} align={self.alignment}>"


Representation = Union[TypeDescriptor, str, None]


def check_representation(descriptor: TypeDescriptor, as_type: Representation) -> None:
    """Fail unless ``as_type`` (a descriptor or type name) matches ``descriptor``."""
    if as_type is None:
        return
    if isinstance(as_type, TypeDescriptor):
        matches = descriptor.matches(as_type) and descriptor.size == as_type.size
    elif isinstance(as_type, str):
        matches = descriptor.name == as_type
    else:
        raise RepresentationMismatchError(
            descriptor,
            as_type,
            f"Representation must be a type descriptor or a type name, got {type(as_type).__name__}",
        )
    if not matches:
        raise RepresentationMismatchError(descriptor, as_type)


def to_native(value: Any) -> Any:
    """Convert views over raw memory into plain Python values."""
    converter = getattr(value, "to_native", None)
    if callable(converter):
        return converter()
    return value
