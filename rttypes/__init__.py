"""Runtime type descriptors: build struct and array layouts at runtime and
construct, copy and destroy their values in raw memory."""

from rttypes.arrays import ArrayType, GrowableArray
from rttypes.descriptor import TypeDescriptor, check_representation, to_native
from rttypes.errors import (
    DanglingHandleError,
    DuplicateFieldError,
    DuplicateTypeError,
    IndexOutOfBoundsError,
    LayoutError,
    RepresentationMismatchError,
    RTTypesError,
    SchemaSyntaxError,
    UnknownFieldError,
    UnknownTypeError,
)
from rttypes.memory import Heap, align, allocate, heap, hexdump, padding, printable
from rttypes.scalar import (
    Bool,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    ScalarType,
    Text,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    scalar,
)
from rttypes.structs import Field, StructLayout, StructView
from rttypes.version import __version__

__all__ = [
    "ArrayType",
    "Bool",
    "DanglingHandleError",
    "DuplicateFieldError",
    "DuplicateTypeError",
    "Field",
    "Float32",
    "Float64",
    "GrowableArray",
    "Heap",
    "IndexOutOfBoundsError",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "LayoutError",
    "RTTypesError",
    "RepresentationMismatchError",
    "ScalarType",
    "SchemaSyntaxError",
    "StructLayout",
    "StructView",
    "Text",
    "TypeDescriptor",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "UnknownFieldError",
    "UnknownTypeError",
    "__version__",
    "align",
    "allocate",
    "check_representation",
    "heap",
    "hexdump",
    "padding",
    "printable",
    "scalar",
    "to_native",
]
