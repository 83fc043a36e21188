"""rttypes error taxonomy.

Every failure raised by the library is a programmer-contract violation: a
field that was never registered, a typed access through the wrong
representation, an out-of-range element index, or a handle used after the
value owning it was destructed. None of them are retried or recovered from
internally.
"""

from __future__ import annotations

from typing import Any


class RTTypesError(RuntimeError):
    """Base runtime error for layout and value handling."""

    code = "E_RTTYPES"


class LayoutError(RTTypesError):
    """Raised when a layout cannot be built as requested."""

    code = "E_LAYOUT"


class UnknownFieldError(LayoutError, KeyError):
    """Raised when a field is looked up by a name that was never registered."""

    code = "E_UNKNOWN_FIELD"

    def __init__(self, name: str, struct_name: str | None = None):
        self.field_name = name
        self.struct_name = struct_name
        where = f" in struct '{struct_name}'" if struct_name else ""
        super().__init__(f"Unknown field '{name}'{where}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class DuplicateFieldError(LayoutError):
    code = "E_DUPLICATE_FIELD"


class UnknownTypeError(LayoutError, KeyError):
    """Raised when a type name does not resolve to a scalar kind or a declared struct."""

    code = "E_UNKNOWN_TYPE"

    def __str__(self) -> str:
        return str(self.args[0])


class DuplicateTypeError(LayoutError):
    code = "E_DUPLICATE_TYPE"


class RepresentationMismatchError(RTTypesError):
    """Raised when a value is accessed through a representation it does not have."""

    code = "E_REPR_MISMATCH"

    def __init__(self, actual: Any, expected: Any, message: str | None = None):
        self.actual = actual
        self.expected = expected
        detail = message or f"Value of type '{_type_name(actual)}' accessed as '{_type_name(expected)}'"
        super().__init__(detail)


class IndexOutOfBoundsError(RTTypesError, IndexError):
    """Raised when an index falls outside the live range of a container."""

    code = "E_OUT_OF_BOUNDS"

    def __init__(self, index: int, size: int, what: str = "element"):
        self.index = index
        self.size = size
        super().__init__(f"{what.capitalize()} index {index} out of range for size {size}")


class DanglingHandleError(RTTypesError):
    """Raised when a heap handle is used after being freed (or was never allocated)."""

    code = "E_DANGLING_HANDLE"

    def __init__(self, handle: int):
        self.handle = handle
        if handle == 0:
            detail = "Null handle dereferenced: value was never constructed or already destructed"
        else:
            detail = f"Handle {handle} is not live: value already destructed"
        super().__init__(detail)


class SchemaSyntaxError(LayoutError):
    """Raised when schema text cannot be parsed."""

    code = "E_SCHEMA_SYNTAX"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        location = f" (line {line}, column {column})" if line is not None and line > 0 else ""
        super().__init__(f"{message}{location}")


def _type_name(value: Any) -> str:
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    if isinstance(value, str):
        return value
    return type(value).__name__


def errors_payload(exc: Exception) -> dict[str, Any]:
    """Serialize an exception for API payloads."""
    message = str(exc).strip() or exc.__class__.__name__
    payload: dict[str, Any] = {
        "code": str(getattr(exc, "code", "E_INTERNAL")),
        "message": message,
    }
    line = getattr(exc, "line", None)
    if isinstance(line, int) and line > 0:
        payload["line"] = line
        payload["column"] = getattr(exc, "column", None)
    return payload
