"""
Schema language for building struct layouts from text, parsed with Lark.

Example::

    // 2D point
    struct vec2 { x: f32; y: f32; }
    struct line { start: vec2; end: vec2; color: text; }
    struct path { points: vec<vec2>; }

Types must be declared before they are referenced.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Union
import logging

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput

from rttypes.arrays import ArrayType
from rttypes.descriptor import TypeDescriptor
from rttypes.errors import DuplicateTypeError, SchemaSyntaxError, UnknownTypeError
from rttypes.scalar import scalar, scalar_names
from rttypes.structs import StructLayout

logger = logging.getLogger("rttypes.schema")

_KEYWORDS = frozenset({"struct", "vec"})


@dataclass
class TypeRef:
    """Base class for type references in a schema"""

    def to_syntax(self) -> str:
        raise NotImplementedError("Must be implemented by subclasses")


@dataclass
class NamedRef(TypeRef):
    """Reference to a scalar kind or a previously declared struct"""

    name: str

    def to_syntax(self) -> str:
        return self.name


@dataclass
class VecRef(TypeRef):
    """Growable array of another type"""

    element: TypeRef

    def to_syntax(self) -> str:
        return f"vec<{self.element.to_syntax()}>"


@dataclass
class FieldDef:
    name: str
    type_ref: TypeRef

    def to_syntax(self) -> str:
        return f"{self.name}: {self.type_ref.to_syntax()};"


@dataclass
class StructDef:
    name: str
    fields: List[FieldDef]

    def to_syntax(self) -> str:
        body = " ".join(field.to_syntax() for field in self.fields)
        return f"struct {self.name} {{ {body} }}"


@dataclass
class SchemaSource:
    """Parsed but unresolved schema"""

    structs: List[StructDef]

    def to_syntax(self) -> str:
        return "\n".join(struct.to_syntax() for struct in self.structs)


grammar = r"""
    start: struct_def*

    struct_def: "struct" NAME "{" field_def* "}" ";"?
    field_def: NAME ":" type_ref ";"

    type_ref: NAME                  -> named_ref
            | "vec" "<" type_ref ">" -> vec_ref

    NAME: /[A-Za-z_][A-Za-z0-9_]*/

    COMMENT: "//" /[^\n]*/
           | "#" /[^\n]*/

    %import common.WS
    %ignore WS
    %ignore COMMENT
"""


class SchemaTransformer(Transformer):
    """Transform the parse tree into schema definitions"""

    @v_args(inline=True)
    def start(self, *structs):
        return SchemaSource(list(structs))

    @v_args(inline=True)
    def struct_def(self, name, *fields):
        return StructDef(str(name), list(fields))

    @v_args(inline=True)
    def field_def(self, name, type_ref):
        return FieldDef(str(name), type_ref)

    @v_args(inline=True)
    def named_ref(self, name):
        return NamedRef(str(name))

    @v_args(inline=True)
    def vec_ref(self, element):
        return VecRef(element)


parser = Lark(
    grammar,
    start="start",
    parser="lalr",
    transformer=SchemaTransformer(),
    maybe_placeholders=False,
)


class Schema(Mapping):
    """Struct layouts by name, in declaration order."""

    def __init__(self) -> None:
        self._structs: dict[str, StructLayout] = {}

    def __getitem__(self, name: str) -> StructLayout:
        try:
            return self._structs[name]
        except KeyError:
            raise UnknownTypeError(f"Unknown struct '{name}'") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._structs)

    def __len__(self) -> int:
        return len(self._structs)

    def define(self, layout: StructLayout) -> None:
        if layout.name in _KEYWORDS:
            raise DuplicateTypeError(f"Type name '{layout.name}' is a reserved keyword")
        if layout.name in self._structs or layout.name in scalar_names():
            raise DuplicateTypeError(f"Type '{layout.name}' is already defined")
        self._structs[layout.name] = layout

    def resolve(self, ref: Union[TypeRef, str]) -> TypeDescriptor:
        """Build the descriptor a type reference denotes."""
        if isinstance(ref, str):
            ref = parse_type(ref)
        if isinstance(ref, VecRef):
            return ArrayType(self.resolve(ref.element))
        if isinstance(ref, NamedRef):
            if ref.name in self._structs:
                return self._structs[ref.name]
            if ref.name in scalar_names():
                return scalar(ref.name)
            raise UnknownTypeError(f"Unknown type '{ref.name}'")
        raise UnknownTypeError(f"Unsupported type reference {ref!r}")


def _parse(text: str) -> SchemaSource:
    try:
        return parser.parse(text)
    except UnexpectedInput as exc:
        message = str(exc).strip().splitlines()[0]
        raise SchemaSyntaxError(message, getattr(exc, "line", None), getattr(exc, "column", None)) from exc


def build_schema(source: SchemaSource) -> Schema:
    """Resolve parsed definitions into layouts."""
    schema = Schema()
    for struct_def in source.structs:
        layout = StructLayout(struct_def.name)
        for field_def in struct_def.fields:
            try:
                descriptor = schema.resolve(field_def.type_ref)
            except UnknownTypeError as exc:
                raise UnknownTypeError(f"{exc} (field '{field_def.name}' of struct '{struct_def.name}')") from exc
            layout.add_field(field_def.name, descriptor)
        schema.define(layout)
        logger.debug("defined struct %s: size %d align %d", layout.name, layout.size, layout.alignment)
    return schema


def parse_schema(text: str) -> Schema:
    """
    Parse schema text into struct layouts

    Args:
        text: Schema source

    Returns:
        A Schema mapping struct names to their layouts
    """
    return build_schema(_parse(text))


def parse_schema_file(filename: Union[str, Path]) -> Schema:
    with open(filename, "r", encoding="utf-8") as f:
        return parse_schema(f.read())


_type_parser = Lark(
    grammar,
    start="type_ref",
    parser="lalr",
    transformer=SchemaTransformer(),
    maybe_placeholders=False,
)


def parse_type(text: str) -> TypeRef:
    """Parse a single type reference such as ``vec<f32>``."""
    try:
        return _type_parser.parse(text)
    except UnexpectedInput as exc:
        message = str(exc).strip().splitlines()[0]
        raise SchemaSyntaxError(message, getattr(exc, "line", None), getattr(exc, "column", None)) from exc
