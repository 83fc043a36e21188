"""Pydantic models describing computed layouts."""

from typing import List, Mapping, Optional

from pydantic import BaseModel

from rttypes.structs import StructLayout


class FieldReport(BaseModel):
    """One field of a struct layout"""

    name: str
    type: str
    kind: str
    offset: int
    size: int
    alignment: int
    element: Optional[str] = None


class StructReport(BaseModel):
    """Size, alignment and fields of one struct"""

    name: str
    size: int
    alignment: int
    fields: List[FieldReport]


class LayoutReport(BaseModel):
    structs: List[StructReport]


def struct_report(layout: StructLayout) -> StructReport:
    fields = []
    for field in layout:
        element = getattr(field.type, "element_type", None)
        fields.append(
            FieldReport(
                name=field.name,
                type=field.type.name,
                kind=field.type.kind,
                offset=field.offset,
                size=field.type.size,
                alignment=field.type.alignment,
                element=element.name if element is not None else None,
            )
        )
    return StructReport(name=layout.name, size=layout.size, alignment=layout.alignment, fields=fields)


def layout_report(structs: Mapping[str, StructLayout]) -> LayoutReport:
    return LayoutReport(structs=[struct_report(layout) for layout in structs.values()])
