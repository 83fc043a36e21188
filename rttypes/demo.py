"""Demonstration: a vec2 struct, a line of two vec2 plus a color, and a float vector."""

from typing import List
import logging
import struct

from rttypes.arrays import ArrayType
from rttypes.memory import allocate, hexdump, printable
from rttypes.scalar import Float32, Text
from rttypes.structs import StructLayout

logger = logging.getLogger("rttypes.demo")

_F32 = struct.Struct("<f")


def _floats(data: memoryview, count: int) -> List[str]:
    return [f"{_F32.unpack_from(data, i * _F32.size)[0]:g}" for i in range(count)]


def run_demo() -> List[str]:
    lines: List[str] = []

    vec = StructLayout("vec2")
    x_index = vec.add_field("x", Float32())
    vec.add_field("y", Float32())

    vec_buf = allocate(vec.size)
    vec.construct(vec_buf)
    vec_view = vec.view(vec_buf)
    vec_view.set(x_index, 69.0, as_type="f32")
    vec_view.set("y", 42.0, as_type="f32")
    vec.destruct(vec_buf)

    lines.append(f"vec2: size {vec.size}, alignment {vec.alignment}")
    lines.extend(_floats(vec_buf, vec.size // _F32.size))

    line = StructLayout("line")
    line.add_field("start", vec)
    line.add_field("end", vec)
    line.add_field("color", Text())

    with line.instance() as line_buf:
        line_view = line.view(line_buf)
        start = vec.view(line_view.field_pointer("start"))
        start["x"] = 12.0
        start["y"] = 13.0
        end = vec.view(line_view.field_pointer("end"))
        end["x"] = 20.0
        end["y"] = 21.0
        line_view.set("color", "green", as_type="text")

        lines.append(f"line: size {line.size}, alignment {line.alignment}")
        color_ptr = line_view.field_pointer("color")
        lines.append(f"color slot: {hexdump(color_ptr)}")
        lines.append(f"color = {line_view.field('color', as_type='text')}")

    lines.extend(_floats(line_buf, 4))
    lines.append(hexdump(line_buf))
    lines.append(printable(line_buf))

    num_list = ArrayType(Float32())
    with num_list.instance() as list_buf:
        numbers = num_list.view(list_buf)
        numbers.resize(4)
        for i, value in enumerate((1.0, 2.0, 3.0, 4.0)):
            numbers.set(i, value, as_type="f32")
        lines.append(f"{num_list.name}: size {numbers.size}, capacity {numbers.capacity}")
        lines.append(" ".join(f"{value:g}" for value in numbers))
        lines.append(hexdump(numbers.data[: numbers.size * numbers.element_type.size]))

    logger.debug("demo produced %d lines", len(lines))
    return lines
