from __future__ import annotations

import math

import pytest

from rttypes.arrays import CONTROL_BLOCK, ArrayType, GrowableArray
from rttypes.errors import (
    DanglingHandleError,
    IndexOutOfBoundsError,
    LayoutError,
    RepresentationMismatchError,
)
from rttypes.memory import allocate
from rttypes.scalar import Float32, Float64, Int32, Text
from rttypes.structs import StructLayout


def _vec2() -> StructLayout:
    vec = StructLayout("vec2")
    vec.add_field("x", Float32())
    vec.add_field("y", Float32())
    return vec


@pytest.mark.unit
def test_float_vector_resize_and_set(heap_guard) -> None:
    with GrowableArray(Float32()) as numbers:
        numbers.resize(4)
        for i, value in enumerate((1.0, 2.0, 3.0, 4.0)):
            numbers.set(i, value, as_type="f32")
        assert numbers.size == 4
        assert numbers.capacity >= 4
        assert [numbers.index(i, as_type=Float32()) for i in range(4)] == [1.0, 2.0, 3.0, 4.0]
        assert len(numbers.data) == numbers.capacity * 4


@pytest.mark.unit
def test_resize_constructs_default_elements(heap_guard) -> None:
    with GrowableArray(Float64()) as values:
        assert values.size == 0
        assert values.capacity == 0
        values.resize(3)
        assert values.to_list() == [0.0, 0.0, 0.0]
        assert values.capacity == 3


@pytest.mark.unit
def test_growth_is_amortized(heap_guard) -> None:
    n = 1000
    reallocations = 0
    with GrowableArray(Int32()) as values:
        for i in range(n):
            before = values.capacity
            values.append(i)
            if values.capacity != before:
                reallocations += 1
            assert values.capacity >= values.size
        assert values.to_list() == list(range(n))
    assert reallocations <= math.ceil(math.log2(n)) + 1


@pytest.mark.unit
def test_relocation_keeps_text_and_frees_old_copies(heap_guard) -> None:
    baseline = heap_guard.live_count()
    with GrowableArray(Text()) as words:
        for i in range(20):
            words.append(f"item-{i}")
        assert words.to_list() == [f"item-{i}" for i in range(20)]
        # element type + data buffer + one handle per live element
        assert heap_guard.live_count() == baseline + 2 + 20


@pytest.mark.unit
def test_shrink_destructs_trailing_elements(heap_guard) -> None:
    with GrowableArray(Text()) as words:
        words.extend(["a", "b", "c"])
        capacity = words.capacity
        live = heap_guard.live_count()
        words.resize(1)
        assert heap_guard.live_count() == live - 2
        assert words.to_list() == ["a"]
        assert words.capacity == capacity


@pytest.mark.unit
def test_index_out_of_bounds(heap_guard) -> None:
    with GrowableArray(Float32()) as values:
        values.resize(2)
        with pytest.raises(IndexOutOfBoundsError) as exc_info:
            values.index(2)
        assert isinstance(exc_info.value, IndexError)
        with pytest.raises(IndexOutOfBoundsError):
            values.index(-1)
        with pytest.raises(IndexOutOfBoundsError):
            values.set(5, 1.0)
        with pytest.raises(LayoutError):
            values.resize(-1)


@pytest.mark.unit
def test_index_checks_representation(heap_guard) -> None:
    with GrowableArray(Float32()) as values:
        values.append(1.0)
        with pytest.raises(RepresentationMismatchError):
            values.index(0, as_type="f64")
        with pytest.raises(RepresentationMismatchError):
            values.set(0, 2.0, as_type=Int32())
        assert values[0] == 1.0


@pytest.mark.unit
def test_assign_makes_a_deep_copy(heap_guard) -> None:
    with GrowableArray(Text()) as source, GrowableArray(Text()) as target:
        source.extend(["x", "y"])
        target.extend(["old", "older", "oldest"])
        target.assign(source)
        assert target.to_list() == ["x", "y"]
        assert target.data.obj is not source.data.obj
        source[0] = "changed"
        assert target.to_list() == ["x", "y"]

        target.assign(target)
        assert target.to_list() == ["x", "y"]


@pytest.mark.unit
def test_assign_rejects_other_element_types(heap_guard) -> None:
    with GrowableArray(Float32()) as floats, GrowableArray(Float64()) as doubles:
        with pytest.raises(RepresentationMismatchError):
            floats.assign(doubles)


@pytest.mark.unit
def test_array_type_is_the_control_block() -> None:
    array_type = ArrayType(Float32())
    assert array_type.size == CONTROL_BLOCK.size == 32
    assert array_type.alignment == 8
    assert array_type.name == "vec<f32>"
    assert array_type == ArrayType(Float32())
    assert array_type != ArrayType(Float64())
    assert array_type.describe()["element"]["name"] == "f32"


@pytest.mark.unit
def test_array_field_inside_struct(heap_guard) -> None:
    path = StructLayout("path")
    path.add_field("id", Int32())
    path.add_field("points", ArrayType(_vec2()))
    assert [f.offset for f in path] == [0, 8]
    assert path.size == 40
    assert path.alignment == 8

    with path.instance() as buf:
        view = path.view(buf)
        points = view["points"]
        points.append({"x": 1.0, "y": 2.0})
        points.append({"x": 3.0, "y": 4.0})
        assert view.to_native() == {"id": 0, "points": [{"x": 1.0, "y": 2.0}, {"x": 3.0, "y": 4.0}]}

        copy_buf = allocate(path.size)
        path.copy_data(copy_buf, buf)
        try:
            points.index(0)["x"] = 9.0
            assert path.view(copy_buf)["points"].index(0)["x"] == 1.0
        finally:
            path.destruct(copy_buf)


@pytest.mark.unit
def test_nested_arrays_survive_relocation(heap_guard) -> None:
    with GrowableArray(ArrayType(Text())) as outer:
        outer.grow(2)
        outer.index(0).extend(["a", "b"])
        outer.index(1).append("c")
        for _ in range(5):
            outer.grow()
        assert outer.size == 7
        assert outer.to_list() == [["a", "b"], ["c"], [], [], [], [], []]


@pytest.mark.unit
def test_array_type_store_from_iterable(heap_guard) -> None:
    array_type = ArrayType(Float64())
    with array_type.instance() as buf:
        array_type.store(buf, [1.5, 2.5])
        assert array_type.load(buf).to_list() == [1.5, 2.5]
        array_type.store(buf, [])
        assert len(array_type.load(buf)) == 0


@pytest.mark.unit
def test_release_invalidates_the_array(heap_guard) -> None:
    values = GrowableArray(Float32())
    values.append(1.0)
    values.release()
    assert values.size == 0
    assert "released" in repr(values)
    with pytest.raises(DanglingHandleError):
        values.append(2.0)


@pytest.mark.unit
def test_standalone_array_needs_element_type() -> None:
    with pytest.raises(LayoutError):
        GrowableArray()


@pytest.mark.unit
def test_to_numpy_copies_numeric_elements(heap_guard) -> None:
    np = pytest.importorskip("numpy")
    with GrowableArray(Float32()) as values:
        values.extend([1, 2, 3])
        out = values.to_numpy()
        assert out.dtype == np.float32
        assert out.tolist() == [1.0, 2.0, 3.0]
        values[0] = 7.0
        assert out[0] == 1.0


@pytest.mark.unit
def test_to_numpy_rejects_text(heap_guard) -> None:
    pytest.importorskip("numpy")
    with GrowableArray(Text()) as words:
        with pytest.raises(RepresentationMismatchError):
            words.to_numpy()


@pytest.mark.unit
def test_append_own_element_across_growth(heap_guard) -> None:
    person = StructLayout("person")
    person.add_field("name", Text())
    with GrowableArray(person) as people:
        people.append({"name": "ada"})
        assert people.capacity == 1
        people.append(people.index(0))
        people.extend(people)
        assert [p["name"] for p in people.to_list()] == ["ada"] * 4


@pytest.mark.unit
def test_append_own_nested_array_across_growth(heap_guard) -> None:
    with GrowableArray(ArrayType(Text())) as outer:
        outer.grow()
        outer.index(0).extend(["a", "b"])
        outer.append(outer.index(0))
        assert outer.to_list() == [["a", "b"], ["a", "b"]]
