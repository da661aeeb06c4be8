"""Vector value types."""
from __future__ import annotations

import math

import pytest

from scene_proxy import Color, DegenerateVectorError, Rotation, Vec2, Vec3, VectorValue


def test_components_and_tuple_equality():
    v = Vec3(1, 2, 3)
    assert (v.x, v.y, v.z) == (1.0, 2.0, 3.0)
    assert v == (1.0, 2.0, 3.0)
    assert Vec3([1, 2, 3]) == v
    assert repr(v) == "Vec3(1.0, 2.0, 3.0)"
    assert Rotation(0, 0, 1, math.pi).angle == math.pi
    assert Color(0.1, 0.2, 0.3).g == 0.2


def test_wrong_arity_is_a_value_error():
    with pytest.raises(ValueError):
        Vec3(1, 2)
    with pytest.raises(ValueError):
        Vec2(1, 2, 3)


def test_component_wise_arithmetic():
    a = Vec3(1, 2, 3)
    b = Vec3(4, 5, 6)
    assert a + b == Vec3(5, 7, 9)
    assert b - a == Vec3(3, 3, 3)
    assert (1, 1, 1) + a == Vec3(2, 3, 4)
    assert (1, 1, 1) - a == Vec3(0, -1, -2)
    assert isinstance((1, 1, 1) - a, Vec3)
    assert a * 2 == Vec3(2, 4, 6)
    assert 2 * a == Vec3(2, 4, 6)
    assert b / 2 == Vec3(2, 2.5, 3)
    assert -a == Vec3(-1, -2, -3)


def test_mismatched_operands_are_rejected():
    with pytest.raises(TypeError):
        Vec3(1, 2, 3) + (1, 2)
    with pytest.raises(TypeError):
        Vec3(1, 2, 3) * Vec3(1, 2, 3)


def test_geometry_helpers():
    a = Vec3(3, 4, 0)
    assert a.magnitude == 5.0
    assert a.unit_vector().isclose((0.6, 0.8, 0.0))
    assert a.dot((1, 1, 1)) == 7.0
    assert Vec3(1, 0, 0).cross((0, 1, 0)) == Vec3(0, 0, 1)
    assert a.distance_to((0, 0, 0)) == 5.0
    assert Rotation(0, 0, 1, 1.5).axis == Vec3(0, 0, 1)


def test_zero_vector_has_no_direction():
    with pytest.raises(DegenerateVectorError):
        Vec3(0, 0, 0).unit_vector()
    with pytest.raises(ValueError):
        Vec2(0, 0).unit_vector()


def test_color_clamping_and_generic_vectors():
    assert Color(1.5, -0.2, 0.5).clamped() == Color(1.0, 0.0, 0.5)
    generic = VectorValue(1, 2, 3, 4, 5)
    assert len(generic) == 5
    assert (generic * 2)[4] == 10.0
