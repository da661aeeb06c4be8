"""Node navigation and single/multi-valued field access."""
from __future__ import annotations

import pytest

from scene_proxy import (
    Color,
    ExternalInterfaceError,
    Field,
    Node,
    NoSuchFieldError,
    ReadOnlyError,
    Vec3,
)


# --- Navigation -------------------------------------------------------------


def test_attribute_chain_reaches_nested_values(supervisor):
    shape = supervisor.get("BOX").children[0]
    assert shape.type_name == "Shape"
    color = shape.appearance.material.diffuseColor
    assert isinstance(color, Color)
    assert color == (1.0, 0.0, 0.0)
    assert color.r == 1.0
    assert shape.geometry.size == Vec3(0.5, 0.5, 0.5)


def test_attribute_falls_back_to_descendant_search(supervisor):
    robot = supervisor.get("ROBOT")
    assert robot.HAND is supervisor.get("HAND")
    assert robot["ARM"] is supervisor.get("ARM")
    assert robot.ds.type_name == "DistanceSensor"


def test_fields_win_over_descendants(supervisor):
    robot = supervisor.get("ROBOT")
    assert robot.name == "robot"
    assert robot.get("name") == "robot"


def test_unknown_key_raises_no_such_field(supervisor):
    box = supervisor.get("BOX")
    with pytest.raises(NoSuchFieldError):
        box.nothing_here
    assert not hasattr(box, "nothing_here")
    with pytest.raises(NoSuchFieldError):
        box.field("radius")


def test_unknown_attribute_cannot_be_assigned(supervisor):
    box = supervisor.get("BOX")
    with pytest.raises(NoSuchFieldError):
        box.bogus = 1
    with pytest.raises(AttributeError):
        box.handle = 3


def test_multi_valued_field_access_returns_the_field(supervisor):
    children = supervisor.get("ROBOT").children
    assert isinstance(children, Field)
    assert children.kind == "MFNode"
    assert len(children) == 6
    assert all(isinstance(node, Node) for node in children)


def test_tree_helpers(supervisor):
    robot = supervisor.get("ROBOT")
    hand = supervisor.get("HAND")
    assert [node.label for node in hand.lineage] == [None, "ROBOT", "ARM"]
    assert hand in robot
    assert supervisor.get("BOX") not in robot
    assert [node.label for node in supervisor.get("ARM").descendants()] == ["HAND"]
    assert list(robot)[-1] is supervisor.get("ARM")
    assert hand.parent_field.name == "children"


def test_sf_node_field_returns_child_or_none(supervisor):
    ball = supervisor.get("BALL")
    assert ball.physics.type_name == "Physics"
    assert ball.physics.mass == 2.0
    assert ball.boundingObject is None


# --- Single-valued fields -----------------------------------------------------


def test_vector_fields_support_arithmetic(supervisor):
    box = supervisor.get("BOX")
    assert box.translation == Vec3(1.0, 2.0, 3.0)
    box.translation += (1.0, 1.0, 1.0)
    assert box.translation == (2.0, 3.0, 4.0)
    assert box.translation.z == 4.0


def test_write_is_write_through(supervisor, world):
    box = supervisor.get("BOX")
    box.translation = (4.0, 5.0, 6.0)
    reads = world.calls["get_field"]
    assert box.translation == (4.0, 5.0, 6.0)
    assert world.calls["get_field"] == reads
    assert world.node_record(box.handle).fields["translation"].data == (4.0, 5.0, 6.0)


def test_reads_are_reused_within_a_step_only(supervisor, world):
    box = supervisor.get("BOX")
    box.translation
    reads = world.calls["get_field"]
    box.translation
    box.field("translation").value
    assert world.calls["get_field"] == reads
    supervisor.step()
    box.translation
    assert world.calls["get_field"] == reads + 1


def test_caching_disabled_reads_every_time(make_supervisor, world):
    box = make_supervisor(caching=False).get("BOX")
    box.translation
    reads = world.calls["get_field"]
    box.translation
    assert world.calls["get_field"] == reads + 1


def test_cached_value_does_not_touch_the_interface(supervisor, world):
    field = supervisor.get("BOX").field("translation")
    assert field.cached_value is None
    field.value
    reads = world.calls["get_field"]
    assert field.cached_value == (1.0, 2.0, 3.0)
    assert world.calls["get_field"] == reads


def test_read_only_field_rejected_before_any_call(supervisor, world):
    info = supervisor.get("WorldInfo")
    assert info.field("basicTimeStep").read_only
    with pytest.raises(ReadOnlyError):
        info.basicTimeStep = 16.0
    camera = supervisor.get("camera")
    with pytest.raises(ReadOnlyError):
        camera.width = 10
    assert world.calls["set_field"] == 0


def test_wrong_arity_fails_locally(supervisor, world):
    box = supervisor.get("BOX")
    with pytest.raises(ValueError):
        box.translation = (1.0, 2.0)
    with pytest.raises(TypeError):
        box.name = 5
    assert world.calls["set_field"] == 0


def test_engine_rejection_is_wrapped_and_cache_kept(supervisor):
    material = supervisor.get("BOX").children[0].appearance.material
    with pytest.raises(ExternalInterfaceError) as excinfo:
        material.diffuseColor = (2.0, 0.0, 0.0)
    assert excinfo.value.operation == "set_field"
    assert material.diffuseColor == (1.0, 0.0, 0.0)


def test_sf_node_replace_and_clear(supervisor, world):
    ball = supervisor.get("BALL")
    old = ball.physics
    ball.physics = {"type": "Physics", "fields": {"mass": 5.0}}
    assert old.is_stale
    assert ball.physics.mass == 5.0
    assert world.calls["import_node"] == 1
    new = ball.physics
    ball.physics = None
    assert new.is_stale
    assert ball.physics is None
    ball.physics = "Physics"
    assert ball.physics.mass == -1.0


# --- Multi-valued fields ------------------------------------------------------


def test_value_list_sequence_operations(supervisor):
    info = supervisor.get("WorldInfo").info
    assert list(info) == ["a", "b"]
    assert info[-1] == "b"
    info.append("c")
    info.insert(0, "z")
    assert info.value == ["z", "a", "b", "c"]
    assert "z" in info
    assert info.index("c") == 3
    del info[1]
    assert info[:] == ["z", "b", "c"]
    assert info.pop() == "c"
    info[0] = "y"
    assert info.value == ["y", "b"]
    with pytest.raises(IndexError):
        info[5]


def test_value_list_slice_assignment(supervisor):
    info = supervisor.get("WorldInfo").info
    info[1:] = ["p", "q", "r"]
    assert info.value == ["a", "p", "q", "r"]
    del info[::2]
    assert info.value == ["p", "r"]


def test_vector_list_elements_are_vectors(supervisor):
    physics = supervisor.get("BALL").physics
    com = physics.centerOfMass
    assert len(com) == 0
    com.append((0.0, 0.0, 0.1))
    assert isinstance(com[0], Vec3)
    assert com[0].z == 0.1


def test_node_list_operations(supervisor):
    children = supervisor.get("PATH").children
    first = children.append("DEF A Solid")
    assert first.label == "A"
    second = children.insert(0, {"type": "Solid", "label": "B", "fields": {"translation": (0.0, 1.0, 0.0)}})
    assert [node.label for node in children] == ["B", "A"]
    assert children[-1] is first
    assert children.index(second) == 0
    assert first in children
    spec = children.pop(0)
    assert spec["label"] == "B"
    assert spec["fields"]["translation"] == (0.0, 1.0, 0.0)
    assert second.is_stale
    assert [node.label for node in children] == ["A"]


def test_node_list_rejects_slice_mutation(supervisor):
    children = supervisor.get("ROBOT").children
    with pytest.raises(TypeError):
        children[0:2] = ["Solid", "Solid"]
    with pytest.raises(TypeError):
        del children[0:2]
    with pytest.raises(TypeError):
        children.value = []


def test_existing_node_is_copied_into_a_field(supervisor):
    box = supervisor.get("BOX")
    copy = supervisor.get("PATH").children.append(box)
    assert copy is not box
    assert copy.translation == box.translation
    assert copy.children[0].geometry.size == (0.5, 0.5, 0.5)
    assert supervisor.get("BOX") is box


def test_single_valued_field_is_not_a_sequence(supervisor):
    field = supervisor.get("BOX").field("translation")
    with pytest.raises(TypeError):
        len(field)
    assert field


def test_appending_to_the_root_children(supervisor):
    root = supervisor.root
    before = len(root.children)
    new = root.children.append("DEF EXTRA Solid")
    assert len(root.children) == before + 1
    assert new.parent is root
    assert root.children[-1] is new
    assert supervisor.get("EXTRA") is new


def test_declared_field_missing_on_node_fails_fast(supervisor, world):
    shape = supervisor.get("BOX").children[0]
    finds = world.calls["find_node"]
    with pytest.raises(NoSuchFieldError):
        shape.translation
    with pytest.raises(NoSuchFieldError):
        shape.translation = (0.0, 0.0, 0.0)
    assert world.calls["find_node"] == finds
    assert not shape.has_field("translation")
