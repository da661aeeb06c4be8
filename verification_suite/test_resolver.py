"""Key resolution: labels, types, device names, ids, dotted paths and caching."""
from __future__ import annotations

import pytest

from low_level_interface.interface import NodeQuery
from scene_proxy import ByDevice, ByLabel, ByType, NodeLookupError


def test_label_search_skips_intermediate_levels(supervisor):
    hand = supervisor.get("HAND")
    assert hand.type_name == "Solid"
    assert hand.parent.label == "ARM"
    assert hand.parent.parent.label == "ROBOT"


def test_type_search_returns_first_match_in_document_order(supervisor):
    assert supervisor.get(ByType("Solid")).label == "ARM"
    assert supervisor.get(ByType("Solid"), scope=supervisor.get("ARM")).label == "HAND"


def test_plain_string_tries_label_then_type_then_device(supervisor):
    assert supervisor.get("BOX").label == "BOX"
    assert supervisor.get("WorldInfo").type_name == "WorldInfo"
    gps = supervisor.get("gps")
    assert gps.type_name == "GPS"
    assert gps is supervisor.get(ByDevice("gps"))


def test_explicit_key_classes_do_not_cascade(supervisor):
    with pytest.raises(NodeLookupError):
        supervisor.get(ByLabel("gps"))
    with pytest.raises(NodeLookupError):
        supervisor.get(ByType("BOX"))


def test_lookup_outside_scope_fails(supervisor):
    robot = supervisor.get("ROBOT")
    with pytest.raises(NodeLookupError):
        supervisor.get("BOX", scope=robot)
    assert supervisor.find("BOX", scope=robot) is None


def test_lookup_error_is_a_lookup_error(supervisor):
    with pytest.raises(LookupError):
        supervisor.get("NOT_THERE")


def test_dotted_path_resolves_each_segment_within_the_previous(supervisor):
    hand = supervisor.get("HAND")
    assert supervisor.get("ROBOT.ARM.HAND") is hand
    assert supervisor.get("ROBOT.HAND") is hand
    with pytest.raises(NodeLookupError):
        supervisor.get("BOX.HAND")


def test_numeric_id_resolves_directly(supervisor):
    box = supervisor.get("BOX")
    assert supervisor.get(box.handle) is box
    assert supervisor.node(box.handle) is box
    with pytest.raises(NodeLookupError):
        supervisor.node(10_000)


def test_unsupported_key_type(supervisor):
    with pytest.raises(TypeError):
        supervisor.get(1.5)
    with pytest.raises(TypeError):
        supervisor.get(True)


def test_repeated_resolution_hits_the_cache(supervisor, world):
    supervisor.get("HAND")
    before = world.calls["find_node"]
    for _ in range(5):
        supervisor.get("HAND")
    assert world.calls["find_node"] == before


def test_caching_disabled_requeries_every_time(make_supervisor, world):
    supervisor = make_supervisor(caching=False)
    supervisor.get("HAND")
    before = world.calls["find_node"]
    supervisor.get("HAND")
    assert world.calls["find_node"] == before + 1


def test_local_structure_change_forces_reresolution(supervisor):
    assert supervisor.get(ByType("Solid")).label == "ARM"
    supervisor.root.children.insert(0, "DEF FIRST Solid")
    assert supervisor.get(ByType("Solid")).label == "FIRST"


def test_duplicate_labels_resolve_to_the_first_in_document_order(make_supervisor):
    supervisor = make_supervisor()
    deep = supervisor.get("HAND")
    shallow = supervisor.get("PATH").children.append("DEF HAND Solid")
    assert supervisor.get("HAND") is deep
    assert supervisor.get("HAND") is deep
    assert supervisor.get("PATH").get("HAND") is shallow
    uncached = make_supervisor(caching=False)
    assert uncached.get("HAND").handle == deep.handle
    assert uncached.get("HAND").handle == deep.handle


def test_writing_a_device_name_drops_stale_resolutions(supervisor, world):
    ds_node = supervisor.get(ByDevice("ds"))
    ds_node.name = "front"
    assert world.find_node(NodeQuery("device", "ds")) is None
    assert supervisor.find(ByDevice("ds")) is None
    assert supervisor.get(ByDevice("front")) is ds_node
    assert supervisor.get("front") is ds_node
