"""Tests for (lane, layer, row) assignment."""

import pytest
from graph_builders import chain, flow_id, make_graph

from bpmn_lanes.layout.config import Side
from bpmn_lanes.layout.positions import (
    Position,
    assign_gateway_lanes,
    assign_positions,
    symmetric_rows,
)
from bpmn_lanes.layout.preprocess import detect_back_edges


@pytest.mark.parametrize(
    "count, expected",
    [
        (0, []),
        (1, [0]),
        (2, [0, 1]),
        (3, [-1, 0, 1]),
        (4, [-1, 0, 1, 2]),
        (5, [-2, -1, 0, 1, 2]),
        (6, [-2, -1, 0, 1, 2, 3]),
    ],
)
def test_symmetric_rows(count, expected):
    assert symmetric_rows(count) == expected


@pytest.mark.parametrize("count", range(1, 9))
def test_symmetric_rows_contiguous_around_zero(count):
    rows = symmetric_rows(count)
    assert len(rows) == count
    assert 0 in rows
    assert rows == list(range(rows[0], rows[0] + count))


def _assign(graph):
    return assign_positions(graph, detect_back_edges(graph))


def test_linear_chain_layers():
    result = _assign(chain("s", "a", "b", "e"))
    assert result.positions == {
        "s": Position("L1", 0, 0),
        "a": Position("L1", 1, 0),
        "b": Position("L1", 2, 0),
        "e": Position("L1", 3, 0),
    }


def _scenario_a():
    nodes = [
        ("s", "startEvent"),
        ("gw", "parallelGateway"),
        ("a", "task"),
        ("b", "task"),
        ("c", "task"),
        ("e", "endEvent"),
    ]
    flows = [
        ("s", "gw"),
        ("gw", "a"),
        ("gw", "b"),
        ("gw", "c"),
        ("a", "e"),
        ("b", "e"),
        ("c", "e"),
    ]
    lanes = {"L1": ["s", "gw", "a", "b", "e"], "L2": ["c"], "L3": []}
    return make_graph(nodes, flows, lanes)


def test_scenario_a_fan_out():
    """Same-lane outputs follow the branching law, cross-lane output at row 0."""
    result = _assign(_scenario_a())
    pos = result.positions
    gw = pos["gw"]
    assert {pos["a"].row, pos["b"].row} == {0, 1}
    assert pos["c"] == Position("L2", gw.layer + 1, 0)
    assert pos["a"].layer == pos["b"].layer == gw.layer + 1
    assert pos["e"].layer == gw.layer + 2


def test_three_same_lane_outputs_are_centred():
    nodes = [("s", "startEvent"), ("gw", "exclusiveGateway")]
    nodes += [(t, "task") for t in "abc"] + [("e", "endEvent")]
    flows = [("s", "gw")] + [("gw", t) for t in "abc"] + [(t, "e") for t in "abc"]
    graph = make_graph(nodes, flows, {"L": [n for n, _ in nodes]})
    pos = _assign(graph).positions
    assert [pos[t].row for t in "abc"] == [-1, 0, 1]


def test_no_two_nodes_share_a_cell():
    pos = _assign(_scenario_a()).positions
    cells = [(p.lane, p.layer, p.row) for p in pos.values()]
    assert len(cells) == len(set(cells))


def test_cross_lane_free_path_keeps_layer():
    nodes = [("s", "startEvent"), ("a", "task"), ("e", "endEvent")]
    graph = make_graph(nodes, [("s", "a"), ("a", "e")], {"L1": ["s"], "L2": ["a", "e"]})
    pos = _assign(graph).positions
    assert pos["a"] == Position("L2", 0, 0)
    assert pos["e"] == Position("L2", 1, 0)


def test_cross_lane_blocked_path_moves_to_next_layer():
    """A node in an intermediate lane blocks the straight vertical jump."""
    nodes = [
        ("s2", "startEvent"),
        ("t2", "task"),
        ("e2", "endEvent"),
        ("s1", "startEvent"),
        ("t3", "task"),
        ("e3", "endEvent"),
    ]
    flows = [("s2", "t2"), ("t2", "e2"), ("s1", "t3"), ("t3", "e3")]
    lanes = {"L1": ["s1"], "L2": ["s2", "t2", "e2"], "L3": ["t3", "e3"]}
    pos = _assign(make_graph(nodes, flows, lanes)).positions
    assert pos["s1"] == Position("L1", 0, 0)
    assert pos["s2"] == Position("L2", 0, 0)
    assert pos["t3"] == Position("L3", 1, 0)


def test_merge_node_pulled_after_all_predecessors():
    nodes = [
        ("s", "startEvent"),
        ("gw", "parallelGateway"),
        ("a", "task"),
        ("b", "task"),
        ("b2", "task"),
        ("j", "parallelGateway"),
        ("e", "endEvent"),
    ]
    flows = [
        ("s", "gw"),
        ("gw", "a"),
        ("gw", "b"),
        ("b", "b2"),
        ("a", "j"),
        ("b2", "j"),
        ("j", "e"),
    ]
    graph = make_graph(nodes, flows, {"L": [n for n, _ in nodes]})
    pos = _assign(graph).positions
    assert pos["j"].layer == pos["b2"].layer + 1
    assert pos["e"].layer == pos["j"].layer + 1


def test_back_flow_has_no_sides():
    nodes = [("s", "startEvent"), ("a", "task"), ("b", "task"), ("e", "endEvent")]
    flows = [("s", "a"), ("a", "b"), ("b", "a"), ("b", "e")]
    graph = make_graph(nodes, flows, {"L": ["s", "a", "b", "e"]})
    result = _assign(graph)
    info = result.flow_infos[flow_id("b", "a")]
    assert info.is_back_flow
    assert info.source.side is None and info.target.side is None


def test_same_lane_straight_flow_sides():
    result = _assign(chain("s", "a", "e"))
    info = result.flow_infos[flow_id("s", "a")]
    assert info.source.side is Side.FORWARD
    assert info.target.side is Side.BACKWARD
    assert info.waypoints == []


def test_branch_output_leaves_across_then_forward():
    result = _assign(_scenario_a())
    pos = result.positions
    lower = "a" if pos["a"].row == 1 else "b"
    info = result.flow_infos[flow_id("gw", lower)]
    assert info.source.side is Side.CROSS_FORWARD
    assert info.target.side is Side.BACKWARD
    assert info.waypoints == [Position("L1", pos["gw"].layer, 1)]


def test_gateway_lane_inference():
    nodes = [
        ("s", "startEvent"),
        ("split", "exclusiveGateway"),
        ("a", "task"),
        ("b", "task"),
        ("e", "endEvent"),
    ]
    flows = [("s", "split"), ("split", "a"), ("split", "b"), ("a", "e"), ("b", "e")]
    lanes = {"L1": ["a", "e"], "L2": ["s", "b"]}
    graph = make_graph(nodes, flows, lanes)
    # Split gateways follow their incoming flow
    assert assign_gateway_lanes(graph)["split"] == "L2"
