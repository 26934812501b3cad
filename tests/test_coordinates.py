"""Tests for pixel coordinate synthesis."""

import pytest
from graph_builders import chain, make_graph

from bpmn_lanes.layout.config import LayoutConfig
from bpmn_lanes.layout.coordinates import Bounds, compute_coordinates, normalize_rows
from bpmn_lanes.layout.positions import Position, assign_positions
from bpmn_lanes.layout.preprocess import detect_back_edges
from bpmn_lanes.parser.model import Lane, Pool


def _coords(graph, config=None):
    config = config or LayoutConfig()
    assignment = assign_positions(graph, detect_back_edges(graph))
    return compute_coordinates(graph, assignment, config)


def test_normalize_rows_min_is_zero():
    positions = {
        "a": Position("L1", 0, -2),
        "b": Position("L1", 1, 1),
        "c": Position("L2", 0, 3),
    }
    normalized, shifts = normalize_rows(positions)
    assert normalized["a"].row == 0
    assert normalized["b"].row == 3
    assert normalized["c"].row == 0
    assert shifts == {"L1": -2, "L2": 3}


def test_single_row_lane_height():
    coords = _coords(chain("s", "a", "e"))
    lane = coords.lane_bounds["L1"]
    assert lane.y == 80
    assert lane.height == 180
    assert lane.x == 150 + 30


def test_lane_grows_per_row():
    nodes = [("s", "startEvent"), ("gw", "exclusiveGateway")]
    nodes += [(t, "task") for t in "abc"] + [("e", "endEvent")]
    flows = [("s", "gw")] + [("gw", t) for t in "abc"] + [(t, "e") for t in "abc"]
    graph = make_graph(nodes, flows, {"L": [n for n, _ in nodes]})
    coords = _coords(graph)
    assert coords.lanes["L"].max_rows == 3
    assert coords.lane_bounds["L"].height == 180 + 2 * 140
    assert min(p.row for p in coords.positions.values()) == 0


def test_node_centred_in_column_and_row():
    coords = _coords(chain("s", "a", "e"))
    box = coords.node_bounds["a"]
    # Layer 1 column centre: element start + 1.5 columns
    assert box.center == pytest.approx((180 + 200 + 100, 80 + 90))
    assert (box.width, box.height) == (100, 80)
    start = coords.node_bounds["s"]
    assert (start.width, start.height) == (36, 36)
    assert start.center[1] == pytest.approx(box.center[1])


def test_lanes_stack_without_gaps():
    nodes = [("s", "startEvent"), ("a", "task"), ("e", "endEvent")]
    graph = make_graph(nodes, [("s", "a"), ("a", "e")], {"L1": ["s"], "L2": ["a", "e"]})
    coords = _coords(graph)
    assert coords.lane_bounds["L2"].y == coords.lane_bounds["L1"].bottom


def test_pools_separated_by_gap():
    graph = make_graph(
        [("s", "startEvent"), ("e", "endEvent"), ("s2", "startEvent"), ("e2", "endEvent")],
        [("s", "e"), ("s2", "e2")],
    )
    graph.add_pool(Pool(id="P1"))
    graph.add_pool(Pool(id="P2"))
    graph.add_lane(Lane(id="A", elements=["s", "e"], pool_id="P1"))
    graph.add_lane(Lane(id="B", elements=["s2", "e2"], pool_id="P2"))
    coords = _coords(graph)
    assert coords.pool_bounds["P2"].y == coords.pool_bounds["P1"].bottom + 50
    assert coords.pool_bounds["P1"].x == 150


def test_parent_lane_spans_children():
    graph = make_graph([("s", "startEvent"), ("e", "endEvent")], [("s", "e")])
    graph.add_lane(Lane(id="Parent", elements=["s", "e"]))
    graph.add_lane(Lane(id="A", elements=["s"], parent_lane="Parent"))
    graph.add_lane(Lane(id="B", elements=["e"], parent_lane="Parent"))
    coords = _coords(graph)
    parent = coords.lane_bounds["Parent"]
    a, b = coords.lane_bounds["A"], coords.lane_bounds["B"]
    assert parent.y == a.y
    assert parent.bottom == b.bottom
    # Children start one label gutter further along the flow
    assert a.x == parent.x + 30
    assert coords.element_start == 150 + 30 + 30


def test_column_boundaries_avoid_nodes():
    coords = _coords(chain("s", "a", "b", "e"))
    for gap in coords.column_boundaries():
        for box in coords.node_bounds.values():
            assert not box.x < gap < box.right


def test_corridors_avoid_nodes():
    coords = _coords(chain("s", "a", "e"))
    for corridor in coords.lanes["L1"].corridors:
        for box in coords.node_bounds.values():
            assert not box.y < corridor < box.bottom


def test_vertical_lane_uses_width_settings():
    config = LayoutConfig(lane_orientation="vertical")
    coords = _coords(chain("s", "a", "e"), config)
    # Flow space: the cross extent of a vertical lane is its width
    assert coords.lane_bounds["L1"].height == 150
    # Tasks are 100 wide and 80 tall in pixels, so 80 along the flow
    assert coords.node_bounds["a"].width == 80


def test_bounds_helpers():
    a = Bounds(0, 0, 10, 10)
    b = Bounds(10, 0, 10, 10)
    assert not a.overlaps(b)
    assert a.union(b) == Bounds(0, 0, 20, 10)
    assert Bounds(1, 2, 3, 4).transposed() == Bounds(2, 1, 4, 3)
