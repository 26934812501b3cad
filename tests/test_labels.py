"""Tests for label placement."""

from pathlib import Path

import pytest
from graph_builders import chain, flow_id, make_graph

from bpmn_lanes.layout.coordinates import Bounds
from bpmn_lanes.layout.engine import layout_bpmn
from bpmn_lanes.layout.labels import (
    PixelRoute,
    edge_label_bounds,
    gateway_label_bounds,
    message_label_bounds,
    node_label_bounds,
    occupied_sides,
    place_labels,
)
from bpmn_lanes.layout.positions import FlowEnd, FlowInfo

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"

# ---------------------------------------------------------------------------
# Gateways
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text, expected",
    [
        # short names: one 80px line
        ("Order valid?", Bounds(100 - 90, 100 - 25, 80, 20)),
        # long single word: one wider line
        ("Authentication", Bounds(100 - 110, 100 - 25, 100, 20)),
        # long multi-word name wraps onto two lines
        ("Is the order valid?", Bounds(100 - 85, 100 - 45, 80, 40)),
    ],
)
def test_gateway_label_table(text, expected):
    box = Bounds(75, 75, 50, 50)
    assert gateway_label_bounds(box, text) == expected


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

EVENT = Bounds(0, 0, 36, 36)


def test_occupied_sides_by_dominant_direction():
    assert occupied_sides(EVENT, [(36, 18), (18, 0)]) == {"right", "top"}


def test_event_label_below_by_default():
    assert node_label_bounds(EVENT, [(36, 18)]) == Bounds(-10, 41, 56, 20)


def test_event_label_above_when_bottom_used():
    assert node_label_bounds(EVENT, [(18, 36)]) == Bounds(-10, -25, 56, 20)


def test_event_label_right_then_left():
    assert node_label_bounds(EVENT, [(18, 36), (18, 0)]) == Bounds(41, 8, 56, 20)
    all_sides = [(18, 36), (18, 0), (36, 18)]
    assert node_label_bounds(EVENT, all_sides) == Bounds(-61, 8, 56, 20)


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def test_message_label_above_first_point():
    bounds = message_label_bounds([(100, 200), (100, 400)], "order", 7.0)
    assert bounds == Bounds(110, 175, 50, 20)


def test_plain_flow_label_at_midpoint():
    graph = chain("s", "a", "e")
    edge = flow_id("s", "a")
    routes = {edge: PixelRoute("s", "a", [(0, 0), (100, 0)], "right")}
    assert edge_label_bounds(edge, "go", routes, {}, graph) == Bounds(35, -20, 30, 20)


def test_midpoint_follows_polyline_length():
    graph = chain("s", "a", "e")
    edge = flow_id("s", "a")
    routes = {edge: PixelRoute("s", "a", [(0, 0), (0, 60), (40, 60)], "down")}
    bounds = edge_label_bounds(edge, "go", routes, {}, graph)
    assert (bounds.x + bounds.width / 2, bounds.bottom) == (0, 50)


def _gateway_graph():
    nodes = [("s", "startEvent"), ("gw", "exclusiveGateway"), ("a", "task"), ("e", "endEvent")]
    return make_graph(nodes, [("s", "gw"), ("gw", "a"), ("a", "e")], {"L": ["s", "gw", "a", "e"]})


def test_gateway_output_label_beside_exit():
    graph = _gateway_graph()
    edge = flow_id("gw", "a")
    routes = {edge: PixelRoute("gw", "a", [(50, 25), (100, 25)], "right")}
    assert edge_label_bounds(edge, "yes", routes, {}, graph) == Bounds(40, 5, 50, 20)


def test_gateway_output_label_below_downward_exit():
    graph = _gateway_graph()
    edge = flow_id("gw", "a")
    routes = {edge: PixelRoute("gw", "a", [(25, 50), (25, 150), (100, 150)], "down")}
    assert edge_label_bounds(edge, "no", routes, {}, graph) == Bounds(15, 60, 50, 20)


def test_long_gateway_output_label_wraps():
    graph = _gateway_graph()
    edge = flow_id("gw", "a")
    routes = {edge: PixelRoute("gw", "a", [(50, 25), (300, 25)], "right")}
    text = "customer has not paid yet"
    bounds = edge_label_bounds(edge, text, routes, {}, graph)
    assert bounds.height == 40


def _converging_infos():
    def info(target, lane):
        return FlowInfo(
            flow_id("gw", target), FlowEnd("gw", "L1", 1, 0), FlowEnd(target, lane, 2, 0)
        )

    return {flow_id("gw", t): info(t, lane) for t, lane in (("b", "L2"), ("c", "L3"))}


def test_converging_downward_labels_align_on_corridor():
    nodes = [("s", "startEvent"), ("gw", "exclusiveGateway"), ("b", "task"), ("c", "task")]
    flows = [("s", "gw"), ("gw", "b", "hand over"), ("gw", "c", "escalate")]
    graph = make_graph(nodes, flows, {"L1": ["s", "gw"], "L2": ["b"], "L3": ["c"]})
    routes = {
        flow_id("gw", "b"): PixelRoute("gw", "b", [(25, 50), (25, 150), (100, 150)], "down"),
        flow_id("gw", "c"): PixelRoute("gw", "c", [(25, 50), (25, 250), (100, 250)], "down"),
    }
    infos = _converging_infos()
    to_b = edge_label_bounds(flow_id("gw", "b"), "hand over", routes, infos, graph)
    to_c = edge_label_bounds(flow_id("gw", "c"), "escalate", routes, infos, graph)
    assert to_b == Bounds(5, 160, 150, 20)
    assert to_c == Bounds(5, 260, 150, 20)


# ---------------------------------------------------------------------------
# place_labels
# ---------------------------------------------------------------------------


def test_tasks_and_unnamed_elements_get_no_label():
    graph = make_graph(
        [("s", "startEvent"), ("a", "task"), ("e", "endEvent")],
        [("s", "a"), ("a", "e")],
        {"L": ["s", "a", "e"]},
        names={"s": "Begin", "a": "Work"},
    )
    boxes = {"s": Bounds(0, 0, 36, 36), "a": Bounds(100, 0, 100, 80), "e": Bounds(300, 0, 36, 36)}
    routes = {
        flow_id("s", "a"): PixelRoute("s", "a", [(36, 18), (100, 18)], "right"),
        flow_id("a", "e"): PixelRoute("a", "e", [(200, 18), (300, 18)], "right"),
    }
    placements = place_labels(graph, boxes, routes, {})
    assert set(placements) == {"s"}
    assert placements["s"].text == "Begin"


def test_example_labels():
    text = (EXAMPLES_DIR / "order_fulfillment.bpmn").read_text()
    result = layout_bpmn(text)
    assert result.success, result.errors
    geometry = result.geometry
    gateway = geometry.nodes["Gateway_ok"]
    cx, cy = gateway.bounds.center
    assert gateway.label == Bounds(cx - 90, cy - 25, 80, 20)
    assert geometry.nodes["Start_order"].label is not None
    assert geometry.nodes["Task_check"].label is None
    assert geometry.edges["Flow_yes"].label is not None
    assert geometry.edges["Flow_1"].label is None
