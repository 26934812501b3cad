"""Label placement for gateways, events and flows.

Works in pixel space, after routing, since label sides depend on where
flows actually attach. Activity names are drawn inside their box and
need no external label.
"""

from __future__ import annotations

from dataclasses import dataclass

from bpmn_lanes.layout import constants as C
from bpmn_lanes.layout.coordinates import Bounds, Point
from bpmn_lanes.layout.positions import FlowInfo
from bpmn_lanes.parser.model import ProcessGraph


@dataclass
class LabelPlacement:
    """Placement of an element's label box."""

    element_id: str
    text: str
    bounds: Bounds


@dataclass
class PixelRoute:
    """The bits of a routed flow label placement needs, in pixel space."""

    source: str
    target: str
    points: list[Point]
    exit_direction: str  # compass: "right", "left", "up" or "down"
    is_message: bool = False


def gateway_label_bounds(box: Bounds, text: str) -> Bounds:
    """Label box anchored at its bottom-right, up and left of the gateway centre.

    The box size approximates how the name wraps: long multi-word names
    take two lines, long single words a wider single line.
    """
    words = len(text.split())
    if words >= 2 and len(text) > 15:
        width, height, h_gap = 80.0, 40.0, 5.0
    elif len(text) > 12:
        width, height, h_gap = 100.0, 20.0, 10.0
    else:
        width, height, h_gap = 80.0, 20.0, 10.0
    v_gap = C.LABEL_GAP
    cx, cy = box.center
    return Bounds(cx - h_gap - width, cy - v_gap - height, width, height)


def occupied_sides(box: Bounds, touch_points: list[Point]) -> set[str]:
    """Sides of a box that flows attach to, by dominant direction from its centre."""
    cx, cy = box.center
    sides: set[str] = set()
    for x, y in touch_points:
        dx, dy = x - cx, y - cy
        if abs(dy) > abs(dx):
            sides.add("top" if dy < 0 else "bottom")
        else:
            sides.add("left" if dx < 0 else "right")
    return sides


def node_label_bounds(box: Bounds, touch_points: list[Point]) -> Bounds:
    """Below the node unless a flow uses that side; then above, right, left."""
    occupied = occupied_sides(box, touch_points)
    width = box.width + 2 * C.LABEL_SIDE_MARGIN
    height = C.LABEL_HEIGHT
    gap = C.LABEL_GAP
    if "bottom" not in occupied:
        return Bounds(box.x - C.LABEL_SIDE_MARGIN, box.bottom + gap, width, height)
    if "top" not in occupied:
        return Bounds(box.x - C.LABEL_SIDE_MARGIN, box.y - height - gap, width, height)
    mid_y = box.y + (box.height - height) / 2
    if "right" not in occupied:
        return Bounds(box.right + gap, mid_y, width, height)
    return Bounds(box.x - width - gap, mid_y, width, height)


def _text_width(text: str, char_width: float) -> float:
    return max(C.EDGE_LABEL_MIN_WIDTH, len(text) * char_width + 10)


def message_label_bounds(points: list[Point], text: str, char_width: float) -> Bounds:
    """Just above and right of the message flow's first waypoint."""
    x, y = points[0]
    return Bounds(
        x + 10,
        y - C.LABEL_HEIGHT - C.LABEL_GAP,
        _text_width(text, char_width),
        C.LABEL_HEIGHT,
    )


def _midpoint(points: list[Point]) -> Point:
    """Point halfway along a polyline."""
    lengths = [abs(bx - ax) + abs(by - ay) for (ax, ay), (bx, by) in zip(points, points[1:])]
    remaining = sum(lengths) / 2
    for ((ax, ay), (bx, by)), length in zip(zip(points, points[1:]), lengths):
        if remaining <= length and length > 0:
            t = remaining / length
            return (ax + (bx - ax) * t, ay + (by - ay) * t)
        remaining -= length
    return points[-1]


def edge_label_bounds(
    edge_id: str,
    text: str,
    routes: dict[str, PixelRoute],
    flow_infos: dict[str, FlowInfo],
    graph: ProcessGraph,
    char_width: float = C.CHAR_WIDTH,
) -> Bounds:
    """Label box for a named flow.

    Outputs of a gateway sit next to their exit point. When two or more
    cross-lane outputs leave the gateway in the same direction they
    converge onto a shared corridor, and their labels align on the
    rightmost exit among the siblings.
    """
    route = routes[edge_id]
    points = route.points
    if route.is_message:
        return message_label_bounds(points, text, char_width)

    source = graph.nodes.get(route.source)
    width = _text_width(text, char_width)
    if source is None or not source.is_gateway or len(points) < 2:
        mx, my = _midpoint(points)
        width = max(C.MIDPOINT_LABEL_WIDTH, len(text) * char_width + 10)
        return Bounds(mx - width / 2, my - C.LABEL_HEIGHT, width, C.LABEL_HEIGHT)

    height = 2 * C.LABEL_HEIGHT if width > C.EDGE_LABEL_WRAP_WIDTH else C.LABEL_HEIGHT
    info = flow_infos.get(edge_id)
    siblings = [
        eid for eid, r in routes.items() if r.source == route.source and not r.is_message
    ]

    cross_down = cross_up = 0
    for eid in siblings:
        other = flow_infos.get(eid)
        if other is None or other.target.lane == other.source.lane:
            continue
        if routes[eid].exit_direction == "down":
            cross_down += 1
        elif routes[eid].exit_direction == "up":
            cross_up += 1
    converging = cross_down >= 2 or cross_up >= 2
    use_corridor = (
        converging
        and info is not None
        and info.source.layer != info.target.layer
        and len(points) >= 3
    )

    x1, y1 = points[0]
    ref_x = max([x1] + [routes[eid].points[0][0] for eid in siblings]) if converging else x1
    before_last_y = points[-2][1]
    direction = route.exit_direction

    if direction == "right":
        if use_corridor:
            return Bounds(ref_x, before_last_y - height, width, height)
        return Bounds(ref_x - 10, y1 - height, width, height)
    if direction == "down":
        if use_corridor:
            return Bounds(x1 - 20, before_last_y + 10, C.CONVERGING_LABEL_WIDTH, height)
        return Bounds(x1 - 10, y1 + 10, width, height)
    if direction == "left":
        y = before_last_y if use_corridor else y1
        return Bounds(ref_x - width, y - height, width, height)
    return Bounds(ref_x, y1 - height, width, height)


def place_labels(
    graph: ProcessGraph,
    node_bounds: dict[str, Bounds],
    routes: dict[str, PixelRoute],
    flow_infos: dict[str, FlowInfo],
    char_width: float = C.CHAR_WIDTH,
) -> dict[str, LabelPlacement]:
    """Place labels for named gateways, events and flows (pixel space)."""
    touches: dict[str, list[Point]] = {nid: [] for nid in node_bounds}
    for route in routes.values():
        if route.source in touches:
            touches[route.source].append(route.points[0])
        if route.target in touches:
            touches[route.target].append(route.points[-1])

    placements: dict[str, LabelPlacement] = {}
    for node_id, box in node_bounds.items():
        node = graph.nodes[node_id]
        if not node.name:
            continue
        if node.is_gateway:
            bounds = gateway_label_bounds(box, node.name)
        elif node.is_event:
            bounds = node_label_bounds(box, touches[node_id])
        else:
            continue
        placements[node_id] = LabelPlacement(node_id, node.name, bounds)

    for edge_id, route in routes.items():
        edge = graph.edges.get(edge_id)
        if edge is None or not edge.name:
            continue
        bounds = edge_label_bounds(edge_id, edge.name, routes, flow_infos, graph, char_width)
        placements[edge_id] = LabelPlacement(edge_id, edge.name, bounds)

    return placements
