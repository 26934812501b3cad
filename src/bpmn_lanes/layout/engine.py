"""Layout coordinator: runs the pipeline stages and assembles the geometry.

Stages run in flow space (``x`` along the process, ``y`` across lanes).
For vertical lanes the finished geometry is transposed into pixel space
before labels are placed, since label rules are stated in pixel terms.
"""

from __future__ import annotations

__all__ = [
    "EdgeGeometry",
    "Geometry",
    "LayoutResult",
    "NodeGeometry",
    "layout_bpmn",
    "layout_process",
]

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from bpmn_lanes.layout.config import LayoutConfig
from bpmn_lanes.layout.coordinates import Bounds, Point, compute_coordinates
from bpmn_lanes.layout.labels import PixelRoute, place_labels
from bpmn_lanes.layout.positions import FlowInfo, Position, assign_positions
from bpmn_lanes.layout.preprocess import preprocess, validate_graph
from bpmn_lanes.layout.routing import route_flows
from bpmn_lanes.parser.model import Lane, ProcessGraph

logger = logging.getLogger(__name__)

DEFAULT_LANE_ID = "default_lane"


@dataclass
class NodeGeometry:
    bounds: Bounds
    label: Bounds | None = None


@dataclass
class EdgeGeometry:
    """Pixel waypoints of a flow; sides are compass directions."""

    source: str
    target: str
    waypoints: list[Point]
    exit_side: str
    entry_side: str
    kind: str = "forward"
    label: Bounds | None = None
    fallback: bool = False


@dataclass
class Geometry:
    """Everything a renderer or serializer needs, in pixel space."""

    orientation: str
    nodes: dict[str, NodeGeometry] = field(default_factory=dict)
    edges: dict[str, EdgeGeometry] = field(default_factory=dict)
    lanes: dict[str, Bounds] = field(default_factory=dict)
    pools: dict[str, Bounds] = field(default_factory=dict)
    positions: dict[str, Position] = field(default_factory=dict)
    flow_infos: dict[str, FlowInfo] = field(default_factory=dict)
    back_edges: list[str] = field(default_factory=list)
    collapsed_gateways: list[str] = field(default_factory=list)

    @property
    def bounds(self) -> Bounds:
        """Smallest box holding every pool, lane, node, waypoint and label."""
        boxes = list(self.pools.values()) + list(self.lanes.values())
        for node in self.nodes.values():
            boxes.append(node.bounds)
            if node.label:
                boxes.append(node.label)
        for edge in self.edges.values():
            boxes.extend(Bounds(x, y, 0.0, 0.0) for x, y in edge.waypoints)
            if edge.label:
                boxes.append(edge.label)
        if not boxes:
            return Bounds(0.0, 0.0, 0.0, 0.0)
        total = boxes[0]
        for box in boxes[1:]:
            total = total.union(box)
        return total

    def as_dict(self) -> dict:
        """Plain-data form, suitable for JSON output."""
        return {
            "orientation": self.orientation,
            "nodes": {
                nid: {
                    "bounds": n.bounds.as_dict(),
                    "label": n.label.as_dict() if n.label else None,
                }
                for nid, n in self.nodes.items()
            },
            "edges": {
                eid: {
                    "source": e.source,
                    "target": e.target,
                    "waypoints": [{"x": x, "y": y} for x, y in e.waypoints],
                    "exitSide": e.exit_side,
                    "entrySide": e.entry_side,
                    "kind": e.kind,
                    "label": e.label.as_dict() if e.label else None,
                }
                for eid, e in self.edges.items()
            },
            "lanes": {lid: b.as_dict() for lid, b in self.lanes.items()},
            "pools": {pid: b.as_dict() for pid, b in self.pools.items()},
        }


@dataclass
class LayoutResult:
    """Outcome of a layout run.

    On failure ``geometry`` is None and ``errors`` explains why. ``graph``
    is the preprocessed graph the geometry refers to, with collapsed merge
    gateways removed and their flows rewired.
    """

    success: bool
    geometry: Geometry | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    graph: ProcessGraph | None = None


def _ensure_lane(graph: ProcessGraph) -> ProcessGraph:
    """Give a lane-less graph a single implicit lane holding every flow node."""
    if graph.lanes:
        return graph
    graph = graph.copy()
    graph.add_lane(
        Lane(
            id=DEFAULT_LANE_ID,
            elements=[n.id for n in graph.flow_nodes()],
            implicit=True,
        )
    )
    return graph


def _to_pixels(point: Point, horizontal: bool) -> Point:
    return point if horizontal else (point[1], point[0])


def _box_to_pixels(box: Bounds, horizontal: bool) -> Bounds:
    return box if horizontal else box.transposed()


def _run(graph: ProcessGraph, config: LayoutConfig) -> LayoutResult:
    warnings: list[str] = []
    pre = preprocess(_ensure_lane(graph), config)
    warnings.extend(pre.warnings)

    assignment = assign_positions(pre.graph, pre.back_edges)
    warnings.extend(assignment.warnings)

    coords = compute_coordinates(pre.graph, assignment, config)
    routing = route_flows(coords, config)
    warnings.extend(routing.warnings)

    horizontal = config.is_horizontal
    directions = config.directions
    geometry = Geometry(
        orientation=config.lane_orientation,
        positions=dict(coords.positions),
        flow_infos=routing.flow_infos,
        back_edges=list(pre.back_edges),
        collapsed_gateways=list(pre.collapsed_gateways),
    )
    for node_id, box in coords.node_bounds.items():
        geometry.nodes[node_id] = NodeGeometry(_box_to_pixels(box, horizontal))
    for lane_id, box in coords.lane_bounds.items():
        geometry.lanes[lane_id] = _box_to_pixels(box, horizontal)
    for pool_id, box in coords.pool_bounds.items():
        geometry.pools[pool_id] = _box_to_pixels(box, horizontal)

    pixel_routes: dict[str, PixelRoute] = {}
    for edge_id, path in routing.routes.items():
        points = [_to_pixels(p, horizontal) for p in path.points]
        geometry.edges[edge_id] = EdgeGeometry(
            source=path.source,
            target=path.target,
            waypoints=points,
            exit_side=directions.compass(path.exit_side),
            entry_side=directions.compass(path.entry_side),
            kind=path.kind,
            fallback=path.fallback,
        )
        pixel_routes[edge_id] = PixelRoute(
            source=path.source,
            target=path.target,
            points=points,
            exit_direction=directions.compass(path.exit_side),
            is_message=path.kind == "message",
        )

    labels = place_labels(
        pre.graph,
        {nid: n.bounds for nid, n in geometry.nodes.items()},
        pixel_routes,
        routing.flow_infos,
        config.char_width,
    )
    for element_id, placement in labels.items():
        if element_id in geometry.nodes:
            geometry.nodes[element_id].label = placement.bounds
        elif element_id in geometry.edges:
            geometry.edges[element_id].label = placement.bounds

    logger.info(
        "Laid out %d nodes, %d flows, %d lanes (%s)",
        len(geometry.nodes),
        len(geometry.edges),
        len(geometry.lanes),
        config.lane_orientation,
    )
    return LayoutResult(success=True, geometry=geometry, warnings=warnings, graph=pre.graph)


def layout_process(
    graph: ProcessGraph,
    config: LayoutConfig | Mapping[str, object] | None = None,
) -> LayoutResult:
    """Lay out a process graph.

    Never raises: invalid input and unexpected stage failures both come
    back as ``LayoutResult(success=False, errors=[...])``.
    """
    try:
        if not isinstance(config, LayoutConfig):
            config = LayoutConfig.from_mapping(config)
    except (TypeError, ValueError) as exc:
        return LayoutResult(success=False, errors=[f"Invalid layout options: {exc}"])

    errors = validate_graph(graph)
    if errors:
        for message in errors:
            logger.debug("Validation: %s", message)
        return LayoutResult(success=False, errors=errors)

    try:
        return _run(graph, config)
    except Exception as exc:  # top-level boundary
        logger.exception("Layout failed")
        return LayoutResult(success=False, errors=[f"Layout failed: {exc}"])


def layout_bpmn(
    xml_text: str, config: LayoutConfig | Mapping[str, object] | None = None
) -> LayoutResult:
    """Parse BPMN XML and lay it out; parse errors become a failed result."""
    from bpmn_lanes.parser.bpmn import BpmnParseError, parse_bpmn_xml

    try:
        graph = parse_bpmn_xml(xml_text)
    except BpmnParseError as exc:
        return LayoutResult(success=False, errors=[str(exc)])
    return layout_process(graph, config)

