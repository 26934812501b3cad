"""Pixel coordinate synthesis for nodes, lanes and pools.

Geometry is computed in *flow space*: ``x`` runs along the process-flow
axis and ``y`` along the lane-stacking axis. For horizontal lanes flow
space is pixel space; the engine transposes everything for vertical
lanes.
"""

from __future__ import annotations

__all__ = [
    "Bounds",
    "CoordinateResult",
    "LaneGeometry",
    "compute_coordinates",
    "compute_lane_bounds",
    "compute_node_bounds",
    "compute_pool_bounds",
    "normalize_rows",
]

import logging
from dataclasses import dataclass, field, replace

from bpmn_lanes.layout.config import LayoutConfig
from bpmn_lanes.layout.positions import FlowInfo, Position, PositionResult
from bpmn_lanes.parser.model import ProcessGraph

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned rectangle."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def overlaps(self, other: Bounds) -> bool:
        """Strict interior overlap; touching edges do not count."""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def union(self, other: Bounds) -> Bounds:
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Bounds(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)

    def transposed(self) -> Bounds:
        return Bounds(self.y, self.x, self.height, self.width)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class LaneGeometry:
    """Pixel geometry of a leaf lane, in flow space."""

    lane_id: str
    bounds: Bounds
    max_rows: int
    row_centers: list[float]
    corridors: list[float]


@dataclass
class CoordinateResult:
    """Output of the coordinate stage, all in flow space."""

    positions: dict[str, Position]
    flow_infos: dict[str, FlowInfo]
    node_bounds: dict[str, Bounds]
    lanes: dict[str, LaneGeometry]
    lane_bounds: dict[str, Bounds]
    pool_bounds: dict[str, Bounds]
    element_start: float
    column_width: float
    layer_count: int
    lane_order: list[str] = field(default_factory=list)

    def column_center(self, layer: int) -> float:
        return self.element_start + layer * self.column_width + self.column_width / 2

    def column_boundaries(self) -> list[float]:
        """Flow-axis positions of the gaps between columns; never inside a node."""
        return [
            self.element_start + k * self.column_width for k in range(self.layer_count + 1)
        ]

    def point_for(self, pos: Position) -> Point | None:
        """Pixel point of a logical waypoint, or None for an unknown lane."""
        lane = self.lanes.get(pos.lane)
        if lane is None or not 0 <= pos.row < len(lane.row_centers):
            return None
        return (self.column_center(pos.layer), lane.row_centers[pos.row])

    def lane_at(self, y: float) -> LaneGeometry | None:
        for lane in self.lanes.values():
            if lane.bounds.y <= y <= lane.bounds.bottom:
                return lane
        return None


def normalize_rows(positions: dict[str, Position]) -> tuple[dict[str, Position], dict[str, int]]:
    """Shift rows so each lane's minimum row is 0.

    Returns the new positions and the per-lane shift that was applied.
    """
    min_rows: dict[str, int] = {}
    for pos in positions.values():
        min_rows[pos.lane] = min(pos.row, min_rows.get(pos.lane, pos.row))
    normalized = {
        nid: replace(pos, row=pos.row - min_rows[pos.lane]) for nid, pos in positions.items()
    }
    return normalized, min_rows


def _shift_flow_info(info: FlowInfo, shifts: dict[str, int]) -> FlowInfo:
    def shifted(lane: str, row: int) -> int:
        return row - shifts.get(lane, 0)

    return replace(
        info,
        source=replace(info.source, row=shifted(info.source.lane, info.source.row)),
        target=replace(info.target, row=shifted(info.target.lane, info.target.row)),
        waypoints=[replace(w, row=shifted(w.lane, w.row)) for w in info.waypoints],
    )


def _lane_extent(config: LayoutConfig, max_rows: int) -> float:
    return config.lane_base_extent + (max_rows - 1) * config.lane_row_extent


def _lane_start(graph: ProcessGraph, config: LayoutConfig, lane_id: str) -> float:
    """Flow-axis start of a lane: after the pool gutter and parent gutters."""
    return (
        config.pool_x_offset
        + config.pool_label_width
        + graph.lane_depth(lane_id) * config.parent_lane_label_width
    )


def element_start_for(graph: ProcessGraph, config: LayoutConfig) -> float:
    """Flow-axis start of the first column, shared by all lanes so columns align."""
    depth = max((graph.lane_depth(lid) for lid in graph.leaf_lanes()), default=0)
    return config.pool_x_offset + config.pool_label_width + depth * config.parent_lane_label_width


def compute_lane_bounds(
    graph: ProcessGraph,
    positions: dict[str, Position],
    config: LayoutConfig,
    layer_count: int,
) -> tuple[dict[str, LaneGeometry], dict[str, Bounds]]:
    """Stack leaf lanes along the cross axis and size them by their row count.

    Returns leaf lane geometry plus bounds for every lane; a parent lane
    spans the union of its children, starting at its own label gutter.
    """
    max_rows: dict[str, int] = {}
    for pos in positions.values():
        max_rows[pos.lane] = max(max_rows.get(pos.lane, 1), pos.row + 1)

    end = element_start_for(graph, config) + max(layer_count, 1) * config.column_width
    ref = config.row_reference

    leaves: dict[str, LaneGeometry] = {}
    y = config.lane_top_offset
    prev_pool: str | None = None
    for idx, lane_id in enumerate(graph.leaf_lanes()):
        pool = graph.pool_for_lane(lane_id)
        if idx > 0 and pool != prev_pool:
            y += config.pool_gap
        prev_pool = pool

        rows = max_rows.get(lane_id, 1)
        extent = _lane_extent(config, rows)
        x = _lane_start(graph, config, lane_id)
        bounds = Bounds(x, y, end - x, extent)

        pad = (extent - rows * ref) / (rows + 1)
        centers = [y + pad + r * (ref + pad) + ref / 2 for r in range(rows)]
        edge_offset = min(config.corridor_offset, pad / 2)
        corridors = (
            [y + edge_offset]
            + [(a + b) / 2 for a, b in zip(centers, centers[1:])]
            + [y + extent - edge_offset]
        )
        leaves[lane_id] = LaneGeometry(lane_id, bounds, rows, centers, corridors)
        y += extent

    all_bounds: dict[str, Bounds] = {lid: g.bounds for lid, g in leaves.items()}
    # Parents after children: reversed stacking order visits deepest first
    for lane_id in reversed(graph.ordered_lanes()):
        lane = graph.lanes[lane_id]
        child_bounds = [all_bounds[c] for c in lane.child_lanes if c in all_bounds]
        if lane_id in all_bounds or not child_bounds:
            continue
        union = child_bounds[0]
        for b in child_bounds[1:]:
            union = union.union(b)
        x = _lane_start(graph, config, lane_id)
        all_bounds[lane_id] = Bounds(x, union.y, union.right - x, union.height)

    return leaves, all_bounds


def compute_pool_bounds(
    graph: ProcessGraph,
    lane_bounds: dict[str, Bounds],
    config: LayoutConfig,
) -> dict[str, Bounds]:
    """Pool bounds: the pool gutter plus the union of its lanes."""
    pools: dict[str, Bounds] = {}
    for pool_id, pool in graph.pools.items():
        members = [lane_bounds[lid] for lid in pool.lanes if lid in lane_bounds]
        if not members:
            continue
        union = members[0]
        for b in members[1:]:
            union = union.union(b)
        x = config.pool_x_offset
        pools[pool_id] = Bounds(x, union.y, union.right - x, union.height)
    return pools


def compute_node_bounds(
    graph: ProcessGraph,
    positions: dict[str, Position],
    lanes: dict[str, LaneGeometry],
    config: LayoutConfig,
    element_start: float,
) -> dict[str, Bounds]:
    """Centre each node in its column and on its row's centre line."""
    bounds: dict[str, Bounds] = {}
    for node_id, pos in positions.items():
        lane = lanes.get(pos.lane)
        if lane is None:
            logger.warning("No bounds for lane %s of node %s", pos.lane, node_id)
            continue
        du, dv = config.layout_size(graph.nodes[node_id].type)
        cu = element_start + pos.layer * config.column_width + config.column_width / 2
        cv = lane.row_centers[pos.row]
        bounds[node_id] = Bounds(cu - du / 2, cv - dv / 2, du, dv)
    return bounds


def compute_coordinates(
    graph: ProcessGraph, assignment: PositionResult, config: LayoutConfig
) -> CoordinateResult:
    """Turn discrete positions into flow-space pixel geometry."""
    positions, shifts = normalize_rows(assignment.positions)
    flow_infos = {
        eid: _shift_flow_info(info, shifts) for eid, info in assignment.flow_infos.items()
    }
    layer_count = max((p.layer for p in positions.values()), default=-1) + 1
    element_start = element_start_for(graph, config)

    lanes, lane_bounds = compute_lane_bounds(graph, positions, config, layer_count)
    pool_bounds = compute_pool_bounds(graph, lane_bounds, config)
    node_bounds = compute_node_bounds(graph, positions, lanes, config, element_start)

    return CoordinateResult(
        positions=positions,
        flow_infos=flow_infos,
        node_bounds=node_bounds,
        lanes=lanes,
        lane_bounds=lane_bounds,
        pool_bounds=pool_bounds,
        element_start=element_start,
        column_width=config.column_width,
        layer_count=layer_count,
        lane_order=list(assignment.lane_order),
    )
