"""Discrete position assignment: (lane, layer, row) for every flow node.

Layers run along the process-flow axis, rows disambiguate nodes sharing
a lane and layer. Nodes are visited in topological order of the forward
(non-loop) flows; each node places its successors according to how the
flow between them is classified:

- same-lane successor: next layer, same row
- cross-lane successor with a free path: same layer, row 0
- cross-lane successor with a blocked path: next layer, row 0
- branching fan-out: all outputs on the next layer, same-lane outputs
  spread over symmetric rows, cross-lane outputs on row 0

A node keeps the first position it is given, except that a node fed by
several forward flows is pulled forward to one layer past its latest
predecessor. An occupancy grid keeps every (lane, layer, row) cell to
one node and keeps nodes out of columns crossed by cross-lane flows.
"""

from __future__ import annotations

__all__ = [
    "FlowEnd",
    "FlowInfo",
    "Position",
    "PositionResult",
    "assign_gateway_lanes",
    "assign_positions",
    "build_flow_infos",
    "symmetric_rows",
]

import logging
from dataclasses import dataclass, field

import networkx as nx

from bpmn_lanes.layout.config import Side
from bpmn_lanes.parser.model import Edge, ProcessGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Discrete grid position of a node or a logical waypoint."""

    lane: str
    layer: int
    row: int


@dataclass
class FlowEnd:
    """One end of a flow: the node's grid position and the side used."""

    node: str
    lane: str
    layer: int
    row: int
    side: Side | None = None


@dataclass
class FlowInfo:
    """Logical route of a flow, before pixel coordinates exist.

    Back-flows and message flows leave both sides unset; the router picks
    them once every node has pixel bounds.
    """

    edge_id: str
    source: FlowEnd
    target: FlowEnd
    is_back_flow: bool = False
    is_message_flow: bool = False
    waypoints: list[Position] = field(default_factory=list)


@dataclass
class PositionResult:
    """Output of the position assignment stage."""

    positions: dict[str, Position]
    flow_infos: dict[str, FlowInfo]
    node_lanes: dict[str, str]
    lane_order: list[str]
    warnings: list[str] = field(default_factory=list)


def symmetric_rows(count: int) -> list[int]:
    """Row offsets for ``count`` same-lane outputs of a branching node.

    The offsets form a contiguous range of length ``count`` that contains
    0: a single output continues straight, two outputs use ``[0, 1]``,
    odd counts are centred (``3 -> [-1, 0, 1]``) and larger even counts
    lean one row downward (``4 -> [-1, 0, 1, 2]``).
    """
    if count <= 0:
        return []
    if count <= 2:
        return list(range(count))
    if count % 2:
        half = count // 2
        return list(range(-half, half + 1))
    half = count // 2
    return list(range(-(half - 1), half + 1))


def _sequence_edges(graph: ProcessGraph, edge_ids: list[str]) -> list[Edge]:
    return [
        graph.edges[e] for e in edge_ids if e in graph.edges and graph.edges[e].is_sequence
    ]


def assign_gateway_lanes(graph: ProcessGraph) -> dict[str, str]:
    """Return the lane of every flow node.

    Nodes listed by a lane keep it. Nodes no lane references (usually
    gateways) inherit one from their neighbours:

    - split (1 in, >1 out): the lane of the incoming flow's source
    - merge (>1 in, 1 out): the lane of the outgoing flow's target
    - otherwise: the lane of the first output's target, then the first
      input's source, then the first lane
    """
    lanes: dict[str, str] = {}
    pending: list[str] = []
    for node in graph.flow_nodes():
        lane = graph.lane_for_node(node.id)
        if lane:
            lanes[node.id] = lane
        else:
            pending.append(node.id)

    # Neighbours may be unassigned gateways too: iterate to a fixpoint
    while pending:
        progressed = False
        for node_id in list(pending):
            lane = _inferred_lane(graph, node_id, lanes)
            if lane:
                lanes[node_id] = lane
                pending.remove(node_id)
                progressed = True
        if not progressed:
            break

    leaves = graph.leaf_lanes()
    for node_id in pending:
        if leaves:
            logger.warning("Node %s has no lane and no laned neighbour", node_id)
            lanes[node_id] = leaves[0]
    return lanes


def _inferred_lane(graph: ProcessGraph, node_id: str, lanes: dict[str, str]) -> str | None:
    node = graph.nodes[node_id]
    incoming = _sequence_edges(graph, node.incoming)
    outgoing = _sequence_edges(graph, node.outgoing)

    if len(incoming) == 1 and len(outgoing) > 1:
        candidates = [incoming[0].source]
    elif len(incoming) > 1 and len(outgoing) == 1:
        candidates = [outgoing[0].target]
    else:
        candidates = [e.target for e in outgoing[:1]] + [e.source for e in incoming[:1]]
    for cand in candidates:
        if cand in lanes:
            return lanes[cand]
    return None


class _Grid:
    """Occupancy of (lane, layer, row) cells and of flow-crossed columns."""

    def __init__(self) -> None:
        self.cells: dict[tuple[str, int, int], str] = {}
        self.columns: dict[tuple[str, int], set[int]] = {}
        self.flow_columns: set[tuple[str, int]] = set()

    def column_has_node(self, lane: str, layer: int) -> bool:
        return bool(self.columns.get((lane, layer)))

    def free_cell(self, lane: str, layer: int, row: int) -> tuple[int, int]:
        """Return the nearest (layer, row) at or after the request that is free."""
        while True:
            if (lane, layer) in self.flow_columns:
                layer += 1
            elif (lane, layer, row) in self.cells:
                row += 1
            else:
                return layer, row

    def occupy(self, node_id: str, pos: Position) -> None:
        self.cells[(pos.lane, pos.layer, pos.row)] = node_id
        self.columns.setdefault((pos.lane, pos.layer), set()).add(pos.row)

    def release(self, pos: Position) -> None:
        self.cells.pop((pos.lane, pos.layer, pos.row), None)
        rows = self.columns.get((pos.lane, pos.layer))
        if rows is not None:
            rows.discard(pos.row)


class _Assigner:
    """Mutable state of one assignment run."""

    def __init__(
        self,
        graph: ProcessGraph,
        back_edges: list[str],
        node_lanes: dict[str, str],
        lane_order: list[str],
    ) -> None:
        self.graph = graph
        self.back = set(back_edges)
        self.node_lanes = node_lanes
        self.lane_index = {lid: i for i, lid in enumerate(lane_order)}
        self.lane_order = lane_order
        self.positions: dict[str, Position] = {}
        self.grid = _Grid()
        self.warnings: list[str] = []
        self.back_targets = {
            graph.edges[e].target for e in back_edges if e in graph.edges
        }

    def forward_out(self, node_id: str) -> list[Edge]:
        return [
            e
            for e in _sequence_edges(self.graph, self.graph.nodes[node_id].outgoing)
            if e.id not in self.back
            and e.target in self.node_lanes
            and e.target != node_id
        ]

    def lanes_between(self, a: str, b: str) -> list[str]:
        lo, hi = sorted((self.lane_index[a], self.lane_index[b]))
        return self.lane_order[lo + 1 : hi]

    def place(self, node_id: str, lane: str, layer: int, row: int) -> Position:
        layer, row = self.grid.free_cell(lane, layer, row)
        pos = Position(lane, layer, row)
        self.positions[node_id] = pos
        self.grid.occupy(node_id, pos)
        return pos

    def move_to_layer(self, node_id: str, layer: int) -> None:
        old = self.positions[node_id]
        self.grid.release(old)
        self.place(node_id, old.lane, layer, old.row)

    def mark_vertical_leg(self, a: str, b: str, layer: int) -> None:
        for lane in self.lanes_between(a, b):
            self.grid.flow_columns.add((lane, layer))

    def path_is_free(self, src: Position, tgt_lane: str, tgt_id: str) -> bool:
        """Whether a cross-lane flow can drop straight down its source column."""
        if tgt_id in self.back_targets:
            return False
        layer = src.layer
        for lane in self.lanes_between(src.lane, tgt_lane):
            if self.grid.column_has_node(lane, layer) or (lane, layer) in self.grid.flow_columns:
                return False
        if (tgt_lane, layer) in self.grid.flow_columns:
            return False
        downward = self.lane_index[tgt_lane] > self.lane_index[src.lane]
        # Nodes between the source and its lane edge, or between the
        # target lane edge and row 0, would sit on the vertical leg
        for row in self.grid.columns.get((src.lane, layer), set()):
            if (row > src.row) if downward else (row < src.row):
                return False
        for row in self.grid.columns.get((tgt_lane, layer), set()):
            if (row <= 0) if downward else (row >= 0):
                return False
        return True

    def place_successors(self, node_id: str) -> None:
        src = self.positions[node_id]
        outs = self.forward_out(node_id)
        if len(outs) > 1:
            self.place_fan_out(src, outs)
            return
        for edge in outs:
            tgt = edge.target
            if tgt in self.positions:
                continue
            tgt_lane = self.node_lanes[tgt]
            if tgt_lane == src.lane:
                self.place(tgt, src.lane, src.layer + 1, src.row)
            elif self.path_is_free(src, tgt_lane, tgt):
                self.place(tgt, tgt_lane, src.layer, 0)
                self.mark_vertical_leg(src.lane, tgt_lane, src.layer)
            else:
                pos = self.place(tgt, tgt_lane, src.layer + 1, 0)
                self.mark_vertical_leg(src.lane, tgt_lane, pos.layer)

    def place_fan_out(self, src: Position, outs: list[Edge]) -> None:
        src_index = self.lane_index[src.lane]
        ordered = sorted(
            enumerate(outs),
            key=lambda item: (
                abs(self.lane_index[self.node_lanes[item[1].target]] - src_index),
                item[0],
            ),
        )
        same: list[str] = []
        cross: list[str] = []
        for _, edge in ordered:
            tgt = edge.target
            if tgt in self.positions or tgt in same or tgt in cross:
                continue
            if self.node_lanes[tgt] == src.lane:
                same.append(tgt)
            else:
                cross.append(tgt)

        for tgt, offset in zip(same, symmetric_rows(len(same))):
            self.place(tgt, src.lane, src.layer + 1, src.row + offset)
        for tgt in cross:
            tgt_lane = self.node_lanes[tgt]
            self.place(tgt, tgt_lane, src.layer + 1, 0)
            self.mark_vertical_leg(src.lane, tgt_lane, src.layer)

    def run(self) -> dict[str, Position]:
        order_index = {nid: i for i, nid in enumerate(self.graph.nodes)}
        dag = nx.DiGraph()
        dag.add_nodes_from(self.node_lanes)
        for node_id in self.node_lanes:
            for edge in self.forward_out(node_id):
                dag.add_edge(node_id, edge.target)

        for node_id in nx.lexicographical_topological_sort(dag, key=order_index.__getitem__):
            preds = list(dag.predecessors(node_id))
            if node_id not in self.positions:
                if self.graph.nodes[node_id].type != "startEvent":
                    msg = f"Node '{node_id}' has no forward predecessor; placed at layer 0"
                    logger.warning(msg)
                    self.warnings.append(msg)
                self.place(node_id, self.node_lanes[node_id], 0, 0)
            elif len(preds) > 1:
                required = max(self.positions[p].layer for p in preds) + 1
                if required > self.positions[node_id].layer:
                    self.move_to_layer(node_id, required)
            self.place_successors(node_id)
        return self.positions


def assign_positions(
    graph: ProcessGraph,
    back_edges: list[str],
    node_lanes: dict[str, str] | None = None,
) -> PositionResult:
    """Assign (lane, layer, row) to every laned flow node and derive flow infos.

    Raises ``networkx.NetworkXUnfeasible`` if the forward flows still
    contain a cycle, i.e. ``back_edges`` does not break every loop.
    """
    if node_lanes is None:
        node_lanes = assign_gateway_lanes(graph)
    lane_order = graph.leaf_lanes()
    assigner = _Assigner(graph, back_edges, node_lanes, lane_order)
    positions = assigner.run()
    flow_infos = build_flow_infos(graph, positions, back_edges, assigner.lane_index)

    logger.debug(
        "Assigned %d positions over %d layers",
        len(positions),
        max((p.layer for p in positions.values()), default=-1) + 1,
    )
    return PositionResult(
        positions=positions,
        flow_infos=flow_infos,
        node_lanes=node_lanes,
        lane_order=lane_order,
        warnings=assigner.warnings,
    )


def _cross_toward(from_index: float, to_index: float) -> Side:
    return Side.CROSS_FORWARD if to_index > from_index else Side.CROSS_BACKWARD


def build_flow_infos(
    graph: ProcessGraph,
    positions: dict[str, Position],
    back_edges: list[str],
    lane_index: dict[str, int],
) -> dict[str, FlowInfo]:
    """Classify every flow between positioned nodes and give it a logical route."""
    back = set(back_edges)
    branching: set[str] = set()
    for node_id in positions:
        outs = [
            e
            for e in _sequence_edges(graph, graph.nodes[node_id].outgoing)
            if e.id not in back and e.target in positions and e.target != node_id
        ]
        if len(outs) > 1:
            branching.add(node_id)

    infos: dict[str, FlowInfo] = {}
    for edge in graph.edges.values():
        if edge.source not in positions or edge.target not in positions:
            continue
        if not (edge.is_sequence or edge.is_message):
            continue
        ps, pt = positions[edge.source], positions[edge.target]
        info = FlowInfo(
            edge_id=edge.id,
            source=FlowEnd(edge.source, ps.lane, ps.layer, ps.row),
            target=FlowEnd(edge.target, pt.lane, pt.layer, pt.row),
        )
        if edge.is_message:
            info.is_message_flow = True
        elif edge.id in back or edge.source == edge.target:
            info.is_back_flow = True
        else:
            _route_forward(info, ps, pt, edge.source in branching, lane_index)
        infos[edge.id] = info
    return infos


def _route_forward(
    info: FlowInfo,
    ps: Position,
    pt: Position,
    from_branch: bool,
    lane_index: dict[str, int],
) -> None:
    if ps.lane == pt.lane:
        if ps.row == pt.row:
            info.source.side = Side.FORWARD
            info.target.side = Side.BACKWARD
        elif from_branch:
            info.source.side = _cross_toward(ps.row, pt.row)
            info.waypoints = [Position(ps.lane, ps.layer, pt.row)]
            info.target.side = Side.BACKWARD
        else:
            info.source.side = Side.FORWARD
            info.waypoints = [Position(ps.lane, pt.layer, ps.row)]
            info.target.side = _cross_toward(pt.row, ps.row)
        return

    toward = _cross_toward(lane_index[ps.lane], lane_index[pt.lane])
    if ps.layer == pt.layer:
        info.source.side = toward
        info.target.side = toward.opposite
    elif from_branch:
        info.source.side = toward
        info.waypoints = [Position(pt.lane, ps.layer, pt.row)]
        info.target.side = Side.BACKWARD
    else:
        info.source.side = Side.FORWARD
        info.waypoints = [Position(ps.lane, pt.layer, ps.row)]
        info.target.side = toward.opposite
