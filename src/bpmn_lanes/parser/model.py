"""Data model for BPMN process graphs."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

EVENT_TYPES = (
    "startEvent",
    "endEvent",
    "intermediateThrowEvent",
    "intermediateCatchEvent",
    "boundaryEvent",
)

TASK_TYPES = (
    "task",
    "userTask",
    "serviceTask",
    "manualTask",
    "sendTask",
    "receiveTask",
    "scriptTask",
    "businessRuleTask",
    "callActivity",
)

SUBPROCESS_TYPES = ("subProcess", "transaction", "adHocSubProcess")

GATEWAY_TYPES = (
    "exclusiveGateway",
    "parallelGateway",
    "inclusiveGateway",
    "eventBasedGateway",
    "complexGateway",
)

DATA_TYPES = ("dataObject", "dataObjectReference", "dataStore", "dataStoreReference")

ARTIFACT_TYPES = ("textAnnotation", "group")

FLOW_TYPES = ("sequenceFlow", "messageFlow", "association")

SWIMLANE_TYPES = ("lane", "participant")

FLOW_NODE_TYPES = EVENT_TYPES + TASK_TYPES + SUBPROCESS_TYPES + GATEWAY_TYPES
"""Node types that take part in layout."""

VALID_TYPES = FLOW_NODE_TYPES + DATA_TYPES + ARTIFACT_TYPES + FLOW_TYPES + SWIMLANE_TYPES


@dataclass
class Node:
    """A process element (event, activity, gateway, data object...)."""

    id: str
    type: str
    name: str = ""
    incoming: list[str] = field(default_factory=list)
    outgoing: list[str] = field(default_factory=list)
    # Trigger of an event ("message", "timer", ...), "none" for plain events
    event_definition: str = "none"

    @property
    def is_gateway(self) -> bool:
        return self.type in GATEWAY_TYPES

    @property
    def is_event(self) -> bool:
        return self.type in EVENT_TYPES

    @property
    def is_flow_node(self) -> bool:
        return self.type in FLOW_NODE_TYPES


@dataclass
class Edge:
    """A directed connection: sequence flow, message flow or association."""

    id: str
    source: str
    target: str
    name: str = ""
    type: str = "sequenceFlow"

    @property
    def is_message(self) -> bool:
        return self.type == "messageFlow"

    @property
    def is_sequence(self) -> bool:
        return self.type == "sequenceFlow"


@dataclass
class Lane:
    """A swimlane band; may nest under a parent lane and belong to a pool."""

    id: str
    name: str = ""
    elements: list[str] = field(default_factory=list)
    parent_lane: str | None = None
    child_lanes: list[str] = field(default_factory=list)
    pool_id: str | None = None
    # Synthesized by the parser, absent from the source document
    implicit: bool = False


@dataclass
class Pool:
    """A participant grouping one or more top-level lanes."""

    id: str
    name: str = ""
    lanes: list[str] = field(default_factory=list)
    process_ref: str | None = None
    implicit: bool = False


@dataclass
class ProcessGraph:
    """Complete process graph: nodes, edges, lanes and pools."""

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: dict[str, Edge] = field(default_factory=dict)
    lanes: dict[str, Lane] = field(default_factory=dict)
    pools: dict[str, Pool] = field(default_factory=dict)
    # (tag, id) of process children whose tag is not a known BPMN type
    unknown_elements: list[tuple[str, str]] = field(default_factory=list)

    def add_node(self, node: Node) -> None:
        self.nodes[node.id] = node

    def add_edge(self, edge: Edge) -> None:
        """Register an edge and record it on its endpoints' edge lists."""
        self.edges[edge.id] = edge
        src = self.nodes.get(edge.source)
        tgt = self.nodes.get(edge.target)
        if src and edge.id not in src.outgoing:
            src.outgoing.append(edge.id)
        if tgt and edge.id not in tgt.incoming:
            tgt.incoming.append(edge.id)

    def add_lane(self, lane: Lane) -> None:
        self.lanes[lane.id] = lane
        if lane.parent_lane:
            parent = self.lanes.get(lane.parent_lane)
            if parent and lane.id not in parent.child_lanes:
                parent.child_lanes.append(lane.id)
        elif lane.pool_id:
            pool = self.pools.get(lane.pool_id)
            if pool and lane.id not in pool.lanes:
                pool.lanes.append(lane.id)

    def add_pool(self, pool: Pool) -> None:
        self.pools[pool.id] = pool

    def copy(self) -> ProcessGraph:
        """Return a deep copy, so pipeline stages never mutate their input."""
        return copy.deepcopy(self)

    def sequence_flows(self) -> list[Edge]:
        return [e for e in self.edges.values() if e.is_sequence]

    def message_flows(self) -> list[Edge]:
        return [e for e in self.edges.values() if e.is_message]

    def flow_nodes(self) -> list[Node]:
        return [n for n in self.nodes.values() if n.is_flow_node]

    def ordered_lanes(self) -> list[str]:
        """Return every lane ID in stacking order.

        Pools in declaration order, each pool's lanes depth-first so that
        parent lanes precede their children. Lanes belonging to no pool
        come last.
        """
        order: list[str] = []

        def visit(lane_id: str) -> None:
            if lane_id in order or lane_id not in self.lanes:
                return
            order.append(lane_id)
            for child in self.lanes[lane_id].child_lanes:
                visit(child)

        for pool in self.pools.values():
            for lane_id in pool.lanes:
                visit(lane_id)
        for lane_id, lane in self.lanes.items():
            if lane.parent_lane is None:
                visit(lane_id)
        for lane_id in self.lanes:
            visit(lane_id)
        return order

    def leaf_lanes(self) -> list[str]:
        """Return lanes without children, in stacking order."""
        return [lid for lid in self.ordered_lanes() if not self.lanes[lid].child_lanes]

    def lane_depth(self, lane_id: str) -> int:
        """Return the nesting level of a lane (0 for top-level lanes)."""
        depth = 0
        lane = self.lanes.get(lane_id)
        while lane and lane.parent_lane and lane.parent_lane in self.lanes:
            depth += 1
            lane = self.lanes[lane.parent_lane]
        return depth

    def pool_for_lane(self, lane_id: str) -> str | None:
        """Return the pool of a lane, walking up through parent lanes."""
        lane = self.lanes.get(lane_id)
        while lane:
            if lane.pool_id:
                return lane.pool_id
            lane = self.lanes.get(lane.parent_lane) if lane.parent_lane else None
        return None

    def lane_for_node(self, node_id: str) -> str | None:
        """Return the innermost lane listing a node, or None.

        A node referenced only by a parent lane is attributed to that
        parent's first leaf descendant.
        """
        for lane_id in reversed(self.ordered_lanes()):
            if node_id in self.lanes[lane_id].elements:
                return self._first_leaf(lane_id)
        return None

    def _first_leaf(self, lane_id: str) -> str:
        lane = self.lanes[lane_id]
        while lane.child_lanes and lane.child_lanes[0] in self.lanes:
            lane = self.lanes[lane.child_lanes[0]]
        return lane.id
