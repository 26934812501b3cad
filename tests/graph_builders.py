"""Small helpers for building process graphs in tests."""

from __future__ import annotations

from bpmn_lanes.parser.model import Edge, Lane, Node, ProcessGraph


def flow_id(source: str, target: str) -> str:
    return f"{source}_{target}"


def make_graph(
    nodes: list[tuple[str, str]],
    flows: list[tuple],
    lanes: dict[str, list[str]] | None = None,
    names: dict[str, str] | None = None,
) -> ProcessGraph:
    """Build a graph from (id, type) nodes and (source, target[, name]) flows.

    Flow ids are ``<source>_<target>``. Lanes are stacked in dict order.
    """
    names = names or {}
    graph = ProcessGraph()
    for node_id, node_type in nodes:
        graph.add_node(Node(id=node_id, type=node_type, name=names.get(node_id, "")))
    for flow in flows:
        source, target = flow[0], flow[1]
        name = flow[2] if len(flow) > 2 else ""
        graph.add_edge(Edge(id=flow_id(source, target), source=source, target=target, name=name))
    for lane_id, members in (lanes or {}).items():
        graph.add_lane(Lane(id=lane_id, name=lane_id, elements=list(members)))
    return graph


def chain(*node_ids: str, lane: str = "L1") -> ProcessGraph:
    """start -> tasks... -> end, all in one lane."""
    nodes = [(node_ids[0], "startEvent")]
    nodes += [(n, "task") for n in node_ids[1:-1]]
    nodes += [(node_ids[-1], "endEvent")]
    flows = list(zip(node_ids, node_ids[1:]))
    return make_graph(nodes, flows, {lane: list(node_ids)})
