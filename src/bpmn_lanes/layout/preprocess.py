"""Graph validation and pre-processing.

Runs before any geometry is computed: structural validation, optional
removal of exclusive merge gateways, and detection of the back-edges
that close process loops.
"""

from __future__ import annotations

__all__ = [
    "PreprocessResult",
    "collapse_xor_merges",
    "detect_back_edges",
    "preprocess",
    "validate_graph",
]

import difflib
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from bpmn_lanes.layout.config import LayoutConfig
from bpmn_lanes.parser.model import VALID_TYPES, ProcessGraph

logger = logging.getLogger(__name__)


@dataclass
class PreprocessResult:
    """Output of the pre-processing stage."""

    graph: ProcessGraph
    back_edges: list[str] = field(default_factory=list)
    collapsed_gateways: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _suggest_type(tag: str) -> str | None:
    """Return the valid type token the user most likely meant."""
    for valid in VALID_TYPES:
        if valid.lower() == tag.lower():
            return valid
    close = difflib.get_close_matches(tag, VALID_TYPES, n=1)
    return close[0] if close else None


def validate_graph(graph: ProcessGraph) -> list[str]:
    """Check structural validity and return human-readable error messages.

    An empty list means the graph can be laid out.
    """
    errors: list[str] = []

    unknown = list(graph.unknown_elements)
    unknown += [(n.type, n.id) for n in graph.nodes.values() if n.type not in VALID_TYPES]
    for tag, elem_id in unknown:
        suggestion = _suggest_type(tag)
        message = f"Unknown element type '{tag}' with id '{elem_id}'."
        if suggestion:
            message += f" Did you mean '{suggestion}'?"
        errors.append(message)

    for edge_id, edge in graph.edges.items():
        # Message flows may also connect collapsed pools
        known = graph.nodes.keys() | graph.pools.keys() if edge.is_message else graph.nodes
        if edge.source not in known:
            errors.append(f"Flow '{edge_id}' has an invalid sourceRef '{edge.source}'")
        if edge.target not in known:
            errors.append(f"Flow '{edge_id}' has an invalid targetRef '{edge.target}'")

    for node_id in graph.nodes:
        if not node_id or not node_id.strip():
            errors.append("Element has an empty or missing ID")

    types = {n.type for n in graph.nodes.values()}
    if "startEvent" not in types:
        errors.append("No start event found in the diagram")
    if "endEvent" not in types:
        errors.append("No end event found in the diagram")

    return errors


def _is_xor_merge(graph: ProcessGraph, node_id: str) -> bool:
    node = graph.nodes[node_id]
    if node.type != "exclusiveGateway":
        return False
    incoming = [e for e in node.incoming if e in graph.edges and graph.edges[e].is_sequence]
    outgoing = [e for e in node.outgoing if e in graph.edges and graph.edges[e].is_sequence]
    return len(incoming) > 1 and len(outgoing) == 1


def collapse_xor_merges(graph: ProcessGraph) -> tuple[ProcessGraph, list[str]]:
    """Remove exclusive merge gateways (>1 incoming, exactly 1 outgoing).

    Every incoming flow is re-pointed at the node the single outgoing flow
    targeted; flow identifiers are preserved. The gateway and its outgoing
    flow are deleted. Returns a new graph plus the removed gateway IDs.
    """
    result = graph.copy()
    removed: list[str] = []

    for node_id in list(result.nodes):
        if node_id not in result.nodes or not _is_xor_merge(result, node_id):
            continue
        gateway = result.nodes[node_id]
        out_id = next(
            (e for e in gateway.outgoing if e in result.edges and result.edges[e].is_sequence),
            None,
        )
        if out_id is None:
            continue
        out_edge = result.edges[out_id]
        new_target_id = out_edge.target
        new_target = result.nodes.get(new_target_id)
        if new_target is None or new_target_id == node_id:
            continue

        in_ids = [
            e for e in gateway.incoming if e in result.edges and result.edges[e].is_sequence
        ]
        for in_id in in_ids:
            result.edges[in_id].target = new_target_id

        pos = new_target.incoming.index(out_id) if out_id in new_target.incoming else len(
            new_target.incoming
        )
        rest = [e for e in new_target.incoming if e != out_id]
        new_target.incoming = rest[:pos] + in_ids + rest[pos:]

        del result.edges[out_id]
        del result.nodes[node_id]
        for lane in result.lanes.values():
            if node_id in lane.elements:
                lane.elements.remove(node_id)
        removed.append(node_id)
        logger.debug("Collapsed XOR merge %s into %s", node_id, new_target_id)

    return result, removed


def _successors(graph: ProcessGraph, node_id: str) -> Iterator[tuple[str, str]]:
    """Yield (edge_id, target_id) for outgoing sequence flows."""
    for edge_id in graph.nodes[node_id].outgoing:
        edge = graph.edges.get(edge_id)
        if edge is not None and edge.is_sequence and edge.target in graph.nodes:
            yield edge_id, edge.target


def detect_back_edges(graph: ProcessGraph, sweep_unreachable: bool = False) -> list[str]:
    """Find loop-closing sequence flows with an iterative depth-first search.

    Traversal starts at every start event. An edge whose target is on the
    current DFS path is a back-edge; an edge to a node that was visited
    but has already left the path is an ordinary cross-edge.

    With ``sweep_unreachable`` the search continues from nodes not
    reachable from any start event, so cycles in disconnected fragments
    are broken too.

    Returns edge IDs in detection order.
    """
    roots = [n.id for n in graph.nodes.values() if n.type == "startEvent"]
    if sweep_unreachable:
        orphans = [n.id for n in graph.flow_nodes() if not n.incoming]
        roots += orphans + [n.id for n in graph.flow_nodes()]

    visited: set[str] = set()
    on_stack: set[str] = set()
    back_edges: list[str] = []

    for root in roots:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        stack = [(root, _successors(graph, root))]
        while stack:
            node_id, successors = stack[-1]
            for edge_id, target in successors:
                if target in on_stack:
                    back_edges.append(edge_id)
                elif target not in visited:
                    visited.add(target)
                    on_stack.add(target)
                    stack.append((target, _successors(graph, target)))
                    break
            else:
                stack.pop()
                on_stack.discard(node_id)

    return back_edges


def preprocess(graph: ProcessGraph, config: LayoutConfig) -> PreprocessResult:
    """Collapse XOR merges (unless configured to keep them) and find back-edges."""
    collapsed: list[str] = []
    if not config.xor_merge_gateways:
        graph, collapsed = collapse_xor_merges(graph)
    else:
        graph = graph.copy()

    back_edges = detect_back_edges(graph)
    warnings: list[str] = []
    residual = [
        e for e in detect_back_edges(graph, sweep_unreachable=True) if e not in back_edges
    ]
    if residual:
        msg = (
            "Cycles not reachable from a start event were broken at: "
            + ", ".join(residual)
        )
        logger.warning(msg)
        warnings.append(msg)
        back_edges += residual

    logger.debug(
        "Preprocess: %d collapsed gateways, %d back-edges", len(collapsed), len(back_edges)
    )
    return PreprocessResult(
        graph=graph,
        back_edges=back_edges,
        collapsed_gateways=collapsed,
        warnings=warnings,
    )
