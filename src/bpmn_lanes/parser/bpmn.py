"""Reader for BPMN 2.0 XML documents.

Walks the ``definitions`` tree with ElementTree and builds a
:class:`ProcessGraph`. Namespaces are ignored: elements are matched on
their local tag name, so documents using a default namespace or a
``bpmn:``/``bpmn2:`` prefix parse the same way.

Sub-processes are read as collapsed activities; their inner content is
not laid out.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from bpmn_lanes.parser.model import (
    ARTIFACT_TYPES,
    DATA_TYPES,
    EVENT_TYPES,
    FLOW_NODE_TYPES,
    VALID_TYPES,
    Edge,
    Lane,
    Node,
    Pool,
    ProcessGraph,
)

logger = logging.getLogger(__name__)

# Process children that carry an id but are not diagram elements
_STRUCTURAL_TAGS = {
    "laneSet",
    "ioSpecification",
    "property",
    "documentation",
    "extensionElements",
    "category",
    "message",
    "signal",
    "error",
    "escalation",
}

DEFAULT_POOL_ID = "default_pool"


class BpmnParseError(ValueError):
    """Raised when a document is not well-formed BPMN XML."""


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def parse_bpmn_file(path: str | Path) -> ProcessGraph:
    """Read and parse a ``.bpmn`` file."""
    return parse_bpmn_xml(Path(path).read_text(encoding="utf-8"))


def parse_bpmn_xml(text: str) -> ProcessGraph:
    """Parse a BPMN 2.0 XML document into a process graph."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise BpmnParseError(f"Invalid XML: {e}") from e

    if local_name(root.tag) != "definitions":
        raise BpmnParseError(
            "Invalid BPMN: missing <bpmn:definitions> root element "
            f"(found <{local_name(root.tag)}>)"
        )

    graph = ProcessGraph()
    pending_edges: list[Edge] = []

    # Participants first, so lanes can be attached to their pool
    process_pool: dict[str, str] = {}
    for collab in _children(root, "collaboration"):
        for part in _children(collab, "participant"):
            pool = Pool(
                id=part.get("id", ""),
                name=part.get("name", ""),
                process_ref=part.get("processRef"),
            )
            graph.add_pool(pool)
            if pool.process_ref:
                process_pool[pool.process_ref] = pool.id
        for flow in _children(collab, "messageFlow"):
            pending_edges.append(_edge_from(flow, "messageFlow"))

    for process in _children(root, "process"):
        pid = process.get("id", "")
        pool_id = process_pool.get(pid)
        _read_process(graph, process, pool_id, pending_edges)

    # Incoming/outgoing lists are rebuilt from the flows themselves
    for edge in pending_edges:
        graph.add_edge(edge)

    _ensure_default_pool(graph)

    logger.debug(
        "Parsed %d nodes, %d edges, %d lanes, %d pools",
        len(graph.nodes),
        len(graph.edges),
        len(graph.lanes),
        len(graph.pools),
    )
    return graph


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [c for c in elem if local_name(c.tag) == name]


def _edge_from(elem: ET.Element, edge_type: str) -> Edge:
    return Edge(
        id=elem.get("id", ""),
        source=elem.get("sourceRef", ""),
        target=elem.get("targetRef", ""),
        name=elem.get("name", ""),
        type=edge_type,
    )


def _event_definition(elem: ET.Element) -> str:
    """Return the trigger of an event ("message", "timer"...) or "none"."""
    for child in elem:
        tag = local_name(child.tag)
        if tag.endswith("EventDefinition"):
            return tag[: -len("EventDefinition")]
    return "none"


def _read_process(
    graph: ProcessGraph,
    process: ET.Element,
    pool_id: str | None,
    pending_edges: list[Edge],
) -> None:
    flow_node_ids: list[str] = []

    for child in process:
        tag = local_name(child.tag)
        elem_id = child.get("id")

        if tag in ("sequenceFlow", "association"):
            pending_edges.append(_edge_from(child, tag))
        elif tag in FLOW_NODE_TYPES or tag in DATA_TYPES or tag in ARTIFACT_TYPES:
            node = Node(id=elem_id or "", type=tag, name=child.get("name", ""))
            if tag in EVENT_TYPES:
                node.event_definition = _event_definition(child)
            if tag == "textAnnotation":
                text = next((c.text for c in child if local_name(c.tag) == "text"), None)
                node.name = (text or "").strip()
            graph.add_node(node)
            if tag in FLOW_NODE_TYPES:
                flow_node_ids.append(node.id)
        elif tag == "laneSet":
            for lane_elem in _children(child, "lane"):
                _read_lane(graph, lane_elem, None, pool_id)
        elif elem_id and tag not in _STRUCTURAL_TAGS and tag not in VALID_TYPES:
            graph.unknown_elements.append((tag, elem_id))

    process_lanes = [
        lid for lid, lane in graph.lanes.items()
        if lane.pool_id == pool_id and lane.parent_lane is None
    ]
    if flow_node_ids and not process_lanes:
        # No lane set: one implicit lane holds every flow node
        lane = Lane(
            id=f"{process.get('id', 'process')}_lane",
            name="",
            elements=list(flow_node_ids),
            pool_id=pool_id,
            implicit=True,
        )
        graph.add_lane(lane)


def _read_lane(
    graph: ProcessGraph,
    elem: ET.Element,
    parent_id: str | None,
    pool_id: str | None,
) -> None:
    lane = Lane(
        id=elem.get("id", ""),
        name=elem.get("name", ""),
        elements=[
            (ref.text or "").strip()
            for ref in _children(elem, "flowNodeRef")
            if ref.text
        ],
        parent_lane=parent_id,
        pool_id=pool_id if parent_id is None else None,
    )
    graph.add_lane(lane)
    for child_set in _children(elem, "childLaneSet"):
        for child in _children(child_set, "lane"):
            _read_lane(graph, child, lane.id, pool_id)


def _ensure_default_pool(graph: ProcessGraph) -> None:
    """Group pool-less lanes into one implicit pool when no participant exists."""
    if graph.pools or not graph.lanes:
        return
    pool = Pool(id=DEFAULT_POOL_ID, name="Process", implicit=True)
    graph.add_pool(pool)
    for lane in graph.lanes.values():
        if lane.parent_lane is None:
            lane.pool_id = pool.id
            pool.lanes.append(lane.id)
