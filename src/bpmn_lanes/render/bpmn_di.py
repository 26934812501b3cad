"""Write layout geometry back into a BPMN document as BPMN DI.

The process part of the document is kept as-is except where layout
changed the model: collapsed merge gateways and their outgoing flows
are removed, and the flows that were rewired get their new
``targetRef`` along with matching ``incoming``/``outgoing`` references.
Any existing ``BPMNDiagram`` is replaced by a freshly generated one.
"""

from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET

from bpmn_lanes.layout.coordinates import Bounds, Point
from bpmn_lanes.layout.engine import Geometry, LayoutResult
from bpmn_lanes.parser.bpmn import BpmnParseError, local_name
from bpmn_lanes.parser.model import ProcessGraph

logger = logging.getLogger(__name__)

MODEL_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
BPMNDI_NS = "http://www.omg.org/spec/BPMN/20100524/DI"
DC_NS = "http://www.omg.org/spec/DD/20100524/DC"
DI_NS = "http://www.omg.org/spec/DD/20100524/DI"

DIAGRAM_ID = "BPMNDiagram_1"
PLANE_ID = "BPMNPlane_1"

_DEFAULT_PREFIXES = {
    "bpmn": MODEL_NS,
    "bpmndi": BPMNDI_NS,
    "dc": DC_NS,
    "di": DI_NS,
}


def _fmt(value: float) -> str:
    value = round(value, 2)
    return str(int(value)) if value == int(value) else str(value)


def _register_namespaces(xml_text: str) -> None:
    """Keep the document's own prefixes when the tree is written back."""
    prefixes = dict(_DEFAULT_PREFIXES)
    for _event, (prefix, uri) in ET.iterparse(io.StringIO(xml_text), events=("start-ns",)):
        if uri in (BPMNDI_NS, DC_NS, DI_NS):
            continue
        prefixes[prefix] = uri
    for prefix, uri in prefixes.items():
        ET.register_namespace(prefix, uri)


def _tag(ns: str, name: str) -> str:
    return f"{{{ns}}}{name}"


def _bounds_elem(parent: ET.Element, box: Bounds) -> ET.Element:
    return ET.SubElement(
        parent,
        _tag(DC_NS, "Bounds"),
        x=_fmt(box.x),
        y=_fmt(box.y),
        width=_fmt(box.width),
        height=_fmt(box.height),
    )


def _waypoint(parent: ET.Element, point: Point) -> None:
    ET.SubElement(parent, _tag(DI_NS, "waypoint"), x=_fmt(point[0]), y=_fmt(point[1]))


# ---------------------------------------------------------------------------
# Model fix-ups
# ---------------------------------------------------------------------------


def _set_refs(elem: ET.Element, model_ns: str, name: str, refs: list[str]) -> None:
    """Replace the ``incoming``/``outgoing`` children of a flow node."""
    current = [c for c in elem if local_name(c.tag) == name]
    if [(c.text or "").strip() for c in current] == refs:
        return
    # Documents that omit the references entirely are left that way
    if not any(local_name(c.tag) in ("incoming", "outgoing") for c in elem):
        return
    # New refs go where the old ones were, else after the leading children
    leading = ("documentation", "extensionElements", "incoming")
    insert_at = next(
        (i for i, c in enumerate(elem) if c in current),
        sum(1 for c in elem if local_name(c.tag) in leading),
    )
    for c in current:
        elem.remove(c)
    for offset, ref in enumerate(refs):
        child = ET.Element(_tag(model_ns, name))
        child.text = ref
        elem.insert(insert_at + offset, child)


def _sequence_refs(graph: ProcessGraph, edge_ids: list[str]) -> list[str]:
    return [e for e in edge_ids if e in graph.edges and graph.edges[e].is_sequence]


def _apply_model_changes(root: ET.Element, graph: ProcessGraph, removed: set[str]) -> None:
    for process in root.iter():
        if local_name(process.tag) != "process":
            continue
        model_ns = process.tag[1:].split("}")[0] if process.tag.startswith("{") else MODEL_NS
        for child in list(process):
            tag = local_name(child.tag)
            elem_id = child.get("id", "")
            if tag == "sequenceFlow":
                edge = graph.edges.get(elem_id)
                if edge is None:
                    process.remove(child)
                    continue
                child.set("sourceRef", edge.source)
                child.set("targetRef", edge.target)
            elif elem_id in removed:
                process.remove(child)
            elif elem_id in graph.nodes:
                node = graph.nodes[elem_id]
                _set_refs(child, model_ns, "incoming", _sequence_refs(graph, node.incoming))
                _set_refs(child, model_ns, "outgoing", _sequence_refs(graph, node.outgoing))
        for lane in process.iter():
            if local_name(lane.tag) != "lane":
                continue
            for ref in list(lane):
                if local_name(ref.tag) == "flowNodeRef" and (ref.text or "").strip() in removed:
                    lane.remove(ref)


# ---------------------------------------------------------------------------
# Diagram
# ---------------------------------------------------------------------------


def _plane_element(root: ET.Element, graph: ProcessGraph) -> str:
    """Collaboration id when real pools exist, else the first process id."""
    has_pools = any(not p.implicit for p in graph.pools.values())
    if has_pools:
        for elem in root:
            if local_name(elem.tag) == "collaboration" and elem.get("id"):
                return elem.get("id", "")
    for elem in root:
        if local_name(elem.tag) == "process" and elem.get("id"):
            return elem.get("id", "")
    return ""


def build_diagram(root: ET.Element, graph: ProcessGraph, geometry: Geometry) -> ET.Element:
    """Build a ``bpmndi:BPMNDiagram`` element for the given geometry."""
    horizontal = "true" if geometry.orientation == "horizontal" else "false"
    diagram = ET.Element(_tag(BPMNDI_NS, "BPMNDiagram"), id=DIAGRAM_ID)
    plane = ET.SubElement(
        diagram,
        _tag(BPMNDI_NS, "BPMNPlane"),
        id=PLANE_ID,
        bpmnElement=_plane_element(root, graph),
    )

    for pool_id, box in geometry.pools.items():
        pool = graph.pools.get(pool_id)
        if pool is None or pool.implicit:
            continue
        shape = ET.SubElement(
            plane,
            _tag(BPMNDI_NS, "BPMNShape"),
            id=f"{pool_id}_di",
            bpmnElement=pool_id,
            isHorizontal=horizontal,
        )
        _bounds_elem(shape, box)

    for lane_id in graph.ordered_lanes():
        lane = graph.lanes[lane_id]
        box = geometry.lanes.get(lane_id)
        if box is None or lane.implicit:
            continue
        shape = ET.SubElement(
            plane,
            _tag(BPMNDI_NS, "BPMNShape"),
            id=f"{lane_id}_di",
            bpmnElement=lane_id,
            isHorizontal=horizontal,
        )
        _bounds_elem(shape, box)

    for node_id, node_geom in geometry.nodes.items():
        attrs = {"id": f"{node_id}_di", "bpmnElement": node_id}
        node = graph.nodes.get(node_id)
        if node is not None and node.type == "exclusiveGateway":
            attrs["isMarkerVisible"] = "true"
        shape = ET.SubElement(plane, _tag(BPMNDI_NS, "BPMNShape"), **attrs)
        _bounds_elem(shape, node_geom.bounds)
        if node_geom.label is not None:
            label = ET.SubElement(shape, _tag(BPMNDI_NS, "BPMNLabel"))
            _bounds_elem(label, node_geom.label)

    for edge_id, edge_geom in geometry.edges.items():
        edge = ET.SubElement(
            plane,
            _tag(BPMNDI_NS, "BPMNEdge"),
            id=f"{edge_id}_di",
            bpmnElement=edge_id,
        )
        for point in edge_geom.waypoints:
            _waypoint(edge, point)
        if edge_geom.label is not None:
            label = ET.SubElement(edge, _tag(BPMNDI_NS, "BPMNLabel"))
            _bounds_elem(label, edge_geom.label)

    return diagram


def write_bpmn_di(xml_text: str, result: LayoutResult) -> str:
    """Return ``xml_text`` with its diagram replaced by the layout in ``result``.

    Raises ``ValueError`` for a failed layout and :class:`BpmnParseError`
    when ``xml_text`` is not XML.
    """
    if not result.success or result.geometry is None or result.graph is None:
        raise ValueError("Cannot write diagram for a failed layout: " + "; ".join(result.errors))

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise BpmnParseError(f"Invalid XML: {e}") from e
    _register_namespaces(xml_text)

    geometry = result.geometry
    _apply_model_changes(root, result.graph, set(geometry.collapsed_gateways))

    position = len(root)
    for elem in list(root):
        if local_name(elem.tag) == "BPMNDiagram":
            position = min(position, list(root).index(elem))
            root.remove(elem)
    root.insert(position, build_diagram(root, result.graph, geometry))

    ET.indent(root, space="  ")
    logger.debug(
        "Wrote DI for %d shapes and %d edges", len(geometry.nodes), len(geometry.edges)
    )
    return ET.tostring(root, encoding="unicode", xml_declaration=True)
