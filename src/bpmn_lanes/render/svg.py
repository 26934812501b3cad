"""SVG preview of a laid-out process using drawsvg."""

from __future__ import annotations

import drawsvg as draw

from bpmn_lanes.layout.coordinates import Bounds
from bpmn_lanes.layout.engine import EdgeGeometry, Geometry
from bpmn_lanes.parser.model import ProcessGraph
from bpmn_lanes.render.style import Theme

_GATEWAY_MARKERS = {
    "exclusiveGateway": "x",
    "parallelGateway": "+",
    "inclusiveGateway": "o",
    "eventBasedGateway": "o",
    "complexGateway": "*",
}


def render_svg(
    graph: ProcessGraph,
    geometry: Geometry,
    theme: Theme,
    padding: float = 30.0,
) -> str:
    """Render a computed geometry to an SVG string."""
    if not geometry.nodes:
        return '<svg xmlns="http://www.w3.org/2000/svg"></svg>'

    extent = geometry.bounds
    width = int(extent.right + padding)
    height = int(extent.bottom + padding)
    d = draw.Drawing(width, height)
    d.append(draw.Rectangle(0, 0, width, height, fill=theme.background_color))

    horizontal = geometry.orientation == "horizontal"
    _render_pools(d, graph, geometry, theme, horizontal)
    _render_lanes(d, graph, geometry, theme, horizontal)
    _render_edges(d, geometry, theme)
    _render_nodes(d, graph, geometry, theme)
    _render_labels(d, graph, geometry, theme)
    return d.as_svg()


def _header(
    d: draw.Drawing,
    box: Bounds,
    text: str,
    strip: float,
    theme: Theme,
    horizontal: bool,
) -> None:
    """Name strip along the upstream edge of a pool or lane."""
    if horizontal:
        d.append(draw.Rectangle(
            box.x, box.y, strip, box.height,
            fill=theme.header_fill,
            stroke=theme.lane_stroke,
            stroke_width=1.0,
        ))
        cx, cy = box.x + strip / 2, box.y + box.height / 2
        d.append(draw.Text(
            text,
            theme.header_font_size,
            cx, cy,
            fill=theme.header_text_color,
            font_family=theme.label_font_family,
            text_anchor="middle",
            dominant_baseline="central",
            transform=f"rotate(-90 {cx} {cy})",
        ))
    else:
        d.append(draw.Rectangle(
            box.x, box.y, box.width, strip,
            fill=theme.header_fill,
            stroke=theme.lane_stroke,
            stroke_width=1.0,
        ))
        d.append(draw.Text(
            text,
            theme.header_font_size,
            box.x + box.width / 2, box.y + strip / 2,
            fill=theme.header_text_color,
            font_family=theme.label_font_family,
            text_anchor="middle",
            dominant_baseline="central",
        ))


def _render_pools(
    d: draw.Drawing,
    graph: ProcessGraph,
    geometry: Geometry,
    theme: Theme,
    horizontal: bool,
) -> None:
    for pool_id, box in geometry.pools.items():
        pool = graph.pools.get(pool_id)
        d.append(draw.Rectangle(
            box.x, box.y, box.width, box.height,
            fill=theme.pool_fill,
            stroke=theme.pool_stroke,
            stroke_width=1.5,
        ))
        if pool is not None and not pool.implicit:
            _header(d, box, pool.name or pool.id, 30.0, theme, horizontal)


def _render_lanes(
    d: draw.Drawing,
    graph: ProcessGraph,
    geometry: Geometry,
    theme: Theme,
    horizontal: bool,
) -> None:
    # Parents first so children draw on top
    order = sorted(geometry.lanes, key=graph.lane_depth)
    for lane_id in order:
        box = geometry.lanes[lane_id]
        lane = graph.lanes.get(lane_id)
        if lane is None or lane.implicit:
            continue
        d.append(draw.Rectangle(
            box.x, box.y, box.width, box.height,
            fill=theme.lane_fill,
            stroke=theme.lane_stroke,
            stroke_width=1.0,
        ))
        if lane.name:
            _header(d, box, lane.name, 30.0, theme, horizontal)


def _arrow(color: str, theme: Theme) -> draw.Marker:
    arrow = draw.Marker(-0.1, -0.51, 0.9, 0.5, scale=theme.arrow_scale, orient="auto")
    arrow.append(draw.Lines(-0.1, 0.5, -0.1, -0.5, 0.9, 0, fill=color, close=True))
    return arrow


def _edge_style(edge: EdgeGeometry, theme: Theme) -> tuple[str, str | None]:
    if edge.kind == "message":
        return theme.message_color, theme.message_dash
    if edge.kind == "back":
        return theme.back_flow_color, None
    return theme.flow_color, None


def _render_edges(d: draw.Drawing, geometry: Geometry, theme: Theme) -> None:
    """Render flows as orthogonal polylines with an arrowhead at the target."""
    markers: dict[str, draw.Marker] = {}
    for edge in geometry.edges.values():
        if len(edge.waypoints) < 2:
            continue
        color, dash = _edge_style(edge, theme)
        if color not in markers:
            markers[color] = _arrow(color, theme)
        extra = {"stroke_dasharray": dash} if dash else {}
        path = draw.Path(
            stroke=color,
            stroke_width=theme.flow_width,
            fill="none",
            stroke_linejoin="round",
            marker_end=markers[color],
            **extra,
        )
        path.M(*edge.waypoints[0])
        for point in edge.waypoints[1:]:
            path.L(*point)
        d.append(path)
        if edge.kind == "message":
            x, y = edge.waypoints[0]
            d.append(draw.Circle(x, y, 3, fill=theme.node_fill, stroke=color))


def _wrap(text: str, max_chars: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if current and len(candidate) > max_chars:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def _render_nodes(
    d: draw.Drawing,
    graph: ProcessGraph,
    geometry: Geometry,
    theme: Theme,
) -> None:
    for node_id, shape in geometry.nodes.items():
        node = graph.nodes[node_id]
        box = shape.bounds
        cx, cy = box.center
        stroke = dict(
            fill=theme.node_fill,
            stroke=theme.node_stroke,
            stroke_width=theme.node_stroke_width,
        )

        if node.is_event:
            if node.type == "endEvent":
                stroke["stroke_width"] = theme.end_event_stroke_width
            d.append(draw.Circle(cx, cy, box.width / 2, **stroke))
            if node.type.startswith("intermediate") or node.type == "boundaryEvent":
                d.append(draw.Circle(cx, cy, box.width / 2 - 3, fill="none",
                                     stroke=theme.node_stroke,
                                     stroke_width=theme.node_stroke_width))
        elif node.is_gateway:
            d.append(draw.Lines(
                cx, box.y, box.right, cy, cx, box.bottom, box.x, cy,
                close=True, **stroke,
            ))
            _gateway_marker(d, node.type, cx, cy, box.width / 5, theme)
        else:
            d.append(draw.Rectangle(
                box.x, box.y, box.width, box.height,
                rx=theme.task_corner_radius, ry=theme.task_corner_radius,
                **stroke,
            ))
            lines = _wrap(node.name, max(int(box.width / (theme.task_font_size * 0.55)), 1))
            if lines:
                d.append(draw.Text(
                    lines,
                    theme.task_font_size,
                    cx, cy - (len(lines) - 1) * theme.task_font_size * 0.6,
                    fill=theme.label_color,
                    font_family=theme.label_font_family,
                    text_anchor="middle",
                    dominant_baseline="central",
                ))


def _gateway_marker(
    d: draw.Drawing, gateway_type: str, cx: float, cy: float, r: float, theme: Theme
) -> None:
    marker = _GATEWAY_MARKERS.get(gateway_type, "")
    kw = dict(stroke=theme.node_stroke, stroke_width=3.0)
    if marker in ("x", "*"):
        d.append(draw.Line(cx - r, cy - r, cx + r, cy + r, **kw))
        d.append(draw.Line(cx - r, cy + r, cx + r, cy - r, **kw))
    if marker in ("+", "*"):
        d.append(draw.Line(cx, cy - r * 1.3, cx, cy + r * 1.3, **kw))
        d.append(draw.Line(cx - r * 1.3, cy, cx + r * 1.3, cy, **kw))
    if marker == "o":
        d.append(draw.Circle(cx, cy, r * 1.2, fill="none", **kw))


def _render_labels(
    d: draw.Drawing,
    graph: ProcessGraph,
    geometry: Geometry,
    theme: Theme,
) -> None:
    """Render external labels for events, gateways and named flows."""
    placed: list[tuple[str, Bounds]] = []
    for node_id, shape in geometry.nodes.items():
        if shape.label is not None:
            placed.append((graph.nodes[node_id].name, shape.label))
    for edge_id, edge in geometry.edges.items():
        flow = graph.edges.get(edge_id)
        if edge.label is not None and flow is not None:
            placed.append((flow.name, edge.label))

    for text, box in placed:
        cx, cy = box.center
        d.append(draw.Text(
            text,
            theme.label_font_size,
            cx, cy,
            fill=theme.label_color,
            font_family=theme.label_font_family,
            text_anchor="middle",
            dominant_baseline="central",
        ))
