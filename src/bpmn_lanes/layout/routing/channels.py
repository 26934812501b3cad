"""Channel routing over the layout's free lines.

Two families of lines never pass through a node:

- corridors: cross-axis offsets inside each lane, one near each lane
  edge and one midway between every pair of adjacent rows
- gaps: the column boundaries along the flow axis, half a column away
  from every node centre

A channel route leaves its source through a short stub onto the nearest
line beyond the chosen face, travels along corridors and gaps, and
reaches the target through a stub from the line nearest its entry face.
"""

from __future__ import annotations

from bpmn_lanes.layout.config import Side
from bpmn_lanes.layout.constants import COORD_TOLERANCE
from bpmn_lanes.layout.coordinates import CoordinateResult, Point
from bpmn_lanes.layout.routing.common import connection_point, simplify

VARIANTS = (0, 1)
"""Connector choices: 0 turns near the target, 1 turns near the source."""


def _stub(
    coords: CoordinateResult,
    node_id: str,
    side: Side,
    stub_length: float,
    tol: float = COORD_TOLERANCE,
) -> tuple[Point, bool]:
    """First free point beyond a face, and whether it lies on a corridor."""
    box = coords.node_bounds[node_id]
    px, py = connection_point(box, side)

    if side.is_cross:
        lane = coords.lanes.get(coords.positions[node_id].lane)
        corridors = lane.corridors if lane else []
        if side is Side.CROSS_FORWARD:
            beyond = [c for c in corridors if c > box.bottom + tol]
            y = min(beyond) if beyond else box.bottom + stub_length
        else:
            beyond = [c for c in corridors if c < box.y - tol]
            y = max(beyond) if beyond else box.y - stub_length
        return (px, y), True

    gaps = coords.column_boundaries()
    if side is Side.FORWARD:
        beyond = [g for g in gaps if g > box.right + tol]
        x = min(beyond) if beyond else box.right + stub_length
    else:
        beyond = [g for g in gaps if g < box.x - tol]
        x = max(beyond) if beyond else box.x - stub_length
    return (x, py), False


def _nearest(candidates: list[float], near: float, far: float) -> float:
    """Candidate closest to ``near``; ties go to the one closer to ``far``."""
    return min(candidates, key=lambda c: (round(abs(c - near), 6), abs(c - far)))


def _connect(
    coords: CoordinateResult,
    start: Point,
    start_on_corridor: bool,
    end: Point,
    end_on_corridor: bool,
    variant: int,
    tol: float = COORD_TOLERANCE,
) -> list[Point]:
    (x0, y0), (xn, yn) = start, end

    if start_on_corridor and end_on_corridor:
        if abs(y0 - yn) <= tol:
            return []
        gaps = coords.column_boundaries()
        near, far = (xn, x0) if variant == 0 else (x0, xn)
        g = _nearest(gaps, near, far)
        return [(g, y0), (g, yn)]

    if not start_on_corridor and not end_on_corridor:
        if abs(x0 - xn) <= tol:
            return []
        corridors = [c for lane in coords.lanes.values() for c in lane.corridors]
        near, far = (y0, yn) if variant == 0 else (yn, y0)
        c = _nearest(corridors, near, far)
        return [(x0, c), (xn, c)]

    if not start_on_corridor:
        return [(x0, yn)]
    return [(xn, y0)]


def build_channel_route(
    coords: CoordinateResult,
    source: str,
    exit_side: Side,
    target: str,
    entry_side: Side,
    variant: int = 0,
    stub_length: float = 20.0,
    tolerance: float = COORD_TOLERANCE,
) -> list[Point]:
    """Orthogonal route from ``source``'s exit face to ``target``'s entry face."""
    p0 = connection_point(coords.node_bounds[source], exit_side)
    pn = connection_point(coords.node_bounds[target], entry_side)
    s0, s0_corridor = _stub(coords, source, exit_side, stub_length, tolerance)
    sn, sn_corridor = _stub(coords, target, entry_side, stub_length, tolerance)
    middle = _connect(coords, s0, s0_corridor, sn, sn_corridor, variant, tolerance)
    return simplify([p0, s0, *middle, sn, pn], tolerance)
