"""Shared types and geometry predicates for flow routing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from bpmn_lanes.layout.config import Side
from bpmn_lanes.layout.constants import COORD_TOLERANCE
from bpmn_lanes.layout.coordinates import Bounds, Point

Segment = tuple[Point, Point]


@dataclass
class RoutedPath:
    """A routed flow: orthogonal waypoints from source boundary to target boundary."""

    edge_id: str
    source: str
    target: str
    points: list[Point]
    exit_side: Side
    entry_side: Side
    kind: str = "forward"  # "forward", "back" or "message"
    # True when every candidate collided and the last one was kept
    fallback: bool = False


def connection_point(box: Bounds, side: Side) -> Point:
    """Middle of the given face of a box, in flow space."""
    cx, cy = box.center
    if side is Side.FORWARD:
        return (box.right, cy)
    if side is Side.BACKWARD:
        return (box.x, cy)
    if side is Side.CROSS_FORWARD:
        return (cx, box.bottom)
    return (cx, box.y)


def simplify(points: list[Point], tolerance: float = COORD_TOLERANCE) -> list[Point]:
    """Drop repeated points and the middle point of collinear runs."""
    deduped: list[Point] = []
    for p in points:
        if deduped and _same(deduped[-1], p, tolerance):
            continue
        deduped.append(p)
    if len(deduped) < 3:
        return deduped
    result = [deduped[0]]
    for prev, cur, nxt in zip(deduped, deduped[1:], deduped[2:]):
        vertical = abs(prev[0] - cur[0]) <= tolerance and abs(cur[0] - nxt[0]) <= tolerance
        horizontal = abs(prev[1] - cur[1]) <= tolerance and abs(cur[1] - nxt[1]) <= tolerance
        if vertical or horizontal:
            continue
        result.append(cur)
    result.append(deduped[-1])
    return result


def _same(a: Point, b: Point, tolerance: float) -> bool:
    return abs(a[0] - b[0]) <= tolerance and abs(a[1] - b[1]) <= tolerance


def is_orthogonal(points: list[Point], tolerance: float = COORD_TOLERANCE) -> bool:
    """True if every segment is purely horizontal or purely vertical."""
    for (x1, y1), (x2, y2) in zip(points, points[1:]):
        if abs(x1 - x2) > tolerance and abs(y1 - y2) > tolerance:
            return False
    return True


def segments(points: list[Point]) -> list[Segment]:
    return list(zip(points, points[1:]))


def _overlap(a1: float, a2: float, b1: float, b2: float) -> float:
    return min(max(a1, a2), max(b1, b2)) - max(min(a1, a2), min(b1, b2))


def segments_collide(s: Segment, t: Segment, tolerance: float = COORD_TOLERANCE) -> bool:
    """Coincident horizontal or vertical segments with overlapping extent."""
    (ax1, ay1), (ax2, ay2) = s
    (bx1, by1), (bx2, by2) = t
    s_h = abs(ay1 - ay2) <= tolerance
    t_h = abs(by1 - by2) <= tolerance
    s_v = abs(ax1 - ax2) <= tolerance
    t_v = abs(bx1 - bx2) <= tolerance
    if (s_h and s_v) or (t_h and t_v):
        return False
    if s_h and t_h:
        return abs(ay1 - by1) <= tolerance and _overlap(ax1, ax2, bx1, bx2) > tolerance
    if s_v and t_v:
        return abs(ax1 - bx1) <= tolerance and _overlap(ay1, ay2, by1, by2) > tolerance
    return False


def paths_collide(
    points: list[Point], other: list[Point], tolerance: float = COORD_TOLERANCE
) -> bool:
    """True if any segment of one path runs along a segment of the other."""
    other_segs = segments(other)
    return any(
        segments_collide(s, t, tolerance) for s in segments(points) for t in other_segs
    )


def collides_with_any(
    points: list[Point],
    placed: Iterable[list[Point]],
    tolerance: float = COORD_TOLERANCE,
    merge_arrivals: bool = False,
) -> bool:
    """True if the path runs along any placed path.

    With ``merge_arrivals``, two paths ending at the same point may share
    their final segment: the arrows join into one approach.
    """
    for other in placed:
        if merge_arrivals and len(points) >= 2 and _same(points[-1], other[-1], tolerance):
            own_segs = segments(points)
            other_segs = segments(other)
            if any(
                segments_collide(s, t, tolerance)
                for i, s in enumerate(own_segs)
                for j, t in enumerate(other_segs)
                if i < len(own_segs) - 1 or j < len(other_segs) - 1
            ):
                return True
        elif paths_collide(points, other, tolerance):
            return True
    return False


def segment_crosses_box(seg: Segment, box: Bounds, tolerance: float = COORD_TOLERANCE) -> bool:
    """True if an axis-aligned segment passes through the box interior."""
    (x1, y1), (x2, y2) = seg
    inner = Bounds(
        box.x + tolerance,
        box.y + tolerance,
        max(box.width - 2 * tolerance, 0.0),
        max(box.height - 2 * tolerance, 0.0),
    )
    if abs(y1 - y2) <= tolerance:
        return inner.y < y1 < inner.bottom and _overlap(x1, x2, inner.x, inner.right) > 0
    if abs(x1 - x2) <= tolerance:
        return inner.x < x1 < inner.right and _overlap(y1, y2, inner.y, inner.bottom) > 0
    return False


def path_crosses_boxes(
    points: list[Point], boxes: Iterable[Bounds], tolerance: float = COORD_TOLERANCE
) -> bool:
    segs = segments(points)
    return any(segment_crosses_box(s, box, tolerance) for box in boxes for s in segs)
