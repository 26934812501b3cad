"""Candidate-based routing strategies.

A strategy yields candidate routes in priority order. :func:`route_with`
keeps the first candidate that crosses no foreign node and shares no
segment with an already placed flow; when every candidate collides, the
last node-free candidate is kept so that a route always exists.
"""

from __future__ import annotations

__all__ = [
    "Candidate",
    "CorridorStrategy",
    "RoutingStrategy",
    "SidePriorityStrategy",
    "route_with",
]

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from bpmn_lanes.layout.config import Side
from bpmn_lanes.layout.constants import COORD_TOLERANCE
from bpmn_lanes.layout.coordinates import CoordinateResult, Point
from bpmn_lanes.layout.routing.channels import VARIANTS, build_channel_route
from bpmn_lanes.layout.routing.common import (
    RoutedPath,
    collides_with_any,
    connection_point,
    is_orthogonal,
    path_crosses_boxes,
)

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    exit_side: Side
    entry_side: Side
    points: list[Point]


def _dedupe(sides: list[Side]) -> list[Side]:
    seen: list[Side] = []
    for side in sides:
        if side not in seen:
            seen.append(side)
    return seen


class RoutingStrategy:
    """Base class: produce candidate routes for one flow, best first."""

    def candidates(
        self,
        coords: CoordinateResult,
        source: str,
        target: str,
        stub_length: float,
        tolerance: float = COORD_TOLERANCE,
    ) -> Iterator[Candidate]:
        raise NotImplementedError


class CorridorStrategy(RoutingStrategy):
    """Try exit/entry side pairs in order, each through the channel router."""

    def __init__(self, exits: list[Side], entries: list[Side]) -> None:
        self.exits = _dedupe(exits)
        self.entries = _dedupe(entries)

    def candidates(
        self,
        coords: CoordinateResult,
        source: str,
        target: str,
        stub_length: float,
        tolerance: float = COORD_TOLERANCE,
    ) -> Iterator[Candidate]:
        for exit_side in self.exits:
            for entry_side in self.entries:
                for variant in VARIANTS:
                    points = build_channel_route(
                        coords,
                        source,
                        exit_side,
                        target,
                        entry_side,
                        variant,
                        stub_length,
                        tolerance,
                    )
                    yield Candidate(exit_side, entry_side, points)


class SidePriorityStrategy(RoutingStrategy):
    """Side-occupancy driven routing between pools.

    Only faces that no waypoint of a placed flow touches are tried.
    Facing sides that line up are joined by a straight segment when
    nothing lies between them; every other pair goes through the channel router.
    """

    def __init__(
        self,
        exits: list[Side],
        entries: list[Side],
        placed: list[list[Point]],
        tolerance: float,
    ) -> None:
        self.exits = _dedupe(exits)
        self.entries = _dedupe(entries)
        self.placed = placed
        self.tolerance = tolerance

    def _is_free(self, point: Point) -> bool:
        tol = self.tolerance
        for pts in self.placed:
            for x, y in pts:
                if abs(x - point[0]) <= tol and abs(y - point[1]) <= tol:
                    return False
        return True

    def available(self, box_side_points: dict[Side, Point], order: list[Side]) -> list[Side]:
        free = [s for s in order if self._is_free(box_side_points[s])]
        return free or order

    def candidates(
        self,
        coords: CoordinateResult,
        source: str,
        target: str,
        stub_length: float,
        tolerance: float = COORD_TOLERANCE,
    ) -> Iterator[Candidate]:
        sb = coords.node_bounds[source]
        tb = coords.node_bounds[target]
        exits = self.available({s: connection_point(sb, s) for s in Side}, self.exits)
        entries = self.available({s: connection_point(tb, s) for s in Side}, self.entries)
        others = [b for nid, b in coords.node_bounds.items() if nid not in (source, target)]

        for exit_side in exits:
            for entry_side in entries:
                p0 = connection_point(sb, exit_side)
                pn = connection_point(tb, entry_side)
                if entry_side is exit_side.opposite and _facing(p0, pn, exit_side):
                    aligned = (
                        abs(p0[0] - pn[0]) <= self.tolerance
                        if exit_side.is_cross
                        else abs(p0[1] - pn[1]) <= self.tolerance
                    )
                    if aligned and not path_crosses_boxes([p0, pn], others, self.tolerance):
                        yield Candidate(exit_side, entry_side, [p0, pn])
                for variant in VARIANTS:
                    points = build_channel_route(
                        coords,
                        source,
                        exit_side,
                        target,
                        entry_side,
                        variant,
                        stub_length,
                        tolerance,
                    )
                    yield Candidate(exit_side, entry_side, points)


def _facing(p0: Point, pn: Point, exit_side: Side) -> bool:
    """Whether the target point lies in the direction the exit face points."""
    axis = 1 if exit_side.is_cross else 0
    return (pn[axis] - p0[axis]) * exit_side.sign > 0


def route_with(
    strategy: RoutingStrategy,
    coords: CoordinateResult,
    edge_id: str,
    source: str,
    target: str,
    placed: list[list[Point]],
    kind: str,
    tolerance: float,
    stub_length: float,
) -> RoutedPath | None:
    """Return the first clear candidate, else the last node-free one."""
    own = [coords.node_bounds[source], coords.node_bounds[target]]
    others = [b for nid, b in coords.node_bounds.items() if nid not in (source, target)]
    last: Candidate | None = None
    last_clear: Candidate | None = None
    # A loop may join the final approach of another flow into its target
    merge = kind == "back"

    for cand in strategy.candidates(coords, source, target, stub_length, tolerance):
        if len(cand.points) < 2 or not is_orthogonal(cand.points, tolerance):
            continue
        (x0, y0), (xn, yn) = cand.points[0], cand.points[-1]
        if abs(x0 - xn) <= tolerance and abs(y0 - yn) <= tolerance:
            continue
        # Between the two stubs the path must also stay clear of its own ends
        node_free = not path_crosses_boxes(cand.points, others, tolerance) and not (
            path_crosses_boxes(cand.points[1:-1], own, tolerance)
        )
        if node_free and not collides_with_any(cand.points, placed, tolerance, merge):
            return RoutedPath(
                edge_id, source, target, cand.points, cand.exit_side, cand.entry_side, kind
            )
        last = cand
        if node_free:
            last_clear = cand

    chosen = last_clear or last
    if chosen is None:
        return None
    logger.warning("No collision-free route for %s; using fallback candidate", edge_id)
    return RoutedPath(
        edge_id,
        source,
        target,
        chosen.points,
        chosen.exit_side,
        chosen.entry_side,
        kind,
        fallback=True,
    )
