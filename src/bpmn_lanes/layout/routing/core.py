"""Core flow routing: the main route_flows() dispatcher.

Forward flows are routed first, straight from their logical route
(source face, optional corner, target face). Back-flows follow, with
the corridor strategy, once every forward flow is placed; message flows
come last, with the side-priority strategy. Each later flow is tested
against all flows placed before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from bpmn_lanes.layout.config import LayoutConfig, Side
from bpmn_lanes.layout.coordinates import CoordinateResult, Point
from bpmn_lanes.layout.positions import FlowInfo
from bpmn_lanes.layout.routing.common import (
    RoutedPath,
    connection_point,
    is_orthogonal,
    path_crosses_boxes,
    simplify,
)
from bpmn_lanes.layout.routing.strategies import (
    CorridorStrategy,
    RoutingStrategy,
    SidePriorityStrategy,
    route_with,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Routing context: state shared by all handlers
# ---------------------------------------------------------------------------


@dataclass
class _RoutingCtx:
    coords: CoordinateResult
    config: LayoutConfig
    lane_index: dict[str, int]
    placed: dict[str, RoutedPath] = field(default_factory=dict)

    @property
    def tolerance(self) -> float:
        return self.config.collision_tolerance

    def placed_points(self) -> list[list[Point]]:
        return [p.points for p in self.placed.values()]

    def others(self, *node_ids: str) -> list:
        return [b for nid, b in self.coords.node_bounds.items() if nid not in node_ids]

    def run(self, strategy: RoutingStrategy, info: FlowInfo, kind: str) -> RoutedPath | None:
        return route_with(
            strategy,
            self.coords,
            info.edge_id,
            info.source.node,
            info.target.node,
            self.placed_points(),
            kind,
            self.tolerance,
            self.config.stub_length,
        )


@dataclass
class RoutingResult:
    """Routed paths plus flow infos whose sides reflect the final routes."""

    routes: dict[str, RoutedPath]
    flow_infos: dict[str, FlowInfo]
    warnings: list[str] = field(default_factory=list)


def route_flows(coords: CoordinateResult, config: LayoutConfig) -> RoutingResult:
    """Route every flow of a laid-out graph, in flow space."""
    ctx = _RoutingCtx(
        coords=coords,
        config=config,
        lane_index={lid: i for i, lid in enumerate(coords.lane_order)},
    )
    infos = {
        eid: info
        for eid, info in coords.flow_infos.items()
        if info.source.node in coords.node_bounds and info.target.node in coords.node_bounds
    }
    forward = [i for i in infos.values() if not i.is_back_flow and not i.is_message_flow]
    back = [i for i in infos.values() if i.is_back_flow]
    message = [i for i in infos.values() if i.is_message_flow]

    for info in forward:
        _place(ctx, info, _FORWARD_HANDLERS)
    for info in back:
        _place(ctx, info, (_route_back_flow,))
    for info in message:
        _place(ctx, info, (_route_message_flow,))

    warnings = [
        f"Flow '{eid}' could not avoid overlapping another flow"
        for eid, path in ctx.placed.items()
        if path.fallback
    ]
    routes = {eid: ctx.placed[eid] for eid in infos if eid in ctx.placed}
    updated = {
        eid: replace(
            info,
            source=replace(info.source, side=routes[eid].exit_side),
            target=replace(info.target, side=routes[eid].entry_side),
        )
        if eid in routes
        else info
        for eid, info in coords.flow_infos.items()
    }
    logger.debug("Routed %d flows (%d fallbacks)", len(routes), len(warnings))
    return RoutingResult(routes=routes, flow_infos=updated, warnings=warnings)


def _place(ctx: _RoutingCtx, info: FlowInfo, handlers) -> None:
    """Run handlers in order; the first one returning a path wins."""
    for handler in handlers:
        path = handler(ctx, info)
        if path is not None:
            ctx.placed[info.edge_id] = path
            return
    logger.warning("Flow %s could not be routed", info.edge_id)


def _cross_toward(ctx: _RoutingCtx, info: FlowInfo) -> Side:
    """Cross-axis direction from a flow's source toward its target.

    Decided by lane order, then by row within a lane; a same-row pair
    counts as downward.
    """
    src, tgt = info.source, info.target
    if src.lane != tgt.lane:
        forward = ctx.lane_index.get(tgt.lane, 0) > ctx.lane_index.get(src.lane, 0)
    else:
        forward = tgt.row >= src.row
    return Side.CROSS_FORWARD if forward else Side.CROSS_BACKWARD


# ---------------------------------------------------------------------------
# Forward flows
# ---------------------------------------------------------------------------


def _route_logical(ctx: _RoutingCtx, info: FlowInfo) -> RoutedPath | None:
    """Pixel version of the logical route, if it misses every other node."""
    exit_side, entry_side = info.source.side, info.target.side
    if exit_side is None or entry_side is None:
        return None
    coords = ctx.coords
    points = [connection_point(coords.node_bounds[info.source.node], exit_side)]
    for waypoint in info.waypoints:
        point = coords.point_for(waypoint)
        if point is None:
            return None
        points.append(point)
    points.append(connection_point(coords.node_bounds[info.target.node], entry_side))
    points = simplify(points, ctx.tolerance)

    if not is_orthogonal(points, ctx.tolerance):
        return None
    if path_crosses_boxes(points, ctx.others(info.source.node, info.target.node), ctx.tolerance):
        return None
    return RoutedPath(
        info.edge_id, info.source.node, info.target.node, points, exit_side, entry_side
    )


def _route_forward_detour(ctx: _RoutingCtx, info: FlowInfo) -> RoutedPath | None:
    """Channel route for forward flows whose logical route hits a node."""
    toward = _cross_toward(ctx, info)
    strategy = CorridorStrategy(
        exits=[info.source.side or Side.FORWARD, Side.FORWARD, toward],
        entries=[info.target.side or Side.BACKWARD, Side.BACKWARD, toward.opposite],
    )
    return ctx.run(strategy, info, "forward")


_FORWARD_HANDLERS = (_route_logical, _route_forward_detour)

# ---------------------------------------------------------------------------
# Back-flows (loops)
# ---------------------------------------------------------------------------


def _claimed_sides(ctx: _RoutingCtx, node_id: str, exits: bool, entries: bool) -> set[Side]:
    claimed: set[Side] = set()
    for path in ctx.placed.values():
        if exits and path.source == node_id:
            claimed.add(path.exit_side)
        if entries and path.target == node_id:
            claimed.add(path.entry_side)
    return claimed


def _entry_convention(ctx: _RoutingCtx, node_id: str) -> Side:
    """Side forward flows use to enter a node; backward when none does."""
    for path in ctx.placed.values():
        if path.target == node_id and path.kind == "forward":
            return path.entry_side
    return Side.BACKWARD


def _route_back_flow(ctx: _RoutingCtx, info: FlowInfo) -> RoutedPath | None:
    src, tgt = info.source, info.target
    toward = _cross_toward(ctx, info)
    same_row = src.lane == tgt.lane and src.row == tgt.row

    exit_order = [toward, Side.FORWARD, toward.opposite, Side.BACKWARD]
    src_claimed = _claimed_sides(ctx, src.node, exits=True, entries=True)
    exits = [s for s in exit_order if s not in src_claimed] or exit_order

    facing = toward if same_row else toward.opposite
    entry_order = [_entry_convention(ctx, tgt.node), facing, facing.opposite, Side.FORWARD]
    tgt_claimed = _claimed_sides(ctx, tgt.node, exits=True, entries=False)
    entries = [s for s in entry_order if s not in tgt_claimed] or entry_order

    return ctx.run(CorridorStrategy(exits, entries), info, "back")


# ---------------------------------------------------------------------------
# Message flows
# ---------------------------------------------------------------------------


def _route_message_flow(ctx: _RoutingCtx, info: FlowInfo) -> RoutedPath | None:
    if info.source.node == info.target.node:
        return None
    sb = ctx.coords.node_bounds[info.source.node]
    tb = ctx.coords.node_bounds[info.target.node]
    up, down = Side.CROSS_BACKWARD, Side.CROSS_FORWARD
    if tb.center[1] < sb.center[1]:
        exits = [up, down, Side.BACKWARD, Side.FORWARD]
        entries = [down, up, Side.BACKWARD, Side.FORWARD]
    else:
        exits = [down, up, Side.BACKWARD, Side.FORWARD]
        entries = [up, down, Side.BACKWARD, Side.FORWARD]
    strategy = SidePriorityStrategy(exits, entries, ctx.placed_points(), ctx.tolerance)
    return ctx.run(strategy, info, "message")
