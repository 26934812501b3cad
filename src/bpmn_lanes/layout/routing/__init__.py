"""Flow routing subpackage.

Public API:
- route_flows: Main flow routing dispatcher
- RoutedPath: Routed path dataclass
- CorridorStrategy / SidePriorityStrategy: candidate generators
- paths_collide: Shared segment-overlap predicate
"""

from bpmn_lanes.layout.routing.common import RoutedPath, paths_collide, segments_collide
from bpmn_lanes.layout.routing.core import RoutingResult, route_flows
from bpmn_lanes.layout.routing.strategies import (
    CorridorStrategy,
    RoutingStrategy,
    SidePriorityStrategy,
    route_with,
)

__all__ = [
    "CorridorStrategy",
    "RoutedPath",
    "RoutingResult",
    "RoutingStrategy",
    "SidePriorityStrategy",
    "paths_collide",
    "route_flows",
    "route_with",
    "segments_collide",
]
