"""Layout configuration and direction mapping.

All geometry in the layout pipeline is expressed with four abstract
sides (:class:`Side`). :class:`Directions` maps them onto compass
directions for the chosen lane orientation, so switching between
horizontal and vertical lanes is a single configuration value.
"""

from __future__ import annotations

__all__ = ["Directions", "LayoutConfig", "Side", "directions_for"]

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum

from bpmn_lanes.layout import constants as C
from bpmn_lanes.parser.model import EVENT_TYPES, GATEWAY_TYPES

ORIENTATIONS = ("horizontal", "vertical")


class Side(Enum):
    """Abstract face of a node, relative to the process-flow axis."""

    FORWARD = "forward"
    BACKWARD = "backward"
    CROSS_FORWARD = "crossForward"
    CROSS_BACKWARD = "crossBackward"

    @property
    def opposite(self) -> Side:
        return _OPPOSITES[self]

    @property
    def is_cross(self) -> bool:
        return self in (Side.CROSS_FORWARD, Side.CROSS_BACKWARD)

    @property
    def sign(self) -> int:
        """+1 when the side faces increasing coordinates, else -1."""
        return 1 if self in (Side.FORWARD, Side.CROSS_FORWARD) else -1


_OPPOSITES = {
    Side.FORWARD: Side.BACKWARD,
    Side.BACKWARD: Side.FORWARD,
    Side.CROSS_FORWARD: Side.CROSS_BACKWARD,
    Side.CROSS_BACKWARD: Side.CROSS_FORWARD,
}


@dataclass(frozen=True)
class Directions:
    """Compass direction for each abstract side."""

    forward: str
    backward: str
    cross_forward: str
    cross_backward: str

    @property
    def is_horizontal(self) -> bool:
        return self.forward == "right"

    def compass(self, side: Side) -> str:
        return {
            Side.FORWARD: self.forward,
            Side.BACKWARD: self.backward,
            Side.CROSS_FORWARD: self.cross_forward,
            Side.CROSS_BACKWARD: self.cross_backward,
        }[side]

    def side_for(self, compass: str) -> Side:
        for side in Side:
            if self.compass(side) == compass:
                return side
        raise ValueError(f"Unknown compass direction '{compass}'")


def directions_for(orientation: str) -> Directions:
    """Map a lane orientation to its direction set.

    ``horizontal``: lanes stacked top-to-bottom, flow left-to-right.
    ``vertical``: lanes side by side, flow top-to-bottom.
    """
    if orientation == "horizontal":
        return Directions(
            forward="right", backward="left", cross_forward="down", cross_backward="up"
        )
    if orientation == "vertical":
        return Directions(
            forward="down", backward="up", cross_forward="right", cross_backward="left"
        )
    raise ValueError(
        f"Unknown lane orientation '{orientation}', expected one of {ORIENTATIONS}"
    )


# Original option names accepted by from_mapping()
_ALIASES = {
    "laneOrientation": "lane_orientation",
    "xorMergeGateways": "xor_merge_gateways",
}


@dataclass(frozen=True)
class LayoutConfig:
    """Per-run layout settings, threaded through every pipeline stage."""

    lane_orientation: str = "horizontal"
    # False collapses exclusive merge gateways out of the diagram
    xor_merge_gateways: bool = False

    column_width: float = C.COLUMN_WIDTH
    pool_x_offset: float = C.POOL_X_OFFSET
    pool_label_width: float = C.POOL_LABEL_WIDTH
    parent_lane_label_width: float = C.PARENT_LANE_LABEL_WIDTH
    lane_top_offset: float = C.LANE_TOP_OFFSET
    lane_base_height: float = C.LANE_BASE_HEIGHT
    lane_row_height: float = C.LANE_ROW_HEIGHT
    lane_base_width: float = C.LANE_BASE_WIDTH
    lane_row_width: float = C.LANE_ROW_WIDTH
    pool_gap: float = C.POOL_GAP

    task_width: float = C.TASK_WIDTH
    task_height: float = C.TASK_HEIGHT
    gateway_size: float = C.GATEWAY_SIZE
    event_size: float = C.EVENT_SIZE

    corridor_offset: float = C.CORRIDOR_OFFSET
    collision_tolerance: float = C.COORD_TOLERANCE
    stub_length: float = C.STUB_LENGTH
    char_width: float = C.CHAR_WIDTH

    def __post_init__(self) -> None:
        directions_for(self.lane_orientation)
        if self.column_width <= max(self.task_width, self.task_height):
            raise ValueError("column_width must exceed the activity size")

    @classmethod
    def from_mapping(cls, options: Mapping[str, object] | None) -> LayoutConfig:
        """Build a config from a plain mapping.

        Accepts field names and the camelCase option names
        ``laneOrientation`` / ``xorMergeGateways``.
        """
        if not options:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, object] = {}
        for key, value in options.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown layout option '{key}'")
            kwargs[name] = value
        return cls(**kwargs)  # type: ignore[arg-type]

    @property
    def directions(self) -> Directions:
        return directions_for(self.lane_orientation)

    @property
    def is_horizontal(self) -> bool:
        return self.lane_orientation == "horizontal"

    def node_size(self, node_type: str) -> tuple[float, float]:
        """Pixel (width, height) of a node type."""
        if node_type in EVENT_TYPES:
            return (self.event_size, self.event_size)
        if node_type in GATEWAY_TYPES:
            return (self.gateway_size, self.gateway_size)
        return (self.task_width, self.task_height)

    def layout_size(self, node_type: str) -> tuple[float, float]:
        """Node extent as (along-flow, across-lanes)."""
        w, h = self.node_size(node_type)
        return (w, h) if self.is_horizontal else (h, w)

    @property
    def lane_base_extent(self) -> float:
        """Across-lane extent of a single-row lane."""
        return self.lane_base_height if self.is_horizontal else self.lane_base_width

    @property
    def lane_row_extent(self) -> float:
        """Across-lane extent added per extra row."""
        return self.lane_row_height if self.is_horizontal else self.lane_row_width

    @property
    def row_reference(self) -> float:
        """Across-lane extent reserved per row when spacing rows evenly."""
        return self.task_height if self.is_horizontal else self.task_width
