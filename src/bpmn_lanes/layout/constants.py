"""Layout constants used across layout modules.

Grid, node-size and routing values are the defaults of
:class:`~bpmn_lanes.layout.config.LayoutConfig`; the pipeline reads them
from the config it is handed, so callers can vary them per run. The
label metrics (``LABEL_*`` and the edge label widths) are fixed and
read from here by :mod:`~bpmn_lanes.layout.labels`.
"""

# ---------------------------------------------------------------------------
# Font / text metrics
# ---------------------------------------------------------------------------
CHAR_WIDTH: float = 7.0
"""Approximate pixel width of a single character at default font size."""

LABEL_HEIGHT: float = 20.0
"""Height of a single-line label box."""

# ---------------------------------------------------------------------------
# Grid: columns (process-flow axis)
# ---------------------------------------------------------------------------
COLUMN_WIDTH: float = 200.0
"""Extent of one layer along the process-flow axis."""

POOL_X_OFFSET: float = 150.0
"""Distance from the canvas origin to the pool's upstream edge."""

POOL_LABEL_WIDTH: float = 30.0
"""Width of the pool name gutter."""

PARENT_LANE_LABEL_WIDTH: float = 30.0
"""Width of the name gutter added per lane nesting level."""

# ---------------------------------------------------------------------------
# Grid: lanes (lane-stacking axis)
# ---------------------------------------------------------------------------
LANE_TOP_OFFSET: float = 80.0
"""Distance from the canvas origin to the first lane."""

LANE_BASE_HEIGHT: float = 180.0
"""Height of a horizontal lane holding a single row."""

LANE_ROW_HEIGHT: float = 140.0
"""Height added to a horizontal lane per extra row."""

LANE_BASE_WIDTH: float = 150.0
"""Width of a vertical lane holding a single row."""

LANE_ROW_WIDTH: float = 120.0
"""Width added to a vertical lane per extra row."""

POOL_GAP: float = 50.0
"""Gap between consecutive pools."""

# ---------------------------------------------------------------------------
# Node sizes (pixels, independent of orientation)
# ---------------------------------------------------------------------------
TASK_WIDTH: float = 100.0
"""Width of activities (tasks, sub-processes)."""

TASK_HEIGHT: float = 80.0
"""Height of activities."""

GATEWAY_SIZE: float = 50.0
"""Side of the gateway diamond's bounding square."""

EVENT_SIZE: float = 36.0
"""Diameter of event circles."""

# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------
CORRIDOR_OFFSET: float = 25.0
"""Distance of the boundary corridors from a lane's edges."""

COORD_TOLERANCE: float = 1.0
"""Tolerance for coordinate comparison (same X or same Y)."""

STUB_LENGTH: float = 20.0
"""Exit/entry stub length used when no corridor lies beyond a node."""

# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------
LABEL_GAP: float = 5.0
"""Gap between a node and its label."""

LABEL_SIDE_MARGIN: float = 10.0
"""Extra width on each side of a node label beyond the node's width."""

EDGE_LABEL_MIN_WIDTH: float = 50.0
"""Minimum width of an edge label."""

EDGE_LABEL_WRAP_WIDTH: float = 120.0
"""Edge labels wider than this wrap onto two lines."""

CONVERGING_LABEL_WIDTH: float = 150.0
"""Fixed width of labels aligned on a shared downward corridor."""

MIDPOINT_LABEL_WIDTH: float = 30.0
"""Width of labels placed at a flow's midpoint."""
