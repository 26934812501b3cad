"""Theme and style constants for the SVG preview."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Theme:
    """Visual theme for a swimlane diagram preview."""

    name: str
    background_color: str
    pool_fill: str
    pool_stroke: str
    lane_fill: str
    lane_stroke: str
    header_fill: str
    header_text_color: str
    node_fill: str
    node_stroke: str
    node_stroke_width: float
    flow_color: str
    flow_width: float
    message_color: str
    back_flow_color: str
    label_color: str
    label_font_family: str
    label_font_size: float
    task_font_size: float
    header_font_size: float
    task_corner_radius: float = 10.0
    end_event_stroke_width: float = 3.5
    arrow_scale: float = 6.0
    message_dash: str = "6,4"
