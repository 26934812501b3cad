"""Light theme: black on white, close to common BPMN modelers."""

from bpmn_lanes.render.style import Theme

LIGHT_THEME = Theme(
    name="light",
    background_color="#ffffff",
    pool_fill="#ffffff",
    pool_stroke="#222222",
    lane_fill="rgba(0, 0, 0, 0.02)",
    lane_stroke="#444444",
    header_fill="rgba(0, 0, 0, 0.05)",
    header_text_color="#222222",
    node_fill="#ffffff",
    node_stroke="#222222",
    node_stroke_width=1.5,
    flow_color="#222222",
    flow_width=1.5,
    message_color="#555555",
    back_flow_color="#222222",
    label_color="#222222",
    label_font_family="'Helvetica Neue', Helvetica, Arial, sans-serif",
    label_font_size=11.0,
    task_font_size=12.0,
    header_font_size=13.0,
)
