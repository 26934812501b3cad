"""Dark grey theme with highlighted loops."""

from bpmn_lanes.render.style import Theme

DARK_THEME = Theme(
    name="dark",
    background_color="#2b2b2b",
    pool_fill="rgba(255, 255, 255, 0.03)",
    pool_stroke="#bbbbbb",
    lane_fill="rgba(255, 255, 255, 0.04)",
    lane_stroke="rgba(255, 255, 255, 0.3)",
    header_fill="rgba(255, 255, 255, 0.08)",
    header_text_color="#e0e0e0",
    node_fill="#3a3a3a",
    node_stroke="#e0e0e0",
    node_stroke_width=1.5,
    flow_color="#e0e0e0",
    flow_width=1.5,
    message_color="#9ec5fe",
    back_flow_color="#f4a261",
    label_color="#e0e0e0",
    label_font_family="'Helvetica Neue', Helvetica, Arial, sans-serif",
    label_font_size=11.0,
    task_font_size=12.0,
    header_font_size=13.0,
)
