"""Theme definitions for diagram previews."""

from bpmn_lanes.themes.dark import DARK_THEME
from bpmn_lanes.themes.light import LIGHT_THEME

THEMES = {
    "light": LIGHT_THEME,
    "dark": DARK_THEME,
}

__all__ = ["THEMES", "DARK_THEME", "LIGHT_THEME"]
