"""
Shared constants for the link editing system.

These values are used by the edit session (hit testing, keys)
and the map visualizer (colors). Keep them in sync!
"""

# Guard for zero-length segments during projection
DEGENERATE_SEGMENT_EPSILON = 1e-9

# Default distance (in degrees) within which a map click counts as a click on
# the edited path. Overridable via config (path_hit_tolerance).
PATH_HIT_TOLERANCE = 0.5

# Keys understood by the edit session
KEY_CANCEL = "Escape"
KEYS_DELETE = ("Delete", "Backspace")

# Link and device colors for the map layer
STATUS_COLORS = {
    "available": "#22c55e",
    "connected": "#2563eb",
    "disabled": "#9ca3af",
}
LINK_COLOR = "#2563eb"
EDITING_LINK_COLOR = "#f59e0b"
EDITING_DASH_ARRAY = "6 4"
SELECTED_BORDER_COLOR = "#f59e0b"
