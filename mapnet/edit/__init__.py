"""
Link path editing system for MapNet.

This package provides the interactive path editing engine:
- EditSession: State machine for edit mode and waypoint dragging
- EditActions: Link mutation execution
- hit_test: Nearest-segment search used to place new waypoints
- edit_handlers: Event handlers for app.py integration

Usage:
    from mapnet.edit import EditSession, EditActions
    from mapnet.edit.handlers import setup_edit_handlers
"""

from mapnet.edit.constants import (
    PATH_HIT_TOLERANCE,
    KEY_CANCEL,
    KEYS_DELETE,
)
from mapnet.edit.hit_test import nearest_segment_index, distance_to_path
from mapnet.edit.controller import (
    EditSession,
    EditState,
    EditMode,
    EditEvent,
    EventKind,
)
from mapnet.edit.actions import EditActions
from mapnet.edit.handlers import setup_edit_handlers

__all__ = [
    'EditSession',
    'EditState',
    'EditMode',
    'EditEvent',
    'EventKind',
    'EditActions',
    'setup_edit_handlers',
    'nearest_segment_index',
    'distance_to_path',
    'PATH_HIT_TOLERANCE',
    'KEY_CANCEL',
    'KEYS_DELETE',
]
