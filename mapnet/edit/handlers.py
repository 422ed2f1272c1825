"""
Edit Handlers - Event handlers for the leaflet map in app.py

This module turns raw leaflet/keyboard events into EditSession calls so the
main application file stays focused on layout. The payload helpers at the top
are pure functions and carry no UI state.
"""

import logging
from typing import Any, Callable, Dict, Optional

from nicegui import ui

from mapnet.graph_store import GraphStore
from mapnet.models import LatLng, LinkKey
from mapnet.edit.controller import EditSession
from mapnet.edit.constants import PATH_HIT_TOLERANCE
from mapnet.edit.hit_test import distance_to_path

logger = logging.getLogger(__name__)


def extract_latlng(raw: Any) -> Optional[LatLng]:
    """
    Pull a (lat, lng) pair out of a leaflet event payload.

    Accepts {'latlng': {'lat', 'lng'}}, {'lat', 'lng'} or a [lat, lng] pair.
    """
    if hasattr(raw, 'args'):
        raw = raw.args
    if isinstance(raw, dict):
        if 'latlng' in raw:
            return extract_latlng(raw['latlng'])
        if 'lat' in raw and 'lng' in raw:
            try:
                return (float(raw['lat']), float(raw['lng']))
            except (TypeError, ValueError):
                return None
        return None
    if isinstance(raw, (list, tuple)) and len(raw) >= 2:
        try:
            return (float(raw[0]), float(raw[1]))
        except (TypeError, ValueError):
            return None
    return None


def is_alt_pressed(raw: Any) -> bool:
    if hasattr(raw, 'args'):
        raw = raw.args
    if not isinstance(raw, dict):
        return False
    original = raw.get('originalEvent') or {}
    return bool(original.get('altKey') or raw.get('altKey'))


def normalize_key(key: Any) -> str:
    """Key name from a nicegui KeyboardKey, or anything with a string form."""
    name = getattr(key, 'name', None)
    if name:
        return str(name)
    return str(key or '')


def find_link_at(store: GraphStore, point: LatLng,
                 tolerance: float = PATH_HIT_TOLERANCE) -> Optional[LinkKey]:
    """Closest rendered link within tolerance of point, or None."""
    closest = None
    closest_dist = float('inf')
    for link in store.list_links():
        path = store.compute_render_path(link)
        if not path:
            continue
        dist = distance_to_path(path, point)
        if dist <= tolerance and dist < closest_dist:
            closest_dist = dist
            closest = link.key
    return closest


def find_device_at(store: GraphStore, point: LatLng,
                   tolerance: float = PATH_HIT_TOLERANCE) -> Optional[str]:
    closest = None
    closest_dist = float('inf')
    for device in store.list_devices():
        lat, lng = device.latlng
        dist = ((lat - point[0]) ** 2 + (lng - point[1]) ** 2) ** 0.5
        if dist <= tolerance and dist < closest_dist:
            closest_dist = dist
            closest = device.id
    return closest


def find_handle_at(session: EditSession, point: LatLng,
                   tolerance: float = PATH_HIT_TOLERANCE) -> Optional[int]:
    """Index of the edited link's waypoint handle under point, or None."""
    state = session.state
    if not state.is_editing:
        return None
    link = session.store.get_link(*state.link)
    if link is None:
        return None
    closest = None
    closest_dist = float('inf')
    for i, (lat, lng) in enumerate(link.waypoints):
        dist = ((lat - point[0]) ** 2 + (lng - point[1]) ** 2) ** 0.5
        if dist <= tolerance and dist < closest_dist:
            closest_dist = dist
            closest = i
    return closest


def setup_edit_handlers(
    state: Dict[str, Any],
    store: GraphStore,
    session: EditSession,
    refresh_map: Callable[[], None],
    tolerance: float = PATH_HIT_TOLERANCE,
):
    """
    Set up all map and keyboard event handlers.

    Args:
        state: Page state dictionary ('selected_id', 'handle_drag', 'device_drag')
        store: GraphStore instance
        session: EditSession instance
        refresh_map: Function that redraws the map layers
        tolerance: Hit distance in degrees for links, handles and devices

    Returns:
        Dict with handler functions for binding to UI events
    """

    def _guarded(name: str, fn: Callable[[Any], None]) -> Callable[[Any], None]:
        def handler(event):
            try:
                fn(event)
            except Exception as e:
                logger.exception(f"{name} failed")
                ui.notify(f'Edit failed: {e}', type='negative', position='bottom')
        return handler

    def _clear_stale_handle():
        if not session.state.is_dragging:
            state['handle_drag'] = None

    def handle_keyboard(e):
        """Escape leaves edit mode; Delete/Backspace removes the selected device."""
        action = getattr(e, 'action', None)
        if action is not None and not getattr(action, 'keydown', False):
            return
        key = normalize_key(getattr(e, 'key', e))
        selected = state.get('selected_id')
        session.handle_key(key, selected)
        _clear_stale_handle()
        if selected and store.get_device(selected) is None:
            state['selected_id'] = None
        if state.get('device_drag') and store.get_device(state['device_drag']) is None:
            state['device_drag'] = None
        refresh_map()

    def handle_dblclick(e):
        """Double-click on the map places a new device."""
        point = extract_latlng(e)
        if point is None:
            return
        lat, lng = point
        device_id = store.add_device((lng, lat))
        state['selected_id'] = device_id
        refresh_map()

    def handle_click(e):
        """Select the device under the pointer, or clear the selection."""
        point = extract_latlng(e)
        if point is None or session.state.is_editing:
            return
        state['selected_id'] = find_device_at(store, point, tolerance)
        refresh_map()

    def handle_contextmenu(e):
        """Right-click: leave edit mode, or start editing the link under the pointer."""
        if session.state.is_editing:
            session.background_context_menu()
            state['handle_drag'] = None
            refresh_map()
            return
        point = extract_latlng(e)
        if point is None:
            return
        key = find_link_at(store, point, tolerance)
        if key is not None:
            session.begin_edit(key)
            refresh_map()

    def handle_mousedown(e):
        """
        Outside edit mode, grab the device under the pointer.
        In edit mode, grab a handle (alt deletes it) or press on the edited path to add one.
        """
        st = session.state
        point = extract_latlng(e)
        if point is None or st.is_dragging:
            return
        if not st.is_editing:
            device_id = find_device_at(store, point, tolerance)
            if device_id is not None:
                state['device_drag'] = device_id
                state['selected_id'] = device_id
                refresh_map()
            return
        _clear_stale_handle()
        index = find_handle_at(session, point, tolerance)
        if index is not None:
            if is_alt_pressed(e):
                session.delete_handle(st.link, index)
            else:
                session.drag_start(st.link, index)
                if session.state.is_dragging:
                    state['handle_drag'] = (st.link, index)
            refresh_map()
            return
        if session.is_on_edited_path(point, tolerance):
            session.path_press(st.link, point)
            refresh_map()

    def handle_mousemove(e):
        device_id = state.get('device_drag')
        if device_id:
            point = extract_latlng(e)
            if point is not None:
                lat, lng = point
                store.move_device(device_id, (lng, lat))
                refresh_map()
            return
        st = session.state
        if not st.is_dragging:
            return
        point = extract_latlng(e)
        if point is None:
            return
        grabbed = state.get('handle_drag')
        if grabbed:
            session.drag_move(grabbed[0], grabbed[1], point)
        else:
            session.move(point)
        refresh_map()

    def handle_mouseup(e):
        device_id = state.get('device_drag')
        state['device_drag'] = None
        if device_id:
            point = extract_latlng(e)
            if point is not None:
                lat, lng = point
                store.move_device(device_id, (lng, lat))
            refresh_map()
            return
        if not session.state.is_dragging:
            state['handle_drag'] = None
            return
        grabbed = state.pop('handle_drag', None)
        point = extract_latlng(e)
        if grabbed and point is not None:
            session.drag_end(grabbed[0], grabbed[1], point)
        if session.state.is_dragging:
            session.release()
        refresh_map()

    return {
        'handle_keyboard': _guarded('handle_keyboard', handle_keyboard),
        'handle_dblclick': _guarded('handle_dblclick', handle_dblclick),
        'handle_click': _guarded('handle_click', handle_click),
        'handle_contextmenu': _guarded('handle_contextmenu', handle_contextmenu),
        'handle_mousedown': _guarded('handle_mousedown', handle_mousedown),
        'handle_mousemove': _guarded('handle_mousemove', handle_mousemove),
        'handle_mouseup': _guarded('handle_mouseup', handle_mouseup),
    }
