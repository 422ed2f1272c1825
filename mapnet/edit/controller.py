"""
Edit Session - Single source of truth for link path editing state.

The session is a small state machine:

    idle --begin_edit--> editing(link) --press / drag_start--> dragging(link, i)
      ^                     |   ^                                   |
      +--cancel / cascade---+   +-------release / drag_end----------+

Every handler takes the current snapshot, decides the next one and asks
EditActions for any store mutation. Events that are not legal in the current
state (wrong mode, another link, out-of-range index, non-custom link) are
ignored and leave the state unchanged. Handlers return the resulting state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from mapnet.graph_store import GraphStore, StoreChange, LINK_REMOVED, LINK_RESTYLED
from mapnet.models import LatLng, LinkKey, LinkStyle
from mapnet.edit.actions import EditActions
from mapnet.edit.constants import KEY_CANCEL, KEYS_DELETE, PATH_HIT_TOLERANCE
from mapnet.edit.hit_test import distance_to_path

logger = logging.getLogger(__name__)


class EditMode(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class EditState:
    """Immutable snapshot of current edit state."""
    mode: EditMode = EditMode.IDLE
    link: Optional[LinkKey] = None
    dragging_index: Optional[int] = None

    @property
    def is_editing(self) -> bool:
        """True while a link is being edited, including during a drag."""
        return self.mode != EditMode.IDLE

    @property
    def is_dragging(self) -> bool:
        return self.mode == EditMode.DRAGGING

    def targets(self, key: Optional[LinkKey]) -> bool:
        return self.is_editing and key is not None and tuple(key) == self.link


IDLE = EditState()


class EventKind(str, Enum):
    BEGIN_EDIT = "begin_edit"
    PATH_CLICK = "path_click"
    PATH_PRESS = "path_press"
    MOVE = "move"
    RELEASE = "release"
    DRAG_START = "drag_start"
    DRAG_MOVE = "drag_move"
    DRAG_END = "drag_end"
    DELETE_HANDLE = "delete_handle"
    CANCEL = "cancel"
    BACKGROUND_CONTEXT_MENU = "background_context_menu"
    SELECT_STYLE = "select_style"
    CLEAR_WAYPOINTS = "clear_waypoints"
    KEY = "key"


@dataclass(frozen=True)
class EditEvent:
    """A discrete interaction event collected by the host."""
    kind: EventKind
    link: Optional[LinkKey] = None
    index: Optional[int] = None
    point: Optional[LatLng] = None
    key: Optional[str] = None
    device_id: Optional[str] = None
    style: Optional[LinkStyle] = None


class EditSession:
    """Manages path editing state and applies edits through EditActions."""

    def __init__(self, store: GraphStore, actions: Optional[EditActions] = None):
        self.store = store
        self.actions = actions or EditActions(store)
        self._state = IDLE
        self._on_state_change: Optional[Callable[[EditState], None]] = None
        store.subscribe(self._on_store_change)

    @property
    def state(self) -> EditState:
        return self._state

    def set_on_state_change(self, callback: Callable[[EditState], None]):
        self._on_state_change = callback

    def _set_state(self, new_state: EditState) -> EditState:
        if new_state != self._state:
            logger.debug(f"Edit state {self._state} -> {new_state}")
            self._state = new_state
            if self._on_state_change:
                self._on_state_change(new_state)
        return self._state

    def _ignore(self, what: str) -> EditState:
        logger.debug(f"Ignoring {what} in state {self._state}")
        return self._state

    def _on_store_change(self, change: StoreChange):
        if not self._state.targets(change.link):
            return
        if change.kind == LINK_REMOVED:
            logger.info(f"Edited link {change.link[0]} -> {change.link[1]} was removed, leaving edit mode")
            self._set_state(IDLE)
        elif change.kind == LINK_RESTYLED and change.style != LinkStyle.CUSTOM:
            logger.info(f"Edited link {change.link[0]} -> {change.link[1]} restyled to "
                        f"{change.style.value}, leaving edit mode")
            self._set_state(IDLE)

    def _editing_custom(self, key: Optional[LinkKey]) -> bool:
        if not self._state.targets(key):
            return False
        link = self.store.get_link(*self._state.link)
        return link is not None and link.style == LinkStyle.CUSTOM

    @staticmethod
    def _valid_index(index) -> bool:
        return isinstance(index, int) and not isinstance(index, bool)

    # --- Entering and leaving edit mode ---

    def begin_edit(self, key: LinkKey) -> EditState:
        """Start editing a link, converting straight/curved links to custom."""
        key = tuple(key)
        if self._state.is_editing:
            return self._ignore(f"begin_edit for {key}")
        if not self.actions.convert_for_editing(key):
            return self._ignore(f"begin_edit for missing or dangling link {key}")
        return self._set_state(EditState(mode=EditMode.EDITING, link=key))

    def cancel(self) -> EditState:
        """Leave edit mode. Edits made so far are kept."""
        if not self._state.is_editing:
            return self._state
        return self._set_state(IDLE)

    def background_context_menu(self) -> EditState:
        return self.cancel()

    # --- Path events on the edited link ---

    def path_click(self, key: LinkKey, point: LatLng) -> EditState:
        """Insert a waypoint at the clicked position."""
        if self._state.is_dragging or not self._editing_custom(key):
            return self._ignore(f"path_click on {key}")
        self.actions.insert_waypoint(self._state.link, point)
        return self._state

    def path_press(self, key: LinkKey, point: LatLng) -> EditState:
        """Insert a waypoint and start dragging it."""
        if self._state.is_dragging or not self._editing_custom(key):
            return self._ignore(f"path_press on {key}")
        index = self.actions.insert_waypoint(self._state.link, point)
        if index is None:
            return self._state
        return self._set_state(EditState(
            mode=EditMode.DRAGGING, link=self._state.link, dragging_index=index
        ))

    def move(self, point: LatLng) -> EditState:
        """Pointer moved while a waypoint is held."""
        if not self._state.is_dragging:
            return self._state
        self.actions.move_waypoint(self._state.link, self._state.dragging_index, point)
        return self._state

    def release(self) -> EditState:
        """Pointer released; the dragged waypoint stays where it is."""
        if not self._state.is_dragging:
            return self._state
        return self._set_state(EditState(mode=EditMode.EDITING, link=self._state.link))

    # --- Waypoint handles ---

    def drag_start(self, key: LinkKey, index: int) -> EditState:
        if self._state.is_dragging or not self._editing_custom(key):
            return self._ignore(f"drag_start on {key}[{index}]")
        link = self.store.get_link(*self._state.link)
        if not self._valid_index(index) or not 0 <= index < len(link.waypoints):
            return self._ignore(f"drag_start with index {index}")
        return self._set_state(EditState(
            mode=EditMode.DRAGGING, link=self._state.link, dragging_index=index
        ))

    def _holding(self, key: LinkKey, index: int) -> bool:
        return (self._state.is_dragging and self._state.targets(key)
                and self._state.dragging_index == index)

    def drag_move(self, key: LinkKey, index: int, point: LatLng) -> EditState:
        if not self._holding(key, index):
            return self._ignore(f"drag_move on {key}[{index}]")
        self.actions.move_waypoint(self._state.link, index, point)
        return self._state

    def drag_end(self, key: LinkKey, index: int, point: LatLng) -> EditState:
        """Commit the handle's final position and go back to editing."""
        if not self._holding(key, index):
            return self._ignore(f"drag_end on {key}[{index}]")
        self.actions.move_waypoint(self._state.link, index, point)
        return self._set_state(EditState(mode=EditMode.EDITING, link=self._state.link))

    def delete_handle(self, key: LinkKey, index: int) -> EditState:
        """Alt+click on a handle removes that waypoint."""
        if self._state.is_dragging or not self._editing_custom(key):
            return self._ignore(f"delete_handle on {key}[{index}]")
        if not self._valid_index(index):
            return self._ignore(f"delete_handle with index {index}")
        self.actions.delete_waypoint(self._state.link, index)
        return self._state

    # --- Panel actions ---

    def select_style(self, key: LinkKey, style: LinkStyle) -> EditState:
        """
        Style chosen from outside the edit gesture.

        straight/curved clear the waypoints and end an edit on that link;
        custom converts the link but does not start editing it.
        """
        key = tuple(key)
        if not self.actions.apply_style(key, style):
            return self._state
        if self._state.targets(key) and LinkStyle(style) != LinkStyle.CUSTOM:
            return self._set_state(IDLE)
        return self._state

    def clear_waypoints(self, key: LinkKey) -> EditState:
        if self._state.is_dragging:
            return self._ignore(f"clear_waypoints on {key}")
        self.actions.clear_waypoints(tuple(key))
        return self._state

    def delete_device(self, device_id: str) -> EditState:
        """Remove a device; an edit on any of its links ends through the cascade."""
        self.actions.delete_device(device_id)
        return self._state

    def handle_key(self, key: str, selected_device_id: Optional[str] = None) -> EditState:
        """Escape cancels editing; Delete/Backspace removes the selected device."""
        if key == KEY_CANCEL:
            return self.cancel()
        if key in KEYS_DELETE and selected_device_id:
            return self.delete_device(selected_device_id)
        return self._state

    # --- Queries for the host ---

    def edited_path(self) -> List[LatLng]:
        """Current render path of the edited link, empty when idle."""
        if not self._state.is_editing:
            return []
        link = self.store.get_link(*self._state.link)
        if link is None:
            return []
        return self.store.compute_render_path(link)

    def is_on_edited_path(self, point: LatLng, tolerance: float = PATH_HIT_TOLERANCE) -> bool:
        return distance_to_path(self.edited_path(), point) <= tolerance

    # --- Reducer entry point ---

    def dispatch(self, event: EditEvent) -> EditState:
        """Route a discrete event to its handler and return the resulting state."""
        try:
            kind = EventKind(event.kind)
        except ValueError:
            return self._ignore(f"unknown event kind {event.kind!r}")

        if kind == EventKind.BEGIN_EDIT:
            return self.begin_edit(event.link) if event.link else self._state
        elif kind == EventKind.PATH_CLICK:
            return self.path_click(event.link, event.point) if event.point else self._state
        elif kind == EventKind.PATH_PRESS:
            return self.path_press(event.link, event.point) if event.point else self._state
        elif kind == EventKind.MOVE:
            return self.move(event.point) if event.point else self._state
        elif kind == EventKind.RELEASE:
            return self.release()
        elif kind == EventKind.DRAG_START:
            return self.drag_start(event.link, event.index)
        elif kind == EventKind.DRAG_MOVE:
            return self.drag_move(event.link, event.index, event.point) if event.point else self._state
        elif kind == EventKind.DRAG_END:
            if event.point is None:
                # No final position: keep the last moved one
                return self.release() if self._holding(event.link, event.index) else self._state
            return self.drag_end(event.link, event.index, event.point)
        elif kind == EventKind.DELETE_HANDLE:
            return self.delete_handle(event.link, event.index)
        elif kind == EventKind.CANCEL:
            return self.cancel()
        elif kind == EventKind.BACKGROUND_CONTEXT_MENU:
            return self.background_context_menu()
        elif kind == EventKind.SELECT_STYLE:
            if event.link is None or event.style is None:
                return self._state
            return self.select_style(event.link, event.style)
        elif kind == EventKind.CLEAR_WAYPOINTS:
            return self.clear_waypoints(event.link) if event.link else self._state
        elif kind == EventKind.KEY:
            return self.handle_key(event.key, event.device_id) if event.key else self._state
        return self._ignore(f"unhandled event {kind}")
