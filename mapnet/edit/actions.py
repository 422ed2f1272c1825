"""
Edit Actions Module for Link Path Editing

Executes link mutations on behalf of the edit session.
Translates session decisions into concrete GraphStore operations.
"""

import logging
from typing import List, Optional

from mapnet.geometry import control_points, seed_from_curve
from mapnet.graph_store import GraphStore
from mapnet.models import LatLng, Link, LinkKey, LinkStyle
from mapnet.edit.hit_test import nearest_segment_index

logger = logging.getLogger(__name__)


class EditActions:
    """
    Handles execution of link editing actions.

    Waypoint methods only touch custom links and return None (or False) when
    nothing changed: wrong style, unknown link or an index out of range.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def _custom_link(self, key: LinkKey) -> Optional[Link]:
        link = self.store.get_link(*key)
        if link is None or link.style != LinkStyle.CUSTOM:
            return None
        return link

    def convert_for_editing(self, key: LinkKey) -> bool:
        """
        Turn a link into a custom link ready for path editing.

        - curved: custom + curvy, waypoints seeded along the arc
        - straight: custom, not curvy, existing waypoints kept
        - custom: untouched

        Returns False when the link is missing or one of its devices is gone.
        """
        link = self.store.get_link(*key)
        if link is None:
            return False
        ends = self.store.endpoints(link)
        if ends is None:
            return False

        if link.style == LinkStyle.CURVED:
            self.store.set_link_style(*key, LinkStyle.CUSTOM)
            self.store.set_link_curvy(*key, True)
            self.store.set_link_waypoints(*key, seed_from_curve(*ends))
            logger.info(f"Converted curved link {key[0]} -> {key[1]} to custom "
                        f"with {len(link.waypoints)} seeded waypoints")
        elif link.style == LinkStyle.STRAIGHT:
            self.store.set_link_style(*key, LinkStyle.CUSTOM)
            self.store.set_link_curvy(*key, False)
            logger.info(f"Converted straight link {key[0]} -> {key[1]} to custom")
        return True

    def apply_style(self, key: LinkKey, style: LinkStyle) -> bool:
        """
        Style picked from the link panel.

        straight clears waypoints and curvy; curved clears waypoints and sets
        curvy; custom converts the way convert_for_editing does, except that a
        straight link keeps its curvy flag.
        """
        link = self.store.get_link(*key)
        if link is None:
            return False
        try:
            style = LinkStyle(style)
        except ValueError:
            logger.warning(f"Ignoring invalid style {style!r} for link {key[0]} -> {key[1]}")
            return False

        if style == LinkStyle.STRAIGHT:
            self.store.set_link_style(*key, LinkStyle.STRAIGHT)
            self.store.set_link_waypoints(*key, [])
            self.store.set_link_curvy(*key, False)
        elif style == LinkStyle.CURVED:
            self.store.set_link_style(*key, LinkStyle.CURVED)
            self.store.set_link_waypoints(*key, [])
            self.store.set_link_curvy(*key, True)
        elif link.style == LinkStyle.CURVED:
            return self.convert_for_editing(key)
        else:
            self.store.set_link_style(*key, LinkStyle.CUSTOM)
        return True

    def insert_waypoint(self, key: LinkKey, point: LatLng) -> Optional[int]:
        """
        Insert point among the link's control points and return its waypoint index.

        The nearest segment of [A, *waypoints, B] decides the position: segment i
        runs from control point i to i + 1, so the new waypoint becomes
        waypoints[i].
        """
        link = self._custom_link(key)
        if link is None:
            return None
        ends = self.store.endpoints(link)
        if ends is None:
            return None

        verts = control_points(ends[0], link.waypoints, ends[1])
        seg = nearest_segment_index(verts, point)
        wps: List[LatLng] = list(link.waypoints)
        wps.insert(seg, (float(point[0]), float(point[1])))
        self.store.set_link_waypoints(*key, wps)
        return seg

    def move_waypoint(self, key: LinkKey, index: int, point: LatLng) -> bool:
        link = self._custom_link(key)
        if link is None or not 0 <= index < len(link.waypoints):
            return False
        wps = list(link.waypoints)
        wps[index] = (float(point[0]), float(point[1]))
        self.store.set_link_waypoints(*key, wps)
        return True

    def delete_waypoint(self, key: LinkKey, index: int) -> bool:
        link = self._custom_link(key)
        if link is None or not 0 <= index < len(link.waypoints):
            return False
        wps = [wp for j, wp in enumerate(link.waypoints) if j != index]
        self.store.set_link_waypoints(*key, wps)
        return True

    def clear_waypoints(self, key: LinkKey) -> bool:
        if self._custom_link(key) is None:
            return False
        self.store.set_link_waypoints(*key, [])
        return True

    def delete_device(self, device_id: str) -> bool:
        """Delete a device; the store cascades to its links."""
        if self.store.get_device(device_id) is None:
            return False
        self.store.remove_device(device_id)
        return True
