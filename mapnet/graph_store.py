import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from mapnet.geometry import render_path
from mapnet.models import (
    Device,
    DeviceStatus,
    LatLng,
    Link,
    LinkKey,
    LinkStyle,
    LngLat,
)

logger = logging.getLogger(__name__)

LINK_REMOVED = "link_removed"
LINK_RESTYLED = "link_restyled"
DEVICE_REMOVED = "device_removed"


@dataclass(frozen=True)
class StoreChange:
    """Notification sent to subscribers after a structural change."""
    kind: str
    link: Optional[LinkKey] = None
    device_id: Optional[str] = None
    style: Optional[LinkStyle] = None


class GraphStore:
    """
    Owns the authoritative device and link collections.

    Structure:
    - devices: id -> Device, in placement order
    - links: ordered list of Link, at most one per (source_id, target_id)

    Every mutation addressed at something that does not exist is a silent
    no-op: calls come from a live UI where a click can race a delete.
    Links may point at missing devices; such links are inert and are skipped
    by compute_render_path.
    """

    def __init__(self):
        self._devices: Dict[str, Device] = {}
        self._links: List[Link] = []
        self._issued_ids = set()
        self._next_id = 1
        self._listeners: List[Callable[[StoreChange], None]] = []

    # --- Change notification ---

    def subscribe(self, callback: Callable[[StoreChange], None]) -> None:
        self._listeners.append(callback)

    def _notify(self, change: StoreChange) -> None:
        for callback in list(self._listeners):
            callback(change)

    # --- Queries ---

    def list_devices(self) -> List[Device]:
        return list(self._devices.values())

    def list_links(self) -> List[Link]:
        return list(self._links)

    def get_device(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def get_link(self, source_id: str, target_id: str) -> Optional[Link]:
        for link in self._links:
            if link.source_id == source_id and link.target_id == target_id:
                return link
        return None

    def incident_links(self, device_id: str) -> List[Link]:
        """Links where the device is source or target."""
        return [link for link in self._links if link.touches(device_id)]

    def endpoints(self, link: Link) -> Optional[Tuple[LatLng, LatLng]]:
        """(A, B) as (lat, lng) pairs, or None when either device is missing."""
        a = self._devices.get(link.source_id)
        b = self._devices.get(link.target_id)
        if a is None or b is None:
            return None
        return a.latlng, b.latlng

    def compute_render_path(self, link: Link) -> List[LatLng]:
        """
        Ordered render points for a link. Dangling links yield an empty list.
        Recomputed on every call; nothing is cached.
        """
        ends = self.endpoints(link)
        if ends is None:
            return []
        return render_path(link, *ends)

    # --- Devices ---

    def _allocate_id(self) -> str:
        while True:
            candidate = f"n{self._next_id}"
            self._next_id += 1
            if candidate not in self._issued_ids:
                return candidate

    def add_device(self, coordinates: LngLat, label: Optional[str] = None,
                   status: DeviceStatus = DeviceStatus.AVAILABLE,
                   size_hint: Tuple[float, float] = (0.0, 0.0),
                   device_id: Optional[str] = None) -> Optional[str]:
        """
        Place a new device and return its id.

        Ids are allocated as n1, n2, ... and are never handed out twice, even
        after the device is removed. A caller supplied device_id that was
        already issued is rejected (returns None).
        """
        if device_id is None:
            device_id = self._allocate_id()
        elif device_id in self._issued_ids:
            logger.debug(f"add_device: id {device_id} already issued, ignoring")
            return None

        try:
            status = DeviceStatus(status)
        except ValueError:
            logger.warning(f"Invalid status {status!r} for new device, using available")
            status = DeviceStatus.AVAILABLE

        self._issued_ids.add(device_id)
        lng, lat = coordinates
        self._devices[device_id] = Device(
            id=device_id,
            label=label if label is not None else f"Node {device_id}",
            coordinates=(float(lng), float(lat)),
            status=status,
            size_hint=(float(size_hint[0]), float(size_hint[1])),
        )
        logger.debug(f"Added device {device_id} at {coordinates}")
        return device_id

    def update_device(self, device_id: str, **patch: Any) -> None:
        """
        Partial update of label, coordinates, status or size_hint.
        Unknown fields and invalid values are skipped.
        """
        device = self._devices.get(device_id)
        if device is None:
            return

        # Validate every field before touching the device
        changes = {}
        if "label" in patch:
            changes["label"] = str(patch["label"])
        if "coordinates" in patch:
            try:
                lng, lat = patch["coordinates"]
                changes["coordinates"] = (float(lng), float(lat))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid coordinates {patch['coordinates']!r} for device {device_id}")
        if "status" in patch:
            try:
                changes["status"] = DeviceStatus(patch["status"])
            except ValueError:
                logger.warning(f"Ignoring invalid status {patch['status']!r} for device {device_id}")
        if "size_hint" in patch:
            try:
                width, height = patch["size_hint"]
                changes["size_hint"] = (max(0.0, float(width)), max(0.0, float(height)))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid size_hint {patch['size_hint']!r} for device {device_id}")

        for name, value in changes.items():
            setattr(device, name, value)

        unknown = set(patch) - {"label", "coordinates", "status", "size_hint"}
        if unknown:
            logger.warning(f"Ignoring unknown device fields {sorted(unknown)} for {device_id}")

    def move_device(self, device_id: str, coordinates: LngLat) -> None:
        self.update_device(device_id, coordinates=coordinates)

    def remove_device(self, device_id: str) -> None:
        """Delete a device and every link touching it. Idempotent."""
        if device_id not in self._devices:
            return
        del self._devices[device_id]

        removed = [link for link in self._links if link.touches(device_id)]
        self._links = [link for link in self._links if not link.touches(device_id)]
        if removed:
            logger.info(f"Removed device {device_id} and {len(removed)} incident link(s)")
        else:
            logger.info(f"Removed device {device_id}")

        for link in removed:
            self._notify(StoreChange(kind=LINK_REMOVED, link=link.key))
        self._notify(StoreChange(kind=DEVICE_REMOVED, device_id=device_id))

    # --- Links ---

    def add_link(self, source_id: str, target_id: str) -> None:
        """Insert a straight link unless this exact ordered pair already exists."""
        if self.get_link(source_id, target_id) is not None:
            return
        self._links.append(Link(source_id=source_id, target_id=target_id))
        logger.debug(f"Added link {source_id} -> {target_id}")

    def set_link_style(self, source_id: str, target_id: str, style: LinkStyle) -> None:
        link = self.get_link(source_id, target_id)
        if link is None:
            return
        try:
            link.style = LinkStyle(style)
        except ValueError:
            logger.warning(f"Ignoring invalid style {style!r} for link {source_id} -> {target_id}")
            return
        self._notify(StoreChange(kind=LINK_RESTYLED, link=link.key, style=link.style))

    def set_link_waypoints(self, source_id: str, target_id: str,
                           waypoints: List[LatLng]) -> None:
        link = self.get_link(source_id, target_id)
        if link is None:
            return
        link.waypoints = [(float(lat), float(lng)) for lat, lng in waypoints]

    def set_link_curvy(self, source_id: str, target_id: str, curvy: bool) -> None:
        link = self.get_link(source_id, target_id)
        if link is None:
            return
        link.curvy = bool(curvy)

    def remove_link(self, source_id: str, target_id: str) -> None:
        link = self.get_link(source_id, target_id)
        if link is None:
            return
        self._links.remove(link)
        logger.debug(f"Removed link {source_id} -> {target_id}")
        self._notify(StoreChange(kind=LINK_REMOVED, link=link.key))

    # --- Demo data ---

    def seed_demo_data(self) -> None:
        """Populate with a few cities and links if the store is empty."""
        if self._devices or self._links:
            return

        logger.info("Seeding demo data...")
        self.add_device((100.5018, 13.7563), label="Bangkok", device_id="a")
        self.add_device((139.6917, 35.6895), label="Tokyo",
                        status=DeviceStatus.CONNECTED, device_id="b")
        self.add_device((2.3522, 48.8566), label="Paris", device_id="c")
        self.add_device((-74.006, 40.7128), label="New York",
                        status=DeviceStatus.DISABLED, device_id="d")

        self.add_link("a", "b")
        self.add_link("b", "c")
        self.set_link_style("b", "c", LinkStyle.CURVED)
        self.add_link("a", "c")
        self.add_link("c", "d")
        self.set_link_style("c", "d", LinkStyle.CUSTOM)
        self.set_link_waypoints("c", "d", [(45.0, 10.0)])
        self.set_link_curvy("c", "d", False)
