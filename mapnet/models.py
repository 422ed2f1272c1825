"""
Data model for the MapNet diagram.

A diagram is a set of devices placed on the map and directed links between them:
- Device: a placed marker, identified by a caller-visible string id.
- Link: a connection identified by the ordered pair (source_id, target_id).

Coordinates follow two conventions, kept as they arrive from the map layer:
- Device.coordinates is (longitude, latitude)
- Link waypoints and every geometry point are (latitude, longitude)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

LatLng = Tuple[float, float]
LngLat = Tuple[float, float]
LinkKey = Tuple[str, str]


class DeviceStatus(str, Enum):
    AVAILABLE = "available"
    CONNECTED = "connected"
    DISABLED = "disabled"


class LinkStyle(str, Enum):
    """How a link's path is drawn. Waypoints and `curvy` only matter for CUSTOM."""
    STRAIGHT = "straight"
    CURVED = "curved"
    CUSTOM = "custom"


@dataclass
class Device:
    id: str
    label: str
    coordinates: LngLat
    status: DeviceStatus = DeviceStatus.AVAILABLE
    size_hint: Tuple[float, float] = (0.0, 0.0)

    @property
    def latlng(self) -> LatLng:
        """Position as a (lat, lng) pair, the order used by all path geometry."""
        lng, lat = self.coordinates
        return (lat, lng)


@dataclass
class Link:
    source_id: str
    target_id: str
    style: LinkStyle = LinkStyle.STRAIGHT
    waypoints: List[LatLng] = field(default_factory=list)
    curvy: bool = False

    @property
    def key(self) -> LinkKey:
        return (self.source_id, self.target_id)

    def touches(self, device_id: str) -> bool:
        return self.source_id == device_id or self.target_id == device_id
