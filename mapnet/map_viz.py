"""
Map visualizer that produces plain layer dicts for a leaflet map.

This implementation uses NetworkX to hold the diagram while building the
layers, but the output is a plain dict the NiceGUI host turns into markers
and polylines.

Output format:
  {
    "markers":   [{"id", "label", "latlng", "color", "status", "selected", "size"}, ...],
    "polylines": [{"source", "target", "style", "points", "options", "editing"}, ...],
    "handles":   [{"source", "target", "index", "latlng", "dragging"}, ...]
  }

Links whose devices are missing never reach the graph, so they are skipped.
Handles are only emitted for the custom link currently being edited.
"""

from typing import Any, Dict, Optional

import networkx as nx

from mapnet.graph_store import GraphStore
from mapnet.models import LinkStyle
from mapnet.edit.constants import (
    EDITING_DASH_ARRAY,
    EDITING_LINK_COLOR,
    LINK_COLOR,
    STATUS_COLORS,
)
from mapnet.edit.controller import EditState


class MapVisualizer:
    """
    Build the leaflet layers for the current store and edit state.
    """

    def __init__(self):
        self.G = nx.DiGraph()

    @staticmethod
    def color_for_status(status: str) -> str:
        return STATUS_COLORS.get(status, STATUS_COLORS["disabled"])

    def build_layers(self, store: GraphStore, edit_state: Optional[EditState] = None,
                     selected_id: Optional[str] = None) -> Dict[str, Any]:
        edit_state = edit_state or EditState()
        # Clear and rebuild graph
        self.G = nx.DiGraph()

        for device in store.list_devices():
            self.G.add_node(device.id, device=device)

        for link in store.list_links():
            # Only add edges if both devices exist
            if link.source_id in self.G.nodes and link.target_id in self.G.nodes:
                self.G.add_edge(link.source_id, link.target_id, link=link)

        markers = []
        for node_id, attrs in self.G.nodes(data=True):
            device = attrs["device"]
            markers.append({
                "id": node_id,
                "label": device.label,
                "latlng": device.latlng,
                "status": device.status.value,
                "color": self.color_for_status(device.status.value),
                "selected": node_id == selected_id,
                "size": device.size_hint,
            })

        polylines = []
        handles = []
        for src, tgt, attrs in self.G.edges(data=True):
            link = attrs["link"]
            is_editing = edit_state.targets(link.key)
            options = {
                "color": EDITING_LINK_COLOR if is_editing else LINK_COLOR,
                "weight": 3,
                "opacity": 1.0 if is_editing else 0.95,
            }
            if is_editing:
                options["dashArray"] = EDITING_DASH_ARRAY

            polylines.append({
                "source": src,
                "target": tgt,
                "style": link.style.value,
                "points": store.compute_render_path(link),
                "options": options,
                "editing": is_editing,
            })

            if is_editing and link.style == LinkStyle.CUSTOM:
                for i, wp in enumerate(link.waypoints):
                    handles.append({
                        "source": src,
                        "target": tgt,
                        "index": i,
                        "latlng": wp,
                        "dragging": edit_state.is_dragging and edit_state.dragging_index == i,
                    })

        return {"markers": markers, "polylines": polylines, "handles": handles}
