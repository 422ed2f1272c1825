"""
Main NiceGUI application for MapNet.

Renders the device/link diagram on a leaflet map, feeds pointer and keyboard
events into the EditSession, and shows a small side panel for the selected
device and its links.

The editing core (mapnet.graph_store, mapnet.geometry, mapnet.edit) is pure;
everything UI-specific lives here and in mapnet.edit.handlers.
"""

import logging
import sys

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

from mapnet.config import load_settings
from mapnet.logging_setup import configure_logging
from mapnet.graph_store import GraphStore
from mapnet.map_viz import MapVisualizer
from mapnet.models import DeviceStatus, LinkStyle
from mapnet.edit import EditSession, setup_edit_handlers

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

store = GraphStore()
if settings.seed_demo_data:
    store.seed_demo_data()
session = EditSession(store)
visualizer = MapVisualizer()

TIPS = [
    '<b>Double-click</b> map: add device, <b>drag</b> a device to move it',
    '<b>Right-click</b> a link: edit its path',
    'While editing: press/drag on the path to add and move points, <code>Alt+Click</code> a handle to delete',
    'Finish editing: <code>Esc</code> or right-click the map',
]


@ui.page('/')
def index():
    state = {'selected_id': None, 'handle_drag': None, 'device_drag': None,
             'layers': [], 'map_dragging': True}

    with ui.row().classes('w-full h-screen no-wrap gap-0'):
        m = ui.leaflet(
            center=settings.map_center,
            zoom=settings.map_zoom,
            options={'doubleClickZoom': False, 'minZoom': 2},
        ).classes('grow h-full')
        m.clear_layers()
        m.tile_layer(
            url_template=settings.tile_url,
            options={'attribution': '&copy; OpenStreetMap contributors', 'noWrap': True},
        )
        panel = ui.column().classes('w-96 h-full p-3 gap-2 overflow-y-auto')

    with ui.card().classes('fixed left-16 top-3 z-[1000] p-2 text-xs'):
        ui.label('Tips').classes('font-bold')
        ui.html('<br>'.join(TIPS))

    def sync_map_dragging():
        # Map panning is suppressed while a waypoint or a device is held
        wanted = not (session.state.is_dragging or state.get('device_drag'))
        if wanted == state['map_dragging']:
            return
        state['map_dragging'] = wanted
        method = 'enable' if wanted else 'disable'
        ui.run_javascript(f'getElement({m.id}).map.dragging.{method}()')

    def draw_layers():
        for layer in state['layers']:
            m.remove_layer(layer)
        state['layers'] = []

        layers = visualizer.build_layers(store, session.state, state['selected_id'])
        for line in layers['polylines']:
            if len(line['points']) < 2:
                continue
            state['layers'].append(m.generic_layer(
                name='polyline', args=[[list(p) for p in line['points']], line['options']],
            ))
        for marker in layers['markers']:
            border = '#f59e0b' if marker['selected'] else marker['color']
            layer = m.generic_layer(name='circleMarker', args=[list(marker['latlng']), {
                'radius': 8, 'color': border, 'weight': 3 if marker['selected'] else 1,
                'fillColor': marker['color'], 'fillOpacity': 0.9,
                'opacity': 0.7 if marker['status'] == 'disabled' else 1.0,
            }])
            layer.run_method('bindTooltip', marker['label'])
            state['layers'].append(layer)
        for handle in layers['handles']:
            state['layers'].append(m.generic_layer(name='circleMarker', args=[list(handle['latlng']), {
                'radius': 6, 'color': '#111827', 'weight': 2,
                'fillColor': '#f59e0b' if handle['dragging'] else '#ffffff', 'fillOpacity': 1.0,
            }]))

    def refresh_map():
        sync_map_dragging()
        draw_layers()
        device_panel.refresh()

    @ui.refreshable
    def device_panel():
        device = store.get_device(state['selected_id']) if state['selected_id'] else None
        if device is None:
            ui.label('Select a device to edit it.').classes('text-gray-500')
            return

        with ui.row().classes('w-full items-center justify-between'):
            ui.label(f'Edit "{device.label}"').classes('font-bold')
            ui.button('Delete', color='negative',
                      on_click=lambda: (session.delete_device(device.id),
                                        state.update(selected_id=None), refresh_map()))

        ui.input('Name', value=device.label,
                 on_change=lambda e: store.update_device(device.id, label=e.value)).classes('w-full')
        ui.toggle([s.value for s in DeviceStatus], value=device.status.value,
                  on_change=lambda e: (store.update_device(device.id, status=e.value), draw_layers()))
        with ui.row().classes('items-center no-wrap'):
            ui.number('W', value=device.size_hint[0], min=0,
                      on_change=lambda e: store.update_device(
                          device.id, size_hint=(e.value or 0, device.size_hint[1]))).classes('w-24')
            ui.number('H', value=device.size_hint[1], min=0,
                      on_change=lambda e: store.update_device(
                          device.id, size_hint=(device.size_hint[0], e.value or 0))).classes('w-24')

        ui.separator()
        others = {d.id: d.label for d in store.list_devices() if d.id != device.id}
        with ui.row().classes('w-full items-center no-wrap'):
            target = ui.select(others, label='Link to').classes('grow')
            ui.button('Add link', on_click=lambda: (
                store.add_link(device.id, target.value) if target.value else None, refresh_map()))

        for link in store.incident_links(device.id):
            other_id = link.target_id if link.source_id == device.id else link.source_id
            other = store.get_device(other_id)
            arrow = '→' if link.source_id == device.id else '←'
            editing = session.state.targets(link.key)
            with ui.card().classes('w-full p-2'):
                ui.label(f'{arrow} {other.label if other else other_id}')
                with ui.row().classes('items-center gap-1'):
                    ui.select([s.value for s in LinkStyle], value=link.style.value,
                              on_change=lambda e, k=link.key: (session.select_style(k, e.value), refresh_map()))
                    if link.style == LinkStyle.CUSTOM:
                        ui.select({False: 'Straight segments', True: 'Curvy spline'}, value=link.curvy,
                                  on_change=lambda e, k=link.key: (store.set_link_curvy(*k, e.value), draw_layers()))
                with ui.row().classes('gap-1'):
                    ui.button('Editing…' if editing else 'Edit Path',
                              on_click=lambda k=link.key: (session.begin_edit(k), refresh_map()))
                    if link.style == LinkStyle.CUSTOM:
                        ui.button('Clear pts',
                                  on_click=lambda k=link.key: (session.clear_waypoints(k), refresh_map()))
                    ui.button('×', on_click=lambda k=link.key: (store.remove_link(*k), refresh_map()))

    with panel:
        device_panel()

    # Cascades (device deleted from the panel, link restyled) can end a drag outside the handlers
    session.set_on_state_change(lambda _: sync_map_dragging())

    handlers = setup_edit_handlers(state, store, session, refresh_map, settings.path_hit_tolerance)
    m.on('map-dblclick', handlers['handle_dblclick'])
    m.on('map-click', handlers['handle_click'])
    m.on('map-contextmenu', handlers['handle_contextmenu'])
    m.on('map-mousedown', handlers['handle_mousedown'])
    m.on('map-mousemove', handlers['handle_mousemove'])
    m.on('map-mouseup', handlers['handle_mouseup'])
    ui.keyboard(on_key=handlers['handle_keyboard'])

    draw_layers()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='MapNet',
        port=settings.port,
        reload=not getattr(sys, 'frozen', False),
    )
