import pytest

from mapnet.graph_store import GraphStore
from mapnet.models import LinkStyle
from mapnet.edit import EditSession


def place(store, lat, lng, device_id=None, **kwargs):
    """Add a device given a (lat, lng) position; the store takes (lng, lat)."""
    return store.add_device((lng, lat), device_id=device_id, **kwargs)


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def two_devices(store):
    """Devices A at (0, 0) and B at (0, 10), both as (lat, lng)."""
    a = place(store, 0.0, 0.0, device_id="A")
    b = place(store, 0.0, 10.0, device_id="B")
    return a, b


@pytest.fixture
def session(store):
    return EditSession(store)


@pytest.fixture
def custom_link(store, two_devices):
    """A custom, non-curvy link A -> B with no waypoints."""
    a, b = two_devices
    store.add_link(a, b)
    store.set_link_style(a, b, LinkStyle.CUSTOM)
    return (a, b)


@pytest.fixture
def place_device(store):
    """Callable fixture: place_device(lat, lng, **kwargs) -> device id."""
    def _place(lat, lng, **kwargs):
        return place(store, lat, lng, **kwargs)
    return _place
