"""Central transport registry: internal IDs and display names.
Settings store the internal ID; MapboxGeocoder resolves it here."""
from __future__ import annotations
from typing import Optional

from .qt_transport import QtNetworkTransport
from .url_transport import UrllibTransport

# Ordered list of (internal_id, display_name)
TRANSPORTS = [
    ("urllib", "urllib (background thread)"),
    ("qt", "Qt Network (event loop)"),
]


# Fast lookup dict
_ID_TO_DISPLAY = {tid: disp for tid, disp in TRANSPORTS}

_FACTORIES = {
    "urllib": UrllibTransport,
    "qt": QtNetworkTransport,
}


def get_display_name(transport_id: str | None) -> str:
    if not transport_id:
        return ""
    return _ID_TO_DISPLAY.get(transport_id, transport_id or "")


def iter_transports():
    """Yield (internal_id, display_name) preserving order."""
    yield from TRANSPORTS


def create_transport(transport_id: str, timeout: Optional[float] = None):
    try:
        factory = _FACTORIES[transport_id]
    except KeyError:
        raise ValueError(f"Unknown transport: {transport_id!r}") from None
    return factory(timeout=timeout)
