"""Mapbox forward/reverse geocoding client.

Use as:
    from mbgeocoder import MapboxGeocoder

"""
import logging

from .geocoding_base import (
    Coordinate,
    GeocoderConnectionError,
    GeocoderError,
    GeocoderHTTPError,
    GeocoderParseError,
)
from .mapbox_geocoder import MapboxGeocoder
from .placemark import Placemark
from .settings_store import SettingsStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Coordinate",
    "GeocoderConnectionError",
    "GeocoderError",
    "GeocoderHTTPError",
    "GeocoderParseError",
    "MapboxGeocoder",
    "Placemark",
    "SettingsStore",
]
