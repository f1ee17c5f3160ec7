# -*- coding: utf-8 -*-
"""Placemark value built from one Mapbox feature (GeoJSON Point + place_name).

Only coordinate and display name come from the data. The remaining
descriptive fields exist for callers written against a richer placemark
shape and always hold their empty defaults.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .geocoding_base import Coordinate


@dataclass(frozen=True)
class Placemark:
    coordinate: Coordinate
    display_name: str
    # 常に空 (データからは埋めない)
    address_dictionary: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    iso_country_code: str = ''
    country: str = ''
    postal_code: str = ''
    administrative_area: str = ''
    sub_administrative_area: str = ''
    locality: str = ''
    sub_locality: str = ''
    thoroughfare: str = ''
    sub_thoroughfare: str = ''
    region: Optional[str] = None
    inland_water: str = ''
    ocean: str = ''
    areas_of_interest: Tuple[str, ...] = ()

    @classmethod
    def from_feature(cls, feature: Any) -> Optional['Placemark']:
        """Return a Placemark for a valid Point feature, None otherwise."""
        if not isinstance(feature, Mapping):
            return None
        geometry = feature.get('geometry')
        if not isinstance(geometry, Mapping):
            return None
        if geometry.get('type') != 'Point':
            return None
        coords = geometry.get('coordinates')
        if not isinstance(coords, (list, tuple)):
            return None
        name = feature.get('place_name')
        if not isinstance(name, str):
            return None
        try:
            lon, lat = float(coords[0]), float(coords[1])
        except (IndexError, TypeError, ValueError, OverflowError):
            return None
        return cls(coordinate=Coordinate(lat, lon), display_name=name)
