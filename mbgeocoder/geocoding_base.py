# -*- coding: utf-8 -*-
"""Geocoding base interfaces.
Coordinate value, error taxonomy and the protocols a transport has to satisfy.
No network calls here.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Callable, List, NamedTuple, Optional, Protocol

if TYPE_CHECKING:
    from .placemark import Placemark


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


class GeocoderError(Exception):
    """Terminal failure of one geocode request."""
    domain = 'MBGeocoderErrorDomain'
    code = 0


class GeocoderConnectionError(GeocoderError):
    code = -1000

    def __init__(self, cause: BaseException):
        super().__init__(f'Connection failed: {cause}')
        self.cause = cause
        self.__cause__ = cause


class GeocoderHTTPError(GeocoderError):
    code = -1001

    def __init__(self, status_code: int):
        super().__init__(f'Received HTTP status code {status_code}')
        self.status_code = status_code


class GeocoderParseError(GeocoderError):
    code = -1002

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__('Unable to parse results')
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


def normalize_timeout(value: Optional[float]) -> Optional[float]:
    """Seconds, or None for no timeout (0 and negatives included)."""
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


# (placemarks, None) on success, (None, error) otherwise
CompletionHandler = Callable[[Optional[List['Placemark']], Optional[GeocoderError]], None]


class IResponseHandler(Protocol):
    def on_response(self, status_code: int) -> None: ...
    def on_data(self, chunk: bytes) -> None: ...
    def on_finished(self) -> None: ...
    def on_failure(self, error: BaseException) -> None: ...


class IConnection(Protocol):
    def cancel(self) -> None: ...


class ITransport(Protocol):
    def open(self, url: str, handler: IResponseHandler) -> IConnection: ...
