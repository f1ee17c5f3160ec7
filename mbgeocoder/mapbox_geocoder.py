# -*- coding: utf-8 -*-
"""Mapbox Geocoding API client (forward and reverse).

One request in flight per instance. A call made while a request is in
flight is dropped without error or callback. Transport events are routed
into a per-request context; events for a context that is no longer current
(cancelled or finished) are ignored, so the completion handler fires exactly
once per accepted request and never after cancel().
"""
from __future__ import annotations
import json
import logging
import threading
import urllib.parse
from typing import List, Optional, Sequence

from .geocoding_base import (
    CompletionHandler,
    GeocoderConnectionError,
    GeocoderError,
    GeocoderHTTPError,
    GeocoderParseError,
    IConnection,
    ITransport,
)
from .placemark import Placemark
from .settings_store import SettingsStore
from .transport_registry import create_transport

logger = logging.getLogger(__name__)


def _strip_query(url: str) -> str:
    # access_token をログに出さない
    return url.split('?', 1)[0]


class _RequestContext:
    __slots__ = ('url', 'completion', 'buffer', 'connection')

    def __init__(self, url: str, completion: CompletionHandler):
        self.url = url
        self.completion: Optional[CompletionHandler] = completion
        self.buffer: Optional[bytearray] = bytearray()
        self.connection: Optional[IConnection] = None


class _ContextHandler:
    """Transport-facing handler bound to a single request context."""

    def __init__(self, geocoder: 'MapboxGeocoder', ctx: _RequestContext):
        self._geocoder = geocoder
        self._ctx = ctx

    def on_response(self, status_code: int) -> None:
        self._geocoder._on_response(self._ctx, status_code)

    def on_data(self, chunk: bytes) -> None:
        self._geocoder._on_data(self._ctx, chunk)

    def on_finished(self) -> None:
        self._geocoder._on_finished(self._ctx)

    def on_failure(self, error: BaseException) -> None:
        self._geocoder._on_failure(self._ctx, error)


def parse_features(body: bytes) -> List[Placemark]:
    """Decode a response body into placemarks, skipping invalid features.

    Raises GeocoderParseError when the body is not JSON.
    """
    try:
        response = json.loads(bytes(body))
    except (ValueError, RecursionError) as e:
        # 深すぎるネストは RecursionError になる
        raise GeocoderParseError(e) from e
    features = response.get('features') if isinstance(response, dict) else None
    if not isinstance(features, list):
        return []
    results = []
    for feature in features:
        placemark = Placemark.from_feature(feature)
        if placemark is not None:
            results.append(placemark)
    return results


class MapboxGeocoder:
    def __init__(self, access_token: Optional[str] = None, transport: Optional[ITransport] = None,
                 base_url: Optional[str] = None, store: Optional[SettingsStore] = None):
        if store is None and (access_token is None or transport is None or base_url is None):
            store = SettingsStore()
        self._access_token = access_token if access_token is not None else store.get_mapbox_token()
        self.base_url = (base_url if base_url is not None else store.get_base_url()).rstrip('/')
        if transport is None:
            transport = create_transport(store.get_transport(), timeout=store.get_timeout())
        self.transport = transport
        self._lock = threading.RLock()
        self._context: Optional[_RequestContext] = None

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def is_requesting(self) -> bool:
        return self._context is not None

    # -------- URL construction --------
    def _query(self) -> str:
        return urllib.parse.urlencode({'access_token': self._access_token})

    def reverse_geocode_url(self, coordinate: Sequence[float]) -> str:
        latitude, longitude = coordinate
        return f"{self.base_url}/{float(longitude)},{float(latitude)}.json?{self._query()}"

    def geocode_address_url(self, address: str) -> str:
        return f"{self.base_url}/{urllib.parse.quote(address, safe='')}.json?{self._query()}"

    # -------- public API --------
    def reverse_geocode(self, coordinate: Sequence[float], completion_handler: CompletionHandler) -> None:
        """Look up place names for a (latitude, longitude) pair.

        Returns at once; the handler runs later on the transport's thread.
        If the transport cannot even open the connection (bad URL, unsupported
        scheme) the handler is called with a GeocoderConnectionError before
        this method returns.
        """
        self._start(self.reverse_geocode_url(coordinate), completion_handler)

    def geocode_address(self, address: str, completion_handler: CompletionHandler) -> None:
        """Look up coordinates for a free-text address.

        Same delivery rules as reverse_geocode(), including the synchronous
        GeocoderConnectionError when the connection cannot be opened.
        """
        self._start(self.geocode_address_url(address), completion_handler)

    def cancel(self) -> None:
        with self._lock:
            ctx = self._context
            if ctx is None:
                return
            self._context = None
            connection, ctx.connection = ctx.connection, None
            ctx.completion = None
            ctx.buffer = None
            logger.debug('Geocode request cancelled: %s', _strip_query(ctx.url))
            if connection is not None:
                connection.cancel()

    # -------- request lifecycle --------
    def _start(self, url: str, completion_handler: CompletionHandler) -> None:
        with self._lock:
            if self._context is not None:
                logger.debug('Geocode already in progress, dropping %s', _strip_query(url))
                return
            ctx = _RequestContext(url, completion_handler)
            self._context = ctx
            logger.debug('Geocode request started: %s', _strip_query(url))
            try:
                connection = self.transport.open(url, _ContextHandler(self, ctx))
            except Exception as e:
                if self._context is ctx:
                    self._finish(ctx, None, GeocoderConnectionError(e))
                return
            # 同期的に完了した場合は既に idle
            if self._context is ctx:
                ctx.connection = connection

    def _on_response(self, ctx: _RequestContext, status_code: int) -> None:
        with self._lock:
            if self._context is not ctx:
                return
            if status_code != 200:
                connection, ctx.connection = ctx.connection, None
                if connection is not None:
                    connection.cancel()
                self._finish(ctx, None, GeocoderHTTPError(status_code))
                return
            ctx.buffer = bytearray()

    def _on_data(self, ctx: _RequestContext, chunk: bytes) -> None:
        with self._lock:
            if self._context is not ctx:
                return
            ctx.buffer.extend(chunk)

    def _on_finished(self, ctx: _RequestContext) -> None:
        with self._lock:
            if self._context is not ctx:
                return
            try:
                results = parse_features(ctx.buffer)
            except GeocoderParseError as e:
                self._finish(ctx, None, e)
            except Exception as e:
                logger.exception('Unexpected error while reading geocode results')
                self._finish(ctx, None, GeocoderParseError(e))
            else:
                self._finish(ctx, results, None)

    def _on_failure(self, ctx: _RequestContext, error: BaseException) -> None:
        with self._lock:
            if self._context is not ctx:
                return
            self._finish(ctx, None, GeocoderConnectionError(error))

    def _finish(self, ctx: _RequestContext, results: Optional[List[Placemark]],
                error: Optional[GeocoderError]) -> None:
        # 呼び出し側で self._lock を保持していること
        self._context = None
        ctx.connection = None
        ctx.buffer = None
        completion, ctx.completion = ctx.completion, None
        if error is not None:
            logger.info('Geocode request failed (%s): %s', _strip_query(ctx.url), error)
        else:
            logger.debug('Geocode request finished with %d placemark(s)', len(results))
        if completion is None:
            return
        try:
            completion(results, error)
        except Exception:
            logger.exception('Geocode completion handler raised')
