# -*- coding: utf-8 -*-
"""MBGeocoder 用の設定を扱うラッパークラス。"""
from __future__ import annotations
import os
from typing import Optional
from PyQt5.QtCore import QSettings

from .geocoding_base import normalize_timeout

ORG = 'MBGeocoder'
APP = 'MBGeocoder'

class SettingsStore:
    def __init__(self, qs: Optional[QSettings] = None):
        self.qs = qs if qs is not None else QSettings(ORG, APP)

    # 設定キー
    KEY_MAPBOX_TOKEN = 'geocode/mapbox_token'
    KEY_BASE_URL = 'geocode/base_url'
    KEY_TRANSPORT = 'geocode/transport'
    KEY_TIMEOUT = 'geocode/timeout'

    ENV_MAPBOX_TOKEN = 'MAPBOX_ACCESS_TOKEN'

    DEFAULT_BASE_URL = 'https://api.mapbox.com/geocoding/v5/mapbox.places'
    DEFAULT_TRANSPORT = 'urllib'
    DEFAULT_TIMEOUT = 20.0

    def _set_or_remove(self, key: str, val):
        # 空値ならキーを削除しデフォルトにフォールバックさせる
        if val is None or val == '':
            self.qs.remove(key)
        else:
            self.qs.setValue(key, val)

    # Mapbox
    def get_mapbox_token(self) -> str:
        token = self.qs.value(self.KEY_MAPBOX_TOKEN, '', type=str)
        return token or os.environ.get(self.ENV_MAPBOX_TOKEN, '')

    def set_mapbox_token(self, val: str):
        self._set_or_remove(self.KEY_MAPBOX_TOKEN, val)

    def get_base_url(self) -> str:
        return self.qs.value(self.KEY_BASE_URL, self.DEFAULT_BASE_URL, type=str)

    def set_base_url(self, val: str):
        self._set_or_remove(self.KEY_BASE_URL, val)

    def get_transport(self) -> str:
        return self.qs.value(self.KEY_TRANSPORT, self.DEFAULT_TRANSPORT, type=str)

    def set_transport(self, val: str):
        self._set_or_remove(self.KEY_TRANSPORT, val)

    def get_timeout(self) -> Optional[float]:
        # 0 以下はタイムアウト無し (None)
        return normalize_timeout(self.qs.value(self.KEY_TIMEOUT, self.DEFAULT_TIMEOUT))

    def set_timeout(self, val: Optional[float]):
        self._set_or_remove(self.KEY_TIMEOUT, val)

    def export_all(self) -> dict:
        return {
            'mapbox_token': self.get_mapbox_token(),
            'base_url': self.get_base_url(),
            'transport': self.get_transport(),
            'timeout': self.get_timeout(),
        }
