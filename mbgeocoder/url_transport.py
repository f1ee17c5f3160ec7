# -*- coding: utf-8 -*-
"""urllib based transport.

Each connection runs on its own background thread. The body is read in
chunks so the handler sees status -> data* -> finished|failure in order.
"""
from __future__ import annotations
import http.client
import logging
import threading
import urllib.error
import urllib.request
from typing import Optional

from .geocoding_base import IResponseHandler, normalize_timeout

logger = logging.getLogger(__name__)

USER_AGENT = 'MBGeocoder/0.1'


class UrllibConnection:
    def __init__(self, request: urllib.request.Request, handler: IResponseHandler,
                 timeout: Optional[float], chunk_size: int):
        self.request = request
        self.handler = handler
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name='mbgeocoder-request', daemon=True)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self):
        self._thread.start()

    def cancel(self):
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None):
        self._thread.join(timeout)

    # -------- background thread --------
    def _run(self):
        try:
            resp = urllib.request.urlopen(self.request, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            # urllib は 2xx 以外を例外で返すのでステータスとして通知する
            try:
                if not self.cancelled:
                    self.handler.on_response(e.code)
            finally:
                e.close()
            return
        except (OSError, http.client.HTTPException) as e:
            if not self.cancelled:
                self.handler.on_failure(e)
            return
        with resp:
            if self.cancelled:
                return
            self.handler.on_response(resp.status)
            try:
                while not self.cancelled:
                    chunk = resp.read(self.chunk_size)
                    if not chunk:
                        break
                    self.handler.on_data(chunk)
            except (OSError, http.client.HTTPException) as e:
                if not self.cancelled:
                    self.handler.on_failure(e)
                return
        if not self.cancelled:
            self.handler.on_finished()
        else:
            logger.debug('Connection cancelled: %s', self.request.full_url.split('?', 1)[0])


class UrllibTransport:
    def __init__(self, timeout: Optional[float] = 20.0, chunk_size: int = 16 * 1024,
                 user_agent: str = USER_AGENT):
        self.timeout = normalize_timeout(timeout)
        self.chunk_size = chunk_size
        self.user_agent = user_agent

    def open(self, url: str, handler: IResponseHandler) -> UrllibConnection:
        req = urllib.request.Request(url, headers={
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        })
        conn = UrllibConnection(req, handler, self.timeout, self.chunk_size)
        conn.start()
        return conn
