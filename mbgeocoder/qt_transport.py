# -*- coding: utf-8 -*-
"""QtNetwork transport for hosts that already run a Qt event loop.

Events are delivered on the thread owning the QNetworkAccessManager
(normally the GUI/main thread). A QCoreApplication must exist before the
first request is opened.
"""
from __future__ import annotations
import logging
from typing import Optional

from PyQt5.QtCore import QUrl
from PyQt5.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest

from .geocoding_base import IResponseHandler, normalize_timeout
from .url_transport import USER_AGENT

logger = logging.getLogger(__name__)


class QtNetworkError(OSError):
    """QNetworkReply failure (DNS, TLS, timeout, reset ...)."""

    def __init__(self, code: int, message: str):
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self):
        return self.message


class QtNetworkConnection:
    def __init__(self, reply: QNetworkReply, handler: IResponseHandler):
        self.reply = reply
        self.handler = handler
        self._status: Optional[int] = None
        self._cancelled = False
        self._closed = False
        reply.readyRead.connect(self._on_ready_read)
        reply.finished.connect(self._on_finished)

    def cancel(self):
        active = not (self._cancelled or self._closed)
        self._cancelled = True
        if active:
            # abort() は finished を同期的に emit する
            self.reply.abort()

    def _ensure_response(self) -> Optional[int]:
        if self._status is None:
            status = self.reply.attribute(QNetworkRequest.HttpStatusCodeAttribute)
            if status is not None:
                self._status = int(status)
                self.handler.on_response(self._status)
        return self._status

    def _on_ready_read(self):
        if self._cancelled or self._closed:
            return
        self._ensure_response()
        if self._cancelled:
            return
        data = bytes(self.reply.readAll())
        if data:
            self.handler.on_data(data)

    def _on_finished(self):
        if self._closed:
            return
        self._closed = True
        try:
            if self._cancelled:
                return
            status = self._ensure_response()
            if self._cancelled:
                return
            err = self.reply.error()
            if err != QNetworkReply.NoError:
                # HTTP エラーは on_response で通知済み
                if status is None or status == 200:
                    self.handler.on_failure(QtNetworkError(int(err), self.reply.errorString()))
                return
            data = bytes(self.reply.readAll())
            if data:
                self.handler.on_data(data)
            if not self._cancelled:
                self.handler.on_finished()
        finally:
            self.reply.deleteLater()


class QtNetworkTransport:
    def __init__(self, timeout: Optional[float] = 20.0, user_agent: str = USER_AGENT):
        self.timeout = normalize_timeout(timeout)
        self.user_agent = user_agent
        self._manager: Optional[QNetworkAccessManager] = None

    @property
    def manager(self) -> QNetworkAccessManager:
        if self._manager is None:
            self._manager = QNetworkAccessManager()
        return self._manager

    def open(self, url: str, handler: IResponseHandler) -> QtNetworkConnection:
        qurl = QUrl(url)
        if not qurl.isValid() or qurl.scheme() not in ('http', 'https'):
            raise ValueError(f'unsupported URL: {url.split("?", 1)[0]}')
        req = QNetworkRequest(qurl)
        req.setRawHeader(b'User-Agent', self.user_agent.encode('ascii'))
        req.setRawHeader(b'Accept', b'application/json')
        req.setAttribute(QNetworkRequest.RedirectPolicyAttribute, QNetworkRequest.NoLessSafeRedirectPolicy)
        if self.timeout:
            req.setTransferTimeout(int(self.timeout * 1000))
        logger.debug('Qt request opened: %s', url.split('?', 1)[0])
        return QtNetworkConnection(self.manager.get(req), handler)
