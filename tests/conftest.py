import json
import threading
import time
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
from PyQt5.QtCore import QSettings

from mbgeocoder.settings_store import SettingsStore

SF_FEATURE = {
    "geometry": {"type": "Point", "coordinates": [-122.42, 37.77]},
    "place_name": "San Francisco, California, United States",
}


class Recorder:
    """Completion handler that remembers every call."""

    def __init__(self):
        self.calls = []
        self.event = threading.Event()

    def __call__(self, results, error):
        self.calls.append((results, error))
        self.event.set()

    def wait(self, timeout=5.0):
        return self.event.wait(timeout)


class FakeConnection:
    def __init__(self, url, handler):
        self.url = url
        self.handler = handler
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def respond(self, status=200, body=b"", chunk_size=None):
        """Replay a full response through the handler."""
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.handler.on_response(status)
        if self.cancelled:
            return
        step = chunk_size or max(len(body), 1)
        for i in range(0, len(body), step):
            self.handler.on_data(body[i:i + step])
        self.handler.on_finished()


class FakeTransport:
    def __init__(self):
        self.connections = []

    def open(self, url, handler):
        conn = FakeConnection(url, handler)
        self.connections.append(conn)
        return conn

    @property
    def last(self):
        return self.connections[-1]


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def fake_transport():
    return FakeTransport()


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv(SettingsStore.ENV_MAPBOX_TOKEN, raising=False)
    qs = QSettings(str(tmp_path / "mbgeocoder.ini"), QSettings.IniFormat)
    return SettingsStore(qs)


class _GeocodeHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        path, _, query = self.path.partition("?")
        self.server.requests.append((path, urllib.parse.parse_qs(query)))
        # /geocode/<query>.json -> <query>
        key = urllib.parse.unquote(path.rsplit("/", 1)[-1])
        if key.endswith(".json"):
            key = key[:-len(".json")]
        status, body, delay = self.server.routes.get(key, (404, b'{"message":"Not Found"}', 0))
        if delay:
            time.sleep(delay)
        try:
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch):
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")


@pytest.fixture()
def geocode_server():
    """Local HTTP server answering /geocode/<key>.json from a routes dict."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _GeocodeHandler)
    server.routes = {}
    server.requests = []
    server.base_url = f"http://127.0.0.1:{server.server_address[1]}/geocode"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
