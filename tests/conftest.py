import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional, Tuple

import pytest

from osm_cache.exceptions.osm_cache_exceptions import TileNotFoundError
from osm_cache.interfaces.tile_server import ITileDownloader
from osm_cache.models.tile import TileFormat
from osm_cache.services.tile_download_service import TileDownloadService

PAYLOAD = bytes([1, 2, 3])


class DummyResponse:
    def __init__(self, status_code: int, content: bytes):
        self.status_code = status_code
        self.content = content

    @property
    def text(self) -> str:
        return self.content.decode('utf-8')


class DummySession:
    """requests.Session stand-in keyed by URL"""

    def __init__(self, url_to_response: Dict[str, Tuple[int, bytes]]):
        self.url_to_response = url_to_response
        self.calls: List[dict] = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({'url': url, 'headers': headers, 'params': params, 'timeout': timeout})
        status, body = self.url_to_response.get(url, (404, b"Tile not found"))
        return DummyResponse(status, body)


class FakeDownloader(ITileDownloader):
    """In-memory upstream; unknown tiles raise TileNotFoundError unless `error` is set"""

    def __init__(self, tiles: Optional[Dict[Tuple[int, int, int, str], bytes]] = None, error=None):
        self.tiles = tiles or {}
        self.error = error
        self.calls: List[dict] = []
        self.lock = threading.Lock()

    def download_tile(self, url_template, x, y, z, tile_format: TileFormat, params=None, headers=None):
        with self.lock:
            self.calls.append({'url_template': url_template, 'x': x, 'y': y, 'z': z,
                               'format': tile_format, 'params': params, 'headers': headers})
        if self.error is not None:
            raise self.error
        key = (z, x, y, tile_format.value)
        if key not in self.tiles:
            raise TileNotFoundError()
        return self.tiles[key]


class NoNetworkDownloader(ITileDownloader):
    def download_tile(self, *args, **kwargs):
        raise AssertionError("upstream must not be contacted")


class StubUpstream:
    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.requests: List[dict] = []
        self.server = ThreadingHTTPServer(('127.0.0.1', 0), self._handler())
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self.server.server_address[:2]
        return f"http://{host}:{port}"

    def _handler(self):
        stub = self

        class StubTileHandler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):
                pass

            def do_GET(self):
                parts = urllib.parse.urlsplit(self.path)
                stub.requests.append({
                    'path': parts.path,
                    'query': urllib.parse.parse_qs(parts.query),
                    'headers': dict(self.headers),
                })
                status, body = stub.routes.get(parts.path, (404, b"Tile not found"))
                self.send_response(status)
                self.send_header('Content-Length', str(len(body)))
                self.end_headers()
                self.wfile.write(body)

        return StubTileHandler


@pytest.fixture
def stub_upstream():
    stub = StubUpstream()
    stub.thread.start()
    yield stub
    stub.server.shutdown()
    stub.server.server_close()


@pytest.fixture
def downloader():
    service = TileDownloadService(timeout=5)
    # never route the local stub through an environment proxy
    service.session.trust_env = False
    return service


@pytest.fixture
def cache_dir(tmp_path):
    return str(tmp_path / "cache")
