import http.server
import json
import logging
import urllib.parse
from typing import Dict, Any, List, Optional

from osm_cache.models.config import ServerConfig
from osm_cache.models.tile import TileFormat
from osm_cache.services.provider_registry import ProviderRegistry
from osm_cache.services.tile_seed_service import TileSeedService
from osm_cache.utils.tile_request import parse_coordinates, parse_bounding_box, parse_zoom
from osm_cache.exceptions.osm_cache_exceptions import (
    InvalidInputError, ProviderNotFoundError, TileNotFoundError, UpstreamError,
    ServerError,
)

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = 'X-Requested-With'
ALLOWED_METHODS = 'GET, HEAD, POST, PUT, OPTIONS'
# zoom used by /update-tiles when no range is given
DEFAULT_SEED_ZOOM = 19


class HTTPServerService:
    """HTTP front end: routes tile requests to providers and writes the responses"""

    def __init__(self, registry: ProviderRegistry, config: ServerConfig,
                 seed_service: Optional[TileSeedService] = None, host: str = ''):
        self.registry = registry
        self.port = config.port
        self.host = host
        self.base_path = self._normalize_base_path(config.base_path)
        self.allowed_origins = list(config.allowed_origins)
        self.seed_service = seed_service or TileSeedService()
        self.httpd: Optional[http.server.ThreadingHTTPServer] = None

    @staticmethod
    def _normalize_base_path(base_path: str) -> str:
        return '/' + base_path.strip('/') if base_path.strip('/') else ''

    def create_request_handler(self):
        """Create the request handler class bound to this service"""
        server_service = self

        class TileRequestHandler(http.server.BaseHTTPRequestHandler):
            server_version = 'osm-cache'
            timeout = 60

            def log_message(self, format, *args):
                logger.debug("%s - %s", self.address_string(), format % args)

            def end_headers(self):
                origin = self.headers.get('Origin')
                allowed = server_service.allowed_origins
                if origin and ('*' in allowed or origin in allowed):
                    self.send_header('Access-Control-Allow-Origin', '*' if '*' in allowed else origin)
                    self.send_header('Access-Control-Allow-Methods', ALLOWED_METHODS)
                    self.send_header('Access-Control-Allow-Headers', ALLOWED_HEADERS)
                    self.send_header('Vary', 'Origin')
                super().end_headers()

            def do_OPTIONS(self):
                self.send_response(200)
                self.send_header('Content-Length', '0')
                self.end_headers()

            def do_HEAD(self):
                self._dispatch_get(head_only=True)

            def do_GET(self):
                self._dispatch_get(head_only=False)

            def do_POST(self):
                segments = self._route_segments()
                if segments == ['update-tiles']:
                    self._handle_update_tiles()
                else:
                    self._send_text(404, 'Not found')

            def _dispatch_get(self, head_only: bool):
                segments = self._route_segments()

                if segments == ['providers']:
                    self._send_json_response(server_service.registry.names(), head_only)
                elif segments is not None and len(segments) == 3:
                    self._handle_tile(None, segments, head_only)
                elif segments is not None and len(segments) == 4:
                    self._handle_tile(segments[0], segments[1:], head_only)
                else:
                    self._send_text(404, 'Not found', head_only)

            def _route_segments(self) -> Optional[List[str]]:
                """Path segments below the base path, or None when outside it"""
                path = urllib.parse.urlsplit(self.path).path
                base = server_service.base_path

                if base:
                    if path != base and not path.startswith(base + '/'):
                        return None
                    path = path[len(base):]

                return [urllib.parse.unquote(s) for s in path.split('/') if s]

            def _query_params(self) -> Dict[str, List[str]]:
                return urllib.parse.parse_qs(urllib.parse.urlsplit(self.path).query)

            def _handle_tile(self, provider_name: Optional[str], coords: List[str], head_only: bool):
                z_param, x_param, y_file = coords
                if '.' not in y_file:
                    self._send_text(404, 'Not found', head_only)
                    return
                y_param, format_param = y_file.rsplit('.', 1)

                try:
                    x, y, z = parse_coordinates(x_param, y_param, z_param)
                    tile_format = TileFormat.parse(format_param)
                    provider = server_service.registry.resolve(provider_name)
                    tile = provider.get_tile(x, y, z, tile_format)
                except InvalidInputError as e:
                    self._send_text(400, str(e), head_only)
                    return
                except (ProviderNotFoundError, TileNotFoundError) as e:
                    self._send_text(404, str(e), head_only)
                    return
                except UpstreamError as e:
                    self._send_text(502, e.detail, head_only)
                    return
                except Exception as e:
                    logger.exception("Unexpected error serving %s", self.path)
                    self._send_text(500, str(e), head_only)
                    return

                self.send_response(200)
                self.send_header('Content-Type', tile.format.content_type)
                self.send_header('Content-Disposition', f'inline; filename="{tile.get_filename()}"')
                self.send_header('Content-Length', str(len(tile.data)))
                self.end_headers()
                if not head_only:
                    self.wfile.write(tile.data)

            def _handle_update_tiles(self):
                params = self._query_params()

                try:
                    bbox = parse_bounding_box(params)
                    min_zoom = parse_zoom(params, 'minZoom', DEFAULT_SEED_ZOOM)
                    max_zoom = parse_zoom(params, 'maxZoom', min_zoom)
                    tile_format = TileFormat.parse(params.get('format', ['png'])[0])
                    provider = server_service.registry.resolve(params.get('provider', [''])[0])
                    result = server_service.seed_service.seed_bbox(provider, bbox, min_zoom, max_zoom, tile_format)
                except InvalidInputError as e:
                    self._send_text(400, str(e))
                    return
                except ProviderNotFoundError as e:
                    self._send_text(404, str(e))
                    return
                except Exception as e:
                    logger.exception("Unexpected error seeding %s", self.path)
                    self._send_text(500, str(e))
                    return

                self._send_json_response(result)

            def _send_text(self, status: int, message: str, head_only: bool = False):
                body = (message + '\n').encode('utf-8')
                self.send_response(status)
                self.send_header('Content-Type', 'text/plain; charset=utf-8')
                self.send_header('X-Content-Type-Options', 'nosniff')
                self.send_header('Content-Length', str(len(body)))
                self.end_headers()
                if not head_only:
                    self.wfile.write(body)

            def _send_json_response(self, data: Any, head_only: bool = False):
                """Send JSON response with proper headers"""
                response_bytes = json.dumps(data).encode('utf-8')

                self.send_response(200)
                self.send_header('Content-Type', 'application/json')
                self.send_header('Content-Length', str(len(response_bytes)))
                self.send_header('Cache-Control', 'no-cache')
                self.end_headers()
                if not head_only:
                    self.wfile.write(response_bytes)

        return TileRequestHandler

    def create_server(self) -> http.server.ThreadingHTTPServer:
        """Bind the listening socket without serving yet"""
        if len(self.registry) == 0:
            raise ServerError("it is necessary to include at least one provider")

        try:
            self.httpd = http.server.ThreadingHTTPServer((self.host, self.port), self.create_request_handler())
        except OSError as e:
            raise ServerError(f"Cannot listen on port {self.port}: {e}") from e

        self.httpd.daemon_threads = True
        return self.httpd

    @property
    def server_port(self) -> int:
        return self.httpd.server_address[1] if self.httpd else self.port

    def start(self):
        """Serve until interrupted"""
        if self.httpd is None:
            self.create_server()

        logger.info("Listening at :%d%s", self.server_port, self.base_path or '/')

        try:
            self.httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        finally:
            self.httpd.server_close()

    def stop(self):
        """Stop the HTTP server"""
        if self.httpd is not None:
            self.httpd.shutdown()
            self.httpd.server_close()
