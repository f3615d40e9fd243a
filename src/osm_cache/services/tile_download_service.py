import logging
import platform
from typing import Dict, List, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from osm_cache.interfaces.tile_server import ITileDownloader
from osm_cache.models.tile import TileFormat
from osm_cache.utils.file_utils import FileUtils
from osm_cache.exceptions.osm_cache_exceptions import TileNotFoundError, UpstreamError

logger = logging.getLogger(__name__)

VERSION = "0.2.0"
USER_AGENT = f"osm-cache/{VERSION} ({platform.system().lower()})"

# statuses in [400, 511) other than 404 are upstream failures
ERROR_STATUS_RANGE = (400, 511)


class TileDownloadService(ITileDownloader):
    """Fetches tiles from upstream providers, one attempt per call"""

    def __init__(self, timeout: Union[float, Tuple[float, float]] = 30.0,
                 pool_size: int = 20, user_agent: str = USER_AGENT):
        self.timeout = timeout
        self.pool_size = pool_size
        self.user_agent = user_agent
        self.session = self.create_session()

    def create_session(self) -> requests.Session:
        """Create pooled session; retries are disabled on purpose"""
        session = requests.Session()

        adapter = HTTPAdapter(
            max_retries=Retry(total=0, read=False),
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def download_tile(self, url_template: str, x: int, y: int, z: int, tile_format: TileFormat,
                      params: Optional[Dict[str, List[str]]] = None,
                      headers: Optional[Dict[str, str]] = None) -> bytes:
        """Download a single tile.

        Raises TileNotFoundError on 404 and UpstreamError on any other error
        status or transport failure.
        """
        tile_url = FileUtils.format_url(url_template, x, y, z, tile_format)

        request_headers = dict(headers or {})
        request_headers['User-Agent'] = self.user_agent

        try:
            response = self.session.get(tile_url, headers=request_headers,
                                        params=params or None, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Cannot download tile %d/%d/%d.%s Cause: %s", z, x, y, tile_format.value, e)
            raise UpstreamError(f"cannot download tile {z}/{x}/{y}. Cause: {e}") from e

        status = response.status_code

        if status == 404:
            raise TileNotFoundError()

        if ERROR_STATUS_RANGE[0] <= status < ERROR_STATUS_RANGE[1]:
            raise UpstreamError(response.text, status_code=status)

        return response.content
