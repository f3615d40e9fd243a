import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from osm_cache.interfaces.tile_source import ITileSource
from osm_cache.interfaces.tile_server import ITileDownloader, ITileStore
from osm_cache.models.tile import Tile, TileFormat
from osm_cache.services.tile_download_service import TileDownloadService
from osm_cache.services.tile_store import DiskTileStore
from osm_cache.utils.file_utils import FileUtils
from osm_cache.exceptions.osm_cache_exceptions import DownloadError, PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class Provider(ITileSource):
    """An upstream tile source plus the cache directory it owns.

    url is a template with {x}, {y}, {z} and {format} placeholders. dir must
    not be shared with any other provider.
    """
    name: str
    url: str
    dir: str
    attribution: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, List[str]] = field(default_factory=dict)
    downloader: Optional[ITileDownloader] = field(default=None, repr=False, compare=False)
    store: Optional[ITileStore] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.downloader is None:
            self.downloader = TileDownloadService()
        if self.store is None:
            self.store = DiskTileStore()

    def get_name(self) -> str:
        return self.name

    def get_attribution(self) -> str:
        return self.attribution

    def get_tile_url(self, x: int, y: int, z: int, tile_format: TileFormat) -> str:
        return FileUtils.format_url(self.url, x, y, z, tile_format)

    def get_tile_path(self, x: int, y: int, z: int, tile_format: TileFormat) -> str:
        return FileUtils.format_tile_path(self.dir, z, x, y, tile_format)

    def is_cached(self, x: int, y: int, z: int, tile_format: TileFormat) -> bool:
        return FileUtils.file_exists(self.get_tile_path(x, y, z, tile_format))

    def get_tile(self, x: int, y: int, z: int, tile_format: TileFormat,
                 params: Optional[Dict[str, List[str]]] = None) -> Tile:
        """Read-through lookup: disk first, then upstream followed by a best-effort save"""
        data = self.store.read_tile(self.dir, x, y, z, tile_format)

        if data is not None:
            logger.debug("Cache hit %s %d/%d/%d.%s", self.name, z, x, y, tile_format.value)
            return Tile(x, y, z, tile_format, data)

        logger.info("Cache miss %s %d/%d/%d.%s, fetching upstream", self.name, z, x, y, tile_format.value)

        try:
            data = self.downloader.download_tile(self.url, x, y, z, tile_format,
                                                 params=self._merge_params(params),
                                                 headers=self.headers)
        except DownloadError as e:
            logger.error("Cannot get tile from provider %s. Cause: %s", self.name, e)
            raise

        try:
            self.store.save_tile(self.dir, x, y, z, tile_format, data)
        except PersistenceError as e:
            logger.warning("Cannot save tile %d/%d/%d in the disk. Cause: %s", x, y, z, e)

        return Tile(x, y, z, tile_format, data)

    def _merge_params(self, params: Optional[Dict[str, List[str]]]) -> Dict[str, List[str]]:
        merged = {name: list(values) for name, values in self.params.items()}
        for name, values in (params or {}).items():
            merged.setdefault(name, []).extend(values)
        return merged
