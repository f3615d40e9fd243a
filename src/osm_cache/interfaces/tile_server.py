from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from osm_cache.models.config import ServerConfig
from osm_cache.models.tile import TileFormat


class ITileDownloader(ABC):
    """Interface for upstream tile fetchers"""

    @abstractmethod
    def download_tile(self, url_template: str, x: int, y: int, z: int, tile_format: TileFormat,
                      params: Optional[Dict[str, List[str]]] = None,
                      headers: Optional[Dict[str, str]] = None) -> bytes:
        """Fetch the raw tile payload"""
        pass


class ITileStore(ABC):
    """Interface for persistent tile storage"""

    @abstractmethod
    def read_tile(self, directory: str, x: int, y: int, z: int, tile_format: TileFormat) -> Optional[bytes]:
        """Return cached bytes, or None on a miss"""
        pass

    @abstractmethod
    def save_tile(self, directory: str, x: int, y: int, z: int, tile_format: TileFormat, data: bytes) -> str:
        """Persist bytes and return the file path"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""

    @abstractmethod
    def load_config(self, config_path: Optional[str] = None, port: Optional[int] = None) -> ServerConfig:
        """Load configuration from file and environment"""
        pass

    @abstractmethod
    def validate_config(self, config: ServerConfig) -> bool:
        """Validate configuration"""
        pass
