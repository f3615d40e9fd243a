from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from osm_cache.models.tile import Tile, TileFormat


class ITileSource(ABC):
    """Anything that can resolve a tile by coordinates"""

    @abstractmethod
    def get_name(self) -> str:
        """Get source name"""
        pass

    @abstractmethod
    def get_attribution(self) -> str:
        """Display-only attribution text"""
        pass

    @abstractmethod
    def get_tile(self, x: int, y: int, z: int, tile_format: TileFormat,
                 params: Optional[Dict[str, List[str]]] = None) -> Tile:
        """Resolve a tile, from cache or upstream"""
        pass
