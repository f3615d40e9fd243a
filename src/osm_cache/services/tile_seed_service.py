import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Any, List, Tuple

from osm_cache.models.provider import Provider
from osm_cache.models.tile import TileFormat
from osm_cache.utils.tile_calculator import TileCalculator
from osm_cache.utils.tile_request import MAX_ZOOM
from osm_cache.exceptions.osm_cache_exceptions import InvalidInputError, SeedLimitError, TileCacheException

logger = logging.getLogger(__name__)

# a limited request may not touch MAX_TILES tiles or more, whatever the zoom
MAX_TILES = 250


class TileSeedService:
    """Pre-populates a provider's cache for an area"""

    def __init__(self, max_workers: int = 8, limit_tiles: bool = True):
        self.max_workers = max_workers
        self.limit_tiles = limit_tiles

    def seed_bbox(self, provider: Provider, bbox: List[float], min_zoom: int, max_zoom: int,
                  tile_format: TileFormat = TileFormat.PNG) -> Dict[str, Any]:
        """Cache every tile covering bbox [min_lon, min_lat, max_lon, max_lat]"""
        self._check_zoom_range(min_zoom, max_zoom)
        self._check_limit(TileCalculator.calculate_tile_count(bbox, min_zoom, max_zoom))
        tiles = TileCalculator.get_tiles_for_bbox(bbox, min_zoom, max_zoom)
        return self.seed_tiles(provider, tiles, max_zoom, tile_format)

    def seed_polygon(self, provider: Provider, polygon_geojson: Dict[str, Any], min_zoom: int,
                     max_zoom: int, tile_format: TileFormat = TileFormat.PNG) -> Dict[str, Any]:
        """Cache every tile intersecting a GeoJSON geometry"""
        self._check_zoom_range(min_zoom, max_zoom)
        tiles = TileCalculator.get_tiles_for_polygon(polygon_geojson, min_zoom, max_zoom)
        return self.seed_tiles(provider, tiles, max_zoom, tile_format)

    def seed_tiles(self, provider: Provider, tiles: List[Tuple[int, int, int]], max_zoom: int,
                   tile_format: TileFormat = TileFormat.PNG) -> Dict[str, Any]:
        self._check_limit(len(tiles))

        results = {
            'total': len(tiles),
            'downloaded': [],
            'skipped': 0,
            'failed': 0,
            'errors': []
        }

        pending = []
        for zoom, x, y in tiles:
            if provider.is_cached(x, y, zoom, tile_format):
                results['skipped'] += 1
            else:
                pending.append((zoom, x, y))

        logger.info("Seeding %s: %d tiles, %d already cached",
                    provider.name, len(tiles), results['skipped'])

        def seed_single_tile(tile_info: Tuple[int, int, int]) -> str:
            zoom, x, y = tile_info
            provider.get_tile(x, y, zoom, tile_format)
            return provider.get_tile_path(x, y, zoom, tile_format)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(seed_single_tile, tile): tile for tile in pending}

            for future in as_completed(futures):
                zoom, x, y = futures[future]
                try:
                    path = future.result()
                except TileCacheException as e:
                    results['failed'] += 1
                    results['errors'].append(f"{zoom}/{x}/{y}: {e}")
                    continue

                if provider.is_cached(x, y, zoom, tile_format):
                    results['downloaded'].append(path)
                else:
                    results['failed'] += 1
                    results['errors'].append(f"{zoom}/{x}/{y}: not persisted")

        results['downloaded'].sort()
        return results

    def _check_limit(self, tile_count: int) -> None:
        if self.limit_tiles and tile_count >= MAX_TILES:
            raise SeedLimitError(f"Cannot download more than {MAX_TILES} tiles at once, requested {tile_count}")

    @staticmethod
    def _check_zoom_range(min_zoom: int, max_zoom: int) -> None:
        if min_zoom < 0 or max_zoom < min_zoom or max_zoom > MAX_ZOOM:
            raise InvalidInputError(f"Invalid zoom range {min_zoom}..{max_zoom}")
