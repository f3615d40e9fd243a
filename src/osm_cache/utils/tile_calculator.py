import math
from typing import List, Tuple, Optional, Dict, Any

from shapely.geometry import box, shape
from shapely.prepared import prep

# Web Mercator stops here; beyond it tan() runs away
MAX_LATITUDE = 85.0511287798


class TileCalculator:
    """Slippy-map tile arithmetic used by bulk seeding"""

    @staticmethod
    def deg2num(lat_deg: float, lon_deg: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon to the (x, y) tile containing it, clamped to the grid"""
        lat_deg = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat_deg))
        lat_rad = math.radians(lat_deg)
        n = 2 ** zoom
        xtile = int((lon_deg + 180.0) / 360.0 * n)
        ytile = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
        return min(max(xtile, 0), n - 1), min(max(ytile, 0), n - 1)

    @staticmethod
    def tile_bounds(zoom: int, x: int, y: int) -> List[float]:
        """Return [min_lon, min_lat, max_lon, max_lat] covered by a tile"""
        n = 2 ** zoom

        def y_to_lat(y_val: int) -> float:
            return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y_val / n))))

        return [x / n * 360.0 - 180.0, y_to_lat(y + 1), (x + 1) / n * 360.0 - 180.0, y_to_lat(y)]

    @staticmethod
    def get_tiles_for_bbox(bbox: List[float], min_zoom: int, max_zoom: int) -> List[Tuple[int, int, int]]:
        """All (z, x, y) covering bbox [min_lon, min_lat, max_lon, max_lat] for each zoom"""
        min_lon, min_lat, max_lon, max_lat = bbox
        tiles = []

        for zoom in range(min_zoom, max_zoom + 1):
            min_x, max_y = TileCalculator.deg2num(min_lat, min_lon, zoom)
            max_x, min_y = TileCalculator.deg2num(max_lat, max_lon, zoom)

            for x in range(min_x, max_x + 1):
                for y in range(min_y, max_y + 1):
                    tiles.append((zoom, x, y))

        return tiles

    @staticmethod
    def get_tiles_for_polygon(polygon_geojson: Dict[str, Any], min_zoom: int, max_zoom: int,
                              bbox_hint: Optional[List[float]] = None) -> List[Tuple[int, int, int]]:
        """Tiles intersecting a GeoJSON geometry; candidates come from its bbox"""
        poly = shape(polygon_geojson)
        poly = poly.buffer(0) if not poly.is_valid else poly
        prepared = prep(poly)

        if bbox_hint is None:
            bbox_hint = list(poly.bounds)

        filtered: List[Tuple[int, int, int]] = []
        for z, x, y in TileCalculator.get_tiles_for_bbox(bbox_hint, min_zoom, max_zoom):
            if prepared.intersects(box(*TileCalculator.tile_bounds(z, x, y))):
                filtered.append((z, x, y))

        return filtered

    @staticmethod
    def calculate_tile_count(bbox: List[float], min_zoom: int, max_zoom: int) -> int:
        """Number of tiles get_tiles_for_bbox would return, without building the list"""
        min_lon, min_lat, max_lon, max_lat = bbox
        count = 0

        for zoom in range(min_zoom, max_zoom + 1):
            min_x, max_y = TileCalculator.deg2num(min_lat, min_lon, zoom)
            max_x, min_y = TileCalculator.deg2num(max_lat, max_lon, zoom)
            count += max(0, max_x - min_x + 1) * max(0, max_y - min_y + 1)

        return count
