"""Parsing of tile coordinates and bounding boxes coming from HTTP requests."""
from typing import Dict, List, Optional, Tuple

from osm_cache.exceptions.osm_cache_exceptions import InvalidInputError

# deepest zoom any slippy-map provider serves, with headroom
MAX_ZOOM = 30


def parse_coordinates(x: Optional[str], y: Optional[str], z: Optional[str]) -> Tuple[int, int, int]:
    """Turn raw x/y/z path segments into integers"""
    if not x or not y or not z:
        raise InvalidInputError("invalid coordinates param (must be x,y,z)")

    try:
        return int(x), int(y), int(z)
    except ValueError:
        raise InvalidInputError("coordinates parse error")


def parse_float(params: Dict[str, List[str]], name: str) -> float:
    values = params.get(name)
    if not values:
        raise InvalidInputError("Invalid bounding box values")
    try:
        return float(values[0])
    except ValueError:
        raise InvalidInputError("Invalid bounding box values")


def parse_bounding_box(params: Dict[str, List[str]]) -> List[float]:
    """Read topLat/topLon/bottomLat/bottomLon into [min_lon, min_lat, max_lon, max_lat]"""
    top_lat = parse_float(params, 'topLat')
    top_lon = parse_float(params, 'topLon')
    bottom_lat = parse_float(params, 'bottomLat')
    bottom_lon = parse_float(params, 'bottomLon')

    return [
        min(top_lon, bottom_lon),
        min(top_lat, bottom_lat),
        max(top_lon, bottom_lon),
        max(top_lat, bottom_lat),
    ]


def parse_zoom(params: Dict[str, List[str]], name: str, default: int) -> int:
    values = params.get(name)
    if not values:
        return default
    try:
        zoom = int(values[0])
    except ValueError:
        raise InvalidInputError(f"Invalid zoom value for {name}")
    if zoom < 0 or zoom > MAX_ZOOM:
        raise InvalidInputError(f"Invalid zoom value for {name}, must be between 0 and {MAX_ZOOM}")
    return zoom
