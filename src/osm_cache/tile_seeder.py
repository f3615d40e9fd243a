#!/usr/bin/env python3
"""
Tile cache seeder

Pre-populates a provider's disk cache for a bounding box or a GeoJSON polygon
so the proxy can later serve the area without upstream round trips.
"""

import argparse
import json
import logging
import sys

from osm_cache.infrastructure.logging import LoggingManager
from osm_cache.models.tile import TileFormat
from osm_cache.services.config_service import ConfigService
from osm_cache.services.provider_registry import ProviderRegistry
from osm_cache.services.tile_seed_service import TileSeedService
from osm_cache.exceptions.osm_cache_exceptions import TileCacheException, InvalidInputError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Download tiles of an area into the proxy cache.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Examples:\n\n'
            '1) Seed a bounding box (lon/lat order) from the default provider:\n'
            '   osm-cache-seed --bbox 28.5 40.8 29.5 41.2 --min-zoom 10 --max-zoom 12\n\n'
            '2) Seed the tiles intersecting a GeoJSON polygon from a named provider:\n'
            '   osm-cache-seed --polygon area.geojson --min-zoom 8 --max-zoom 11 --provider osm\n'
        )
    )
    area = parser.add_mutually_exclusive_group(required=True)
    area.add_argument('--bbox', nargs=4, type=float, metavar=('min_lon', 'min_lat', 'max_lon', 'max_lat'),
                      help='Bounding box to seed (lon/lat)')
    area.add_argument('--polygon', help='GeoJSON file holding a Polygon/MultiPolygon geometry or Feature')
    parser.add_argument('--min-zoom', type=int, default=10, help='Minimum zoom level (default: 10)')
    parser.add_argument('--max-zoom', type=int, default=12, help='Maximum zoom level (default: 12)')
    parser.add_argument('--provider', help='Provider name (default: configured default provider)')
    parser.add_argument('--format', default='png', help='Tile format: png or jpg (default: png)')
    parser.add_argument('--workers', type=int, default=8, help='Concurrent downloads (default: 8)')
    parser.add_argument('--config', help='Path to the JSON configuration')
    parser.add_argument('--log-level', help='Logging level (DEBUG, INFO, WARNING, ...)')
    return parser


def load_geometry(path: str) -> dict:
    """Read a geometry from a GeoJSON Feature, FeatureCollection or bare geometry"""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if data.get('type') == 'FeatureCollection':
        features = data.get('features') or []
        if not features:
            raise InvalidInputError(f"No features in {path}")
        data = features[0]
    if data.get('type') == 'Feature':
        data = data.get('geometry') or {}
    if data.get('type') not in ('Polygon', 'MultiPolygon'):
        raise InvalidInputError(f"{path} does not contain a polygon geometry")
    return data


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = ConfigService().load_config(args.config)
        LoggingManager.setup_logging(config.logging, args.log_level)
        logger = logging.getLogger(__name__)

        registry = ProviderRegistry.from_config(config)
        provider = registry.resolve(args.provider)
        tile_format = TileFormat.parse(args.format)
        seeder = TileSeedService(max_workers=args.workers, limit_tiles=False)

        if args.polygon:
            result = seeder.seed_polygon(provider, load_geometry(args.polygon),
                                         args.min_zoom, args.max_zoom, tile_format)
        else:
            result = seeder.seed_bbox(provider, args.bbox, args.min_zoom, args.max_zoom, tile_format)

    except (TileCacheException, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Seeded %d tiles (%d already cached, %d failed) out of %d",
                len(result['downloaded']), result['skipped'], result['failed'], result['total'])
    for error in result['errors']:
        logger.warning("Failed: %s", error)

    if result['failed']:
        sys.exit(1)


if __name__ == "__main__":
    main()
