#!/usr/bin/env python3
"""
HTTP tile cache proxy

Serves {z}/{x}/{y}.{png|jpg} tiles from the local cache, fetching them from the
configured upstream provider on first request.

Usage:
    osm-cache --config config.json
"""

import argparse
import sys

from osm_cache.infrastructure.logging import LoggingManager
from osm_cache.services.config_service import ConfigService
from osm_cache.services.http_server_service import HTTPServerService
from osm_cache.services.provider_registry import ProviderRegistry
from osm_cache.exceptions.osm_cache_exceptions import TileCacheException


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Map tile reverse proxy with a persistent disk cache.',
        epilog=(
            'Environment variables OSM_PORT, OSM_BASE_PATH, OSM_TILES_PATH and '
            'OSM_CACHE_ALLOWED_ORIGINS override the config file.'
        )
    )
    parser.add_argument('--config', help='Path to the JSON configuration (default: ./config.json if present)')
    parser.add_argument('--port', type=int, help='Listening port, overrides config and OSM_PORT')
    parser.add_argument('--log-level', help='Logging level (DEBUG, INFO, WARNING, ...)')
    return parser


def main(argv=None):
    """Load configuration, build the provider registry and serve"""
    args = build_parser().parse_args(argv)

    try:
        config_service = ConfigService()
        config = config_service.load_config(args.config, port=args.port)

        LoggingManager.setup_logging(config.logging, args.log_level)

        registry = ProviderRegistry.from_config(config)
        server_service = HTTPServerService(registry, config)
        server_service.start()

    except (TileCacheException, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
