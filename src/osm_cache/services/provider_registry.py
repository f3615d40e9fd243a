import logging
import os
from typing import Dict, Any, List, Optional

from osm_cache.interfaces.tile_server import ITileDownloader, ITileStore
from osm_cache.models.config import ServerConfig, ProviderDefinition
from osm_cache.models.provider import Provider
from osm_cache.services.tile_download_service import TileDownloadService
from osm_cache.services.tile_store import DiskTileStore
from osm_cache.exceptions.osm_cache_exceptions import ConfigurationError, ProviderNotFoundError

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Named providers in declaration order, with a fixed default"""

    def __init__(self, providers: List[Provider], default_name: Optional[str] = None):
        if not providers:
            raise ConfigurationError("it is necessary to include at least one provider")

        self._providers: Dict[str, Provider] = {}
        cache_dirs: Dict[str, str] = {}

        for provider in providers:
            if provider.name in self._providers:
                raise ConfigurationError(f"Duplicate provider name: {provider.name}")

            cache_dir = os.path.realpath(provider.dir)
            if cache_dir in cache_dirs:
                raise ConfigurationError(
                    f"Providers {cache_dirs[cache_dir]} and {provider.name} share cache dir {provider.dir}")

            cache_dirs[cache_dir] = provider.name
            self._providers[provider.name] = provider

        self.default_name = default_name or providers[0].name
        if self.default_name not in self._providers:
            raise ConfigurationError(f"Default provider {self.default_name} is not configured")

    @classmethod
    def from_config(cls, config: ServerConfig,
                    downloader: Optional[ITileDownloader] = None,
                    store: Optional[ITileStore] = None) -> 'ProviderRegistry':
        """Build every configured provider around one shared downloader and store"""
        downloader = downloader or TileDownloadService(timeout=config.timeout)
        store = store or DiskTileStore()

        providers = [
            cls._create_provider(definition, config.tiles_path, downloader, store)
            for definition in config.providers
        ]

        registry = cls(providers, config.default_provider)
        logger.info("Registered providers: %s (default: %s)",
                    ", ".join(registry.names()), registry.default_name)
        return registry

    @staticmethod
    def _create_provider(definition: ProviderDefinition, tiles_path: str,
                         downloader: ITileDownloader, store: ITileStore) -> Provider:
        return Provider(
            name=definition.name,
            url=definition.url,
            dir=definition.dir or os.path.join(tiles_path, definition.name),
            attribution=definition.attribution,
            headers=dict(definition.headers),
            params={name: list(values) for name, values in definition.params.items()},
            downloader=downloader,
            store=store,
        )

    @property
    def default(self) -> Provider:
        return self._providers[self.default_name]

    def get(self, name: str) -> Optional[Provider]:
        return self._providers.get(name)

    def resolve(self, name: Optional[str] = None) -> Provider:
        """Named provider, or the default one when no name is given"""
        if not name:
            return self.default

        provider = self.get(name)
        if provider is None:
            raise ProviderNotFoundError(f"Cannot find provider with name {name}")
        return provider

    def names(self) -> List[str]:
        return list(self._providers)

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {'name': provider.name, 'attribution': provider.attribution}
            for provider in self._providers.values()
        ]

    def __len__(self) -> int:
        return len(self._providers)
