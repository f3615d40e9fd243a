import json
import logging
import os
from typing import Dict, Any, List, Optional, Mapping

from osm_cache.interfaces.tile_server import IConfigLoader
from osm_cache.models.config import (
    ServerConfig, ProviderDefinition,
    DEFAULT_PORT, DEFAULT_BASE_PATH, DEFAULT_TILES_PATH, DEFAULT_TIMEOUT,
)
from osm_cache.exceptions.osm_cache_exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config.json'

DEFAULT_PROVIDERS = [
    {
        'name': 'osm',
        'url': 'https://tile.openstreetmap.org/{z}/{x}/{y}.png',
        'attribution': '© OpenStreetMap contributors',
    }
]


class ConfigService(IConfigLoader):
    """Loads the proxy configuration from a JSON file and OSM_* environment variables"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def load_config(self, config_path: Optional[str] = None, port: Optional[int] = None) -> ServerConfig:
        """Load configuration; a missing file falls back to built-in defaults.

        An explicit port wins over OSM_PORT and the file, and the default
        allowed origin is derived from it.
        """
        raw = self._read_file(config_path)

        if port is None:
            port = self._resolve_port(raw)
        config = ServerConfig(
            port=port,
            base_path=self._resolve_base_path(raw),
            tiles_path=self._resolve_tiles_path(raw),
            allowed_origins=self._resolve_allowed_origins(raw, port),
            timeout=raw.get('timeout', DEFAULT_TIMEOUT),
            default_provider=raw.get('default_provider'),
            providers=self._parse_providers(raw.get('providers', DEFAULT_PROVIDERS)),
            logging=raw.get('logging', {}),
        )

        self.validate_config(config)
        return config

    def validate_config(self, config: ServerConfig) -> bool:
        """Validate configuration values"""
        if not isinstance(config.port, int) or config.port < 0 or config.port > 65535:
            raise ConfigurationError("invalid HTTP port")

        if not config.base_path.startswith('/'):
            raise ConfigurationError("base path must start with /")

        if isinstance(config.timeout, bool) or not isinstance(config.timeout, (int, float)) or config.timeout <= 0:
            raise ConfigurationError("timeout must be a positive number")

        if not config.providers:
            raise ConfigurationError("it is necessary to include at least one provider")

        return True

    def _read_file(self, config_path: Optional[str]) -> Dict[str, Any]:
        path = config_path or DEFAULT_CONFIG_PATH

        if not os.path.exists(path):
            if config_path:
                raise ConfigurationError(f"Config file {config_path} not found!")
            logger.warning("%s not found. Using built-in defaults", path)
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error loading config: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError("Invalid configuration format")

        return raw

    def _parse_providers(self, providers: Any) -> List[ProviderDefinition]:
        if not isinstance(providers, list):
            raise ConfigurationError("providers must be a list")

        definitions = []
        for entry in providers:
            if not isinstance(entry, dict) or 'name' not in entry or 'url' not in entry:
                raise ConfigurationError(f"Provider definition needs name and url: {entry}")

            params = {
                name: values if isinstance(values, list) else [values]
                for name, values in entry.get('params', {}).items()
            }
            definitions.append(ProviderDefinition(
                name=entry['name'],
                url=entry['url'],
                dir=entry.get('dir'),
                attribution=entry.get('attribution', ''),
                headers=entry.get('headers', {}),
                params={name: [str(v) for v in values] for name, values in params.items()},
            ))

        return definitions

    def _resolve_port(self, raw: Dict[str, Any]) -> int:
        env_var = self.environ.get('OSM_PORT')

        if env_var:
            try:
                return int(env_var)
            except ValueError:
                logger.warning("Cannot parse OSM_PORT environment variable. Port must be an integer.")

        if 'port' in raw:
            return raw['port']

        logger.warning("OSM_PORT is not defined. Using default port %d.", DEFAULT_PORT)
        return DEFAULT_PORT

    def _resolve_base_path(self, raw: Dict[str, Any]) -> str:
        root = self.environ.get('OSM_BASE_PATH')

        if root and root.startswith('/'):
            return root

        if 'base_path' in raw:
            return raw['base_path']

        logger.warning("OSM_BASE_PATH environment variable is not defined. Default is %s", DEFAULT_BASE_PATH)
        return DEFAULT_BASE_PATH

    def _resolve_tiles_path(self, raw: Dict[str, Any]) -> str:
        path = self.environ.get('OSM_TILES_PATH')

        if path:
            return path

        if 'tiles_path' in raw:
            return raw['tiles_path']

        logger.warning("OSM_TILES_PATH environment variable is not defined. "
                       "Tiles will be stored in ./%s folder", DEFAULT_TILES_PATH)
        return DEFAULT_TILES_PATH

    def _resolve_allowed_origins(self, raw: Dict[str, Any], port: int) -> List[str]:
        env_var = self.environ.get('OSM_CACHE_ALLOWED_ORIGINS')

        if env_var:
            return [origin.strip() for origin in env_var.split(',') if origin.strip()]

        if 'allowed_origins' in raw:
            return list(raw['allowed_origins'])

        logger.warning("OSM_CACHE_ALLOWED_ORIGINS environment variable is not defined. "
                       "Accepting only local connections")
        return [f"http://localhost:{port}"]
