from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


DEFAULT_PORT = 8000
DEFAULT_BASE_PATH = '/'
DEFAULT_TILES_PATH = 'tiles'
DEFAULT_TIMEOUT = 30.0


@dataclass
class ProviderDefinition:
    """Provider entry as declared in configuration"""
    name: str
    url: str
    dir: Optional[str] = None
    attribution: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class ServerConfig:
    """Data model for the proxy configuration"""
    port: int = DEFAULT_PORT
    base_path: str = DEFAULT_BASE_PATH
    tiles_path: str = DEFAULT_TILES_PATH
    allowed_origins: List[str] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT
    default_provider: Optional[str] = None
    providers: List[ProviderDefinition] = field(default_factory=list)
    logging: Dict[str, Any] = field(default_factory=dict)
