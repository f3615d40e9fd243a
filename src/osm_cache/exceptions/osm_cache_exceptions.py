from typing import Optional


class TileCacheException(Exception):
    """Base exception for the tile cache"""
    pass


class ConfigurationError(TileCacheException):
    """Configuration related errors"""
    pass


class InvalidInputError(TileCacheException):
    """Malformed coordinates, format token or bounding box"""
    pass


class SeedLimitError(InvalidInputError):
    """Bulk seeding request exceeds the tile cap"""
    pass


class ProviderNotFoundError(TileCacheException):
    """No provider registered under the requested name"""
    pass


class DownloadError(TileCacheException):
    """Upstream fetch related errors"""
    pass


class TileNotFoundError(DownloadError):
    """Upstream answered 404 for the tile"""

    def __init__(self, message: str = "Tile not found"):
        super().__init__(message)


class UpstreamError(DownloadError):
    """Non-2xx upstream response or transport failure"""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class PersistenceError(TileCacheException):
    """Disk write related errors"""
    pass


class DirectoryCreationError(PersistenceError):
    """Tile directory could not be created"""
    pass


class TileWriteError(PersistenceError):
    """Tile file could not be written"""
    pass


class ServerError(TileCacheException):
    """Server related errors"""
    pass
