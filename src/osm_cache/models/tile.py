from dataclasses import dataclass
from enum import Enum

from osm_cache.exceptions.osm_cache_exceptions import InvalidInputError


class TileFormat(str, Enum):
    """Raster encodings a provider can serve"""
    PNG = 'png'
    JPG = 'jpg'

    @classmethod
    def parse(cls, token: str) -> 'TileFormat':
        """Normalize a format token (png, jpg, jpeg; any case)"""
        value = (token or '').strip().lower()
        if value == 'png':
            return cls.PNG
        if value in ('jpg', 'jpeg'):
            return cls.JPG
        raise InvalidInputError(f"Invalid format {token}")

    @property
    def extension(self) -> str:
        return self.value

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


@dataclass(frozen=True)
class Tile:
    """A single encoded raster tile"""
    x: int
    y: int
    z: int
    format: TileFormat
    data: bytes

    def get_filename(self) -> str:
        """File name used in Content-Disposition"""
        return f"{self.y}.{self.format.extension}"
