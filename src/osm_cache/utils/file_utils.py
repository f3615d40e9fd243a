import os
from typing import Union

from osm_cache.models.tile import TileFormat


class FileUtils:
    """Pure helpers deriving upstream URLs and cache paths from tile coordinates"""

    @staticmethod
    def format_url(template: str, x: int, y: int, z: int,
                   tile_format: Union[TileFormat, str]) -> str:
        """Substitute {x}, {y}, {z} and {format} in a URL template.

        Any other placeholder is left untouched.
        """
        fmt = tile_format.value if isinstance(tile_format, TileFormat) else str(tile_format)
        url = template.replace('{x}', str(x))
        url = url.replace('{y}', str(y))
        url = url.replace('{z}', str(z))
        url = url.replace('{format}', fmt)
        return url

    @staticmethod
    def format_tile_dir_path(directory: str, z: int, x: int) -> str:
        """{dir}/{z}/{x}"""
        return os.path.join(directory, str(z), str(x))

    @staticmethod
    def format_tile_path(directory: str, z: int, x: int, y: int,
                         tile_format: Union[TileFormat, str]) -> str:
        """{dir}/{z}/{x}/{y}.{format}"""
        fmt = tile_format.value if isinstance(tile_format, TileFormat) else str(tile_format)
        return os.path.join(FileUtils.format_tile_dir_path(directory, z, x), f"{y}.{fmt}")

    @staticmethod
    def file_exists(file_path: str) -> bool:
        """Check if file exists"""
        return os.path.isfile(file_path)

    @staticmethod
    def ensure_directory_exists(directory_path: str) -> None:
        """Create directory (and parents) if it doesn't exist"""
        os.makedirs(directory_path, exist_ok=True)
