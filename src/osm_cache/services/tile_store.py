import logging
import os
import tempfile
from typing import Optional

from osm_cache.interfaces.tile_server import ITileStore
from osm_cache.models.tile import TileFormat
from osm_cache.utils.file_utils import FileUtils
from osm_cache.exceptions.osm_cache_exceptions import DirectoryCreationError, TileWriteError

logger = logging.getLogger(__name__)


class DiskTileStore(ITileStore):
    """Permanent {dir}/{z}/{x}/{y}.{format} tile cache.

    A file's existence is the cache hit. Entries are written once through a
    temporary file and an atomic rename, and never rewritten afterwards.
    """

    def __init__(self, file_mode: int = 0o644):
        self.file_mode = file_mode

    def read_tile(self, directory: str, x: int, y: int, z: int, tile_format: TileFormat) -> Optional[bytes]:
        path = FileUtils.format_tile_path(directory, z, x, y, tile_format)

        try:
            with open(path, 'rb') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Cannot read cached tile %s, treating as miss: %s", path, e)
            return None

    def save_tile(self, directory: str, x: int, y: int, z: int, tile_format: TileFormat, data: bytes) -> str:
        tile_dir = FileUtils.format_tile_dir_path(directory, z, x)

        try:
            FileUtils.ensure_directory_exists(tile_dir)
        except OSError as e:
            raise DirectoryCreationError(f"cannot create directories to store tiles. Cause: {e}") from e

        file_path = FileUtils.format_tile_path(directory, z, x, y, tile_format)

        if FileUtils.file_exists(file_path):
            return file_path

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=tile_dir, prefix=f".{y}.", suffix='.tmp')
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.chmod(tmp_path, self.file_mode)
            os.replace(tmp_path, file_path)
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.remove(tmp_path)
                except OSError as cleanup_error:
                    logger.debug("Cannot remove temporary tile file %s: %s", tmp_path, cleanup_error)
            raise TileWriteError(f"cannot create tile file. Cause: {e}") from e

        return file_path
