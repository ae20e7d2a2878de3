"""
Elevation tile caching

Raw provider PNG bytes on disk, one file per tile. Presence of the file is the
hit test; decoding is redone on every load.
"""

import os
from typing import Optional

from loguru import logger


class ElevationTileCache:
    """Handles caching of elevation tiles to disk"""

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = cache_dir

    def get_cache_path(self, z: int, x: int, y: int) -> Optional[str]:
        """Get cache file path for a tile"""
        if not self.cache_dir:
            return None
        return os.path.join(self.cache_dir, f"elevation_{z}_{x}_{y}.png")

    def load(self, z: int, x: int, y: int) -> Optional[bytes]:
        """Load tile bytes from cache if present"""
        cache_path = self.get_cache_path(z, x, y)
        if cache_path and os.path.exists(cache_path):
            try:
                with open(cache_path, "rb") as f:
                    data = f.read()
                    logger.debug(f"Loaded elevation tile from cache: {cache_path}")
                    return data
            except OSError as e:
                logger.warning(f"Failed to load cache {cache_path}: {e}")
        return None

    def save(self, z: int, x: int, y: int, data: bytes) -> bool:
        """Save tile bytes to cache. Failures are logged, never raised."""
        cache_path = self.get_cache_path(z, x, y)
        if not cache_path:
            return False
        try:
            os.makedirs(os.path.dirname(cache_path), exist_ok=True)
            with open(cache_path, "wb") as f:
                f.write(data)
            logger.debug(f"Saved elevation tile to cache: {cache_path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save cache {cache_path}: {e}")
            return False
