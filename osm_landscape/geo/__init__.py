"""
Geo-referencing utilities

- SpatialReferenceSystem: WGS84 <-> local sinusoidal meters <-> Web Mercator
- TiledMap: tile pyramid descriptor and tile/pixel indexing
"""

from .srs import SpatialReferenceSystem
from .tiled_map import MercatorBounds, TiledMap

__all__ = [
    "SpatialReferenceSystem",
    "MercatorBounds",
    "TiledMap",
]
