"""
Tiled map descriptor

Immutable description of a raster tile pyramid indexed in Web Mercator meters
"""

import math
from dataclasses import dataclass
from typing import Tuple

import mercantile
import numpy as np

from ..config import TERRARIUM_URL_TEMPLATE


TileXY = Tuple[int, int]
PixelXY = Tuple[float, float]


@dataclass(frozen=True)
class MercatorBounds:
    """
    Pyramid extent in EPSG:3857 meters.

    min_y may be larger than max_y; that orients tile rows north-to-south.
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float


@dataclass(frozen=True)
class TiledMap:
    """Tile pyramid: tile size in pixels, level count, bounds and URL template"""
    tile_width: int
    tile_height: int
    num_levels: int
    bounds: MercatorBounds
    url_template: str

    @classmethod
    def terrarium(
        cls,
        url_template: str = TERRARIUM_URL_TEMPLATE,
        tile_size: int = 256,
        num_levels: int = 15
    ) -> "TiledMap":
        """
        Terrarium elevation tiles.

        The provider uses the XYZ scheme (row 0 at the north edge), so the
        descriptor's min_y is the northern edge of the world.
        """
        world = mercantile.xy_bounds(mercantile.Tile(x=0, y=0, z=0))
        return cls(
            tile_width=tile_size,
            tile_height=tile_size,
            num_levels=num_levels,
            bounds=MercatorBounds(
                min_x=world.left,
                min_y=world.top,
                max_x=world.right,
                max_y=world.bottom,
            ),
            url_template=url_template,
        )

    @property
    def max_level(self) -> int:
        """Highest resolution level available"""
        return self.num_levels - 1

    def _relative(self, mx, my):
        b = self.bounds
        rx = (mx - b.min_x) / (b.max_x - b.min_x)
        ry = (my - b.min_y) / (b.max_y - b.min_y)
        return rx, ry

    def get_tile_xy(self, mx: float, my: float, level: int) -> TileXY:
        """Tile index containing a Web Mercator point at the given level"""
        rx, ry = self._relative(mx, my)
        n = 1 << level
        return math.floor(rx * n), math.floor(ry * n)

    def get_tile_and_pixel_xy(self, mx: float, my: float, level: int) -> Tuple[TileXY, PixelXY]:
        """Tile index plus the fractional pixel position inside that tile"""
        rx, ry = self._relative(mx, my)
        n = 1 << level
        fx = rx * n
        fy = ry * n
        tx = math.floor(fx)
        ty = math.floor(fy)
        pixel = ((fx - tx) * self.tile_width, (fy - ty) * self.tile_height)
        return (tx, ty), pixel

    def get_tile_and_pixel_xy_array(self, mx: np.ndarray, my: np.ndarray, level: int):
        """Vectorized get_tile_and_pixel_xy; returns (tx, ty, px, py) arrays"""
        rx, ry = self._relative(np.asarray(mx, dtype=np.float64), np.asarray(my, dtype=np.float64))
        n = 1 << level
        fx = rx * n
        fy = ry * n
        tx = np.floor(fx)
        ty = np.floor(fy)
        px = (fx - tx) * self.tile_width
        py = (fy - ty) * self.tile_height
        return tx.astype(np.int64), ty.astype(np.int64), px, py

    def tile_range(
        self,
        south_west: Tuple[float, float],
        north_east: Tuple[float, float],
        level: int
    ) -> Tuple[int, int, int, int]:
        """
        Inclusive tile rectangle (min_tx, min_ty, max_tx, max_ty) covering two
        Web Mercator corners.

        Corners are sorted because the bounds' Y orientation depends on the provider.
        """
        x0, y0 = self.get_tile_xy(south_west[0], south_west[1], level)
        x1, y1 = self.get_tile_xy(north_east[0], north_east[1], level)

        last = (1 << level) - 1

        def clamp(v: int) -> int:
            return min(max(v, 0), last)

        return (
            clamp(min(x0, x1)),
            clamp(min(y0, y1)),
            clamp(max(x0, x1)),
            clamp(max(y0, y1)),
        )

    def tile_url(self, z: int, x: int, y: int) -> str:
        """Substitute (z, x, y) into the URL template"""
        return self.url_template.format(z=z, x=x, y=y)
