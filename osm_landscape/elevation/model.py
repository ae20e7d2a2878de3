"""
Elevation model

Downloads the elevation tiles covering a square around the map origin and
resamples the mosaic into a quantized height field aligned with the street
map plane.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from ..config import ElevationConfig
from ..errors import ElevationBoundsInvalid, ElevationDownloadFailed, UserCancelled
from ..geo import SpatialReferenceSystem, TiledMap
from ..landscape import MAX_HEIGHT_VALUE, ZERO_ELEVATION, HeightField, LandscapeTransform
from ..progress import NullProgress, ProgressReporter
from .cache import ElevationTileCache
from .tile import MAX_IN_FLIGHT, TILE_TIMEOUT_S, ElevationTile, InFlightBudget
from .transport import HttpTileTransport, TileTransport


POLL_INTERVAL_S = 0.1


@dataclass
class QueryRect:
    """Square of +/- radius_m around the SRS origin, in local meters (y points south)"""
    srs: SpatialReferenceSystem
    radius_m: float

    @property
    def south_west(self) -> Tuple[float, float]:
        return (-self.radius_m, self.radius_m)

    @property
    def north_east(self) -> Tuple[float, float]:
        return (self.radius_m, -self.radius_m)


class ElevationModel:
    """
    Cooperative tile downloader plus reprojection

    Usage:
        model = ElevationModel(TiledMap.terrarium(), ElevationTileCache(cache_dir))
        model.load(query, progress)
        height_field = model.reproject(query, quad_size=1.0)
    """

    def __init__(
        self,
        tiled_map: TiledMap,
        cache: Optional[ElevationTileCache] = None,
        transport: Optional[TileTransport] = None,
        budget: Optional[InFlightBudget] = None,
        tile_timeout_s: float = TILE_TIMEOUT_S,
        poll_interval_s: float = POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.tiled_map = tiled_map
        self.cache = cache or ElevationTileCache()
        self.budget = budget or InFlightBudget(MAX_IN_FLIGHT)
        self._owns_transport = transport is None
        self.transport = transport or HttpTileTransport(max_workers=self.budget.limit)
        self.tile_timeout_s = tile_timeout_s
        self.poll_interval_s = poll_interval_s
        self.clock = clock
        self.sleep = sleep

        # Every tile of the last load() and the ones that succeeded, keyed by (x, y)
        self.tiles: List[ElevationTile] = []
        self.downloaded: Dict[Tuple[int, int], ElevationTile] = {}

        self.elev_min = math.inf
        self.elev_max = -math.inf

    @classmethod
    def from_config(cls, config: ElevationConfig) -> "ElevationModel":
        tiled_map = TiledMap.terrarium(config.url_template, config.tile_size, config.num_levels)
        budget = InFlightBudget(config.max_in_flight)
        transport = HttpTileTransport(
            max_workers=config.max_in_flight,
            timeout=config.request_timeout_s,
            user_agent=config.user_agent,
        )
        model = cls(
            tiled_map,
            cache=ElevationTileCache(config.cache_dir),
            transport=transport,
            budget=budget,
            tile_timeout_s=config.tile_timeout_s,
            poll_interval_s=config.poll_interval_s,
        )
        model._owns_transport = True
        return model

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def get_tile(self, x: int, y: int) -> Optional[ElevationTile]:
        return self.downloaded.get((x, y))

    def load(self, query: QueryRect, progress: Optional[ProgressReporter] = None) -> int:
        """
        Fetch every tile covering the query at the highest available level

        Args:
            query: Area to cover
            progress: Host progress/cancel surface

        Returns:
            Number of tiles loaded

        Raises:
            ElevationBoundsInvalid: query leaves the Web Mercator latitude band
            ElevationDownloadFailed: a tile failed; all other tiles were cancelled
            UserCancelled: the host requested cancellation
        """
        progress = progress or NullProgress()
        self.tiles = []
        self.downloaded = {}
        self.elev_min = math.inf
        self.elev_max = -math.inf

        south_west = query.srs.to_webmercator(*query.south_west)
        north_east = query.srs.to_webmercator(*query.north_east)
        if south_west is None or north_east is None:
            error = ElevationBoundsInvalid()
            logger.error(str(error))
            raise error

        level = self.tiled_map.max_level
        min_x, min_y, max_x, max_y = self.tiled_map.tile_range(south_west, north_east, level)
        for y in range(min_y, max_y + 1):
            for x in range(min_x, max_x + 1):
                self.tiles.append(ElevationTile(
                    self.tiled_map, x, y, level,
                    cache=self.cache,
                    transport=self.transport,
                    budget=self.budget,
                    timeout_s=self.tile_timeout_s,
                    clock=self.clock,
                ))

        total = len(self.tiles)
        logger.info(f"Loading {total} elevation tiles at level {level} "
                    f"(x {min_x}..{max_x}, y {min_y}..{max_y})")

        pending = list(self.tiles)
        while pending:
            self.transport.pump()

            if progress.user_cancelled():
                logger.warning("Elevation download cancelled by user")
                self._cancel_all(pending)
                raise UserCancelled()

            advanced = False
            for tile in list(pending):
                tile.tick()
                if not tile.has_finished:
                    continue

                pending.remove(tile)
                if not tile.succeeded:
                    # Cannot proceed with a hole in the mosaic
                    self._cancel_all(pending)
                    progress.enter_frame(0.0, self._download_message(total))
                    error = ElevationDownloadFailed(failed_tile=tile.key, cause=tile.error)
                    logger.error(str(error))
                    raise error

                self._add_tile(tile)
                advanced = True
                progress.enter_frame(1.0 / total, self._download_message(total))

            if not advanced:
                progress.enter_frame(0.0, self._download_message(total))
                self.sleep(self.poll_interval_s)

        logger.info(f"Elevation tiles loaded, elevation range {self.elev_min:.1f}m .. {self.elev_max:.1f}m")
        return total

    def reproject(
        self,
        query: QueryRect,
        quad_size: float,
        progress: Optional[ProgressReporter] = None
    ) -> HeightField:
        """
        Sample the loaded mosaic onto an N x N grid of quad_size meter cells

        N = 2 * round(radius / quad_size). Nearest-neighbour sampling; values
        are normalized so the loaded elevation range spans 0..65535. Cells that
        cannot be projected or fall on a missing tile get the mid-range value.
        """
        progress = progress or NullProgress()
        progress.enter_frame(0.0, "Reprojecting Elevation Model")

        half = int(round(query.radius_m / quad_size))
        size = 2 * half
        data = np.full((size, size), ZERO_ELEVATION, dtype=np.uint16)

        elev_range = self.elev_max - self.elev_min
        flat = not (elev_range > 0.0)
        level = self.tiled_map.max_level
        tile_width = self.tiled_map.tile_width
        tile_height = self.tiled_map.tile_height

        xs = np.arange(-half, half, dtype=np.float64) * quad_size
        missing = 0
        for row, cell_y in enumerate(range(-half, half)):
            mx, my, ok = query.srs.to_webmercator_array(xs, cell_y * quad_size)
            if not ok.any():
                continue

            tx, ty, px, py = self.tiled_map.get_tile_and_pixel_xy_array(mx, my, level)
            keys = np.unique(np.stack([tx[ok], ty[ok]], axis=1), axis=0)
            for tile_x, tile_y in keys:
                mask = ok & (tx == tile_x) & (ty == tile_y)
                tile = self.get_tile(int(tile_x), int(tile_y))
                if tile is None:
                    missing += int(mask.sum())
                    continue
                if flat:
                    continue

                ix = np.clip(np.floor(px[mask]).astype(np.int64), 0, tile_width - 1)
                iy = np.clip(np.floor(py[mask]).astype(np.int64), 0, tile_height - 1)
                elevation = tile.elevation[iy, ix].astype(np.float64)

                normalized = np.rint((elevation - self.elev_min) / elev_range * MAX_HEIGHT_VALUE)
                data[row, mask] = np.clip(normalized, 0, MAX_HEIGHT_VALUE).astype(np.uint16)

        if missing:
            logger.warning(f"{missing} height field cells fall outside the loaded tiles")
        if flat:
            logger.warning("Elevation range is empty; height field is flat")

        if flat:
            elev_min = elev_max = self.elev_min if math.isfinite(self.elev_min) else 0.0
        else:
            elev_min, elev_max = self.elev_min, self.elev_max
        transform = LandscapeTransform.for_elevation_range(quad_size, elev_min, elev_max)
        logger.info(f"Reprojected elevation into {size}x{size} height field, scale {transform.scale}")

        return HeightField(
            data=data,
            transform=transform,
            elev_min=elev_min,
            elev_max=elev_max,
            quad_size=quad_size,
        )

    def _add_tile(self, tile: ElevationTile) -> None:
        self.downloaded[(tile.x, tile.y)] = tile
        self.elev_min = min(self.elev_min, tile.min_elevation)
        self.elev_max = max(self.elev_max, tile.max_elevation)

    def _download_message(self, total: int) -> str:
        return f"Downloading Elevation Model ({len(self.downloaded)} of {total})"

    def _cancel_all(self, tiles: List[ElevationTile]) -> None:
        for tile in tiles:
            tile.cancel()
