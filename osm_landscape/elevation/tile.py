"""
Elevation tile fetcher

Each tile is a small state machine ticked by the elevation model's driver loop:

    PENDING -> INITIALIZING -> IN_FLIGHT -> SUCCEEDED | FAILED | CANCELLED

INITIALIZING tries the disk cache first and only issues an HTTP request on a
miss. tick() never blocks.
"""

import math
import time
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np
import requests
from loguru import logger

from ..errors import ElevationTileDecodeFailed, ElevationTileError, ElevationTileTransportFailed
from ..geo import TiledMap
from .cache import ElevationTileCache
from .terrarium import TerrariumDecodeError, decode_terrarium
from .transport import RequestStatus, TileRequest, TileTransport


MAX_IN_FLIGHT = 10
TILE_TIMEOUT_S = 10.0


class TileState(Enum):
    PENDING = "pending"
    INITIALIZING = "initializing"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({TileState.SUCCEEDED, TileState.FAILED, TileState.CANCELLED})


class InFlightBudget:
    """Counts HTTP requests in flight for one importer"""

    def __init__(self, limit: int = MAX_IN_FLIGHT):
        self.limit = limit
        self.count = 0

    def has_capacity(self) -> bool:
        return self.count < self.limit

    def acquire(self) -> None:
        self.count += 1

    def release(self) -> None:
        self.count -= 1


class ElevationTile:
    """One tile of the elevation mosaic and its download state"""

    def __init__(
        self,
        tiled_map: TiledMap,
        x: int,
        y: int,
        z: int,
        cache: ElevationTileCache,
        transport: TileTransport,
        budget: InFlightBudget,
        timeout_s: float = TILE_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.tiled_map = tiled_map
        self.x = x
        self.y = y
        self.z = z
        self.cache = cache
        self.transport = transport
        self.budget = budget
        self.timeout_s = timeout_s
        self.clock = clock

        self.state = TileState.PENDING
        self.started_at: Optional[float] = None
        self.error: Optional[ElevationTileError] = None

        self.elevation: Optional[np.ndarray] = None
        self.min_elevation = math.inf
        self.max_elevation = -math.inf

        self._request: Optional[TileRequest] = None
        self._holds_slot = False

    def __repr__(self) -> str:
        return f"ElevationTile(z={self.z}, x={self.x}, y={self.y}, state={self.state.value})"

    @property
    def key(self) -> Tuple[int, int, int]:
        return (self.z, self.x, self.y)

    @property
    def has_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.state == TileState.SUCCEEDED

    def tick(self) -> TileState:
        """Advance the state machine as far as possible without waiting"""
        if self.state == TileState.PENDING:
            if not self.budget.has_capacity():
                return self.state
            self._initialize()
        elif self.state == TileState.IN_FLIGHT:
            self._poll()
        return self.state

    def cancel(self) -> None:
        """Abort the tile. No-op once the tile has finished."""
        if self.has_finished:
            return
        if self._request is not None:
            self._request.cancel()
        self._release_slot()
        self.state = TileState.CANCELLED
        logger.debug(f"Cancelled elevation tile {self.key}")

    def _initialize(self) -> None:
        self.state = TileState.INITIALIZING
        self.started_at = self.clock()

        # Try to load data from cache first
        data = self.cache.load(self.z, self.x, self.y)
        if data is not None:
            try:
                self._unpack(data)
                self.state = TileState.SUCCEEDED
                return
            except ElevationTileDecodeFailed as e:
                logger.warning(f"Ignoring unusable cached tile: {e}")

        url = self.tiled_map.tile_url(self.z, self.x, self.y)
        try:
            self._request = self.transport.get(url)
        except (requests.RequestException, RuntimeError) as e:
            self._fail(ElevationTileTransportFailed(self.key, f"could not issue request: {e}"))
            return

        self.budget.acquire()
        self._holds_slot = True
        self.state = TileState.IN_FLIGHT

    def _poll(self) -> None:
        status = self._request.status
        if status == RequestStatus.SUCCEEDED:
            content = self._request.content
            try:
                self._unpack(content)
            except ElevationTileDecodeFailed as e:
                self._fail(e)
                return
            self.cache.save(self.z, self.x, self.y, content)
            self._release_slot()
            self.state = TileState.SUCCEEDED
            logger.debug(f"Downloaded elevation tile {self.key}")
        elif status == RequestStatus.FAILED:
            self._fail(ElevationTileTransportFailed(
                self.key, f"{self._request.failure_reason()}. Check your internet connection!"
            ))
        elif self.clock() - self.started_at > self.timeout_s:
            self._request.cancel()
            self._fail(ElevationTileTransportFailed(
                self.key, "Download time-out. Check your internet connection!"
            ))

    def _unpack(self, data: bytes) -> None:
        try:
            decoded = decode_terrarium(data, self.tiled_map.tile_width, self.tiled_map.tile_height)
        except TerrariumDecodeError as e:
            raise ElevationTileDecodeFailed(self.key, str(e)) from e
        self.elevation = decoded.elevation
        self.min_elevation = decoded.min_elevation
        self.max_elevation = decoded.max_elevation

    def _fail(self, error: ElevationTileError) -> None:
        logger.error(str(error))
        self.error = error
        self._release_slot()
        self.state = TileState.FAILED

    def _release_slot(self) -> None:
        if self._holds_slot:
            self.budget.release()
            self._holds_slot = False
