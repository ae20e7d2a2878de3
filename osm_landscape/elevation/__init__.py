"""
Elevation module

Separate components for:
- Cache: Raw tile bytes on disk
- Terrarium: PNG decoding
- Transport: Non-blocking HTTP requests
- Tile: Per-tile download state machine
- Model: Download driver and reprojection onto the street map plane
"""

from .cache import ElevationTileCache
from .model import ElevationModel, QueryRect
from .terrarium import DecodedTile, decode_terrarium
from .tile import ElevationTile, InFlightBudget, TileState
from .transport import HttpTileTransport, RequestStatus, TileRequest, TileTransport

__all__ = [
    "ElevationTileCache",
    "ElevationModel",
    "QueryRect",
    "DecodedTile",
    "decode_terrarium",
    "ElevationTile",
    "InFlightBudget",
    "TileState",
    "HttpTileTransport",
    "RequestStatus",
    "TileRequest",
    "TileTransport",
]
