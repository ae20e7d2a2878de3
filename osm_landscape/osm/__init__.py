"""
OpenStreetMap import module

Separate components for:
- Models: Parsed data structures (OsmNode, OsmWay, OsmFile)
- Parser: Streaming XML parser
- Roads: Highway classification
- Buildings: Building footprints
- Features: Leisure/natural/landuse ways
- Compactor: Builds the final StreetMap
"""

from .models import OsmFile, OsmNode, OsmWay, WayRef, WayType
from .parser import OsmStreamParser, parse_file, parse_text
from .compactor import MapCompactor

__all__ = [
    "OsmFile",
    "OsmNode",
    "OsmWay",
    "WayRef",
    "WayType",
    "OsmStreamParser",
    "parse_file",
    "parse_text",
    "MapCompactor",
]
