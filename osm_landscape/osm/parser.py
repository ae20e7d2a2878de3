"""
OSM XML parser

Streams SAX events through a small pushdown state machine and accumulates
nodes and ways. Only <node>, <way>, <nd> and <tag> are of interest; everything
else is ignored.
"""

import re
import xml.sax
import xml.sax.handler
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from ..errors import OsmParseFailed
from .models import OsmFile, OsmNode, OsmWay, WayRef, WayType


# Leading number of a value, the way C's atof/atoi read it; no number reads as 0
_FLOAT_PREFIX = re.compile(r"\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_INT_PREFIX = re.compile(r"\s*[-+]?\d+")

# Tags that classify a way only while it is still WayType.OTHER
_SECONDARY_WAY_TYPES = {
    "leisure": WayType.LEISURE,
    "natural": WayType.NATURAL,
    "landuse": WayType.LAND_USE,
}


def _leading_float(value: str) -> float:
    match = _FLOAT_PREFIX.match(value)
    return float(match.group()) if match else 0.0


def _leading_int(value: str) -> int:
    match = _INT_PREFIX.match(value)
    return int(match.group()) if match else 0


class ParsingState(Enum):
    ROOT = "root"
    NODE = "node"
    WAY = "way"
    WAY_NODE_REF = "way_node_ref"
    WAY_TAG = "way_tag"


class OsmStreamParser:
    """
    Pushdown automaton over open_element / attribute / close_element events.

    Unknown elements inside a node or way are skipped together with their
    children, so every close pops exactly the level its open pushed.
    """

    def __init__(self):
        self.osm = OsmFile()
        self.state = ParsingState.ROOT
        self._skip_depth = 0
        self._node: Optional[OsmNode] = None
        self._way: Optional[OsmWay] = None
        self._tag_key = ""

    def open_element(self, name: str) -> None:
        if self._skip_depth:
            self._skip_depth += 1
            return

        name = name.lower()
        if self.state == ParsingState.ROOT:
            if name == "node":
                self.state = ParsingState.NODE
                self._node = OsmNode(id=0)
            elif name == "way":
                self.state = ParsingState.WAY
                self._way = OsmWay()
            # Anything else at root level (<osm>, <bounds>, relations...) is transparent
        elif self.state == ParsingState.WAY and name == "nd":
            self.state = ParsingState.WAY_NODE_REF
        elif self.state == ParsingState.WAY and name == "tag":
            self.state = ParsingState.WAY_TAG
            self._tag_key = ""
        else:
            self._skip_depth = 1

    def attribute(self, name: str, value: str) -> None:
        if self._skip_depth:
            return

        name = name.lower()
        if self.state == ParsingState.NODE:
            self._node_attribute(name, value)
        elif self.state == ParsingState.WAY:
            if name == "id":
                self._way.id = _leading_int(value)
        elif self.state == ParsingState.WAY_NODE_REF:
            if name == "ref":
                self._resolve_node_ref(_leading_int(value))
        elif self.state == ParsingState.WAY_TAG:
            if name == "k":
                self._tag_key = value.lower()
            elif name == "v":
                self._apply_tag(self._tag_key, value)

    def close_element(self, name: str) -> None:
        if self._skip_depth:
            self._skip_depth -= 1
            return

        if self.state == ParsingState.NODE:
            self.osm.nodes[self._node.id] = self._node
            self._node = None
            self.state = ParsingState.ROOT
        elif self.state == ParsingState.WAY:
            self.osm.ways.append(self._way)
            self._way = None
            self.state = ParsingState.ROOT
        elif self.state == ParsingState.WAY_NODE_REF:
            self.state = ParsingState.WAY
        elif self.state == ParsingState.WAY_TAG:
            self._tag_key = ""
            self.state = ParsingState.WAY

    def finish(self) -> OsmFile:
        """Compute the average node position that seeds the spatial reference system"""
        osm = self.osm
        if osm.nodes:
            count = len(osm.nodes)
            osm.average_latitude = sum(n.lat for n in osm.nodes.values()) / count
            osm.average_longitude = sum(n.lon for n in osm.nodes.values()) / count

        logger.info(f"Parsed OSM data: {len(osm.nodes)} nodes, {len(osm.ways)} ways, "
                    f"center ({osm.average_latitude:.6f}, {osm.average_longitude:.6f})")
        return osm

    def _node_attribute(self, name: str, value: str) -> None:
        node = self._node
        osm = self.osm
        if name == "id":
            node.id = _leading_int(value)
        elif name == "lat":
            node.lat = _leading_float(value)
            osm.min_latitude = min(osm.min_latitude, node.lat)
            osm.max_latitude = max(osm.max_latitude, node.lat)
        elif name == "lon":
            node.lon = _leading_float(value)
            osm.min_longitude = min(osm.min_longitude, node.lon)
            osm.max_longitude = max(osm.max_longitude, node.lon)

    def _resolve_node_ref(self, node_id: int) -> None:
        node = self.osm.nodes.get(node_id)
        if node is None:
            # Node outside the extract
            return
        way = self._way
        node.way_refs.append(WayRef(way_index=len(self.osm.ways), node_index=len(way.node_ids)))
        way.node_ids.append(node_id)

    def _apply_tag(self, key: str, value: str) -> None:
        way = self._way
        if key == "name":
            way.name = value
        elif key == "ref":
            way.ref = value
        elif key == "highway":
            way.way_type = WayType.HIGHWAY
            way.category = value
        elif key == "building":
            way.way_type = WayType.BUILDING
            if value.lower() != "yes":
                way.category = value
        elif key == "height":
            # Plain numbers only; values with units ("12 m", "40 ft") are ignored
            if " " not in value:
                way.height = _leading_float(value)
        elif key == "building:levels":
            way.building_levels = _leading_int(value)
        elif key == "oneway":
            way.is_one_way = value.lower() == "yes"
        elif way.way_type == WayType.OTHER and key in _SECONDARY_WAY_TYPES:
            way.way_type = _SECONDARY_WAY_TYPES[key]
            way.category = value


class _SaxHandler(xml.sax.handler.ContentHandler):
    """Feeds SAX callbacks into an OsmStreamParser"""

    def __init__(self, parser: OsmStreamParser):
        super().__init__()
        self.parser = parser

    def startElement(self, name, attrs):
        self.parser.open_element(name)
        for key in attrs.getNames():
            self.parser.attribute(key, attrs.getValue(key))

    def endElement(self, name):
        self.parser.close_element(name)


def parse_file(path: Union[str, Path]) -> OsmFile:
    """Parse an OSM XML file from disk"""
    logger.info(f"Loading OpenStreetMap file: {path}")
    parser = OsmStreamParser()
    try:
        xml.sax.parse(str(path), _SaxHandler(parser))
    except xml.sax.SAXParseException as e:
        logger.error(f"Failed to load OpenStreetMap XML file ('{e.getMessage()}', Line {e.getLineNumber()})")
        raise OsmParseFailed(e.getLineNumber(), e.getMessage()) from e
    return parser.finish()


def parse_text(text: Union[str, bytes]) -> OsmFile:
    """Parse OSM XML held in memory"""
    if isinstance(text, str):
        text = text.encode("utf-8")
    parser = OsmStreamParser()
    try:
        xml.sax.parseString(text, _SaxHandler(parser))
    except xml.sax.SAXParseException as e:
        logger.error(f"Failed to load OpenStreetMap XML text ('{e.getMessage()}', Line {e.getLineNumber()})")
        raise OsmParseFailed(e.getLineNumber(), e.getMessage()) from e
    return parser.finish()
