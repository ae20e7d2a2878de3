"""
OSM data models

Data classes for nodes and ways as read from an OSM XML file.
Nodes and ways refer to each other through integer indices, never objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from ..geo import SpatialReferenceSystem


class WayType(Enum):
    """Types of ways"""
    # Any kind of road, street or path
    HIGHWAY = "highway"
    # Areas marked as a building
    BUILDING = "building"
    # Places people go in their spare time (parks, pitches)
    LEISURE = "leisure"
    # Natural and physical land features (wood, beach, water)
    NATURAL = "natural"
    # Primary use of land by humans (grass, meadow, forest)
    LAND_USE = "landuse"
    # Currently unrecognized type
    OTHER = "other"


@dataclass
class WayRef:
    """A way passing through a node"""
    # Index of the way in OsmFile.ways
    way_index: int
    # Index of the node in the way's node list
    node_index: int


@dataclass
class OsmNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float = 0.0
    lon: float = 0.0
    way_refs: List[WayRef] = field(default_factory=list)


@dataclass
class OsmWay:
    """Represents an OSM way (line or polygon)"""
    id: int = 0
    name: str = ""
    ref: str = ""
    way_type: WayType = WayType.OTHER
    # Subtype according to way_type
    category: str = ""
    # Building only
    height: float = 0.0
    building_levels: int = 0
    # Highway only: traversable in node order only
    is_one_way: bool = False
    node_ids: List[int] = field(default_factory=list)


@dataclass
class OsmFile:
    """Result of parsing one OSM XML document"""
    nodes: Dict[int, OsmNode] = field(default_factory=dict)
    ways: List[OsmWay] = field(default_factory=list)

    # Average coordinates, roughly the center of the map
    average_latitude: float = 0.0
    average_longitude: float = 0.0

    min_latitude: float = float("inf")
    min_longitude: float = float("inf")
    max_latitude: float = float("-inf")
    max_longitude: float = float("-inf")

    @property
    def spatial_reference_system(self) -> SpatialReferenceSystem:
        """Projection centered on the average node position"""
        return SpatialReferenceSystem(self.average_longitude, self.average_latitude)
