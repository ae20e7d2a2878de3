"""
Pydantic models for the compacted street map
Positions are in the local sinusoidal plane, scaled to centimeters
"""

from enum import Enum
from typing import Iterable, List, Optional, Tuple
from pydantic import BaseModel, Field


Point2D = Tuple[float, float]

# Road point without a stored junction node
NO_NODE = -1


# ============================================================
# Geometry
# ============================================================

class Bounds(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[Point2D]) -> "Bounds":
        xs, ys = zip(*points)
        return cls(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))

    def union(self, other: Optional["Bounds"]) -> "Bounds":
        if other is None:
            return self
        return Bounds(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


# ============================================================
# Map elements
# ============================================================

class RoadType(str, Enum):
    STREET = "street"
    MAJOR_ROAD = "major_road"
    HIGHWAY = "highway"


class MiscWayType(str, Enum):
    LEISURE = "leisure"
    NATURAL = "natural"
    LAND_USE = "land_use"
    UNKNOWN = "unknown"


class Road(BaseModel):
    name: str = ""
    type: RoadType
    bounds: Bounds
    points: List[Point2D]
    # Parallel to points; NO_NODE where no junction is stored
    node_indices: List[int]
    is_one_way: bool = False


class Building(BaseModel):
    name: str = ""
    # Closed footprint, first point not repeated at the end
    points: List[Point2D]
    height: float = 0.0  # meters
    levels: int = 0
    bounds: Bounds


class MiscWay(BaseModel):
    type: MiscWayType = MiscWayType.UNKNOWN
    category: str = ""
    name: str = ""
    points: List[Point2D]
    bounds: Bounds
    is_closed: bool = False


class RoadRef(BaseModel):
    road_index: int
    point_index: int


class Node(BaseModel):
    road_refs: List[RoadRef]


# ============================================================
# Root
# ============================================================

class StreetMap(BaseModel):
    origin_longitude: float = 0.0
    origin_latitude: float = 0.0
    bounds: Optional[Bounds] = None  # None for an empty map
    roads: List[Road] = Field(default_factory=list)
    buildings: List[Building] = Field(default_factory=list)
    misc_ways: List[MiscWay] = Field(default_factory=list)
    nodes: List[Node] = Field(default_factory=list)

    def extend_bounds(self, bounds: Bounds) -> None:
        self.bounds = bounds.union(self.bounds)
