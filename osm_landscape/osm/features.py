"""
Land-use feature logic

Handles leisure, natural and landuse ways
"""

from typing import List, Optional

from ..models import Bounds, MiscWay, MiscWayType, Point2D
from .buildings import drop_closing_point
from .models import OsmWay, WayType


MISC_WAY_TYPES = {
    WayType.LEISURE: MiscWayType.LEISURE,
    WayType.NATURAL: MiscWayType.NATURAL,
    WayType.LAND_USE: MiscWayType.LAND_USE,
}


class FeatureProcessor:
    """Turns land-use ways into misc ways"""

    def __init__(self, closure_epsilon: float = 1e-4):
        self.closure_epsilon = closure_epsilon

    def build_misc_way(self, way: OsmWay, points: List[Point2D]) -> Optional[MiscWay]:
        """Create a misc way for a recognized land-use type"""
        if way.way_type not in MISC_WAY_TYPES or not points:
            return None

        points = list(points)
        # Unclosed shapes are fine here (e.g. tree_row)
        bounds = Bounds.from_points(points)
        is_closed = drop_closing_point(points, self.closure_epsilon)

        return MiscWay(
            type=MISC_WAY_TYPES[way.way_type],
            category=way.category,
            name=way.name or way.ref,
            points=points,
            bounds=bounds,
            is_closed=is_closed,
        )
