"""
Building-specific logic

Handles building footprint construction
"""

from typing import List, Optional

from loguru import logger

from ..models import Bounds, Building, Point2D
from .models import OsmWay


def points_equal(a: Point2D, b: Point2D, epsilon: float) -> bool:
    """Component-wise comparison within a tolerance"""
    return abs(a[0] - b[0]) <= epsilon and abs(a[1] - b[1]) <= epsilon


def drop_closing_point(points: List[Point2D], epsilon: float) -> bool:
    """Remove the final point of a closed ring in place. Returns whether the ring was closed."""
    if len(points) > 2 and points_equal(points[0], points[-1], epsilon):
        points.pop()
        return True
    return False


class BuildingProcessor:
    """Turns building ways into footprint polygons"""

    def __init__(self, closure_epsilon: float = 1e-4):
        self.closure_epsilon = closure_epsilon

    def build_building(self, way: OsmWay, points: List[Point2D]) -> Optional[Building]:
        """Create a building, or None for degenerate footprints"""
        # Require at least three points so that we don't have a degenerate polygon
        if len(points) < 3:
            logger.debug(f"Skipped building for way {way.id}: less than 3 points")
            return None

        points = list(points)
        if not drop_closing_point(points, self.closure_epsilon):
            # Unclosed ring; downstream closes it implicitly
            logger.debug(f"Building way {way.id} is not a closed ring")

        if len(points) < 3:
            logger.debug(f"Skipped building for way {way.id}: degenerate ring")
            return None

        return Building(
            name=way.name or way.ref,
            points=points,
            height=way.height,
            levels=way.building_levels,
            bounds=Bounds.from_points(points),
        )
