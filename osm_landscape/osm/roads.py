"""
Road-specific logic

Handles road classification and construction
"""

from typing import List, Optional

from loguru import logger

from ..models import NO_NODE, Bounds, Point2D, Road, RoadType
from .models import OsmWay


# See http://wiki.openstreetmap.org/wiki/Key:highway
ROAD_TYPES = {
    "residential": RoadType.STREET,  # ~32% of all highways
    "service": RoadType.STREET,  # ~15% of all highways
    "unclassified": RoadType.STREET,
    "road": RoadType.STREET,
    "tertiary": RoadType.MAJOR_ROAD,  # ~4% of all highways
    "secondary": RoadType.MAJOR_ROAD,  # ~2% of all highways
    "secondary_link": RoadType.MAJOR_ROAD,
    "tertiary_link": RoadType.MAJOR_ROAD,
    "primary": RoadType.HIGHWAY,  # ~2% of all highways
    "primary_link": RoadType.HIGHWAY,
    "motorway": RoadType.HIGHWAY,
    "motorway_link": RoadType.HIGHWAY,
    "trunk": RoadType.HIGHWAY,
    "trunk_link": RoadType.HIGHWAY,
}


class RoadProcessor:
    """Classifies highway ways and turns them into roads"""

    def classify(self, category: str) -> Optional[RoadType]:
        """Road type for a highway category, None for categories we do not keep"""
        return ROAD_TYPES.get(category)

    def build_road(self, way: OsmWay, points: List[Point2D]) -> Optional[Road]:
        """
        Create a road for a highway way

        Args:
            way: Parsed highway way
            points: Projected positions of the way's nodes

        Returns:
            Road with every node index unset, or None if the way is skipped
        """
        road_type = self.classify(way.category)
        if road_type is None:
            return None

        if len(points) < 2:
            logger.debug(f"Skipped road for way {way.id}: less than 2 points")
            return None

        return Road(
            name=way.name or way.ref,
            type=road_type,
            bounds=Bounds.from_points(points),
            points=points,
            node_indices=[NO_NODE] * len(points),
            is_one_way=way.is_one_way,
        )
