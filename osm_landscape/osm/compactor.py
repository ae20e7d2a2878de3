"""
Map compactor

Turns a parsed OSM file into the compact street map: classifies ways into
roads, buildings and misc ways, projects them into the local plane, and keeps
only the nodes that matter for road connectivity.
"""

from typing import Dict, List, Optional

import numpy as np
from loguru import logger

from ..geo import SpatialReferenceSystem
from ..landscape import M2CM
from ..models import NO_NODE, Node, Point2D, RoadRef, StreetMap
from .buildings import BuildingProcessor
from .features import FeatureProcessor
from .models import OsmFile, OsmWay, WayType
from .roads import RoadProcessor


class MapCompactor:
    """
    Builds a StreetMap from an OsmFile

    Positions are computed in SRS meters (double precision), multiplied by
    `scale` and stored as single precision values.
    """

    def __init__(self, scale: float = M2CM, closure_epsilon: float = 1e-4):
        self.scale = scale
        self.road_processor = RoadProcessor()
        self.building_processor = BuildingProcessor(closure_epsilon)
        self.feature_processor = FeatureProcessor(closure_epsilon)

    def compact(self, osm: OsmFile, srs: Optional[SpatialReferenceSystem] = None) -> StreetMap:
        """
        Compact parsed OSM data

        Args:
            osm: Parser output
            srs: Projection to use; defaults to the one seeded by the parser

        Returns:
            StreetMap with roads, buildings, misc ways and junction nodes
        """
        srs = srs or osm.spatial_reference_system
        street_map = StreetMap(
            origin_longitude=srs.origin_longitude,
            origin_latitude=srs.origin_latitude,
        )

        # Maps way index -> road index for the ways kept as roads
        way_to_road: Dict[int, int] = {}

        for way_index, way in enumerate(osm.ways):
            if way.way_type == WayType.HIGHWAY:
                road = self.road_processor.build_road(way, self._project_way(osm, way, srs))
                if road is not None:
                    way_to_road[way_index] = len(street_map.roads)
                    street_map.roads.append(road)
                    street_map.extend_bounds(road.bounds)
            elif way.way_type == WayType.BUILDING:
                building = self.building_processor.build_building(way, self._project_way(osm, way, srs))
                if building is not None:
                    street_map.buildings.append(building)
                    street_map.extend_bounds(building.bounds)
            elif way.way_type != WayType.OTHER:
                misc_way = self.feature_processor.build_misc_way(way, self._project_way(osm, way, srs))
                if misc_way is not None:
                    street_map.misc_ways.append(misc_way)
                    street_map.extend_bounds(misc_way.bounds)

        self._compact_nodes(osm, street_map, way_to_road)
        self._validate(street_map)

        logger.info(f"Street map: {len(street_map.roads)} roads, {len(street_map.buildings)} buildings, "
                    f"{len(street_map.misc_ways)} misc ways, {len(street_map.nodes)} nodes")
        return street_map

    def _project_way(self, osm: OsmFile, way: OsmWay, srs: SpatialReferenceSystem) -> List[Point2D]:
        points = []
        for node_id in way.node_ids:
            node = osm.nodes[node_id]
            x, y = srs.from_wgs84(node.lon, node.lat)
            points.append((float(np.float32(x * self.scale)), float(np.float32(y * self.scale))))
        return points

    def _compact_nodes(self, osm: OsmFile, street_map: StreetMap, way_to_road: Dict[int, int]) -> None:
        for osm_node in osm.nodes.values():
            # Only refs to ways we kept as roads
            road_refs = [
                RoadRef(road_index=way_to_road[ref.way_index], point_index=ref.node_index)
                for ref in osm_node.way_refs
                if ref.way_index in way_to_road
            ]
            if not road_refs:
                continue

            # Interior points of a single road carry no connectivity; only the
            # road's RoadPoints keep their position.
            first = road_refs[0]
            last_point = len(street_map.roads[first.road_index].node_indices) - 1
            if len(road_refs) == 1 and first.point_index not in (0, last_point):
                continue

            node_index = len(street_map.nodes)
            node = Node(road_refs=[])
            for ref in road_refs:
                road = street_map.roads[ref.road_index]
                if road.node_indices[ref.point_index] != NO_NODE:
                    logger.warning(f"Road {ref.road_index} point {ref.point_index} already belongs to node "
                                   f"{road.node_indices[ref.point_index]}; ignoring OSM node {osm_node.id} there")
                    continue
                road.node_indices[ref.point_index] = node_index
                node.road_refs.append(ref)
            if node.road_refs:
                street_map.nodes.append(node)

    def _validate(self, street_map: StreetMap) -> None:
        # Every road should have a node at its beginning and at its end
        for road_index, road in enumerate(street_map.roads):
            if road.node_indices[0] == NO_NODE or road.node_indices[-1] == NO_NODE:
                logger.warning(f"Road {road_index} ('{road.name}') is missing an end node")
