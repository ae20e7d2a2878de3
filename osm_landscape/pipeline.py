"""
Importer orchestration

  1. Parse OSM XML (file or text)
  2. Compact into a StreetMap
  3. Download elevation tiles around the map origin
  4. Reproject into a height field
  5. Hand the landscape import request to a sink
"""

import json
import os
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .config import ImportConfig, LandscapeBuildSettings, get_config, validate_config
from .elevation import ElevationModel, QueryRect
from .geo import SpatialReferenceSystem
from .landscape import HeightField, LandscapeImportRequest, LandscapeSink, build_import_request
from .models import StreetMap
from .osm import MapCompactor, OsmFile, parse_file, parse_text
from .progress import NullProgress, ProgressReporter


class StreetMapImporter:
    """
    Street map and landscape importer

    Usage:
        importer = StreetMapImporter()
        street_map = importer.import_file("city.osm")
        importer.save(street_map, "output/streetmap.json")
        importer.build_landscape(street_map, sink=FileLandscapeSink("output/landscape"))
    """

    def __init__(self, config: Optional[ImportConfig] = None, progress: Optional[ProgressReporter] = None):
        self.config = config or get_config()
        validate_config(self.config)
        self.progress = progress or NullProgress()
        self.compactor = MapCompactor(
            scale=self.config.osm_to_cm_scale,
            closure_epsilon=self.config.closure_epsilon,
        )

        # Results of the last run, kept for summaries
        self.osm_file: Optional[OsmFile] = None
        self.height_field: Optional[HeightField] = None

    def import_file(self, path: Union[str, Path]) -> StreetMap:
        """Parse and compact an OSM XML file"""
        self.osm_file = parse_file(path)
        return self.compactor.compact(self.osm_file)

    def import_text(self, text: Union[str, bytes]) -> StreetMap:
        """Parse and compact an in-memory OSM XML document"""
        self.osm_file = parse_text(text)
        return self.compactor.compact(self.osm_file)

    def build_landscape(
        self,
        street_map: StreetMap,
        settings: Optional[LandscapeBuildSettings] = None,
        sink: Optional[LandscapeSink] = None,
        elevation_model: Optional[ElevationModel] = None
    ) -> LandscapeImportRequest:
        """
        Build the landscape under a street map

        Args:
            street_map: Imported street map; its origin centers the landscape
            settings: Radius, quad size and layers (default from config)
            sink: Receives the import request when given
            elevation_model: Preconfigured model (default built from config)

        Returns:
            The request handed to the sink

        Raises:
            ElevationBoundsInvalid, ElevationDownloadFailed, UserCancelled
        """
        settings = settings or self.config.landscape
        srs = SpatialReferenceSystem(street_map.origin_longitude, street_map.origin_latitude)
        query = QueryRect(srs, settings.radius_m)

        logger.info(f"Building landscape: radius {settings.radius_m}m, quad size {settings.quad_size_m}m")

        model = elevation_model or ElevationModel.from_config(self.config.elevation)
        try:
            model.load(query, self.progress)
            self.height_field = model.reproject(query, settings.quad_size_m, self.progress)
        finally:
            if elevation_model is None:
                model.close()

        request = build_import_request(self.height_field, settings)
        if sink is not None:
            sink.import_landscape(request)
        return request

    def save(self, street_map: StreetMap, output_path: Union[str, Path]) -> str:
        """Save a street map to a JSON file"""
        output_path = str(output_path)
        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(street_map.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved street map to {output_path}")
        return output_path
