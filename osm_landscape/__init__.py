"""
OSM landscape importer

Imports OpenStreetMap XML into a compact street map and builds a matching
heightmap from terrarium elevation tiles.
"""

__version__ = "1.0.0"

from .pipeline import StreetMapImporter

__all__ = ["StreetMapImporter"]
