"""
Import errors

Exception hierarchy surfaced to callers of the street map and landscape importers
"""

from typing import Optional, Tuple


class StreetMapImportError(Exception):
    """Base exception for all importer errors."""
    pass


class OsmParseFailed(StreetMapImportError):
    """The OSM XML could not be parsed. No partial street map is produced."""

    def __init__(self, line: int, message: str):
        self.line = line
        self.message = message
        super().__init__(f"Failed to load OpenStreetMap XML file ('{message}', Line {line})")


class ElevationError(StreetMapImportError):
    """Base exception for elevation model errors."""
    pass


class ElevationBoundsInvalid(ElevationError):
    """The query rectangle leaves the Web Mercator latitude band."""

    def __init__(self, message: str = "Chosen elevation bounds are invalid. Stay within WebMercator bounds!"):
        super().__init__(message)


class ElevationTileError(ElevationError):
    """A single elevation tile could not be obtained."""

    def __init__(self, tile: Tuple[int, int, int], message: str):
        self.tile = tile
        super().__init__(f"Elevation tile {tile}: {message}")


class ElevationTileDecodeFailed(ElevationTileError):
    """Bad PNG dimensions, unsupported pixel format or corrupt payload."""

    def __init__(self, tile: Tuple[int, int, int], reason: str):
        self.reason = reason
        super().__init__(tile, f"decode failed: {reason}")


class ElevationTileTransportFailed(ElevationTileError):
    """HTTP error, connection failure or per-tile timeout."""

    def __init__(self, tile: Tuple[int, int, int], message: str = "download failed"):
        super().__init__(tile, message)


class ElevationDownloadFailed(ElevationError):
    """One or more tiles did not succeed; no landscape should be produced."""

    def __init__(
        self,
        message: str = "Could not download all necessary elevation model files. See Log for details!",
        failed_tile: Optional[Tuple[int, int, int]] = None,
        cause: Optional[ElevationTileError] = None,
    ):
        self.failed_tile = failed_tile
        self.cause = cause
        super().__init__(message)


class UserCancelled(ElevationDownloadFailed):
    """The user cancelled the elevation download."""

    def __init__(self):
        super().__init__("Elevation download cancelled by user")
