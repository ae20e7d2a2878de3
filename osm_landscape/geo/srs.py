"""
Spatial reference system

Transforms all points relative to an origin longitude/latitude so that
coordinates stay small and projection distortion near the map center is minimal.
Applies the Sanson-Flamsteed (sinusoidal) projection for the local plane and
Web Mercator (EPSG:3857) for tile indexing.
"""

import math
from typing import Optional, Tuple

import numpy as np


# Latitude/longitude scale factor (equator length)
EARTH_CIRCUMFERENCE = 40075036.0
EARTH_RADIUS = 6378137.0
LATITUDE_LONGITUDE_SCALE = EARTH_CIRCUMFERENCE / 360.0  # meters per degree
INV_LATITUDE_LONGITUDE_SCALE = 1.0 / LATITUDE_LONGITUDE_SCALE  # degrees per meter

MAX_MERCATOR_LATITUDE = 85.05112878


class SpatialReferenceSystem:
    """Local sinusoidal projection centered on an origin (meters, y pointing south)"""

    def __init__(self, origin_longitude: float, origin_latitude: float):
        self.origin_longitude = origin_longitude
        self.origin_latitude = origin_latitude

    def __repr__(self) -> str:
        return f"SpatialReferenceSystem({self.origin_longitude!r}, {self.origin_latitude!r})"

    def from_wgs84(self, longitude: float, latitude: float) -> Tuple[float, float]:
        """EPSG:4326 degrees to local meters. The cosine uses the input latitude."""
        cos_lat = math.cos(math.radians(latitude))
        x = (longitude - self.origin_longitude) * LATITUDE_LONGITUDE_SCALE * cos_lat
        y = -(latitude - self.origin_latitude) * LATITUDE_LONGITUDE_SCALE
        return x, y

    def to_wgs84(self, x: float, y: float) -> Tuple[float, float]:
        """Local meters back to EPSG:4326 degrees"""
        latitude = self.origin_latitude - y * INV_LATITUDE_LONGITUDE_SCALE
        longitude = self.origin_longitude

        cos_lat = math.cos(math.radians(latitude))
        if cos_lat > 0.0:
            longitude += x * INV_LATITUDE_LONGITUDE_SCALE / cos_lat
        return longitude, latitude

    def to_webmercator(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        """
        Local meters to EPSG:3857 meters.

        Returns None when the point falls outside the Web Mercator latitude band.
        """
        longitude, latitude = self.to_wgs84(x, y)
        if latitude < -MAX_MERCATOR_LATITUDE or latitude > MAX_MERCATOR_LATITUDE:
            return None

        mx = math.radians(longitude) * EARTH_RADIUS
        my = math.log(math.tan(math.radians(latitude) * 0.5 + math.pi * 0.25)) * EARTH_RADIUS
        return mx, my

    def to_webmercator_array(
        self,
        xs: np.ndarray,
        ys: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Vectorized to_webmercator.

        Returns (mx, my, ok) arrays; mx/my are undefined where ok is False.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        xs, ys = np.broadcast_arrays(xs, ys)

        latitude = self.origin_latitude - ys * INV_LATITUDE_LONGITUDE_SCALE
        cos_lat = np.cos(np.radians(latitude))
        with np.errstate(divide="ignore", invalid="ignore"):
            longitude = np.where(
                cos_lat > 0.0,
                self.origin_longitude + xs * INV_LATITUDE_LONGITUDE_SCALE / cos_lat,
                self.origin_longitude,
            )
            ok = (latitude >= -MAX_MERCATOR_LATITUDE) & (latitude <= MAX_MERCATOR_LATITUDE)
            safe_latitude = np.where(ok, latitude, 0.0)
            mx = np.radians(longitude) * EARTH_RADIUS
            my = np.log(np.tan(np.radians(safe_latitude) * 0.5 + np.pi * 0.25)) * EARTH_RADIUS
        return mx, my, ok
