import math

import numpy as np
import pytest
from pyproj import Transformer

from osm_landscape.geo import SpatialReferenceSystem
from osm_landscape.geo.srs import LATITUDE_LONGITUDE_SCALE


WGS84_TO_MERCATOR = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@pytest.mark.parametrize("lon,lat", [
    (0.0, 0.0),
    (-0.1276, 51.5074),
    (139.69, 35.69),
    (-70.6, -33.45),
    (179.9, 84.9),
    (-179.9, -84.9),
])
def test_wgs84_round_trip(lon, lat):
    srs = SpatialReferenceSystem(lon + 0.01, lat - 0.01)
    x, y = srs.from_wgs84(lon, lat)
    back_lon, back_lat = srs.to_wgs84(x, y)
    assert back_lon == pytest.approx(lon, abs=1e-6)
    assert back_lat == pytest.approx(lat, abs=1e-6)


def test_origin_maps_to_zero():
    srs = SpatialReferenceSystem(13.4, 52.5)
    assert srs.from_wgs84(13.4, 52.5) == (0.0, 0.0)
    assert srs.to_wgs84(0.0, 0.0) == (13.4, 52.5)


def test_local_axes_point_east_and_south():
    srs = SpatialReferenceSystem(0.0, 0.0)
    x, y = srs.from_wgs84(0.001, 0.001)
    # north of the origin has negative y
    assert x > 0.0
    assert y == pytest.approx(-0.001 * LATITUDE_LONGITUDE_SCALE)
    assert x == pytest.approx(0.001 * LATITUDE_LONGITUDE_SCALE * math.cos(math.radians(0.001)))


def test_to_webmercator_matches_pyproj():
    srs = SpatialReferenceSystem(-0.1276, 51.5074)
    for x, y in [(0.0, 0.0), (1500.0, -800.0), (-2500.0, 3000.0)]:
        lon, lat = srs.to_wgs84(x, y)
        expected = WGS84_TO_MERCATOR.transform(lon, lat)
        mx, my = srs.to_webmercator(x, y)
        assert mx == pytest.approx(expected[0], abs=1e-3)
        assert my == pytest.approx(expected[1], abs=1e-3)


def test_to_webmercator_rejects_polar_points():
    srs = SpatialReferenceSystem(0.0, 85.0)
    assert srs.to_webmercator(0.0, 0.0) is not None
    # 10 km north leaves the Web Mercator band
    assert srs.to_webmercator(0.0, -10000.0) is None


def test_to_webmercator_array_matches_scalar():
    srs = SpatialReferenceSystem(8.54, 47.37)
    xs = np.array([-1000.0, 0.0, 250.0, 999.0])
    ys = np.array([500.0, 0.0, -750.0, 1000.0])

    mx, my, ok = srs.to_webmercator_array(xs, ys)

    assert ok.all()
    for i in range(len(xs)):
        expected = srs.to_webmercator(xs[i], ys[i])
        assert mx[i] == pytest.approx(expected[0], abs=1e-6)
        assert my[i] == pytest.approx(expected[1], abs=1e-6)


def test_to_webmercator_array_flags_polar_points():
    srs = SpatialReferenceSystem(0.0, 85.0)
    mx, my, ok = srs.to_webmercator_array(np.zeros(2), np.array([0.0, -10000.0]))
    assert ok.tolist() == [True, False]
