import json

import numpy as np
import pytest
from PIL import Image

from osm_landscape.config import LandscapeBuildSettings
from osm_landscape.landscape import (
    FULL_LAYER_WEIGHT,
    NUM_SECTIONS,
    FileLandscapeSink,
    HeightField,
    LandscapeTransform,
    build_import_request,
    next_pow2,
    static_lighting_lod,
)


def _height_field(size: int) -> HeightField:
    data = (np.arange(size * size, dtype=np.uint32) % 65536).astype(np.uint16).reshape(size, size)
    return HeightField(
        data=data,
        transform=LandscapeTransform.for_elevation_range(1.0, 10.0, 522.0),
        elev_min=10.0,
        elev_max=522.0,
        quad_size=1.0,
    )


def test_transform_constants():
    transform = LandscapeTransform.for_elevation_range(1.28, 0.0, 1310.72)
    assert transform.scale == pytest.approx((1.0, 1.0, 1.0))
    assert transform.rotation == (0.0, 0.0, 0.0)


@pytest.mark.parametrize("value,expected", [(1, 1), (2, 2), (3, 4), (20, 32), (2000, 2048), (2048, 2048)])
def test_next_pow2(value, expected):
    assert next_pow2(value) == expected


@pytest.mark.parametrize("size,lod", [(20, 0), (2000, 0), (2048, 1), (4000, 1), (4096, 2), (8192, 3)])
def test_static_lighting_lod(size, lod):
    assert static_lighting_lod(size) == lod


def test_build_import_request():
    height_field = _height_field(2000)
    settings = LandscapeBuildSettings(radius_m=1000.0, quad_size_m=1.0, layers=["Ground", "Grass"], material="M_Landscape")

    request = build_import_request(height_field, settings)

    assert (request.min_x, request.min_y, request.max_x, request.max_y) == (-1000, -1000, 999, 999)
    assert request.num_sections == NUM_SECTIONS
    assert request.subsection_size == 63
    assert request.height_data is height_field.data
    assert request.additive_blend
    assert request.material == "M_Landscape"
    assert [layer.name for layer in request.layer_infos] == ["Ground", "Grass"]
    assert (request.layer_infos[0].data == FULL_LAYER_WEIGHT).all()
    assert request.layer_infos[1].data is None


def test_small_grid_keeps_a_valid_subsection_size():
    request = build_import_request(_height_field(20), LandscapeBuildSettings())
    assert request.subsection_size == 1


def test_file_sink_writes_heightmap_and_description(tmp_path):
    height_field = _height_field(8)
    request = build_import_request(height_field, LandscapeBuildSettings(layers=["Ground", "Rock"]))

    FileLandscapeSink(str(tmp_path)).import_landscape(request)

    heightmap = np.array(Image.open(tmp_path / "heightmap.png")).astype(np.uint16)
    assert (heightmap == height_field.data).all()

    with open(tmp_path / "landscape.json", encoding="utf-8") as f:
        description = json.load(f)
    assert description["extent"] == [-4, -4, 3, 3]
    assert description["layers"] == [
        {"name": "Ground", "file": "layer_Ground.png"},
        {"name": "Rock", "file": None},
    ]
    assert description["scale"] == pytest.approx(list(height_field.transform.scale))

    layer = np.array(Image.open(tmp_path / "layer_Ground.png"))
    assert (layer == FULL_LAYER_WEIGHT).all()
