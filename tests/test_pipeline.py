import importlib.util
import json
from pathlib import Path

import pytest

from conftest import TEST_URL_TEMPLATE, FakeTransport, RecordingProgress, terrarium_png
from osm_landscape import cli
from osm_landscape.config import ImportConfig, LandscapeBuildSettings
from osm_landscape.elevation import ElevationModel, ElevationTileCache
from osm_landscape.errors import OsmParseFailed, UserCancelled
from osm_landscape.geo import TiledMap
from osm_landscape.pipeline import StreetMapImporter


OSM_TEXT = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <node id="1" lat="0.0" lon="0.0"/>
  <node id="2" lat="0.001" lon="0.001"/>
  <node id="3" lat="0.001" lon="0.0"/>
  <way id="10">
    <nd ref="1"/>
    <nd ref="2"/>
    <tag k="highway" v="residential"/>
    <tag k="name" v="Main Street"/>
  </way>
  <way id="11">
    <nd ref="1"/>
    <nd ref="2"/>
    <nd ref="3"/>
    <nd ref="1"/>
    <tag k="building" v="yes"/>
  </way>
</osm>
"""


class _RecordingSink:
    def __init__(self):
        self.requests = []

    def import_landscape(self, request):
        self.requests.append(request)


def _elevation_model(tmp_path, clock, sleep, transport=None):
    tiled_map = TiledMap.terrarium(TEST_URL_TEMPLATE, tile_size=4, num_levels=2)
    if transport is None:
        responses = {
            (1, x, y): (200, terrarium_png(10.0 * (x + 2 * y), size=4), 0.0)
            for x in range(2) for y in range(2)
        }
        transport = FakeTransport(clock, responses)
    return ElevationModel(
        tiled_map,
        cache=ElevationTileCache(str(tmp_path / "cache")),
        transport=transport,
        clock=clock,
        sleep=sleep,
    )


def test_import_text_and_save(tmp_path):
    importer = StreetMapImporter(ImportConfig())
    street_map = importer.import_text(OSM_TEXT)

    assert len(street_map.roads) == 1
    assert len(street_map.buildings) == 1
    assert street_map.roads[0].name == "Main Street"
    assert importer.osm_file.max_latitude == 0.001

    path = importer.save(street_map, tmp_path / "out" / "streetmap.json")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["roads"][0]["name"] == "Main Street"
    assert len(data["buildings"][0]["points"]) == 3


def test_import_rejects_malformed_xml():
    with pytest.raises(OsmParseFailed):
        StreetMapImporter(ImportConfig()).import_text("<osm><node></osm>")


def test_build_landscape(tmp_path, clock, sleep):
    config = ImportConfig()
    progress = RecordingProgress()
    importer = StreetMapImporter(config, progress=progress)
    street_map = importer.import_text(OSM_TEXT)
    sink = _RecordingSink()

    request = importer.build_landscape(
        street_map,
        LandscapeBuildSettings(radius_m=500.0, quad_size_m=50.0, layers=["Ground"]),
        sink=sink,
        elevation_model=_elevation_model(tmp_path, clock, sleep),
    )

    assert sink.requests == [request]
    assert request.height_data.shape == (20, 20)
    assert request.height_data.min() == 0
    assert request.height_data.max() == 65535
    assert importer.height_field.elev_min == 0.0
    assert importer.height_field.elev_max == 30.0
    assert progress.frames[-1][1] == "Reprojecting Elevation Model"


def test_build_landscape_propagates_cancel(tmp_path, clock, sleep):
    importer = StreetMapImporter(ImportConfig(), progress=RecordingProgress(cancel_after_checks=0))
    street_map = importer.import_text(OSM_TEXT)
    sink = _RecordingSink()

    with pytest.raises(UserCancelled):
        importer.build_landscape(
            street_map,
            sink=sink,
            elevation_model=_elevation_model(tmp_path, clock, sleep, FakeTransport(clock)),
        )
    assert sink.requests == []


def test_cli_import(tmp_path, capsys):
    source = tmp_path / "map.osm"
    source.write_text(OSM_TEXT, encoding="utf-8")
    output = tmp_path / "streetmap.json"

    assert cli.main(["import", str(source), "--output", str(output), "--summary"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["roads"] == 1
    assert summary["buildings"] == 1
    assert summary["osm_bbox"] == [0.0, 0.0, 0.001, 0.001]
    assert output.exists()


def test_cli_reports_failures(tmp_path):
    assert cli.main(["import", str(tmp_path / "missing.osm")]) == 1

    broken = tmp_path / "broken.osm"
    broken.write_text("<osm><way></osm>", encoding="utf-8")
    assert cli.main(["import", str(broken), "--output", str(tmp_path / "out.json")]) == 1


def test_cli_without_command():
    assert cli.main([]) == 1


def test_root_script_runs_package_cli():
    script = Path(__file__).resolve().parent.parent / "cli.py"
    module_spec = importlib.util.spec_from_file_location("osm_landscape_script", script)
    script_module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(script_module)
    assert script_module.main is cli.main
