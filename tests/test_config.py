import os

import pytest

from osm_landscape.config import (
    TERRARIUM_URL_TEMPLATE,
    ImportConfig,
    LandscapeBuildSettings,
    load_config,
    validate_config,
)


def test_defaults_are_valid():
    config = ImportConfig()
    validate_config(config)
    assert config.elevation.url_template == TERRARIUM_URL_TEMPLATE
    assert config.elevation.max_in_flight == 10
    assert config.elevation.tile_timeout_s == 10.0
    assert config.elevation.cache_dir.endswith("ElevationCache")
    assert config.osm_to_cm_scale == 100.0


def test_validation_collects_every_problem():
    config = ImportConfig(landscape=LandscapeBuildSettings(radius_m=-1.0, quad_size_m=0.0, layers=[]))
    config.elevation.url_template = "https://tiles.test/{z}/{x}.png"

    with pytest.raises(ValueError) as exc_info:
        validate_config(config)

    message = str(exc_info.value)
    assert "missing {y}" in message
    assert "radius_m" in message
    assert "quad_size_m" in message
    assert "layers" in message


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("OSM_LANDSCAPE_ELEVATION_URL", "https://mirror.test/{z}/{x}/{y}.png")
    monkeypatch.setenv("OSM_LANDSCAPE_CACHE_DIR", str(tmp_path))

    config = load_config()

    assert config.elevation.url_template == "https://mirror.test/{z}/{x}/{y}.png"
    assert config.elevation.cache_dir == str(tmp_path)


def test_defaults_without_environment(monkeypatch):
    monkeypatch.delenv("OSM_LANDSCAPE_ELEVATION_URL", raising=False)
    monkeypatch.delenv("OSM_LANDSCAPE_CACHE_DIR", raising=False)
    monkeypatch.setattr("osm_landscape.config._load_env", lambda: None)

    config = load_config()

    assert config.elevation.url_template == TERRARIUM_URL_TEMPLATE
    assert os.path.basename(config.elevation.cache_dir) == "ElevationCache"
