"""
Configuration settings for the OSM landscape importer
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import os
import tempfile

from dotenv import load_dotenv
from loguru import logger


# Terrarium tiles hosted on AWS (formerly Mapzen)
TERRARIUM_URL_TEMPLATE = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"


def default_cache_dir() -> str:
    """Elevation cache directory inside the user's temp directory"""
    return os.path.join(tempfile.gettempdir(), "ElevationCache")


@dataclass
class ElevationConfig:
    """Elevation tile source and download settings"""
    url_template: str = TERRARIUM_URL_TEMPLATE
    cache_dir: str = field(default_factory=default_cache_dir)

    # Tile pyramid of the provider
    tile_size: int = 256
    num_levels: int = 15

    # Download limits
    max_in_flight: int = 10
    tile_timeout_s: float = 10.0
    poll_interval_s: float = 0.1

    # Passed to requests; the per-tile wall clock timeout above still applies
    request_timeout_s: float = 10.0
    user_agent: str = "OSMLandscapeImporter/1.0"


@dataclass
class LandscapeBuildSettings:
    """Per-build landscape settings"""
    # Half-size of the square landscape around the map origin (meters)
    radius_m: float = 1000.0

    # Meters per heightmap cell
    quad_size_m: float = 1.0

    # Named land-use layers handed to the landscape sink
    layers: List[str] = field(default_factory=lambda: ["Ground"])

    # Opaque material reference for the sink
    material: Optional[str] = None


@dataclass
class ImportConfig:
    """Importer configuration"""
    # OSM data is in meters; downstream consumes centimeters
    osm_to_cm_scale: float = 100.0

    # Tolerance for detecting a closed ring (output units)
    closure_epsilon: float = 1e-4

    elevation: ElevationConfig = field(default_factory=ElevationConfig)
    landscape: LandscapeBuildSettings = field(default_factory=LandscapeBuildSettings)


def _load_env() -> None:
    env_paths = [
        Path(__file__).parent.parent / ".env",  # Project root
        Path.cwd() / ".env",
        Path.home() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)  # Don't override existing env vars
            logger.debug(f"Loaded .env file from {env_path}")
            return
    load_dotenv()


def load_config() -> ImportConfig:
    """Build a config from defaults and environment overrides"""
    _load_env()
    cfg = ImportConfig()
    url = os.getenv("OSM_LANDSCAPE_ELEVATION_URL")
    if url:
        cfg.elevation.url_template = url
    cache_dir = os.getenv("OSM_LANDSCAPE_CACHE_DIR")
    if cache_dir:
        cfg.elevation.cache_dir = cache_dir
    return cfg


# Global config instance
config: Optional[ImportConfig] = None


def get_config() -> ImportConfig:
    """Get global configuration"""
    global config
    if config is None:
        config = load_config()
    return config


def validate_config(config: ImportConfig) -> None:
    """
    Validate configuration values.
    Raises ValueError listing every problem found.
    """
    errors = []

    if config.osm_to_cm_scale <= 0:
        errors.append(f"osm_to_cm_scale must be positive, got {config.osm_to_cm_scale}")

    elevation = config.elevation
    for key in ("{z}", "{x}", "{y}"):
        if key not in elevation.url_template:
            errors.append(f"elevation.url_template is missing {key}: {elevation.url_template}")
    if elevation.num_levels < 1:
        errors.append(f"elevation.num_levels must be >= 1, got {elevation.num_levels}")
    if elevation.tile_size < 1:
        errors.append(f"elevation.tile_size must be >= 1, got {elevation.tile_size}")
    if elevation.max_in_flight < 1:
        errors.append(f"elevation.max_in_flight must be >= 1, got {elevation.max_in_flight}")
    if elevation.tile_timeout_s <= 0:
        errors.append(f"elevation.tile_timeout_s must be positive, got {elevation.tile_timeout_s}")

    landscape = config.landscape
    if landscape.radius_m <= 0:
        errors.append(f"landscape.radius_m must be positive, got {landscape.radius_m}")
    if landscape.quad_size_m <= 0:
        errors.append(f"landscape.quad_size_m must be positive, got {landscape.quad_size_m}")
    elif round(landscape.radius_m / landscape.quad_size_m) < 1:
        errors.append("landscape.radius_m must cover at least one quad")
    if not landscape.layers:
        errors.append("landscape.layers needs at least one layer")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
