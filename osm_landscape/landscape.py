"""
Landscape sink interface

Height field output of the elevation model and the request handed to an
external landscape builder. The builder itself lives outside this package;
FileLandscapeSink writes the request to disk for inspection or later import.
"""

import json
import math
import os
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
from loguru import logger
from PIL import Image

from .config import LandscapeBuildSettings


# Contract with the downstream landscape sink:
# OSM data is stored in meters; the sink's native unit is centimeters
M2CM = 100.0
# Default landscape scale in the sink: 128 cm per vertex
DEFAULT_LANDSCAPE_SCALE_XY = 128.0
# Default Z scale of the sink: +/-256 m over the 16-bit height range
DEFAULT_LANDSCAPE_SCALE_Z = 256.0
# Internal Z scale of the sink (512 / 100)
LANDSCAPE_INTERNAL_SCALE_Z = 512.0 / 100.0

# Height value written where no elevation could be sampled
ZERO_ELEVATION = 32768
MAX_HEIGHT_VALUE = 65535

NUM_SECTIONS = 2
FULL_LAYER_WEIGHT = 255


@dataclass(frozen=True)
class LandscapeTransform:
    """Placement of the height field: identity rotation, scale only"""
    scale: Tuple[float, float, float]
    rotation: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def for_elevation_range(cls, quad_size: float, elev_min: float, elev_max: float) -> "LandscapeTransform":
        scale_xy = M2CM * quad_size / DEFAULT_LANDSCAPE_SCALE_XY
        scale_z = (elev_max - elev_min) / DEFAULT_LANDSCAPE_SCALE_Z / LANDSCAPE_INTERNAL_SCALE_Z
        return cls(scale=(scale_xy, scale_xy, scale_z))


@dataclass
class HeightField:
    """Quantized N x N heightmap, row-major with Y as the major axis"""
    data: np.ndarray
    transform: LandscapeTransform
    elev_min: float
    elev_max: float
    quad_size: float

    @property
    def size(self) -> int:
        return int(self.data.shape[0])


@dataclass
class LayerInfo:
    """A named blend layer; data is None for layers left empty"""
    name: str
    data: Optional[np.ndarray] = None


@dataclass
class LandscapeImportRequest:
    """Arguments of the sink's import call"""
    guid: str
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    num_sections: int
    subsection_size: int
    height_data: np.ndarray
    transform: LandscapeTransform
    layer_infos: List[LayerInfo] = field(default_factory=list)
    material: Optional[str] = None
    static_lighting_lod: int = 0
    additive_blend: bool = True


@runtime_checkable
class LandscapeSink(Protocol):
    """External landscape builder"""

    def import_landscape(self, request: LandscapeImportRequest) -> None: ...


def next_pow2(value: int) -> int:
    return 1 << max(int(value) - 1, 0).bit_length()


def static_lighting_lod(size: int) -> int:
    """
    Lighting LOD that keeps lightmass manageable:
    < 2048^2 -> 0, >= 2048^2 -> 1, >= 4096^2 -> 2, >= 8192^2 -> 3
    """
    ratio = (size * size) // (2048 * 2048) + 1
    return math.ceil(math.ceil(math.log2(ratio)) / 2)


def build_import_request(height_field: HeightField, settings: LandscapeBuildSettings) -> LandscapeImportRequest:
    """
    Describe the sink import for a height field

    Blend weights from land use are not rasterized; the first layer is filled
    with full weight and the others are left empty.
    """
    size = height_field.size
    half = size // 2

    layer_infos = [LayerInfo(name=name) for name in settings.layers]
    if layer_infos:
        layer_infos[0].data = np.full((size, size), FULL_LAYER_WEIGHT, dtype=np.uint8)

    return LandscapeImportRequest(
        guid=str(uuid.uuid4()),
        min_x=-half,
        min_y=-half,
        max_x=half - 1,
        max_y=half - 1,
        num_sections=NUM_SECTIONS,
        subsection_size=max(next_pow2(size) // 32 - 1, 1),
        height_data=height_field.data,
        transform=height_field.transform,
        layer_infos=layer_infos,
        material=settings.material,
        static_lighting_lod=static_lighting_lod(size),
    )


class FileLandscapeSink:
    """Writes the heightmap and layers as PNG files plus a JSON description"""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def import_landscape(self, request: LandscapeImportRequest) -> None:
        os.makedirs(self.output_dir, exist_ok=True)

        heightmap_path = os.path.join(self.output_dir, "heightmap.png")
        Image.fromarray(np.ascontiguousarray(request.height_data, dtype=np.uint16)).save(heightmap_path)

        layers = []
        for layer in request.layer_infos:
            entry = {"name": layer.name, "file": None}
            if layer.data is not None:
                filename = f"layer_{layer.name}.png"
                Image.fromarray(np.ascontiguousarray(layer.data, dtype=np.uint8)).save(
                    os.path.join(self.output_dir, filename)
                )
                entry["file"] = filename
            layers.append(entry)

        description = {
            "guid": request.guid,
            "extent": [request.min_x, request.min_y, request.max_x, request.max_y],
            "num_sections": request.num_sections,
            "subsection_size": request.subsection_size,
            "heightmap": "heightmap.png",
            "scale": list(request.transform.scale),
            "rotation": list(request.transform.rotation),
            "layers": layers,
            "material": request.material,
            "static_lighting_lod": request.static_lighting_lod,
            "additive_blend": request.additive_blend,
        }
        with open(os.path.join(self.output_dir, "landscape.json"), "w", encoding="utf-8") as f:
            json.dump(description, f, indent=2, ensure_ascii=False)

        logger.info(f"Wrote landscape to {self.output_dir}")
