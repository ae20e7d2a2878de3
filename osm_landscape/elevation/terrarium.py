"""
Terrarium tile decoding

Terrarium encoding: height = (R * 256 + G + B / 256) - 32768 meters
"""

import math
from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError


ELEVATION_OFFSET = 32768.0
# Raw values outside (0, 41768) are no-data; Everest is ~8849 m
MAX_VALID_RAW = 41768.0
# Bit depth byte of the IHDR chunk, which always follows the 8 byte signature
PNG_BIT_DEPTH_OFFSET = 24


class TerrariumDecodeError(ValueError):
    """Tile bytes are not a usable terrarium PNG"""
    pass


@dataclass
class DecodedTile:
    """float32 elevation raster [height, width] with min/max over valid samples"""
    elevation: np.ndarray
    min_elevation: float
    max_elevation: float

    @property
    def has_valid_samples(self) -> bool:
        return self.min_elevation <= self.max_elevation


def decode_terrarium(data: bytes, tile_width: int, tile_height: int) -> DecodedTile:
    """
    Decode a terrarium PNG

    Args:
        data: Raw PNG bytes
        tile_width: Expected width in pixels
        tile_height: Expected height in pixels

    Returns:
        DecodedTile; every pixel is stored, only valid ones count towards min/max

    Raises:
        TerrariumDecodeError: wrong dimensions, unsupported format or corrupt payload
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise TerrariumDecodeError(f"corrupt PNG payload: {e}") from e

    if img.format != "PNG":
        raise TerrariumDecodeError(f"expected PNG, got {img.format}")

    if img.size != (tile_width, tile_height):
        raise TerrariumDecodeError(
            f"PNG file has wrong dimensions {img.size[0]}x{img.size[1]}. Expected {tile_width}x{tile_height}"
        )

    # Pillow reports 16-bit RGBA as "RGBA" too
    bit_depth = data[PNG_BIT_DEPTH_OFFSET]
    if bit_depth != 8:
        raise TerrariumDecodeError(f"PNG file contains elevation data in an unsupported format ({bit_depth}-bit {img.mode})")

    # 8-bit RGB carries the same samples; anything else is unsupported
    if img.mode == "RGB":
        img = img.convert("RGBA")
    if img.mode != "RGBA":
        raise TerrariumDecodeError(f"PNG file contains elevation data in an unsupported format ({img.mode})")

    img_array = np.asarray(img, dtype=np.uint8)

    R = img_array[:, :, 0].astype(np.float32)
    G = img_array[:, :, 1].astype(np.float32)
    B = img_array[:, :, 2].astype(np.float32)

    # Exact in float32: at most 16 integer bits plus 8 fractional bits
    raw = R * np.float32(256.0) + G + B / np.float32(256.0)
    elevation = raw - np.float32(ELEVATION_OFFSET)

    valid = (raw > 0.0) & (raw < MAX_VALID_RAW)
    if valid.any():
        valid_elevation = elevation[valid]
        min_elevation = float(valid_elevation.min())
        max_elevation = float(valid_elevation.max())
    else:
        min_elevation = math.inf
        max_elevation = -math.inf

    return DecodedTile(
        elevation=np.ascontiguousarray(elevation, dtype=np.float32),
        min_elevation=min_elevation,
        max_elevation=max_elevation,
    )
