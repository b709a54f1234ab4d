"""Heuristic skin-tone and garment-color extraction from raw pixels.

The extractor is a cheap approximation, not a vision model: skin pixels are
picked with a fixed RGB rule inside a face/neck band at the top of the frame,
and every other pixel is binned into a coarse color histogram.
"""

import math
from enum import Enum
from typing import List, Sequence, Tuple, Union

import numpy as np
import structlog
from PIL import Image
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

# Skin search band, as fractions of the image size.
SKIN_REGION_HEIGHT = 0.25
SKIN_REGION_LEFT = 0.25
SKIN_REGION_WIDTH = 0.5

DARK_LUMINANCE_LIMIT = 80.0
OLIVE_LUMINANCE_LIMIT = 160.0

BIN_SIZE = 32
TOP_COLOR_COUNT = 3

ANCHOR_DISTANCE_LIMIT = 80.0
CHANNEL_HIGH = 150
CHANNEL_LOW = 100

NOT_DETECTED = "not detected"

PixelBuffer = Union[bytes, bytearray, memoryview, np.ndarray]


class SkinTone(str, Enum):
    """Coarse skin tone categories."""
    FAIR = "fair"
    OLIVE = "olive"
    DARK = "dark"
    NOT_DETECTED = NOT_DETECTED


class GarmentColor(str, Enum):
    """Coarse garment color palette."""
    BLACK = "black"
    WHITE = "white"
    GRAY = "gray"
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    NEUTRAL = "neutral"


COLOR_ANCHORS: Tuple[Tuple[GarmentColor, Tuple[int, int, int]], ...] = (
    (GarmentColor.BLACK, (0, 0, 0)),
    (GarmentColor.WHITE, (255, 255, 255)),
    (GarmentColor.GRAY, (128, 128, 128)),
)


class ColorSignals(BaseModel):
    """Skin tone and dominant garment colors derived from one photo."""
    skin_tone: SkinTone
    dress_colors: List[GarmentColor] = Field(default_factory=list, max_length=TOP_COLOR_COUNT)

    @property
    def dress_colors_label(self) -> str:
        """Comma-joined color labels, or "not detected" when empty."""
        if not self.dress_colors:
            return NOT_DETECTED
        return ", ".join(color.value for color in self.dress_colors)


def is_skin_color(r: int, g: int, b: int) -> bool:
    """Fast RGB skin-locus test."""
    return (
        r > 95 and g > 40 and b > 20
        and r > g and r > b
        and max(r, g, b) - min(r, g, b) > 15
        and abs(r - g) > 15
    )


def luminance(rgb: Sequence[float]) -> float:
    """Perceptual luminance of an RGB triple."""
    return 0.299 * rgb[0] + 0.587 * rgb[1] + 0.114 * rgb[2]


def tone_for_luminance(value: float) -> SkinTone:
    """Tone category for a luminance value."""
    if value < DARK_LUMINANCE_LIMIT:
        return SkinTone.DARK
    if value < OLIVE_LUMINANCE_LIMIT:
        return SkinTone.OLIVE
    return SkinTone.FAIR


def classify_skin_tone(mean_rgb: Sequence[float]) -> SkinTone:
    """Map the mean skin color to a tone category."""
    return tone_for_luminance(luminance(mean_rgb))


def name_color(rgb: Sequence[int]) -> GarmentColor:
    """Name a binned RGB color using the coarse palette."""
    for name, anchor in COLOR_ANCHORS:
        if math.dist(rgb, anchor) < ANCHOR_DISTANCE_LIMIT:
            return name

    r, g, b = rgb
    if r > CHANNEL_HIGH and g < CHANNEL_LOW and b < CHANNEL_LOW:
        return GarmentColor.RED
    if g > CHANNEL_HIGH and r < CHANNEL_LOW and b < CHANNEL_LOW:
        return GarmentColor.GREEN
    if b > CHANNEL_HIGH and r < CHANNEL_LOW and g < CHANNEL_LOW:
        return GarmentColor.BLUE
    return GarmentColor.NEUTRAL


def _skin_mask(rgb: np.ndarray) -> np.ndarray:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    spread = rgb.max(axis=-1) - rgb.min(axis=-1)
    return (
        (r > 95) & (g > 40) & (b > 20)
        & (r > g) & (r > b)
        & (spread > 15)
        & (np.abs(r - g) > 15)
    )


def _skin_region(width: int, height: int) -> np.ndarray:
    left = width * SKIN_REGION_LEFT
    right = left + width * SKIN_REGION_WIDTH
    ys = np.arange(height)[:, None]
    xs = np.arange(width)[None, :]
    return (ys < height * SKIN_REGION_HEIGHT) & (xs > left) & (xs < right)


def _as_rgb(pixels: PixelBuffer, width: int, height: int) -> np.ndarray:
    count = width * height
    if count == 0:
        return np.zeros((height, width, 3), dtype=np.int32)

    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise ValueError(
                f"Pixel array of dtype {pixels.dtype} does not match an 8-bit RGB/RGBA image"
            )
        flat = pixels.reshape(-1)
    else:
        flat = np.frombuffer(bytes(pixels), dtype=np.uint8)

    channels, remainder = divmod(flat.size, count)
    if remainder or channels not in (3, 4):
        raise ValueError(
            f"Pixel buffer of {flat.size} bytes does not match a {width}x{height} RGB/RGBA image"
        )
    return flat.reshape(height, width, channels)[..., :3].astype(np.int32)


def _dominant_bins(rgb: np.ndarray) -> List[Tuple[int, int, int]]:
    """Most populated 32-wide bins, ties kept in scan order."""
    binned = (rgb // BIN_SIZE) * BIN_SIZE
    keys = (binned[:, 0] << 16) | (binned[:, 1] << 8) | binned[:, 2]
    unique, first_seen, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.lexsort((first_seen, -counts))[:TOP_COLOR_COUNT]
    return [
        (int(key >> 16) & 0xFF, int(key >> 8) & 0xFF, int(key) & 0xFF)
        for key in unique[order]
    ]


def extract_color_signals(pixels: PixelBuffer, width: int, height: int) -> ColorSignals:
    """Derive skin tone and dominant garment colors from a pixel buffer.

    Args:
        pixels: Row-major RGBA or RGB bytes (or an equivalent numpy array)
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        ColorSignals for the image. Images with no skin pixels in the face
        band default to a fair tone; images with no other pixels report no
        garment colors.
    """
    rgb = _as_rgb(pixels, width, height)
    skin = _skin_mask(rgb)

    skin_pixels = rgb[skin & _skin_region(width, height)]
    if len(skin_pixels):
        skin_tone = classify_skin_tone(skin_pixels.mean(axis=0))
    else:
        skin_tone = SkinTone.FAIR

    dress_colors: List[GarmentColor] = []
    garment_pixels = rgb[~skin]
    if len(garment_pixels):
        for bin_rgb in _dominant_bins(garment_pixels):
            name = name_color(bin_rgb)
            if name not in dress_colors:
                dress_colors.append(name)

    signals = ColorSignals(skin_tone=skin_tone, dress_colors=dress_colors)
    logger.debug(
        "Color signals extracted",
        width=width,
        height=height,
        skin_pixels=len(skin_pixels),
        garment_pixels=len(garment_pixels),
        skin_tone=signals.skin_tone.value,
        dress_colors=signals.dress_colors_label,
    )
    return signals


def extract_from_image(image: Image.Image) -> ColorSignals:
    """Run the extractor on a decoded PIL image."""
    rgba = image.convert("RGBA")
    return extract_color_signals(rgba.tobytes(), rgba.width, rgba.height)
