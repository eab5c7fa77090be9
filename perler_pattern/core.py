"""
Turn a photo into a bead pattern.

The photo is center-cropped to the aspect ratio of the requested bead grid,
reduced to one color per bead with one of three sampling algorithms, matched
against a bead palette and rendered as a chart. Every stage returns a new
grid; nothing is modified in place.
"""

import io
import math
from enum import Enum
from pathlib import Path
from typing import NamedTuple

import numpy as np
from PIL import Image
from scipy.ndimage import convolve

from .palettes import DEFAULT_PALETTE, PaletteEntry, Resolver, find_closest_color
from .render import CELL_SIZE, MARGIN, color_stats, draw_pattern

DEFAULT_WIDTH = 40
DEFAULT_HEIGHT = 40
MAX_DIMENSION = 120

BRIGHTNESS_STEP = 15
MIN_BRIGHTNESS = -2
MAX_BRIGHTNESS = 2

# Gradient enhancement: cells whose mean L1 distance to their 4-neighbors is
# below FLAT_THRESHOLD pass through untouched.
FLAT_THRESHOLD = 15
CENTER_WEIGHT = 2.2
EDGE_WEIGHT = -0.3

_NEIGHBORS = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]], dtype=np.float64)
_SHARPEN_KERNEL = _NEIGHBORS * EDGE_WEIGHT
_SHARPEN_KERNEL[1, 1] = CENTER_WEIGHT


class Algorithm(str, Enum):
    AVERAGE = "average"
    NEAREST = "nearest"
    GRADIENT_ENHANCED = "gradient_enhanced"


class CropRect(NamedTuple):
    x: float
    y: float
    w: float
    h: float

    @property
    def box(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.w, self.y + self.h)


def clamp_dimension(value: int) -> int:
    """Clamp a requested grid dimension to [1, MAX_DIMENSION]."""
    return min(max(1, value), MAX_DIMENSION)


def plan_crop(source_w: int, source_h: int, target_w: int, target_h: int) -> CropRect:
    """Largest centered rectangle of the source with the target's aspect ratio."""
    target_ratio = target_w / target_h
    img_ratio = source_w / source_h

    if img_ratio > target_ratio:
        # Source is wider: keep full height, trim the sides
        crop_w = source_h * target_ratio
        return CropRect((source_w - crop_w) / 2, 0.0, crop_w, float(source_h))

    # Source is taller (or equal): keep full width, trim top and bottom
    crop_h = source_w / target_ratio
    return CropRect(0.0, (source_h - crop_h) / 2, float(source_w), crop_h)


def brightness_offset(level: int) -> int:
    """Amount added to every channel for a brightness level in [-2, 2]."""
    if not MIN_BRIGHTNESS <= level <= MAX_BRIGHTNESS:
        raise ValueError(f"Brightness must be between {MIN_BRIGHTNESS} and {MAX_BRIGHTNESS}, got {level}")
    return level * BRIGHTNESS_STEP


def sample_nearest(
    img: Image.Image,
    crop: CropRect,
    target_w: int,
    target_h: int,
    brightness: int = 0,
) -> np.ndarray:
    """Pick one source pixel per cell. Returns a (target_h, target_w, 3) float grid."""
    small = img.resize((target_w, target_h), Image.Resampling.NEAREST, box=crop.box)
    pixels = np.asarray(small, dtype=np.float64) + brightness_offset(brightness)
    return np.clip(pixels, 0, 255)


def sample_average(
    img: Image.Image,
    crop: CropRect,
    target_w: int,
    target_h: int,
    brightness: int = 0,
    verbose: bool = False,
) -> np.ndarray:
    """
    Average the source pixels falling into each cell's block.

    The crop is first brought to a whole number of pixels, then split into
    target_w x target_h blocks. Brightness is applied and clamped per pixel
    before averaging.

    Returns:
        A (target_h, target_w, 3) float grid with channels in [0, 255]
    """
    crop_w = max(1, int(crop.w))
    crop_h = max(1, int(crop.h))
    region = img.resize((crop_w, crop_h), Image.Resampling.BILINEAR, box=crop.box)
    pixels = np.clip(np.asarray(region, dtype=np.float64) + brightness_offset(brightness), 0, 255)

    block_w = crop_w / target_w
    block_h = crop_h / target_h

    raw = np.zeros((target_h, target_w, 3), dtype=np.float64)
    empty_blocks = 0
    for r in range(target_h):
        y0 = math.floor(r * block_h)
        y1 = min(math.floor((r + 1) * block_h), crop_h)
        for c in range(target_w):
            x0 = math.floor(c * block_w)
            x1 = min(math.floor((c + 1) * block_w), crop_w)
            block = pixels[y0:y1, x0:x1]
            count = block.shape[0] * block.shape[1]
            if count == 0:
                # Fewer source pixels than cells; the block counts as one black pixel
                empty_blocks += 1
                count = 1
            raw[r, c] = block.sum(axis=(0, 1)) / count

    if verbose and empty_blocks:
        print(f"  {empty_blocks} empty blocks (source crop {crop_w}x{crop_h} is smaller than the grid)")

    return raw


def enhance_gradients(raw: np.ndarray) -> np.ndarray:
    """
    Sharpen cells that differ from their neighbors, leave flat areas alone.

    Each cell's mean L1 color distance to its existing up/down/left/right
    neighbors decides: below FLAT_THRESHOLD the color is kept, otherwise a
    cross-shaped unsharp kernel (center 2.2, neighbors -0.3) is applied.
    Neighbors outside the grid count as copies of the center cell.
    """
    h, w, _ = raw.shape

    diff_sum = np.zeros((h, w), dtype=np.float64)
    vertical = np.abs(np.diff(raw, axis=0)).sum(axis=2)
    diff_sum[1:, :] += vertical
    diff_sum[:-1, :] += vertical
    horizontal = np.abs(np.diff(raw, axis=1)).sum(axis=2)
    diff_sum[:, 1:] += horizontal
    diff_sum[:, :-1] += horizontal

    neighbor_count = convolve(np.ones((h, w), dtype=np.float64), _NEIGHBORS, mode="constant", cval=0.0)
    avg_diff = np.divide(diff_sum, neighbor_count, out=np.zeros_like(diff_sum), where=neighbor_count > 0)

    # mode="nearest" repeats the border cell, i.e. a missing neighbor equals the center
    sharpened = np.stack(
        [convolve(raw[:, :, ch], _SHARPEN_KERNEL, mode="nearest") for ch in range(3)],
        axis=2,
    )
    sharpened = np.clip(sharpened, 0, 255)

    flat = avg_diff < FLAT_THRESHOLD
    return np.where(flat[:, :, None], raw, sharpened)


def sample_grid(
    img: Image.Image,
    target_w: int,
    target_h: int,
    algorithm: Algorithm | str = Algorithm.AVERAGE,
    brightness: int = 0,
    verbose: bool = False,
) -> np.ndarray:
    """Crop the image and reduce it to a raw color grid with the chosen algorithm."""
    algorithm = Algorithm(algorithm)
    crop = plan_crop(img.size[0], img.size[1], target_w, target_h)

    if verbose:
        print(f"Crop: {crop.w:.1f}x{crop.h:.1f} at ({crop.x:.1f}, {crop.y:.1f})")
        print(f"Sampling {target_w}x{target_h} with {algorithm.value} (brightness {brightness:+d})")

    if algorithm is Algorithm.NEAREST:
        return sample_nearest(img, crop, target_w, target_h, brightness)

    raw = sample_average(img, crop, target_w, target_h, brightness, verbose=verbose)
    if algorithm is Algorithm.GRADIENT_ENHANCED:
        raw = enhance_gradients(raw)
    return raw


def resolve_grid(
    raw: np.ndarray,
    palette_id: str = DEFAULT_PALETTE,
    resolver: Resolver | None = None,
) -> list[list[PaletteEntry]]:
    """Match every cell of a raw color grid to a palette entry."""
    resolve = resolver or find_closest_color
    h, w, _ = raw.shape
    return [
        [resolve(float(raw[r, c, 0]), float(raw[r, c, 1]), float(raw[r, c, 2]), palette_id) for c in range(w)]
        for r in range(h)
    ]


def _load_source(source: Image.Image | str | Path) -> Image.Image:
    img = source if isinstance(source, Image.Image) else Image.open(source)
    return img.convert("RGB")


def generate_pattern(
    source: Image.Image | str | Path,
    target_w: int = DEFAULT_WIDTH,
    target_h: int = DEFAULT_HEIGHT,
    algorithm: Algorithm | str = Algorithm.AVERAGE,
    palette_id: str = DEFAULT_PALETTE,
    brightness: int = 0,
    resolver: Resolver | None = None,
    verbose: bool = False,
) -> list[list[PaletteEntry]]:
    """Run crop, sampling and palette matching; return the resolved bead grid."""
    img = _load_source(source)

    if verbose:
        print(f"Input image: {img.size[0]}x{img.size[1]}")

    raw = sample_grid(img, target_w, target_h, algorithm, brightness, verbose=verbose)
    grid = resolve_grid(raw, palette_id, resolver)

    if verbose:
        print(f"Palette {palette_id}: {len(color_stats(grid))} distinct colors")

    return grid


def generate_image(
    source: Image.Image | str | Path,
    target_w: int = DEFAULT_WIDTH,
    target_h: int = DEFAULT_HEIGHT,
    algorithm: Algorithm | str = Algorithm.AVERAGE,
    palette_id: str = DEFAULT_PALETTE,
    brightness: int = 0,
    resolver: Resolver | None = None,
    cell_size: int = CELL_SIZE,
    margin: int = MARGIN,
    verbose: bool = False,
) -> Image.Image:
    """
    Build the bead chart for a photo.

    Args:
        source: A PIL image or a path to an image file
        target_w: Grid width in beads
        target_h: Grid height in beads
        algorithm: average, nearest or gradient_enhanced
        palette_id: Bundled palette name or path to a palette JSON file
        brightness: Brightness level in [-2, 2]
        resolver: Replacement for the nearest palette color lookup
        cell_size: Side of one bead square in the chart
        margin: Ruler space around the grid
        verbose: Print progress info

    Returns:
        The chart image
    """
    grid = generate_pattern(source, target_w, target_h, algorithm, palette_id, brightness, resolver, verbose)
    chart = draw_pattern(grid, cell_size=cell_size, margin=margin)

    if verbose:
        print(f"Chart size: {chart.size[0]}x{chart.size[1]}")

    return chart


def generate(
    source: Image.Image | str | Path,
    target_w: int = DEFAULT_WIDTH,
    target_h: int = DEFAULT_HEIGHT,
    algorithm: Algorithm | str = Algorithm.AVERAGE,
    palette_id: str = DEFAULT_PALETTE,
    brightness: int = 0,
    resolver: Resolver | None = None,
    cell_size: int = CELL_SIZE,
    margin: int = MARGIN,
    verbose: bool = False,
) -> bytes:
    """Build the bead chart for a photo and return it as PNG bytes."""
    chart = generate_image(
        source, target_w, target_h, algorithm, palette_id, brightness, resolver,
        cell_size=cell_size, margin=margin, verbose=verbose,
    )
    buffer = io.BytesIO()
    chart.save(buffer, format="PNG")
    return buffer.getvalue()
