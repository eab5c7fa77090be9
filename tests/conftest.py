import numpy as np
import pytest
from PIL import Image

from perler_pattern.palettes import PaletteEntry


class RecordingResolver:
    """Resolver stub: every distinct rounded color becomes its own entry."""

    def __init__(self):
        self.calls = []

    def __call__(self, r, g, b, palette_id):
        self.calls.append((r, g, b, palette_id))
        rgb = (int(round(r)), int(round(g)), int(round(b)))
        return PaletteEntry("%02X%02X%02X" % rgb, rgb)


@pytest.fixture
def resolver():
    return RecordingResolver()


def solid_image(size, color):
    return Image.new("RGB", size, color)


def quadrant_image():
    """2x2 image: red, green / blue, white."""
    img = Image.new("RGB", (2, 2))
    img.putpixel((0, 0), (255, 0, 0))
    img.putpixel((1, 0), (0, 255, 0))
    img.putpixel((0, 1), (0, 0, 255))
    img.putpixel((1, 1), (255, 255, 255))
    return img


def noise_image(size, seed=0):
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(size[1], size[0], 3), dtype=np.uint8)
    return Image.fromarray(pixels, "RGB")
