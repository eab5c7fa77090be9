"""
Bead palette catalogs and nearest-color lookup.

A palette catalog is a JSON document mapping short bead codes to hex colors:

    {"name": "basic", "label_to_hex": {"A01": "#FFFFFF", ...}}

Bundled catalogs live in the ``catalogs`` directory next to this module and
are addressed by name; any other palette id is treated as a path to a JSON
catalog on disk.
"""

import json
import string
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Callable

import numpy as np

PALETTE_DIR = Path(__file__).parent / "catalogs"
DEFAULT_PALETTE = "basic"


@dataclass(frozen=True)
class PaletteEntry:
    """A catalog color: bead code plus the RGB used to draw it. Compared by code."""

    code: str
    rgb: tuple[int, int, int] = field(compare=False)


@dataclass(frozen=True)
class Palette:
    name: str
    entries: tuple[PaletteEntry, ...]
    rgb_array: np.ndarray = field(compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.entries)


# resolve(r, g, b, palette_id) -> PaletteEntry
Resolver = Callable[[float, float, float, str], PaletteEntry]


def hex_to_rgb(h: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' to (R, G, B)."""
    value = h.lstrip("#")
    if len(value) != 6 or not all(ch in string.hexdigits for ch in value):
        raise ValueError(f"Invalid hex color: {h!r}")
    try:
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except ValueError:
        raise ValueError(f"Invalid hex color: {h!r}") from None


def list_palettes() -> list[str]:
    """Names of the bundled palette catalogs."""
    return sorted(p.stem for p in PALETTE_DIR.glob("*.json"))


def _palette_path(palette_id: str) -> Path:
    bundled = PALETTE_DIR / f"{palette_id}.json"
    if bundled.is_file():
        return bundled
    path = Path(palette_id)
    if path.is_file():
        return path
    available = ", ".join(list_palettes())
    raise ValueError(f"Unknown palette {palette_id!r} (available: {available})")


@lru_cache(maxsize=None)
def load_palette(palette_id: str) -> Palette:
    """Load a bundled palette by name, or a JSON catalog by path."""
    path = _palette_path(palette_id)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    label_to_hex = data.get("label_to_hex") if isinstance(data, dict) else None
    if not label_to_hex:
        raise ValueError(f"Palette {palette_id!r} has no colors")

    entries = tuple(
        PaletteEntry(str(code), hex_to_rgb(hexval))
        for code, hexval in label_to_hex.items()
    )
    rgb_array = np.array([e.rgb for e in entries], dtype=np.float64)
    return Palette(data.get("name", path.stem), entries, rgb_array)


def find_closest_color(r: float, g: float, b: float, palette_id: str) -> PaletteEntry:
    """Return the palette entry nearest to (r, g, b) by RGB Euclidean distance.

    Ties go to the entry listed first in the catalog.
    """
    palette = load_palette(palette_id)
    target = np.array([r, g, b], dtype=np.float64)
    distances = np.sqrt(((palette.rgb_array - target) ** 2).sum(axis=1))
    return palette.entries[int(np.argmin(distances))]
