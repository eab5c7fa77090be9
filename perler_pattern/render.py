"""
Render a resolved bead grid as a printable chart.

The chart shows every cell as a colored square labeled with its bead code,
coordinate rulers on all four sides, heavier guide lines every 10 cells, and
a legend below the grid listing each code with its usage count.
"""

import math
from collections import Counter
from functools import lru_cache
from typing import NamedTuple, Sequence

from PIL import Image, ImageDraw, ImageFont

from .palettes import PaletteEntry

CELL_SIZE = 40
MARGIN = 60
GUIDE_EVERY = 10

BACKGROUND = (255, 255, 255)
CELL_LINE_COLOR = (229, 231, 235)
GUIDE_LINE_COLOR = (75, 85, 99)
GUIDE_LINE_WIDTH = 3
RULER_COLOR = (55, 65, 81)
DARK_TEXT = (17, 24, 39)
LIGHT_TEXT = (255, 255, 255)

LEGEND_MIN_ITEM_WIDTH = 120
LEGEND_SPACING_X = 20
LEGEND_SPACING_Y = 20

Grid = Sequence[Sequence[PaletteEntry]]


class ColorStat(NamedTuple):
    entry: PaletteEntry
    count: int


class ChartLayout(NamedTuple):
    width: int
    height: int
    offset_x: int
    offset_y: int
    grid_width: int
    grid_height: int
    item_width: int
    items_per_row: int
    legend_top: int


def color_stats(grid: Grid) -> list[ColorStat]:
    """Count each bead code in the grid, most used first.

    Codes with equal counts keep the order in which a row-major scan first
    meets them.
    """
    usage = Counter(entry for row in grid for entry in row)
    return [ColorStat(entry, count) for entry, count in usage.most_common()]


def luminance(r: float, g: float, b: float) -> float:
    return 0.299 * r + 0.587 * g + 0.114 * b


def text_color(rgb: tuple[int, int, int]) -> tuple[int, int, int]:
    """Dark text on light cells, light text on dark cells."""
    return DARK_TEXT if luminance(*rgb) > 128 else LIGHT_TEXT


def chart_layout(
    rows: int,
    cols: int,
    n_stats: int,
    cell_size: int = CELL_SIZE,
    margin: int = MARGIN,
) -> ChartLayout:
    """Compute canvas size and the positions of the grid and legend."""
    grid_width = cols * cell_size
    grid_height = rows * cell_size

    item_width = max(LEGEND_MIN_ITEM_WIDTH, cell_size * 3)
    items_per_row = max(1, grid_width // (item_width + LEGEND_SPACING_X))
    legend_rows = math.ceil(n_stats / items_per_row)
    legend_height = legend_rows * (cell_size + LEGEND_SPACING_Y)

    width = max(grid_width + margin * 2, item_width + margin * 2)
    height = math.ceil(grid_height + margin * 2.5 + legend_height + margin)

    offset_x = (width - grid_width) // 2
    offset_y = margin
    legend_top = round(offset_y + grid_height + margin * 1.5)

    return ChartLayout(
        width, height, offset_x, offset_y, grid_width, grid_height,
        item_width, items_per_row, legend_top,
    )


@lru_cache(maxsize=None)
def _load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Try to load a sans-serif system font, fall back to Pillow's default."""
    if bold:
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
            "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
            "arialbd.ttf",
        ]
    else:
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "/System/Library/Fonts/Supplemental/Arial.ttf",
            "arial.ttf",
        ]
    for path in candidates:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size)


def _draw_centered(draw: ImageDraw.ImageDraw, cx: float, cy: float, text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((round(cx - (left + right) / 2), round(cy - (top + bottom) / 2)), text, fill=fill, font=font)


def _draw_left(draw: ImageDraw.ImageDraw, x: float, cy: float, text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((round(x - left), round(cy - (top + bottom) / 2)), text, fill=fill, font=font)


def draw_pattern(grid: Grid, cell_size: int = CELL_SIZE, margin: int = MARGIN) -> Image.Image:
    """
    Draw the bead chart for a resolved grid.

    Args:
        grid: Rows of palette entries, row-major
        cell_size: Side of one bead square in pixels
        margin: Space around the grid reserved for the rulers

    Returns:
        The rendered chart as an RGB image
    """
    rows = len(grid)
    cols = len(grid[0]) if rows else 0
    if rows == 0 or cols == 0:
        raise ValueError("Cannot draw an empty grid.")

    stats = color_stats(grid)
    layout = chart_layout(rows, cols, len(stats), cell_size, margin)
    ox, oy = layout.offset_x, layout.offset_y

    img = Image.new("RGB", (layout.width, layout.height), BACKGROUND)
    draw = ImageDraw.Draw(img)

    code_font = _load_font(max(1, round(cell_size * 0.35)), bold=True)

    # Cells
    for r, row in enumerate(grid):
        for c, entry in enumerate(row):
            x = ox + c * cell_size
            y = oy + r * cell_size
            draw.rectangle([x, y, x + cell_size, y + cell_size], fill=entry.rgb, outline=CELL_LINE_COLOR, width=1)
            _draw_centered(draw, x + cell_size / 2, y + cell_size / 2, entry.code, code_font, text_color(entry.rgb))

    # Guide lines every 10 cells, then a border around the whole grid
    half = GUIDE_LINE_WIDTH // 2
    for c in range(GUIDE_EVERY, cols, GUIDE_EVERY):
        x = ox + c * cell_size
        draw.line([(x, oy), (x, oy + layout.grid_height)], fill=GUIDE_LINE_COLOR, width=GUIDE_LINE_WIDTH)
    for r in range(GUIDE_EVERY, rows, GUIDE_EVERY):
        y = oy + r * cell_size
        draw.line([(ox, y), (ox + layout.grid_width, y)], fill=GUIDE_LINE_COLOR, width=GUIDE_LINE_WIDTH)
    draw.rectangle(
        [ox - half, oy - half, ox + layout.grid_width + half, oy + layout.grid_height + half],
        outline=GUIDE_LINE_COLOR,
        width=GUIDE_LINE_WIDTH,
    )

    # Rulers, 1-based; every 10th index in bold
    ruler_font = _load_font(max(1, round(margin * 0.3)))
    ruler_bold = _load_font(max(1, round(margin * 0.4)), bold=True)
    for c in range(cols):
        label = str(c + 1)
        font = ruler_bold if (c + 1) % GUIDE_EVERY == 0 else ruler_font
        cx = ox + c * cell_size + cell_size / 2
        _draw_centered(draw, cx, oy - margin / 2, label, font, RULER_COLOR)
        _draw_centered(draw, cx, oy + layout.grid_height + margin / 2, label, font, RULER_COLOR)
    for r in range(rows):
        label = str(r + 1)
        font = ruler_bold if (r + 1) % GUIDE_EVERY == 0 else ruler_font
        cy = oy + r * cell_size + cell_size / 2
        _draw_centered(draw, ox - margin / 2, cy, label, font, RULER_COLOR)
        _draw_centered(draw, ox + layout.grid_width + margin / 2, cy, label, font, RULER_COLOR)

    # Legend, centered when narrower than the canvas
    count_font = _load_font(max(1, round(cell_size * 0.4)))
    step_x = layout.item_width + LEGEND_SPACING_X
    step_y = cell_size + LEGEND_SPACING_Y
    legend_width = min(len(stats), layout.items_per_row) * step_x - LEGEND_SPACING_X
    legend_left = (layout.width - legend_width) // 2

    for i, stat in enumerate(stats):
        row, col = divmod(i, layout.items_per_row)
        x = legend_left + col * step_x
        y = layout.legend_top + row * step_y
        rgb = stat.entry.rgb
        draw.rectangle([x, y, x + cell_size, y + cell_size], fill=rgb, outline=CELL_LINE_COLOR, width=1)
        _draw_centered(draw, x + cell_size / 2, y + cell_size / 2, stat.entry.code, code_font, text_color(rgb))
        _draw_left(draw, x + cell_size + 8, y + cell_size / 2, f" * {stat.count}", count_font, DARK_TEXT)

    return img
