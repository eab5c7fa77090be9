import pytest

from perler_pattern.palettes import PaletteEntry
from perler_pattern.render import (
    DARK_TEXT,
    LIGHT_TEXT,
    chart_layout,
    color_stats,
    draw_pattern,
    text_color,
)

A = PaletteEntry("A", (200, 30, 30))
B = PaletteEntry("B", (30, 200, 30))
C = PaletteEntry("C", (30, 30, 200))


def test_legend_order_breaks_ties_by_first_appearance():
    # A:5, B:3, C:3 with C seen before B in a row-major scan
    grid = [[A, C, A, B, A, C, B, A, C, B, A]]
    stats = color_stats(grid)

    assert [(s.entry.code, s.count) for s in stats] == [("A", 5), ("C", 3), ("B", 3)]


def test_legend_tie_order_follows_row_major_scan():
    # B is first seen in row 0, C only in row 1 even though C sits in column 0
    grid = [
        [A, B],
        [C, A],
    ]
    assert [s.entry.code for s in color_stats(grid)] == ["A", "B", "C"]


def test_legend_counts():
    grid = [
        [A, A, C],
        [B, A, C],
        [A, B, C],
    ]
    stats = color_stats(grid)
    assert [(s.entry.code, s.count) for s in stats] == [("A", 4), ("C", 3), ("B", 2)]
    assert sum(s.count for s in stats) == 9


def test_stats_merge_entries_with_same_code():
    grid = [[PaletteEntry("X", (0, 0, 0)), PaletteEntry("X", (1, 1, 1))]]
    stats = color_stats(grid)
    assert len(stats) == 1
    assert stats[0].count == 2


@pytest.mark.parametrize(
    "rgb,expected",
    [
        ((255, 255, 255), DARK_TEXT),
        ((0, 0, 0), LIGHT_TEXT),
        ((128, 128, 128), LIGHT_TEXT),
        ((129, 129, 129), DARK_TEXT),
        ((255, 255, 0), DARK_TEXT),
        ((0, 0, 255), LIGHT_TEXT),
    ],
)
def test_text_color_contrast(rgb, expected):
    assert text_color(rgb) == expected


def test_layout_small_grid():
    layout = chart_layout(rows=2, cols=2, n_stats=4, cell_size=40, margin=60)

    assert layout.items_per_row == 1
    assert layout.width == 240
    # 80 grid + 150 + 4 legend rows of 60 + 60
    assert layout.height == 530
    assert layout.offset_x == 80
    assert layout.offset_y == 60
    assert layout.legend_top == 60 + 80 + 90


def test_layout_wraps_legend_by_grid_width():
    layout = chart_layout(rows=40, cols=40, n_stats=25, cell_size=40, margin=60)

    # 1600 // (120 + 20)
    assert layout.items_per_row == 11
    assert layout.width == 1600 + 120
    assert layout.height == 1600 + 150 + 3 * 60 + 60


def test_layout_item_width_grows_with_cell_size():
    layout = chart_layout(rows=5, cols=5, n_stats=1, cell_size=50, margin=60)
    assert layout.item_width == 150


def test_draw_pattern_size_and_colors():
    grid = [
        [A, B],
        [C, A],
    ]
    chart = draw_pattern(grid)
    layout = chart_layout(2, 2, 3)

    assert chart.size == (layout.width, layout.height)
    assert chart.mode == "RGB"
    assert chart.getpixel((2, 2)) == (255, 255, 255)

    for r, row in enumerate(grid):
        for c, entry in enumerate(row):
            x = layout.offset_x + c * 40 + 5
            y = layout.offset_y + r * 40 + 5
            assert chart.getpixel((x, y)) == entry.rgb


def test_draw_pattern_legend_swatches():
    grid = [[A, A, B]]
    chart = draw_pattern(grid)
    layout = chart_layout(1, 3, 2)

    # One swatch per row since the grid is narrow; most used color first
    legend_left = (layout.width - layout.item_width) // 2
    assert chart.getpixel((legend_left + 5, layout.legend_top + 5)) == A.rgb
    assert chart.getpixel((legend_left + 5, layout.legend_top + 60 + 5)) == B.rgb


def test_draw_pattern_is_deterministic():
    grid = [[A, B, C] * 4 for _ in range(12)]
    first = draw_pattern(grid)
    second = draw_pattern(grid)
    assert first.tobytes() == second.tobytes()


def test_draw_pattern_guide_lines():
    grid = [[A] * 12 for _ in range(12)]
    chart = draw_pattern(grid)
    layout = chart_layout(12, 12, 1)

    # Heavy line after the 10th column, inside row 1 away from the code label
    x = layout.offset_x + 10 * 40
    y = layout.offset_y + 5
    assert chart.getpixel((x, y)) == (75, 85, 99)


def test_draw_pattern_rejects_empty_grid():
    with pytest.raises(ValueError):
        draw_pattern([])


def test_legend_centered_with_several_items_per_row():
    grid = [[A] * 5 + [B] * 3 + [C] * 2]
    chart = draw_pattern(grid)
    layout = chart_layout(1, 10, 3)

    # 400px grid fits two 120px items (plus 20px spacing) per row
    assert layout.items_per_row == 2
    legend_width = 2 * 120 + 20
    legend_left = (layout.width - legend_width) // 2
    assert legend_left == layout.width - (legend_left + legend_width)

    top = layout.legend_top
    assert chart.getpixel((legend_left - 2, top + 5)) == (255, 255, 255)
    assert chart.getpixel((legend_left + 5, top + 5)) == A.rgb
    assert chart.getpixel((legend_left + 140 + 5, top + 5)) == B.rgb
    assert chart.getpixel((legend_left + 5, top + 60 + 5)) == C.rgb


def _ink_height(chart, box):
    region = chart.crop(box).convert("L")
    rows = [y for y in range(region.height) if any(region.getpixel((x, y)) < 200 for x in range(region.width))]
    return rows[-1] - rows[0] + 1 if rows else 0


def test_every_tenth_ruler_label_is_larger():
    grid = [[A] * 12]
    chart = draw_pattern(grid)
    layout = chart_layout(1, 12, 1)

    def top_label_height(col):
        x = layout.offset_x + col * 40
        return _ink_height(chart, (x, 0, x + 40, layout.offset_y - 3))

    # Column index 9 is labeled "10"
    assert top_label_height(9) > top_label_height(8)
    assert top_label_height(9) > top_label_height(10)
    assert top_label_height(8) > 0
