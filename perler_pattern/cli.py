"""Command-line interface for perler-pattern."""

import argparse
import sys
from pathlib import Path

from .core import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MAX_BRIGHTNESS,
    MIN_BRIGHTNESS,
    Algorithm,
    clamp_dimension,
    generate_pattern,
)
from .palettes import DEFAULT_PALETTE, list_palettes
from .render import CELL_SIZE, MARGIN, color_stats, draw_pattern


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Turn a photo into a bead pattern chart with color codes"
    )
    parser.add_argument("input", nargs="?", help="Input image path")
    parser.add_argument("-o", "--output", help="Output image path (default: input_pattern_WxH.png)")
    parser.add_argument("-W", "--width", type=int, default=DEFAULT_WIDTH, help=f"Grid width in beads (default: {DEFAULT_WIDTH})")
    parser.add_argument("-H", "--height", type=int, default=DEFAULT_HEIGHT, help=f"Grid height in beads (default: {DEFAULT_HEIGHT})")
    parser.add_argument(
        "-a", "--algorithm",
        choices=[a.value for a in Algorithm],
        default=Algorithm.AVERAGE.value,
        help="Sampling algorithm (default: average)",
    )
    parser.add_argument("-p", "--palette", default=DEFAULT_PALETTE, help="Palette name or path to a palette JSON file")
    parser.add_argument(
        "-b", "--brightness",
        type=int,
        choices=range(MIN_BRIGHTNESS, MAX_BRIGHTNESS + 1),
        default=0,
        help="Brightness adjustment, -2 to 2",
    )
    parser.add_argument("--cell-size", type=int, default=CELL_SIZE, help="Chart cell size in pixels")
    parser.add_argument("--margin", type=int, default=MARGIN, help="Chart margin for coordinate rulers")
    parser.add_argument("--stats", action="store_true", help="Print bead counts per color")
    parser.add_argument("--list-palettes", action="store_true", help="List bundled palettes and exit")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress output")

    args = parser.parse_args(argv)

    if args.list_palettes:
        for name in list_palettes():
            print(name)
        return

    if args.input is None:
        parser.error("the following arguments are required: input")

    width = clamp_dimension(args.width)
    height = clamp_dimension(args.height)

    # Default output path
    if args.output is None:
        input_path = Path(args.input)
        args.output = input_path.parent / f"{input_path.stem}_pattern_{width}x{height}.png"

    try:
        grid = generate_pattern(
            args.input,
            width,
            height,
            algorithm=args.algorithm,
            palette_id=args.palette,
            brightness=args.brightness,
            verbose=not args.quiet,
        )
    except OSError as e:
        print(f"perler-pattern: error: could not read image: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"perler-pattern: error: {e}", file=sys.stderr)
        sys.exit(1)

    chart = draw_pattern(grid, cell_size=args.cell_size, margin=args.margin)
    chart.save(args.output)
    if not args.quiet:
        print(f"Chart size: {chart.size[0]}x{chart.size[1]}")
        print(f"Saved to: {args.output}")

    if args.stats:
        for stat in color_stats(grid):
            print(f"{stat.entry.code}\t{stat.count}")


if __name__ == "__main__":
    main()
