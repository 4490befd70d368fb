#!/usr/bin/env python3
"""
🐧 PNGN Marquee - Scrolling Sign Example
========================================
Copyright (c) 2025 PNGN-Tec LLC
"""

import sys
import time
import logging
import argparse
from typing import List

import numpy as np
from PIL import Image, ImageDraw

from config import (
    get_config,
    RGBColors,
    SPEED_RANGE,
    CELL_SIZE_RANGE,
)
from pngn_errors import MarqueeError
from pngn_marquee import create_marquee

FRAME_PADDING = 10
CELL_GAP = 1
PREVIEW_CELL_SIZE = 12


def render_grid(grid: np.ndarray, cell_size: int, lit=RGBColors.LIT, unlit=RGBColors.UNLIT,
                border=RGBColors.BORDER, background=RGBColors.FRAME) -> Image.Image:
    rows, cols = grid.shape
    width = FRAME_PADDING * 2 + cols * (cell_size + CELL_GAP)
    height = FRAME_PADDING * 2 + rows * (cell_size + CELL_GAP)

    img = Image.new('RGB', (width, height), background)
    draw = ImageDraw.Draw(img)
    for row in range(rows):
        for col in range(cols):
            x0 = FRAME_PADDING + col * (cell_size + CELL_GAP)
            y0 = FRAME_PADDING + row * (cell_size + CELL_GAP)
            draw.rectangle(
                [x0, y0, x0 + cell_size - 1, y0 + cell_size - 1],
                fill=lit if grid[row, col] else unlit,
                outline=border,
            )
    return img


def grid_to_ansi(grid: np.ndarray, lit=RGBColors.LIT, unlit=RGBColors.UNLIT) -> str:
    lit = RGBColors.rgb_to_ansi_bg(lit)
    unlit = RGBColors.rgb_to_ansi_bg(unlit)
    lines = []
    for row in grid:
        lines.append(''.join((lit if cell else unlit) + '  ' for cell in row) + '\033[0m')
    return '\n'.join(lines)


def play_ansi(frames: List[np.ndarray], interval_ms: int, lit=RGBColors.LIT, unlit=RGBColors.UNLIT):
    rows = frames[0].shape[0]
    for i, grid in enumerate(frames):
        if i:
            sys.stdout.write(f"\033[{rows}A")
        sys.stdout.write(grid_to_ansi(grid, lit, unlit) + '\n')
        sys.stdout.flush()
        time.sleep(interval_ms / 1000)


def ticks_until_wrap(marquee) -> int:
    """Ticks from the current offset until the first wrap fires"""
    state = marquee.state
    travel = state.offset_pixels + marquee.text_width_pixels
    return int(travel // state.speed_pixels_per_tick) + 1


def main():
    config = get_config()
    scroll = config.scroll
    display = config.display

    parser = argparse.ArgumentParser(description='PNGN Dot-Matrix Marquee')
    parser.add_argument('--text', default=scroll.text)
    parser.add_argument('--speed', type=float, default=scroll.speed_pixels_per_tick,
                        help=f'pixels per tick ({SPEED_RANGE[0]:g}-{SPEED_RANGE[1]:g})')
    parser.add_argument('--cell-size', type=int, default=scroll.cell_size_pixels,
                        help=f'pixels per cell ({CELL_SIZE_RANGE[0]}-{CELL_SIZE_RANGE[1]})')
    parser.add_argument('--gap', type=int, default=scroll.gap_pixels)
    parser.add_argument('--frames', type=int, default=0,
                        help='ticks to render (default: until the text first wraps)')
    parser.add_argument('--output', default='pngn_marquee.gif')
    parser.add_argument('--ansi', action='store_true', help='play in the terminal instead of writing a GIF')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else config.log_level,
                        format='%(name)s %(levelname)s: %(message)s')

    marquee = create_marquee()
    try:
        marquee.configure(args.text, args.cell_size, args.speed, args.gap)
    except MarqueeError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    frame_count = args.frames
    if frame_count <= 0:
        frame_count = ticks_until_wrap(marquee)

    interval_ms = scroll.tick_interval_ms

    print("🐧 PNGN Marquee")
    print("=" * 60)
    print(f"Text: {args.text!r}")
    print(f"Display: {marquee.rows}x{marquee.cols} cells at {args.cell_size}px")
    print(f"Bitmap: {marquee.bitmap.cols} columns ({marquee.text_width_pixels}px)")
    print(f"Total: {frame_count} frames at {interval_ms}ms ({frame_count * interval_ms / 1000:.1f}s)")
    print()

    grids = list(marquee.frames(frame_count))

    if args.ansi:
        play_ansi(grids, interval_ms, display.lit_color, display.unlit_color)
        return 0

    frames = [render_grid(grid, PREVIEW_CELL_SIZE, display.lit_color,
                          display.unlit_color, display.border_color) for grid in grids]
    frames[0].save(
        args.output,
        format='GIF',
        save_all=True,
        append_images=frames[1:],
        duration=interval_ms,
        loop=0,
        optimize=False
    )

    stats = marquee.get_stats()
    print(f"  Ticks: {stats['ticks']}  Wraps: {stats['wraps']}  "
          f"Rasterize: {stats['last_rasterize_ms']:.1f}ms")
    print(f"\n✓ Saved {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
