#!/usr/bin/env python3
"""
🐧 PNGN Marquee - Scroll Engine
===============================
Copyright (c) 2025 PNGN-Tec LLC

Dot-Matrix Marquee Engine
=========================
Owns the scroll state of one LED marquee and produces the lit/unlit grid
for every animation tick. The display is a window onto the text bitmap:
display column c shows bitmap column floor(offset / cell_size) + c. The
offset starts one display width into the bitmap and falls every tick, so
the window slides left over the text and the glyphs travel rightward
across the display until the offset wraps past a blank gap.

Core Features
=============
- Cached text bitmap, re-rasterized only when text or cell size changes
- Sub-pixel scroll offset with fractional speeds
- Periodic wrap with a configurable blank gap between repeats
- Full-grid recomputation each tick (no incremental shifting)
- Failed reconfiguration leaves the running marquee untouched

Tick Model
==========
Each tick:
1. offset -= speed
2. offset < -text_width  ->  offset = text_width + gap
3. start_col = floor(offset / cell_size)
4. grid[row][col] = bitmap[row][start_col + col], blank when out of range

The offset is measured in source pixels from the text start to the
viewport's left edge. floor() rounds toward negative infinity so the
window moves one column at a time across zero.

Concurrency
===========
An engine instance has a single owner that calls configure() and tick()
from one thread (typically a 16ms timer). Independent displays use
independent engines; nothing here is shared between instances.

Module Interface
================
- ScrollEngine: Stateful marquee with configure()/tick()
- ScrollState: Offset, cell size, speed and gap
- sample_window(): Pure window sampling used by tick()
- create_marquee(): Factory using configured defaults

Example Usage
=============
```python
from pngn_marquee import create_marquee

marquee = create_marquee()
marquee.configure("Hello", cell_size_pixels=30, speed_pixels_per_tick=2, gap_pixels=200)

for _ in range(60):
    grid = marquee.tick()   # numpy bool array, shape (15, 20)
```
"""

import math
import time
import logging
from dataclasses import dataclass, replace
from typing import Dict, Any, Iterator, Optional

import numpy as np

from config import get_display_config, get_scroll_config
from pngn_errors import InvalidConfiguration
from pngn_glyph import GlyphBackend, TextBitmap, rasterize

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

logger = logging.getLogger('PNGN.Marquee')

# Row-major bool array of shape (rows, cols), True = lit
DisplayGrid = np.ndarray


@dataclass
class ScrollState:
    """
    Scroll position and motion parameters.

    offset_pixels is the viewport's left edge relative to the text start,
    in source pixels. It decreases every tick and wraps.
    """
    offset_pixels: float
    cell_size_pixels: int
    speed_pixels_per_tick: float
    gap_pixels: int


def sample_window(cells: np.ndarray, start_col: int, cols: int) -> DisplayGrid:
    """
    Copy a cols-wide window of a bitmap starting at start_col.

    Window columns falling outside [0, bitmap_cols) are blank in every row.

    Args:
        cells: Bitmap of shape (rows, bitmap_cols)
        start_col: Bitmap column shown in the leftmost display column
        cols: Display width in cells

    Returns:
        New bool array of shape (rows, cols)
    """
    rows, bitmap_cols = cells.shape
    grid = np.zeros((rows, cols), dtype=bool)

    src_start = max(start_col, 0)
    src_end = min(start_col + cols, bitmap_cols)
    if src_end > src_start:
        grid[:, src_start - start_col:src_end - start_col] = cells[:, src_start:src_end]

    return grid


def _validate_speed(speed_pixels_per_tick: float):
    if isinstance(speed_pixels_per_tick, bool) or not isinstance(speed_pixels_per_tick, (int, float)):
        raise InvalidConfiguration(f"Speed must be a number, got {speed_pixels_per_tick!r}")
    if not math.isfinite(speed_pixels_per_tick) or speed_pixels_per_tick <= 0:
        raise InvalidConfiguration(f"Speed must be positive, got {speed_pixels_per_tick!r}")


def _validate_gap(gap_pixels: int):
    if isinstance(gap_pixels, bool) or not isinstance(gap_pixels, int) or gap_pixels <= 0:
        raise InvalidConfiguration(f"Gap must be a positive integer, got {gap_pixels!r}")


class ScrollEngine:
    """
    Marquee state machine for one dot-matrix display.

    The engine caches the TextBitmap for the current (text, cell size) and
    derives every output grid from it plus the scroll offset. configure()
    and tick() must not run concurrently on the same instance.
    """

    def __init__(self,
                 backend: Optional[GlyphBackend] = None,
                 rows: Optional[int] = None,
                 cols: Optional[int] = None):
        """
        Initialize scroll engine.

        Args:
            backend: Glyph backend for rasterization (shared Pillow backend if None)
            rows: Display rows (uses config if None)
            cols: Display columns (uses config if None)
        """
        display_config = get_display_config()
        rows = display_config.rows if rows is None else rows
        cols = display_config.cols if cols is None else cols

        for name, value in (('rows', rows), ('cols', cols)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidConfiguration(f"{name} must be a positive integer, got {value!r}")

        self.rows = rows
        self.cols = cols
        self.backend = backend

        self._bitmap: Optional[TextBitmap] = None
        self._state: Optional[ScrollState] = None

        self.stats = {
            'ticks': 0,
            'wraps': 0,
            'configures': 0,
            'rasterizations': 0,
            'last_rasterize_ms': 0.0,
        }

        logger.info(f"ScrollEngine initialized with {rows}x{cols} display")

    # ========================================================================
    # STATE ACCESS
    # ========================================================================

    @property
    def state(self) -> ScrollState:
        """Current scroll state (mutable; owned by the engine's single driver)"""
        self._require_configured()
        return self._state

    @property
    def bitmap(self) -> TextBitmap:
        """Cached text bitmap"""
        self._require_configured()
        return self._bitmap

    @property
    def offset_pixels(self) -> float:
        return self.state.offset_pixels

    @property
    def text_width_pixels(self) -> int:
        return self.bitmap.text_width_pixels

    def initial_offset(self, cell_size_pixels: int) -> int:
        """Starting offset: the window begins one display width into the bitmap"""
        return self.cols * cell_size_pixels

    def _require_configured(self):
        if self._state is None:
            raise InvalidConfiguration("ScrollEngine used before configure()")

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def configure(self,
                  text: str,
                  cell_size_pixels: int,
                  speed_pixels_per_tick: float,
                  gap_pixels: int):
        """
        Set what is shown and how it moves, then restart the scroll.

        The bitmap is re-rasterized when text or cell size differs from the
        cached one. The offset is always reset to cols * cell_size_pixels,
        never rescaled. Nothing changes if validation or rasterization fails.

        Args:
            text: Non-empty message
            cell_size_pixels: Source pixels per LED cell
            speed_pixels_per_tick: Pixels the text moves per tick (may be fractional)
            gap_pixels: Blank pixels between the end of the text and its repeat

        Raises:
            InvalidConfiguration: Invalid arguments
            RasterizationUnavailable: Glyph backend failure
        """
        if not isinstance(text, str) or not text:
            raise InvalidConfiguration("Marquee text must be a non-empty string")
        if isinstance(cell_size_pixels, bool) or not isinstance(cell_size_pixels, int) or cell_size_pixels <= 0:
            raise InvalidConfiguration(f"Cell size must be a positive integer, got {cell_size_pixels!r}")
        _validate_speed(speed_pixels_per_tick)
        _validate_gap(gap_pixels)

        bitmap = self._bitmap
        if bitmap is None or not bitmap.matches(text, cell_size_pixels):
            start_time = time.time()
            bitmap = rasterize(text, self.rows, cell_size_pixels, backend=self.backend)
            self.stats['rasterizations'] += 1
            self.stats['last_rasterize_ms'] = (time.time() - start_time) * 1000
            logger.info(f"Rasterized {text!r} at {cell_size_pixels}px cells: "
                        f"{bitmap.cols} columns, {bitmap.text_width_pixels}px wide")

        self._bitmap = bitmap
        self._state = ScrollState(
            offset_pixels=self.initial_offset(cell_size_pixels),
            cell_size_pixels=cell_size_pixels,
            speed_pixels_per_tick=speed_pixels_per_tick,
            gap_pixels=gap_pixels,
        )
        self.stats['configures'] += 1

    def configure_from_config(self):
        """Configure with the scroll defaults from the configuration manager"""
        scroll_config = get_scroll_config()
        self.configure(
            scroll_config.text,
            scroll_config.cell_size_pixels,
            scroll_config.speed_pixels_per_tick,
            scroll_config.gap_pixels,
        )

    def set_speed(self, speed_pixels_per_tick: float):
        """Change speed without restarting the scroll"""
        _validate_speed(speed_pixels_per_tick)
        self.state.speed_pixels_per_tick = speed_pixels_per_tick

    def set_gap(self, gap_pixels: int):
        """Change the blank gap used by the next wrap"""
        _validate_gap(gap_pixels)
        self.state.gap_pixels = gap_pixels

    # ========================================================================
    # ANIMATION
    # ========================================================================

    def current_grid(self) -> DisplayGrid:
        """Sample the display at the current offset without advancing"""
        state = self.state
        start_col = math.floor(state.offset_pixels / state.cell_size_pixels)
        return sample_window(self._bitmap.cells, start_col, self.cols)

    def tick(self) -> DisplayGrid:
        """
        Advance one time step and return the newly sampled grid.

        Returns:
            Bool array of shape (rows, cols)

        Raises:
            InvalidConfiguration: Called before configure()
        """
        state = self.state
        text_width = self._bitmap.text_width_pixels

        offset = state.offset_pixels - state.speed_pixels_per_tick
        if offset < -text_width:
            offset = text_width + state.gap_pixels
            self.stats['wraps'] += 1
            logger.debug(f"Marquee wrapped to offset {offset}")
        state.offset_pixels = offset

        self.stats['ticks'] += 1
        return self.current_grid()

    def frames(self, count: int) -> Iterator[DisplayGrid]:
        """Yield the grids of the next count ticks"""
        for _ in range(count):
            yield self.tick()

    def snapshot(self) -> ScrollState:
        """Copy of the current scroll state"""
        return replace(self.state)

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        stats['display'] = f"{self.rows}x{self.cols}"
        if self._bitmap is not None:
            stats['bitmap_cols'] = self._bitmap.cols
            stats['text_width_pixels'] = self._bitmap.text_width_pixels
            stats['offset_pixels'] = self._state.offset_pixels
        return stats


# ============================================================================
# FACTORY FUNCTION
# ============================================================================

def create_marquee(backend: Optional[GlyphBackend] = None,
                   rows: Optional[int] = None,
                   cols: Optional[int] = None) -> ScrollEngine:
    """Factory function for marquee creation"""
    return ScrollEngine(backend=backend, rows=rows, cols=cols)
