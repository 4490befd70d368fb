#!/usr/bin/env python3
"""
🐧 PNGN Marquee - Glyph Rasterization Module
============================================
Copyright (c) 2025 PNGN-Tec LLC

Text-to-Bitmap Rasterization System
===================================
Converts a text string into a boolean LED bitmap at the resolution of a
dot-matrix display, providing the source mask the scroll engine samples
every tick.

Core Features
=============
- Glyph height tied to physical display height (rows x cell x 0.8)
- Backend-agnostic: any object that can measure text and produce an
  alpha coverage raster can drive the rasterizer
- Pillow-based default backend with bold sans font discovery
- Thread-safe LRU cache of loaded fonts keyed by pixel size
- OR-of-coverage downsampling: a cell is lit when any source pixel
  that maps into it is more than 50% opaque

Technical Implementation
========================
- Coverage rasters are uint8 numpy arrays of shape (height, width)
- Downsampling maps every ink pixel (y, x) to the cell
  (y * rows // height, x // cell_size) and sets it, giving the same
  result as OR-ing pixel by pixel without a Python loop
- The off-screen raster is created and closed inside each call
- Backend failures surface as RasterizationUnavailable

Module Interface
================
- rasterize(): Text -> TextBitmap
- downsample(): Coverage raster -> boolean cell grid
- TextBitmap: Bitmap plus the measured text width
- GlyphBackend: Capability protocol (measure_width, render_alpha_mask)
- PillowGlyphBackend: Default Pillow/FreeType implementation
- get_default_backend(): Shared PillowGlyphBackend instance

Example Usage
=============
```python
from pngn_glyph import rasterize

bitmap = rasterize("Hi", rows=15, cell_size_pixels=30)
print(bitmap.cols, bitmap.text_width_pixels)
```
"""

import math
import threading
import logging
from dataclasses import dataclass
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Optional, List, Any, Union, Protocol

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from config import get_glyph_config
from pngn_errors import InvalidConfiguration, RasterizationUnavailable

# Configure logging
logger = logging.getLogger('pngn_glyph')

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


# ============================================================================
# BACKEND CAPABILITY
# ============================================================================

class GlyphBackend(Protocol):
    """
    Narrow capability the rasterizer needs from a text renderer.

    measure_width returns the advance width of the text in pixels (may be
    fractional). render_alpha_mask returns a uint8 array of shape
    (height, width), 0 = transparent, 255 = full ink, with the text drawn
    from the top-left corner.
    """

    def measure_width(self, text: str, font_size_pixels: int) -> float:
        ...

    def render_alpha_mask(self, text: str, font_size_pixels: int,
                          width: int, height: int) -> np.ndarray:
        ...


# ============================================================================
# TEXT BITMAP
# ============================================================================

@dataclass(frozen=True, eq=False)
class TextBitmap:
    """
    Boolean LED mask for one (text, cell size) pair.

    Attributes:
        cells: Array of shape (rows, ceil(text_width_pixels / cell_size_pixels))
        text_width_pixels: Measured width of the rendered text
        text: Source text
        cell_size_pixels: Cell size the bitmap was downsampled with
        font_size_pixels: Glyph height used for rendering
    """
    cells: np.ndarray
    text_width_pixels: int
    text: str
    cell_size_pixels: int
    font_size_pixels: int

    @property
    def rows(self) -> int:
        return self.cells.shape[0]

    @property
    def cols(self) -> int:
        return self.cells.shape[1]

    @property
    def lit_count(self) -> int:
        return int(self.cells.sum())

    def matches(self, text: str, cell_size_pixels: int) -> bool:
        """True if this bitmap was produced for the given text and cell size"""
        return self.text == text and self.cell_size_pixels == cell_size_pixels


# ============================================================================
# PILLOW BACKEND
# ============================================================================

class PillowGlyphBackend:
    """
    Glyph backend built on Pillow's FreeType bindings.

    Resolves a bold sans-serif TrueType font once, then loads it at each
    requested pixel size on demand. Loaded fonts live in an LRU cache since
    the marquee usually cycles through a handful of cell sizes.

    Font resolution order:
    1. Explicit font_path (argument or PNGN_MARQUEE_FONT)
    2. Local fonts/ directory next to this module
    3. Configured system font directories
    4. Pillow's bundled default font at the requested size
    """

    def __init__(self,
                 font_path: Optional[str] = None,
                 cache_size: Optional[int] = None,
                 font_candidates: Optional[List[str]] = None,
                 font_dirs: Optional[List[str]] = None):
        """
        Initialize Pillow glyph backend.

        Args:
            font_path: TrueType font to use (searches candidates if None)
            cache_size: Maximum cached font sizes (uses config if None)
            font_candidates: Font file names to search for (uses config if None)
            font_dirs: System directories to search (uses config if None)
        """
        glyph_config = get_glyph_config()

        self._font_candidates = font_candidates or glyph_config.font_candidates
        self._font_dirs = font_dirs or glyph_config.font_dirs
        self._cache_size = cache_size or glyph_config.font_cache_size

        self._font_cache = OrderedDict()
        self._lock = threading.Lock()

        self.font_path = self._resolve_font_path(font_path or glyph_config.font_path)

        self.stats = {
            'cache_hits': 0,
            'cache_misses': 0,
            'cache_evictions': 0,
            'measurements': 0,
            'renders': 0,
        }

        logger.info(f"PillowGlyphBackend initialized with font={self.font_path or 'pillow default'}, "
                    f"cache_size={self._cache_size}")

    def _resolve_font_path(self, explicit: Optional[str]) -> Optional[str]:
        """Find the first usable font file, or None to use Pillow's default"""
        if explicit:
            if Path(explicit).exists():
                return explicit
            logger.warning(f"Configured font not found: {explicit}")

        search_dirs = [Path(__file__).parent / 'fonts'] + [Path(d) for d in self._font_dirs]
        for font_dir in search_dirs:
            for name in self._font_candidates:
                candidate = font_dir / name
                if candidate.exists():
                    logger.info(f"Loaded font from {candidate}")
                    return str(candidate)

        logger.warning("No bold sans font found - using Pillow default font")
        return None

    def _load_font(self, size: int) -> FontType:
        if self.font_path:
            return ImageFont.truetype(self.font_path, size)
        return ImageFont.load_default(size=size)

    def get_font(self, size: int) -> FontType:
        """
        Get font at the given pixel size, loading it on a cache miss.

        Args:
            size: Font size in pixels

        Returns:
            Pillow font object
        """
        with self._lock:
            if size in self._font_cache:
                self._font_cache.move_to_end(size)
                self.stats['cache_hits'] += 1
                return self._font_cache[size]
            self.stats['cache_misses'] += 1

        font = self._load_font(size)

        with self._lock:
            self._font_cache[size] = font
            while len(self._font_cache) > self._cache_size:
                self._font_cache.popitem(last=False)
                self.stats['cache_evictions'] += 1

        return font

    def measure_width(self, text: str, font_size_pixels: int) -> float:
        with self._lock:
            self.stats['measurements'] += 1
        return self.get_font(font_size_pixels).getlength(text)

    def render_alpha_mask(self, text: str, font_size_pixels: int,
                          width: int, height: int) -> np.ndarray:
        with self._lock:
            self.stats['renders'] += 1
        font = self.get_font(font_size_pixels)
        with Image.new('L', (width, height), 0) as img:
            draw = ImageDraw.Draw(img)
            draw.text((0, 0), text, font=font, fill=255)
            return np.array(img, dtype=np.uint8)

    def clear_cache(self):
        """Drop all loaded fonts."""
        with self._lock:
            self._font_cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get backend statistics including font cache state"""
        with self._lock:
            stats = self.stats.copy()
            stats['cached_sizes'] = list(self._font_cache.keys())
        total = stats['cache_hits'] + stats['cache_misses']
        stats['cache_hit_rate'] = stats['cache_hits'] / total if total else 0.0
        stats['font_path'] = self.font_path
        return stats


# ============================================================================
# RASTERIZATION
# ============================================================================

def downsample(coverage: np.ndarray, rows: int, cell_size_pixels: int,
               threshold: int) -> np.ndarray:
    """
    Reduce a coverage raster to a boolean cell grid.

    Source row y maps to cell row y * rows // height, source column x to
    cell column x // cell_size_pixels. A cell is lit if any source pixel
    mapping into it has coverage above threshold.

    Args:
        coverage: uint8 array of shape (height, width)
        rows: Output row count
        cell_size_pixels: Source pixels per output column
        threshold: Coverage a pixel must exceed to count as ink

    Returns:
        Bool array of shape (rows, ceil(width / cell_size_pixels))
    """
    height, width = coverage.shape
    cols = math.ceil(width / cell_size_pixels)
    cells = np.zeros((rows, cols), dtype=bool)
    if height == 0 or width == 0:
        return cells

    row_of_y = (np.arange(height) * rows) // height
    col_of_x = np.arange(width) // cell_size_pixels

    ink_y, ink_x = np.nonzero(coverage > threshold)
    cells[row_of_y[ink_y], col_of_x[ink_x]] = True
    return cells


_default_backend = None
_backend_lock = threading.Lock()

def get_default_backend() -> PillowGlyphBackend:
    """Get or create the shared Pillow backend"""
    global _default_backend

    if _default_backend is None:
        with _backend_lock:
            if _default_backend is None:
                try:
                    _default_backend = PillowGlyphBackend()
                except Exception as e:
                    logger.error(f"Glyph backend initialization failed: {e}")
                    raise RasterizationUnavailable(f"Glyph backend unavailable: {e}") from e

    return _default_backend


def rasterize(text: str,
              rows: int,
              cell_size_pixels: int,
              backend: Optional[GlyphBackend] = None,
              font_scale: Optional[float] = None,
              threshold: Optional[int] = None) -> TextBitmap:
    """
    Render text into a boolean LED bitmap.

    Args:
        text: Non-empty text to render
        rows: Display row count (bitmap height in cells)
        cell_size_pixels: Source pixels per cell
        backend: Glyph backend (shared Pillow backend if None)
        font_scale: Glyph height as fraction of display height (uses config if None)
        threshold: Ink coverage threshold 0-255 (uses config if None)

    Returns:
        TextBitmap with `rows` rows and ceil(width / cell_size_pixels) columns

    Raises:
        InvalidConfiguration: Empty text or non-positive dimensions
        RasterizationUnavailable: Backend could not measure or render
    """
    if not text:
        raise InvalidConfiguration("Cannot rasterize empty text")
    if not isinstance(rows, int) or isinstance(rows, bool) or rows <= 0:
        raise InvalidConfiguration(f"rows must be a positive integer, got {rows!r}")
    if (not isinstance(cell_size_pixels, int) or isinstance(cell_size_pixels, bool)
            or cell_size_pixels <= 0):
        raise InvalidConfiguration(f"cell size must be a positive integer, got {cell_size_pixels!r}")

    glyph_config = get_glyph_config()
    if font_scale is None:
        font_scale = glyph_config.font_scale
    if threshold is None:
        threshold = glyph_config.coverage_threshold

    font_size = math.floor(rows * cell_size_pixels * font_scale)
    if font_size <= 0:
        raise InvalidConfiguration(
            f"Display of {rows} rows x {cell_size_pixels}px is too small to hold text")

    if backend is None:
        backend = get_default_backend()

    try:
        measured_width = math.ceil(backend.measure_width(text, font_size))
        if measured_width > 0:
            coverage = np.asarray(
                backend.render_alpha_mask(text, font_size, measured_width, font_size))
        else:
            coverage = np.zeros((font_size, 0), dtype=np.uint8)
    except RasterizationUnavailable:
        raise
    except Exception as e:
        logger.error(f"Glyph backend failed for {text!r} at {font_size}px: {e}")
        raise RasterizationUnavailable(f"Glyph backend failed: {e}") from e

    if coverage.shape != (font_size, measured_width):
        raise RasterizationUnavailable(
            f"Backend returned coverage of shape {coverage.shape}, "
            f"expected {(font_size, measured_width)}")

    cells = downsample(coverage, rows, cell_size_pixels, threshold)

    logger.debug(f"Rasterized {text!r}: font={font_size}px width={measured_width}px "
                 f"-> {rows}x{cells.shape[1]} cells, {int(cells.sum())} lit")

    return TextBitmap(
        cells=cells,
        text_width_pixels=measured_width,
        text=text,
        cell_size_pixels=cell_size_pixels,
        font_size_pixels=font_size,
    )
