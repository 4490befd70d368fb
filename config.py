#!/usr/bin/env python3
"""
🐧 PNGN Marquee - Configuration Module
======================================
Copyright (c) 2025 PNGN-Tec LLC

Centralized Configuration System
=================================
Complete configuration for the dot-matrix marquee engine including:
- Display grid dimensions (rows x columns of LED cells)
- Scroll parameters (speed, cell size, blank gap, tick cadence)
- Glyph rasterization settings (font scale, coverage threshold, fonts)
- Lit/unlit palette used by renderers that present the grid
- Environment overrides and runtime reloading with callbacks

Configuration Overview
======================
The engine itself only needs a handful of numbers: how many rows and
columns the display has, how big a cell is in source pixels, how fast the
text moves and how much blank space separates repeats. Everything else in
this module exists so that those numbers can be validated, overridden from
the environment, and shared between the rasterizer, the scroll engine and
any renderer consuming the grid.

Reference Values
================
- Display: 15 rows x 20 columns
- Cell size: 20-50 pixels, step 5 (default 30)
- Speed: 1-10 pixels per tick, step 0.5 (default 2)
- Gap: 200 pixels
- Tick cadence: 16ms (~60Hz)
"""

import threading
import logging
import os
from typing import Tuple, Any, Optional, Callable, List
from dataclasses import dataclass, field

from pngn_errors import InvalidConfiguration

# Configure logging
logger = logging.getLogger('pngn_config')

# Type alias for RGB colors
RGBColor = Tuple[int, int, int]

# ============================================================================
# DISPLAY DIMENSIONS
# ============================================================================

GRID_ROWS = 15           # Cells tall
GRID_COLS = 20           # Cells wide

# ============================================================================
# SCROLL SETTINGS
# ============================================================================

DEFAULT_TEXT = "Hello"
DEFAULT_CELL_SIZE = 30       # Source pixels per cell
DEFAULT_SPEED = 2            # Source pixels per tick
DEFAULT_GAP_PIXELS = 200     # Blank pixels between repeats
TICK_INTERVAL_MS = 16        # ~60Hz

# (min, max, step) as offered by the control surface
SPEED_RANGE = (1.0, 10.0, 0.5)
CELL_SIZE_RANGE = (20, 50, 5)

# ============================================================================
# GLYPH SETTINGS
# ============================================================================

# Glyph height as a fraction of the full display height
FONT_SCALE = 0.8

# Alpha above this marks a source pixel as ink (more than 50% opaque)
COVERAGE_THRESHOLD = 128

FONT_CACHE_SIZE = 16

# Bold sans-serif candidates, searched in order after the local fonts dir
FONT_CANDIDATES = [
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
    "FreeSansBold.ttf",
]

SYSTEM_FONT_DIRS = [
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/usr/share/fonts/truetype/liberation",
    "/usr/share/fonts/liberation",
    "/usr/share/fonts/truetype/freefont",
    "/data/data/com.termux/files/usr/share/fonts/TTF",
    "/Library/Fonts",
    "/System/Library/Fonts/Supplemental",
    "C:/Windows/Fonts",
]

# ============================================================================
# MARQUEE PALETTE
# ============================================================================

MARQUEE_COLORS = {
    'lit': (255, 0, 0),         # LED red
    'unlit': (0, 0, 0),         # Void black
    'border': (51, 51, 51),     # Cell outline
    'frame': (238, 238, 238),   # Frame background
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ============================================================================
# DISPLAY CONFIGURATION
# ============================================================================

@dataclass
class DisplayConfig:
    """
    Dot-matrix geometry and the colors a renderer should use.

    Attributes:
        rows: Number of LED rows
        cols: Number of LED columns
        lit_color: RGB for a lit cell
        unlit_color: RGB for an unlit cell
        border_color: RGB for the outline drawn around each cell
    """
    rows: int = GRID_ROWS
    cols: int = GRID_COLS
    lit_color: RGBColor = MARQUEE_COLORS['lit']
    unlit_color: RGBColor = MARQUEE_COLORS['unlit']
    border_color: RGBColor = MARQUEE_COLORS['border']

    def validate(self) -> bool:
        """Validate display configuration"""
        if not _is_int(self.rows) or not _is_int(self.cols):
            raise InvalidConfiguration("Display dimensions must be integers")
        if self.rows <= 0 or self.cols <= 0:
            raise InvalidConfiguration("Display dimensions must be positive")
        return True


# ============================================================================
# SCROLL CONFIGURATION
# ============================================================================

@dataclass
class ScrollConfig:
    """Scroll defaults handed to the engine by hosts that don't pick their own"""

    text: str = DEFAULT_TEXT
    cell_size_pixels: int = DEFAULT_CELL_SIZE
    speed_pixels_per_tick: float = DEFAULT_SPEED
    gap_pixels: int = DEFAULT_GAP_PIXELS
    tick_interval_ms: int = TICK_INTERVAL_MS

    def validate(self) -> bool:
        """Validate scroll configuration"""
        if not self.text:
            raise InvalidConfiguration("Marquee text must not be empty")
        if not _is_int(self.cell_size_pixels) or self.cell_size_pixels <= 0:
            raise InvalidConfiguration("Cell size must be a positive integer")
        if self.speed_pixels_per_tick <= 0:
            raise InvalidConfiguration("Speed must be positive")
        if self.gap_pixels <= 0:
            raise InvalidConfiguration("Gap must be positive")
        if self.tick_interval_ms <= 0:
            raise InvalidConfiguration("Tick interval must be positive")
        return True


# ============================================================================
# GLYPH CONFIGURATION
# ============================================================================

@dataclass
class GlyphConfig:
    """Rasterizer settings"""

    font_scale: float = FONT_SCALE
    coverage_threshold: int = COVERAGE_THRESHOLD
    font_cache_size: int = FONT_CACHE_SIZE
    font_path: Optional[str] = None
    font_candidates: List[str] = field(default_factory=lambda: list(FONT_CANDIDATES))
    font_dirs: List[str] = field(default_factory=lambda: list(SYSTEM_FONT_DIRS))

    def validate(self) -> bool:
        """Validate glyph configuration"""
        if not 0 < self.font_scale <= 1:
            raise InvalidConfiguration("Font scale must be in (0, 1]")
        if not 0 <= self.coverage_threshold < 255:
            raise InvalidConfiguration("Coverage threshold must be in [0, 255)")
        if self.font_cache_size <= 0:
            raise InvalidConfiguration("Font cache size must be positive")
        return True


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

@dataclass
class MarqueeConfig:
    """Complete system configuration"""

    # Sub-configurations
    display: DisplayConfig = field(default_factory=DisplayConfig)
    scroll: ScrollConfig = field(default_factory=ScrollConfig)
    glyph: GlyphConfig = field(default_factory=GlyphConfig)

    # System-wide settings
    debug_mode: bool = False
    log_level: str = "INFO"

    def validate(self) -> bool:
        """Validate entire configuration"""
        self.display.validate()
        self.scroll.validate()
        self.glyph.validate()
        return True


# ============================================================================
# CONFIGURATION MANAGER (SINGLETON)
# ============================================================================

class ConfigurationManager:
    """
    Singleton configuration manager with runtime reloading.
    Thread-safe management of global configuration with change notifications.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._callbacks = []
        self._config_lock = threading.RLock()
        try:
            self._config = self._apply_environment_overrides(MarqueeConfig())
            self._config.validate()
        except InvalidConfiguration as e:
            logger.error(f"Ignoring environment overrides: {e}")
            self._config = MarqueeConfig()

        self._initialized = True
        logger.info("Configuration manager initialized")

    def _apply_environment_overrides(self, config: MarqueeConfig) -> MarqueeConfig:
        """Return config with overrides from environment variables applied"""

        try:
            # Display settings
            if 'PNGN_MARQUEE_ROWS' in os.environ:
                config.display.rows = int(os.environ['PNGN_MARQUEE_ROWS'])
            if 'PNGN_MARQUEE_COLS' in os.environ:
                config.display.cols = int(os.environ['PNGN_MARQUEE_COLS'])

            # Scroll settings
            if 'PNGN_MARQUEE_CELL_SIZE' in os.environ:
                config.scroll.cell_size_pixels = int(os.environ['PNGN_MARQUEE_CELL_SIZE'])
            if 'PNGN_MARQUEE_SPEED' in os.environ:
                config.scroll.speed_pixels_per_tick = float(os.environ['PNGN_MARQUEE_SPEED'])
            if 'PNGN_MARQUEE_GAP' in os.environ:
                config.scroll.gap_pixels = int(os.environ['PNGN_MARQUEE_GAP'])
        except ValueError as e:
            raise InvalidConfiguration(f"Bad environment override: {e}") from e

        # Glyph settings
        if 'PNGN_MARQUEE_FONT' in os.environ:
            config.glyph.font_path = os.environ['PNGN_MARQUEE_FONT']

        # Debug mode
        if 'PNGN_DEBUG' in os.environ:
            config.debug_mode = os.environ['PNGN_DEBUG'].lower() in ('true', '1', 'yes')
            if config.debug_mode:
                config.log_level = "DEBUG"

        return config

    @property
    def config(self) -> MarqueeConfig:
        """Get current configuration"""
        with self._config_lock:
            return self._config

    def reload(self, new_config: Optional[MarqueeConfig] = None) -> bool:
        """
        Reload configuration and notify callbacks.

        Args:
            new_config: New configuration to apply (reloads from env if None)

        Returns:
            True if reload successful
        """
        with self._config_lock:
            old_config = self._config

            try:
                if new_config is None:
                    new_config = self._apply_environment_overrides(MarqueeConfig())
                new_config.validate()
            except InvalidConfiguration as e:
                logger.error(f"Configuration reload failed: {e}")
                return False

            self._config = new_config
            self._notify_callbacks(old_config, self._config)

            logger.info("Configuration reloaded successfully")
            return True

    def register_callback(self, callback: Callable[[MarqueeConfig, MarqueeConfig], None]):
        """
        Register callback for configuration changes.

        Args:
            callback: Function called with (old_config, new_config)
        """
        self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable):
        """Remove a registered callback"""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self, old_config: MarqueeConfig, new_config: MarqueeConfig):
        """Notify all registered callbacks of configuration change"""
        for callback in self._callbacks:
            try:
                callback(old_config, new_config)
            except Exception as e:
                logger.error(f"Callback notification failed: {e}")


# ============================================================================
# PUBLIC API FUNCTIONS
# ============================================================================

_manager = ConfigurationManager()

def get_config() -> MarqueeConfig:
    """Get current system configuration"""
    return _manager.config

def reload_config(new_config: Optional[MarqueeConfig] = None) -> bool:
    """Reload system configuration"""
    return _manager.reload(new_config)

def register_config_callback(callback: Callable[[MarqueeConfig, MarqueeConfig], None]):
    """Register for configuration change notifications"""
    _manager.register_callback(callback)

def unregister_config_callback(callback: Callable):
    """Unregister a configuration change callback"""
    _manager.unregister_callback(callback)

def get_display_config() -> DisplayConfig:
    """Get display configuration"""
    return _manager.config.display

def get_scroll_config() -> ScrollConfig:
    """Get scroll configuration"""
    return _manager.config.scroll

def get_glyph_config() -> GlyphConfig:
    """Get glyph configuration"""
    return _manager.config.glyph


# ============================================================================
# RGB COLOR UTILITIES
# ============================================================================

class RGBColors:
    """RGB values for the marquee palette and terminal conversion helpers."""

    LIT = MARQUEE_COLORS['lit']
    UNLIT = MARQUEE_COLORS['unlit']
    BORDER = MARQUEE_COLORS['border']
    FRAME = MARQUEE_COLORS['frame']

    @staticmethod
    def rgb_to_ansi_bg(rgb: RGBColor) -> str:
        """Convert RGB tuple to ANSI background color code"""
        r, g, b = rgb
        return f"\033[48;2;{r};{g};{b}m"

