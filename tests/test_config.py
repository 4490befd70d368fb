"""
Configuration Tests
===================

Tests for configuration dataclasses, environment overrides and the
configuration manager's reload and callback behavior.

Copyright (c) 2025 PNGN-Tec LLC
"""

import pytest

import config
from config import (
    DisplayConfig,
    GlyphConfig,
    MarqueeConfig,
    ScrollConfig,
    RGBColors,
    get_config,
    get_display_config,
    get_scroll_config,
    register_config_callback,
    reload_config,
    unregister_config_callback,
)
from pngn_errors import InvalidConfiguration, MarqueeError
from pngn_marquee import ScrollEngine


# =============================================================================
# Dataclass Validation Tests
# =============================================================================

class TestValidation:
    """Test validate() on each configuration section."""

    def test_defaults_are_valid(self):
        assert MarqueeConfig().validate() is True

    def test_reference_defaults(self):
        cfg = MarqueeConfig()
        assert (cfg.display.rows, cfg.display.cols) == (15, 20)
        assert cfg.scroll.cell_size_pixels == 30
        assert cfg.scroll.speed_pixels_per_tick == 2
        assert cfg.scroll.gap_pixels == 200
        assert cfg.scroll.tick_interval_ms == 16
        assert cfg.glyph.font_scale == 0.8

    @pytest.mark.parametrize("section", [
        DisplayConfig(rows=0),
        DisplayConfig(cols=-1),
        DisplayConfig(rows=2.5),
        ScrollConfig(text=""),
        ScrollConfig(cell_size_pixels=0),
        ScrollConfig(speed_pixels_per_tick=0),
        ScrollConfig(gap_pixels=0),
        ScrollConfig(tick_interval_ms=0),
        GlyphConfig(font_scale=0),
        GlyphConfig(font_scale=1.5),
        GlyphConfig(coverage_threshold=255),
        GlyphConfig(font_cache_size=0),
    ])
    def test_invalid_sections(self, section):
        with pytest.raises(InvalidConfiguration):
            section.validate()

    def test_error_hierarchy(self):
        """InvalidConfiguration is both a MarqueeError and a ValueError."""
        with pytest.raises(ValueError):
            ScrollConfig(text="").validate()
        assert issubclass(InvalidConfiguration, MarqueeError)


# =============================================================================
# Manager Tests
# =============================================================================

class TestConfigurationManager:
    """Test reloading, environment overrides and callbacks."""

    def test_singleton(self):
        assert config.ConfigurationManager() is config._manager

    def test_reload_with_new_config(self, restore_config):
        new = MarqueeConfig(display=DisplayConfig(rows=8, cols=32))
        assert reload_config(new) is True
        assert get_display_config().rows == 8
        assert get_config() is new

    def test_reload_rejects_invalid(self, restore_config):
        before = get_config()
        assert reload_config(MarqueeConfig(scroll=ScrollConfig(gap_pixels=-1))) is False
        assert get_config() is before

    def test_environment_overrides(self, monkeypatch, restore_config):
        monkeypatch.setenv('PNGN_MARQUEE_ROWS', '9')
        monkeypatch.setenv('PNGN_MARQUEE_SPEED', '3.5')
        monkeypatch.setenv('PNGN_MARQUEE_GAP', '120')
        monkeypatch.setenv('PNGN_DEBUG', 'yes')
        assert reload_config() is True
        cfg = get_config()
        assert cfg.display.rows == 9
        assert cfg.scroll.speed_pixels_per_tick == 3.5
        assert cfg.scroll.gap_pixels == 120
        assert cfg.debug_mode is True
        assert cfg.log_level == "DEBUG"

    def test_malformed_environment_rejected(self, monkeypatch, restore_config):
        before = get_config()
        monkeypatch.setenv('PNGN_MARQUEE_COLS', 'wide')
        assert reload_config() is False
        assert get_config() is before

    def test_invalid_environment_at_startup_falls_back(self, monkeypatch):
        """A fresh manager ignores out-of-range overrides instead of running with them."""
        monkeypatch.setattr(config.ConfigurationManager, '_instance', None)
        monkeypatch.setenv('PNGN_MARQUEE_CELL_SIZE', '0')
        mgr = config.ConfigurationManager()
        assert mgr is not config._manager
        assert mgr.config.scroll.cell_size_pixels == 30
        mgr.config.validate()

    def test_malformed_environment_at_startup_falls_back(self, monkeypatch):
        monkeypatch.setattr(config.ConfigurationManager, '_instance', None)
        monkeypatch.setenv('PNGN_MARQUEE_ROWS', 'tall')
        mgr = config.ConfigurationManager()
        assert mgr.config.display.rows == 15

    def test_callbacks(self, restore_config):
        seen = []

        def on_change(old, new):
            seen.append((old.display.cols, new.display.cols))

        register_config_callback(on_change)
        try:
            reload_config(MarqueeConfig(display=DisplayConfig(cols=40)))
        finally:
            unregister_config_callback(on_change)
        reload_config(MarqueeConfig(display=DisplayConfig(cols=10)))
        assert seen == [(20, 40)]

    def test_failing_callback_does_not_block_reload(self, restore_config):
        def broken(old, new):
            raise RuntimeError("boom")

        register_config_callback(broken)
        try:
            assert reload_config(MarqueeConfig()) is True
        finally:
            unregister_config_callback(broken)

    def test_engine_uses_configured_dimensions(self, restore_config, fake_backend):
        reload_config(MarqueeConfig(display=DisplayConfig(rows=5, cols=7)))
        engine = ScrollEngine(backend=fake_backend)
        assert (engine.rows, engine.cols) == (5, 7)

    def test_configure_from_config(self, restore_config, fake_backend):
        reload_config(MarqueeConfig(scroll=ScrollConfig(text="Hey", cell_size_pixels=25,
                                                        speed_pixels_per_tick=1.5, gap_pixels=90)))
        engine = ScrollEngine(backend=fake_backend, rows=15, cols=20)
        engine.configure_from_config()
        assert engine.bitmap.text == "Hey"
        assert engine.offset_pixels == 20 * 25
        assert get_scroll_config().gap_pixels == engine.state.gap_pixels


# =============================================================================
# Palette Tests
# =============================================================================

class TestPalette:

    def test_ansi_conversion(self):
        assert RGBColors.rgb_to_ansi_bg((0, 0, 0)) == '\033[48;2;0;0;0m'

    def test_lit_unlit(self):
        assert RGBColors.LIT == (255, 0, 0)
        assert RGBColors.UNLIT == (0, 0, 0)

    def test_display_defaults_follow_palette(self):
        display = DisplayConfig()
        assert display.lit_color == config.MARQUEE_COLORS['lit']
        assert display.unlit_color == config.MARQUEE_COLORS['unlit']
        assert display.border_color == config.MARQUEE_COLORS['border']
