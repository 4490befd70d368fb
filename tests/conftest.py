"""
PNGN Marquee - Test Configuration
=================================

Shared fixtures for the marquee test suite.

It provides:
- FakeGlyphBackend: deterministic block glyphs, no fonts required
- Engine fixtures wired to the fake backend
- Configuration restore after tests that reload the global config

Copyright (c) 2025 PNGN-Tec LLC
"""

import numpy as np
import pytest

from config import MarqueeConfig, reload_config
from pngn_marquee import ScrollEngine


class FakeGlyphBackend:
    """
    Every character is a solid block filling the left half of its advance,
    over the full raster height.

    advance_pixels fixes the per-character advance; when None the advance
    is half the font size.
    """

    def __init__(self, advance_pixels=None):
        self.advance_pixels = advance_pixels
        self.fail = False
        self.measure_calls = 0
        self.render_calls = 0

    def _advance(self, font_size_pixels):
        if self.advance_pixels is not None:
            return self.advance_pixels
        return font_size_pixels // 2

    def measure_width(self, text, font_size_pixels):
        self.measure_calls += 1
        if self.fail:
            raise OSError("font backend offline")
        return len(text) * self._advance(font_size_pixels)

    def render_alpha_mask(self, text, font_size_pixels, width, height):
        self.render_calls += 1
        if self.fail:
            raise OSError("font backend offline")
        advance = self._advance(font_size_pixels)
        mask = np.zeros((height, width), dtype=np.uint8)
        for i in range(len(text)):
            x0 = int(i * advance)
            mask[:, x0:x0 + int(advance // 2)] = 255
        return mask


@pytest.fixture
def fake_backend():
    """Fake backend with advance = font_size / 2."""
    return FakeGlyphBackend()


@pytest.fixture
def engine(fake_backend):
    """15x20 engine on the fake backend, not yet configured."""
    return ScrollEngine(backend=fake_backend, rows=15, cols=20)


@pytest.fixture
def configured_engine(engine):
    """Engine showing "A" at 30px cells, speed 2, gap 200."""
    engine.configure("A", 30, 2, 200)
    return engine


@pytest.fixture
def restore_config():
    """Put back default configuration after the test."""
    yield
    reload_config(MarqueeConfig())


@pytest.fixture
def make_backend():
    """Factory for fake backends with a fixed advance."""
    return FakeGlyphBackend
