#!/usr/bin/env python3
"""
🐧 PNGN Marquee - Error Hierarchy
=================================
Copyright (c) 2025 PNGN-Tec LLC

All marquee exceptions inherit from MarqueeError so hosts can catch every
engine failure with a single except clause.

Exception Hierarchy
-------------------
MarqueeError (base)
├── InvalidConfiguration - bad text, size, speed or gap (also a ValueError)
└── RasterizationUnavailable - glyph backend could not measure or render
    (also a RuntimeError)

Both kinds are local and recoverable: the engine state is left as it was
before the failing call, and calling configure() again with good input (or
once the backend is back) resumes normal output.
"""


class MarqueeError(Exception):
    """Base exception for all marquee errors."""
    pass


class InvalidConfiguration(MarqueeError, ValueError):
    """
    Raised synchronously when a caller supplies configuration the engine
    cannot use: empty text, non-positive dimensions, speed or gap, or a
    tick() before any successful configure().
    """
    pass


class RasterizationUnavailable(MarqueeError, RuntimeError):
    """
    Raised when the glyph backend fails to load a font, measure text or
    produce a coverage raster. The underlying backend exception is chained
    as __cause__.
    """
    pass
