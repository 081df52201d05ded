from __future__ import annotations


class PlotDataError(ValueError):
    """Input data cannot be encoded."""


class UnsupportedSideError(PlotDataError):
    """Side is not valid for the requested plot kind."""


class EmptySampleError(PlotDataError):
    """Sample set has no finite values."""


class GlyphKindError(PlotDataError):
    """Glyph kind does not fit the shape of the data."""
