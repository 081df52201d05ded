from fluxmap_plot.color import Color, coerce_color
from fluxmap_plot.distributions import (
    AxisScales,
    BoxPointGlyph,
    PlotPath,
    TickLabel,
    plot_box_point,
    plot_hist,
    plot_kde,
    plot_scales,
)
from fluxmap_plot.errors import EmptySampleError, GlyphKindError, PlotDataError, UnsupportedSideError
from fluxmap_plot.gradient import Gradient, build_grad
from fluxmap_plot.scales import lerp, lerp_hsv, max_f32, min_f32, scale_value, unit_position

__all__ = [
    "AxisScales",
    "BoxPointGlyph",
    "Color",
    "EmptySampleError",
    "GlyphKindError",
    "Gradient",
    "PlotDataError",
    "PlotPath",
    "TickLabel",
    "UnsupportedSideError",
    "build_grad",
    "coerce_color",
    "lerp",
    "lerp_hsv",
    "max_f32",
    "min_f32",
    "plot_box_point",
    "plot_hist",
    "plot_kde",
    "plot_scales",
    "scale_value",
    "unit_position",
]
