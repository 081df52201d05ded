from fluxmap_ui.legend import (
    LegendKind,
    LegendWidget,
    color_legend_arrow,
    color_legend_box,
    color_legend_circle,
    color_legend_histograms,
    pick_source,
    spawn_legends,
    sync_legends,
)
from fluxmap_ui.legend_image import arrow_mask, box_mask, circle_mask, paint_gradient, png_bytes

__all__ = [
    "LegendKind",
    "LegendWidget",
    "arrow_mask",
    "box_mask",
    "circle_mask",
    "color_legend_arrow",
    "color_legend_box",
    "color_legend_circle",
    "color_legend_histograms",
    "paint_gradient",
    "pick_source",
    "png_bytes",
    "spawn_legends",
    "sync_legends",
]
