from fluxmap_core.axes import AxisRegistry, SharedAxis, anchor_transform, build_axes, build_hover_axes, build_point_axes
from fluxmap_core.conditions import ConditionState, fill_conditions
from fluxmap_core.diagnostics import Diagnostic, DiagnosticLogger, JsonlDiagnosticSink
from fluxmap_core.element_styles import (
    ElementStyle,
    StyleTable,
    plot_arrow_color,
    plot_arrow_size,
    plot_arrow_size_dist,
    plot_metabolite_color,
    plot_metabolite_size,
)
from fluxmap_core.encodings import (
    Decoration,
    EncodingStore,
    RenderedEncoding,
    plot_hover_hist,
    plot_side_box,
    plot_side_hist,
)
from fluxmap_core.geometry import AnchorTransform, GeometryTarget, HoverTarget, MapGeometry
from fluxmap_core.model import (
    ALL_CONDITIONS,
    AestheticBinding,
    BindingState,
    Channel,
    GeomKind,
    PlotKind,
    Side,
    distribution_binding,
    point_binding,
)
from fluxmap_core.normalize import normalize_histogram_height, unscale_histogram_children
from fluxmap_core.settings import EncodingSettings, SideColors, load_settings, validate_settings
from fluxmap_core.visibility import filter_histograms, follow_the_axes, show_hover

__all__ = [
    "ALL_CONDITIONS",
    "AestheticBinding",
    "AnchorTransform",
    "AxisRegistry",
    "BindingState",
    "Channel",
    "ConditionState",
    "Decoration",
    "Diagnostic",
    "DiagnosticLogger",
    "ElementStyle",
    "EncodingSettings",
    "EncodingStore",
    "GeomKind",
    "GeometryTarget",
    "HoverTarget",
    "JsonlDiagnosticSink",
    "MapGeometry",
    "PlotKind",
    "RenderedEncoding",
    "SharedAxis",
    "Side",
    "SideColors",
    "StyleTable",
    "anchor_transform",
    "build_axes",
    "build_hover_axes",
    "build_point_axes",
    "distribution_binding",
    "fill_conditions",
    "filter_histograms",
    "follow_the_axes",
    "load_settings",
    "normalize_histogram_height",
    "plot_arrow_color",
    "plot_arrow_size",
    "plot_arrow_size_dist",
    "plot_hover_hist",
    "plot_metabolite_color",
    "plot_metabolite_size",
    "plot_side_box",
    "plot_side_hist",
    "point_binding",
    "show_hover",
    "unscale_histogram_children",
    "validate_settings",
]
