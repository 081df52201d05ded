from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Callable, Iterable

import numpy as np

from fluxmap_core.diagnostics import ACTION_SKIPPED_DATA, DiagnosticLogger, skip_binding
from fluxmap_core.geometry import GeometryTarget, MapGeometry
from fluxmap_core.model import AestheticBinding, Channel, GeomKind
from fluxmap_core.settings import EncodingSettings
from fluxmap_plot.adapters import require_finite
from fluxmap_plot.color import NEUTRAL_GREY, Color
from fluxmap_plot.errors import PlotDataError
from fluxmap_plot.gradient import build_grad
from fluxmap_plot.scales import scale_value

LOGGER = logging.getLogger(__name__)

DEFAULT_ARROW_WIDTH = 10.0
DEFAULT_NODE_RADIUS = 20.0


@dataclass
class ElementStyle:
    kind: GeomKind
    size: float
    color: Color


class StyleTable:
    """Current stroke width / radius and color of every arrow and node."""

    def __init__(self) -> None:
        self._styles: dict[tuple[GeomKind, str], ElementStyle] = {}

    def __len__(self) -> int:
        return len(self._styles)

    def reset(self, geometry: MapGeometry) -> None:
        self._styles.clear()
        for target in geometry.arrows():
            self._styles[(GeomKind.ARROW, target.element_id)] = ElementStyle(
                GeomKind.ARROW, DEFAULT_ARROW_WIDTH, NEUTRAL_GREY
            )
        for target in geometry.metabolites():
            self._styles[(GeomKind.METABOLITE, target.element_id)] = ElementStyle(
                GeomKind.METABOLITE, DEFAULT_NODE_RADIUS, NEUTRAL_GREY
            )

    def arrow(self, element_id: str) -> ElementStyle | None:
        return self._styles.get((GeomKind.ARROW, element_id))

    def metabolite(self, element_id: str) -> ElementStyle | None:
        return self._styles.get((GeomKind.METABOLITE, element_id))

    def style_for(self, target: GeometryTarget) -> ElementStyle:
        key = (target.kind, target.element_id)
        style = self._styles.get(key)
        if style is None:
            default = DEFAULT_ARROW_WIDTH if target.kind is GeomKind.ARROW else DEFAULT_NODE_RADIUS
            style = self._styles[key] = ElementStyle(target.kind, default, NEUTRAL_GREY)
        return style

    def as_dict(self) -> dict[str, dict[str, object]]:
        return {
            f"{kind.value}:{element_id}": {"size": style.size, "color": style.color.to_hex()}
            for (kind, element_id), style in self._styles.items()
        }


def _matching(
    bindings: Iterable[AestheticBinding],
    *,
    geom: GeomKind,
    channel: Channel,
    distribution: bool,
    active: str,
    diagnostics: DiagnosticLogger | None,
    component: str,
) -> list[AestheticBinding]:
    out: list[AestheticBinding] = []
    for binding in bindings:
        if binding.geom is not geom or binding.channel is not channel or binding.is_distribution != distribution:
            continue
        if not binding.visible_under(active):
            continue
        try:
            require_finite(binding.flat_values(), label=f"binding {binding.binding_id}")
        except PlotDataError as exc:
            skip_binding(LOGGER, diagnostics, binding, component, exc, action=ACTION_SKIPPED_DATA)
            continue
        out.append(binding)
    return out


def _apply(
    binding: AestheticBinding,
    targets: Iterable[GeometryTarget],
    styles: StyleTable,
    value_of: Callable[[int], float],
    paint: Callable[[ElementStyle, float | None], None],
) -> None:
    for target in targets:
        index = binding.index_of(target.element_id)
        value = value_of(index) if index is not None else None
        if value is not None and not math.isfinite(value):
            value = None
        paint(styles.style_for(target), value)


def _scalar(binding: AestheticBinding) -> Callable[[int], float]:
    return lambda i: float(binding.values[i])


def _mean(binding: AestheticBinding) -> Callable[[int], float]:
    def value_of(i: int) -> float:
        samples = binding.values[i]
        return float(np.mean(samples)) if samples.size else float("nan")

    return value_of


def _size_painter(binding: AestheticBinding, dst_min: float, dst_max: float, default: float):
    vmin, vmax = binding.value_range()

    def paint(style: ElementStyle, value: float | None) -> None:
        style.size = default if value is None else scale_value(value, vmin, vmax, dst_min, dst_max)

    return paint


def _color_painter(binding: AestheticBinding, settings: EncodingSettings, c_min: Color, c_max: Color):
    vmin, vmax = binding.value_range()
    gradient = build_grad(settings.zero_white, vmin, vmax, c_min, c_max)

    def paint(style: ElementStyle, value: float | None) -> None:
        style.color = NEUTRAL_GREY if value is None else gradient.at(value)

    return paint


def plot_arrow_size(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    styles: StyleTable,
    settings: EncodingSettings,
    active: str,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    matched = _matching(
        bindings,
        geom=GeomKind.ARROW,
        channel=Channel.SIZE,
        distribution=False,
        active=active,
        diagnostics=diagnostics,
        component="plot_arrow_size",
    )
    for binding in matched:
        paint = _size_painter(binding, settings.min_reaction, settings.max_reaction, DEFAULT_ARROW_WIDTH)
        _apply(binding, geometry.arrows(), styles, _scalar(binding), paint)
    return len(matched)


def plot_arrow_size_dist(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    styles: StyleTable,
    settings: EncodingSettings,
    active: str,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Arrow widths from distributions, each summarised by its mean."""

    matched = _matching(
        bindings,
        geom=GeomKind.ARROW,
        channel=Channel.SIZE,
        distribution=True,
        active=active,
        diagnostics=diagnostics,
        component="plot_arrow_size_dist",
    )
    for binding in matched:
        paint = _size_painter(binding, settings.min_reaction, settings.max_reaction, DEFAULT_ARROW_WIDTH)
        _apply(binding, geometry.arrows(), styles, _mean(binding), paint)
    return len(matched)


def plot_arrow_color(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    styles: StyleTable,
    settings: EncodingSettings,
    active: str,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    matched = _matching(
        bindings,
        geom=GeomKind.ARROW,
        channel=Channel.COLOR,
        distribution=False,
        active=active,
        diagnostics=diagnostics,
        component="plot_arrow_color",
    )
    for binding in matched:
        paint = _color_painter(binding, settings, settings.min_reaction_color, settings.max_reaction_color)
        _apply(binding, geometry.arrows(), styles, _scalar(binding), paint)
    return len(matched)


def plot_metabolite_size(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    styles: StyleTable,
    settings: EncodingSettings,
    active: str,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    matched = _matching(
        bindings,
        geom=GeomKind.METABOLITE,
        channel=Channel.SIZE,
        distribution=False,
        active=active,
        diagnostics=diagnostics,
        component="plot_metabolite_size",
    )
    for binding in matched:
        paint = _size_painter(binding, settings.min_metabolite, settings.max_metabolite, DEFAULT_NODE_RADIUS)
        _apply(binding, geometry.metabolites(), styles, _scalar(binding), paint)
    return len(matched)


def plot_metabolite_color(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    styles: StyleTable,
    settings: EncodingSettings,
    active: str,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    matched = _matching(
        bindings,
        geom=GeomKind.METABOLITE,
        channel=Channel.COLOR,
        distribution=False,
        active=active,
        diagnostics=diagnostics,
        component="plot_metabolite_color",
    )
    for binding in matched:
        paint = _color_painter(binding, settings, settings.min_metabolite_color, settings.max_metabolite_color)
        _apply(binding, geometry.metabolites(), styles, _scalar(binding), paint)
    return len(matched)


STYLE_PASSES = (
    plot_arrow_size,
    plot_arrow_size_dist,
    plot_arrow_color,
    plot_metabolite_size,
    plot_metabolite_color,
)
