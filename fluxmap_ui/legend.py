from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import Iterable, Sequence

import torch

from fluxmap_core.axes import AxisRegistry
from fluxmap_core.conditions import ConditionState
from fluxmap_core.model import AestheticBinding, BindingState, Channel, GeomKind, Side
from fluxmap_core.settings import EncodingSettings
from fluxmap_plot.color import Color
from fluxmap_plot.gradient import build_grad
from fluxmap_plot.scales import format_legend_value
from fluxmap_ui.legend_image import (
    arrow_mask,
    blank_image,
    box_mask,
    circle_mask,
    paint_gradient,
    paint_solid,
    png_bytes,
)

LOGGER = logging.getLogger(__name__)


class LegendKind(str, Enum):
    ARROW = "arrow"
    CIRCLE = "circle"
    HIST = "hist"
    BOX = "box"


@dataclass
class LegendWidget:
    kind: LegendKind
    image: torch.Tensor
    mask: torch.Tensor
    side: Side | None = None
    visible: bool = False
    label_min: str = ""
    label_max: str = ""
    source: str | None = None

    @property
    def name(self) -> str:
        if self.side is None:
            return self.kind.value
        return f"{self.kind.value}_{self.side.value}"

    @property
    def size(self) -> tuple[int, int]:
        height, width, _ = self.image.shape
        return (int(width), int(height))

    def png(self) -> bytes:
        return png_bytes(self.image)

    def hide(self) -> None:
        self.visible = False
        self.source = None


def _widget(kind: LegendKind, mask: torch.Tensor, side: Side | None = None) -> LegendWidget:
    return LegendWidget(kind, blank_image(mask), mask, side=side)


def spawn_legends(settings: EncodingSettings) -> list[LegendWidget]:
    w, h = settings.legend_width, settings.legend_height
    legends = [
        _widget(LegendKind.ARROW, arrow_mask(w, h)),
        _widget(LegendKind.CIRCLE, circle_mask(h, h)),
    ]
    for side in (Side.LEFT, Side.RIGHT):
        legends.append(_widget(LegendKind.HIST, box_mask(w, h), side=side))
        legends.append(_widget(LegendKind.BOX, box_mask(w, h), side=side))
    return legends


def pick_source(
    bindings: Iterable[AestheticBinding], active: str, labels: Sequence[str] = ()
) -> AestheticBinding | None:
    """Binding a legend reports on, or None when nothing applies to `active`.

    An exact condition match wins over an untagged binding; under ALL the binding whose
    condition comes first in `labels` is used. Ties go to the first loaded.
    """

    def rank(binding: AestheticBinding) -> int:
        if binding.condition is None:
            return 1
        if binding.condition == active:
            return 0
        if binding.condition in labels:
            return 2 + list(labels).index(binding.condition)
        return 2 + len(labels)

    candidates = [
        b
        for b in bindings
        if b.state is not BindingState.REJECTED and b.visible_under(active) and not math.isnan(b.value_range()[0])
    ]
    if not candidates:
        return None
    return min(candidates, key=rank)


def _show_gradient(
    legend: LegendWidget,
    source: AestheticBinding | None,
    settings: EncodingSettings,
    color_min: Color,
    color_max: Color,
) -> None:
    if source is None:
        legend.hide()
        return
    vmin, vmax = source.value_range()
    legend.label_min = format_legend_value(vmin)
    legend.label_max = format_legend_value(vmax)
    gradient = build_grad(settings.zero_white, vmin, vmax, color_min, color_max)
    legend.image = paint_gradient(legend.image, gradient, legend.mask)
    legend.source = source.binding_id
    legend.visible = True


def color_legend_arrow(
    legend: LegendWidget,
    bindings: Iterable[AestheticBinding],
    settings: EncodingSettings,
    active: str,
    labels: Sequence[str] = (),
) -> None:
    matching = [
        b
        for b in bindings
        if b.geom is GeomKind.ARROW and b.channel is Channel.COLOR and not b.is_distribution
    ]
    source = pick_source(matching, active, labels)
    _show_gradient(legend, source, settings, settings.min_reaction_color, settings.max_reaction_color)


def color_legend_circle(
    legend: LegendWidget,
    bindings: Iterable[AestheticBinding],
    settings: EncodingSettings,
    active: str,
    labels: Sequence[str] = (),
) -> None:
    matching = [
        b
        for b in bindings
        if b.geom is GeomKind.METABOLITE and b.channel is Channel.COLOR and not b.is_distribution
    ]
    source = pick_source(matching, active, labels)
    _show_gradient(legend, source, settings, settings.min_metabolite_color, settings.max_metabolite_color)


def color_legend_box(
    legend: LegendWidget,
    bindings: Iterable[AestheticBinding],
    settings: EncodingSettings,
    active: str,
    labels: Sequence[str] = (),
) -> None:
    matching = [
        b
        for b in bindings
        if b.geom is GeomKind.HIST and not b.popup and not b.is_distribution and b.side is legend.side
    ]
    source = pick_source(matching, active, labels)
    _show_gradient(legend, source, settings, settings.min_reaction_color, settings.max_reaction_color)


def color_legend_histograms(
    legend: LegendWidget,
    bindings: Iterable[AestheticBinding],
    registry: AxisRegistry,
    settings: EncodingSettings,
    active: str,
) -> None:
    """Side histogram legend: the axis range and the fill for the active condition."""

    side = legend.side
    if side is None:
        raise ValueError("histogram legends need a side")
    has_data = any(
        b.geom is GeomKind.HIST
        and not b.popup
        and b.is_distribution
        and b.side is side
        and b.state is not BindingState.REJECTED
        and b.visible_under(active)
        for b in bindings
    )
    axis = next((a for a in registry.axes() if a.side is side and not a.unscale and a.has_range), None)
    if not has_data or axis is None:
        legend.hide()
        return
    legend.label_min = format_legend_value(axis.xlimits[0])
    legend.label_max = format_legend_value(axis.xlimits[1])
    legend.image = paint_solid(legend.image, settings.side_colors(side).lookup(active), legend.mask)
    legend.source = f"{axis.element_id}/{side.value}"
    legend.visible = True


def sync_legends(
    legends: Iterable[LegendWidget],
    bindings: Sequence[AestheticBinding],
    registry: AxisRegistry,
    settings: EncodingSettings,
    conditions: ConditionState,
) -> int:
    """Refresh every legend for the active condition. Returns how many are visible."""

    active = conditions.active
    labels = conditions.labels
    visible = 0
    for legend in legends:
        if legend.kind is LegendKind.ARROW:
            color_legend_arrow(legend, bindings, settings, active, labels)
        elif legend.kind is LegendKind.CIRCLE:
            color_legend_circle(legend, bindings, settings, active, labels)
        elif legend.kind is LegendKind.BOX:
            color_legend_box(legend, bindings, settings, active, labels)
        else:
            color_legend_histograms(legend, bindings, registry, settings, active)
        visible += int(legend.visible)
    LOGGER.debug("legends synced for condition %r: %d visible", active, visible)
    return visible
