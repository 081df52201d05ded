from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Iterable, Iterator

from fluxmap_core.axes import AxisRegistry, SharedAxis
from fluxmap_core.diagnostics import (
    ACTION_EMPTY_GEOMETRY,
    ACTION_SKIPPED_DATA,
    ACTION_SKIPPED_GLYPH,
    Diagnostic,
    DiagnosticLogger,
    emit,
    skip_binding,
)
from fluxmap_core.geometry import AnchorTransform, HoverTarget
from fluxmap_core.model import AestheticBinding, BindingState, GeomKind, PlotKind, Side
from fluxmap_core.settings import EncodingSettings
from fluxmap_plot.color import BLACK, Color
from fluxmap_plot.distributions import (
    KDE_POINTS,
    POPUP_HIST_BINS,
    SIDE_HIST_BINS,
    BoxPointGlyph,
    PlotPath,
    TickLabel,
    plot_box_point,
    plot_hist,
    plot_kde,
    plot_scales,
)
from fluxmap_plot.errors import PlotDataError
from fluxmap_plot.scales import lerp_hsv, scale_value, unit_position

LOGGER = logging.getLogger(__name__)

FONT_SIZE = 12.0
POPUP_SIZE = 600.0
POPUP_OFFSET = 150.0
POPUP_Z = 5.0
BOX_Z_LIFT = 10.0


@dataclass
class Decoration:
    """Tick label attached to an encoding; `scale_y` undoes the parent's vertical scale."""

    text: str
    x: float
    y: float
    font_size: float
    scale_y: float = 1.0

    @classmethod
    def from_tick(cls, tick: TickLabel) -> Decoration:
        return cls(text=tick.text, x=tick.x, y=tick.y, font_size=tick.font_size)


@dataclass
class RenderedEncoding:
    encoding_id: str
    binding_id: str
    element_id: str
    node_id: str
    side: Side
    condition: str | None
    kind: PlotKind
    path: PlotPath
    transform: AnchorTransform
    fill: Color
    outline: Color | None = None
    glyph: BoxPointGlyph | None = None
    decorations: list[Decoration] = field(default_factory=list)
    unscale: bool = False
    popup: bool = False
    visible: bool = True
    scale_y: float = 1.0

    @property
    def raw_height(self) -> float:
        return self.path.max_height

    @property
    def height(self) -> float:
        return self.raw_height * self.scale_y


class EncodingStore:
    """Rendered encodings of one load cycle, at most one per (binding, element, side)."""

    def __init__(self) -> None:
        self._items: dict[str, RenderedEncoding] = {}
        self.revision = 0

    def __iter__(self) -> Iterator[RenderedEncoding]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, encoding_id: str) -> bool:
        return encoding_id in self._items

    def add(self, encoding: RenderedEncoding) -> bool:
        if encoding.encoding_id in self._items:
            LOGGER.debug("encoding %s already rendered", encoding.encoding_id)
            return False
        self._items[encoding.encoding_id] = encoding
        self.revision += 1
        return True

    def get(self, encoding_id: str) -> RenderedEncoding | None:
        return self._items.get(encoding_id)

    def side_encodings(self) -> list[RenderedEncoding]:
        return [e for e in self._items.values() if not e.popup]

    def popups(self) -> list[RenderedEncoding]:
        return [e for e in self._items.values() if e.popup]

    def on_side(self, side: Side) -> list[RenderedEncoding]:
        return [e for e in self._items.values() if e.side is side]

    def clear(self) -> None:
        self._items.clear()
        self.revision += 1


def encoding_key(binding: AestheticBinding, element_id: str, side: Side) -> str:
    return f"{binding.binding_id}:{element_id}:{side.value}"


def _curve(binding: AestheticBinding, samples, size: float, xlimits: tuple[float, float], bins: int) -> PlotPath | None:
    if size <= 0:
        return None
    if binding.plot is PlotKind.KDE:
        return plot_kde(samples, KDE_POINTS, size, xlimits)
    return plot_hist(samples, bins, size, xlimits)


def _report_empty(
    binding: AestheticBinding, component: str, element_id: str, side: Side, diagnostics: DiagnosticLogger | None
) -> None:
    LOGGER.debug("binding %s: no geometry for %s/%s, retrying next tick", binding.binding_id, element_id, side.value)
    emit(
        diagnostics,
        Diagnostic(
            action=ACTION_EMPTY_GEOMETRY,
            component=component,
            binding=binding.binding_id,
            element_id=element_id,
            side=side.value,
            detail="empty sample set or degenerate range",
        ),
    )


def _axes_for(binding: AestheticBinding, registry: AxisRegistry) -> Iterator[tuple[SharedAxis, int]]:
    for axis in registry.axes():
        if axis.side is not binding.side:
            continue
        index = binding.index_of(axis.element_id)
        if index is not None:
            yield axis, index


def plot_side_hist(
    bindings: Iterable[AestheticBinding],
    registry: AxisRegistry,
    store: EncodingStore,
    settings: EncodingSettings,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Draw histogram or KDE encodings against their side axes.

    A binding stays AGGREGATED while any of its elements produced no geometry so the
    next tick retries it; elements that did render are not drawn twice.
    """

    rendered = 0
    for binding in bindings:
        if binding.geom is not GeomKind.HIST or binding.popup or not binding.is_distribution:
            continue
        if binding.state is not BindingState.AGGREGATED:
            continue
        try:
            binding.require_curve_plot()
        except PlotDataError as exc:
            skip_binding(LOGGER, diagnostics, binding, "plot_side_hist", exc, action=ACTION_SKIPPED_GLYPH)
            binding.advance(BindingState.REJECTED)
            continue
        complete = True
        y_tick = 0.1 if binding.plot is PlotKind.KDE else 80.0
        for axis, index in _axes_for(binding, registry):
            key = encoding_key(binding, axis.element_id, axis.side)
            if key in store:
                continue
            path = _curve(binding, binding.values[index], axis.size, axis.xlimits, SIDE_HIST_BINS)
            if path is None:
                complete = False
                _report_empty(binding, "plot_side_hist", axis.element_id, axis.side, diagnostics)
                continue
            scales = plot_scales(axis.xlimits, axis.size, FONT_SIZE, y_tick)
            store.add(
                RenderedEncoding(
                    encoding_id=key,
                    binding_id=binding.binding_id,
                    element_id=axis.element_id,
                    node_id=axis.node_id,
                    side=axis.side,
                    condition=binding.condition,
                    kind=binding.plot,
                    path=path,
                    transform=axis.transform,
                    fill=settings.side_colors(axis.side).lookup(binding.condition),
                    decorations=[Decoration.from_tick(t) for t in (scales.x_0, scales.x_n, scales.y)],
                )
            )
            rendered += 1
        if complete:
            binding.advance(BindingState.RENDERED)
    return rendered


def plot_side_box(
    bindings: Iterable[AestheticBinding],
    registry: AxisRegistry,
    store: EncodingStore,
    settings: EncodingSettings,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Draw one box glyph per condition slot for scalar side bindings."""

    rendered = 0
    for binding in bindings:
        if binding.geom is not GeomKind.HIST or binding.popup or binding.is_distribution:
            continue
        if binding.state is not BindingState.AGGREGATED:
            continue
        if binding.plot is not PlotKind.BOX_POINT:
            LOGGER.warning(
                "binding %s: %s needs a distribution; drawing a box point instead",
                binding.binding_id,
                binding.plot.value,
            )
        vmin, vmax = binding.value_range()
        for axis, index in _axes_for(binding, registry):
            key = encoding_key(binding, axis.element_id, axis.side)
            if key in store:
                continue
            value = float(binding.values[index])
            if not math.isfinite(value):
                LOGGER.warning("binding %s: non-finite value for %s; skipping", binding.binding_id, axis.element_id)
                emit(
                    diagnostics,
                    Diagnostic(
                        action=ACTION_SKIPPED_DATA,
                        component="plot_side_box",
                        binding=binding.binding_id,
                        element_id=axis.element_id,
                        side=axis.side.value,
                        detail="non-finite value",
                    ),
                )
                continue
            color = lerp_hsv(
                unit_position(value, vmin, vmax),
                settings.min_reaction_color,
                settings.max_reaction_color,
            )
            height = scale_value(value, vmin, vmax, settings.box_min_size, settings.box_max_size)
            glyph = plot_box_point(len(axis.conditions), axis.slot_of(binding.condition), height)
            base = axis.transform
            store.add(
                RenderedEncoding(
                    encoding_id=key,
                    binding_id=binding.binding_id,
                    element_id=axis.element_id,
                    node_id=axis.node_id,
                    side=axis.side,
                    condition=binding.condition,
                    kind=PlotKind.BOX_POINT,
                    path=glyph.box,
                    glyph=glyph,
                    transform=AnchorTransform(x=base.x, y=base.y, z=base.z + BOX_Z_LIFT, rotation=base.rotation),
                    fill=color,
                    outline=BLACK,
                    unscale=True,
                )
            )
            rendered += 1
        binding.advance(BindingState.RENDERED)
    return rendered


def plot_hover_hist(
    bindings: Iterable[AestheticBinding],
    registry: AxisRegistry,
    hovers: Iterable[HoverTarget],
    store: EncodingStore,
    settings: EncodingSettings,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Draw hidden popup histograms above hoverable elements."""

    hovers = list(hovers)
    rendered = 0
    for binding in bindings:
        if not binding.popup or binding.state is not BindingState.AGGREGATED:
            continue
        try:
            binding.require_curve_plot()
        except PlotDataError as exc:
            skip_binding(LOGGER, diagnostics, binding, "plot_hover_hist", exc, action=ACTION_SKIPPED_GLYPH)
            binding.advance(BindingState.REJECTED)
            continue
        complete = True
        y_tick = 0.15 if binding.plot is PlotKind.KDE else 120.0
        for hover in hovers:
            axis = registry.get_hover(hover.node_id)
            index = binding.index_of(hover.element_id)
            if axis is None or index is None:
                continue
            if not axis.has_range:
                complete = False
                _report_empty(binding, "plot_hover_hist", hover.element_id, Side.UP, diagnostics)
                continue
            key = encoding_key(binding, hover.element_id, Side.UP)
            if key in store:
                continue
            path = _curve(binding, binding.values[index], POPUP_SIZE, axis.xlimits, POPUP_HIST_BINS)
            if path is None:
                complete = False
                _report_empty(binding, "plot_hover_hist", hover.element_id, Side.UP, diagnostics)
                continue
            scales = plot_scales(axis.xlimits, POPUP_SIZE, FONT_SIZE, y_tick)
            store.add(
                RenderedEncoding(
                    encoding_id=key,
                    binding_id=binding.binding_id,
                    element_id=hover.element_id,
                    node_id=hover.node_id,
                    side=Side.UP,
                    condition=binding.condition,
                    kind=binding.plot,
                    path=path,
                    transform=AnchorTransform(
                        x=hover.position[0] + POPUP_OFFSET,
                        y=hover.position[1] + POPUP_OFFSET,
                        z=POPUP_Z,
                    ),
                    fill=settings.side_colors(Side.UP).lookup(binding.condition),
                    decorations=[Decoration.from_tick(t) for t in (scales.x_0, scales.x_n, scales.y)],
                    popup=True,
                    visible=False,
                )
            )
            rendered += 1
        if complete:
            binding.advance(BindingState.RENDERED)
    return rendered
