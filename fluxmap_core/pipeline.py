from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterable, Sequence

from fluxmap_core.axes import AxisRegistry, build_axes, build_hover_axes, build_point_axes
from fluxmap_core.conditions import ConditionState, fill_conditions
from fluxmap_core.diagnostics import DiagnosticLogger
from fluxmap_core.element_styles import STYLE_PASSES, StyleTable
from fluxmap_core.encodings import EncodingStore, plot_hover_hist, plot_side_box, plot_side_hist
from fluxmap_core.geometry import AnchorTransform, HoverTarget, MapGeometry
from fluxmap_core.model import AestheticBinding, BindingState, GeomKind, Side
from fluxmap_core.normalize import normalize_histogram_height, unscale_histogram_children
from fluxmap_core.settings import DEFAULT_SETTINGS, EncodingSettings
from fluxmap_core.visibility import filter_histograms, follow_the_axes, show_hover
from fluxmap_ui.legend import LegendWidget, spawn_legends, sync_legends

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickReport:
    axes_built: int
    encodings_rendered: int
    pending: int
    legends_synced: bool


class EncodingPipeline:
    """Runs the encoding passes once per tick in dependency order.

    Axes are aggregated before anything is drawn against them, drawing happens before
    height normalization, and legends are only re-synced when their inputs changed.
    """

    def __init__(
        self,
        geometry: MapGeometry,
        settings: EncodingSettings = DEFAULT_SETTINGS,
        hovers: Iterable[HoverTarget] = (),
        diagnostics: DiagnosticLogger | None = None,
    ) -> None:
        self.geometry = geometry
        self.settings = settings
        self.hovers: list[HoverTarget] = list(hovers)
        self.diagnostics = diagnostics
        self.axes = AxisRegistry()
        self.encodings = EncodingStore()
        self.styles = StyleTable()
        self.conditions = ConditionState()
        self.legends: list[LegendWidget] = spawn_legends(settings)
        self._bindings: list[AestheticBinding] = []
        self._load_cycle = 0
        self._legend_key: tuple[Any, ...] | None = None
        self.styles.reset(geometry)

    @property
    def bindings(self) -> Sequence[AestheticBinding]:
        return tuple(self._bindings)

    @property
    def load_cycle(self) -> int:
        return self._load_cycle

    def load(self, bindings: Iterable[AestheticBinding]) -> None:
        """Replace the dataset; everything derived from the previous one is dropped."""

        previous = self.conditions.active
        self._bindings = list(bindings)
        for binding in self._bindings:
            binding.reset()
        self.axes.reset()
        self.encodings.clear()
        self.styles.reset(self.geometry)
        self.conditions.reset()
        fill_conditions(self._bindings, self.conditions)
        if previous in self.conditions.labels:
            self.conditions.active = previous
        self._load_cycle += 1
        self._legend_key = None
        LOGGER.info(
            "load cycle %d: %d bindings, conditions=%s",
            self._load_cycle,
            len(self._bindings),
            self.conditions.labels,
        )

    def set_condition(self, label: str) -> None:
        self.conditions.select(label)

    def update_settings(self, settings: EncodingSettings) -> None:
        old = self.settings
        self.settings = settings
        if (old.legend_width, old.legend_height) != (settings.legend_width, settings.legend_height):
            self.legends = spawn_legends(settings)
            self._legend_key = None

    def move_axis(self, element_id: str, side: Side | str, transform: AnchorTransform) -> None:
        self.axes.move_axis((element_id, Side(side)), transform)

    def persisted_transforms(self) -> dict[str, dict[Side, AnchorTransform]]:
        return self.axes.persisted_transforms()

    def legend(self, name: str) -> LegendWidget | None:
        return next((legend for legend in self.legends if legend.name == name), None)

    def tick(self, hovered: Iterable[str] = ()) -> TickReport:
        bindings = self._bindings
        diagnostics = self.diagnostics
        fill_conditions(bindings, self.conditions)
        active = self.conditions.active

        self.styles.reset(self.geometry)
        for style_pass in STYLE_PASSES:
            style_pass(bindings, self.geometry, self.styles, self.settings, active, diagnostics)

        axes_built = build_axes(bindings, self.geometry, self.axes, diagnostics)
        axes_built += build_point_axes(bindings, self.geometry, self.axes, diagnostics)
        axes_built += build_hover_axes(bindings, self.hovers, self.axes)
        self.axes.seal()

        rendered = plot_side_hist(bindings, self.axes, self.encodings, self.settings, diagnostics)
        rendered += plot_side_box(bindings, self.axes, self.encodings, self.settings, diagnostics)
        rendered += plot_hover_hist(bindings, self.axes, self.hovers, self.encodings, self.settings, diagnostics)

        normalize_histogram_height(self.encodings, self.settings)
        unscale_histogram_children(self.encodings)
        follow_the_axes(self.axes, self.encodings)
        filter_histograms(self.encodings, active)
        show_hover(self.encodings, hovered, active)

        key = (active, tuple(self.conditions.labels), self.encodings.revision, self.settings, self._load_cycle)
        synced = key != self._legend_key
        if synced:
            sync_legends(self.legends, bindings, self.axes, self.settings, self.conditions)
            self._legend_key = key

        pending = sum(
            1
            for b in bindings
            if b.geom is GeomKind.HIST and b.state in (BindingState.PENDING, BindingState.AGGREGATED)
        )
        if axes_built or rendered:
            LOGGER.debug("tick: %d axes built, %d encodings rendered, %d pending", axes_built, rendered, pending)
        return TickReport(
            axes_built=axes_built,
            encodings_rendered=rendered,
            pending=pending,
            legends_synced=synced,
        )
