from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Iterable

from fluxmap_core.diagnostics import (
    ACTION_MISSING_TARGET,
    ACTION_SKIPPED_DATA,
    ACTION_SKIPPED_SIDE,
    Diagnostic,
    DiagnosticLogger,
    emit,
    skip_binding,
)
from fluxmap_core.geometry import AnchorTransform, GeometryTarget, HoverTarget, MapGeometry, angle_between, perp
from fluxmap_core.model import AestheticBinding, BindingState, GeomKind, Side
from fluxmap_plot.errors import PlotDataError, UnsupportedSideError
from fluxmap_plot.scales import max_f32, min_f32

LOGGER = logging.getLogger(__name__)

AxisKey = tuple[str, Side]

SIDE_OFFSET = 30.0
AXIS_Z = 0.5


@dataclass
class SharedAxis:
    """Coordinate frame shared by every dataset plotted on one element side."""

    element_id: str
    node_id: str
    side: Side
    size: float
    transform: AnchorTransform
    xlimits: tuple[float, float] = (0.0, 0.0)
    conditions: list[str] = field(default_factory=list)
    unscale: bool = False
    popup: bool = False
    sealed: bool = False
    moved: bool = False
    _has_range: bool = field(default=False, repr=False)

    @property
    def key(self) -> AxisKey:
        return (self.element_id, self.side)

    @property
    def has_range(self) -> bool:
        return self._has_range

    def union(self, vmin: float, vmax: float) -> None:
        self._check_open()
        if not (math.isfinite(vmin) and math.isfinite(vmax)):
            return
        if not self._has_range:
            self.xlimits = (float(vmin), float(vmax))
            self._has_range = True
            return
        self.xlimits = (min(self.xlimits[0], float(vmin)), max(self.xlimits[1], float(vmax)))

    def add_condition(self, condition: str | None) -> None:
        self._check_open()
        if condition is not None and condition not in self.conditions:
            self.conditions.append(condition)

    def slot_of(self, condition: str | None) -> int:
        try:
            return self.conditions.index(condition if condition is not None else "")
        except ValueError:
            return 0

    def _check_open(self) -> None:
        if self.sealed:
            raise RuntimeError(f"axis {self.element_id}/{self.side.value} is sealed for this load cycle")


def anchor_transform(target: GeometryTarget, side: Side) -> AnchorTransform:
    """Place a side plot perpendicular to its arrow, offset outwards.

    A transform saved for this side (a user-dragged position) wins.
    """

    saved = target.saved_transform(side)
    if saved is not None:
        return saved
    normal = perp(target.direction)
    if side is Side.RIGHT:
        rotation, away = -angle_between((0.0, 1.0), normal), -SIDE_OFFSET
    elif side is Side.LEFT:
        rotation, away = -angle_between((0.0, -1.0), normal), SIDE_OFFSET
    else:
        raise UnsupportedSideError(f"side plots support left and right, got {side.value}")
    return AnchorTransform(
        x=target.position[0] + normal[0] * away,
        y=target.position[1] + normal[1] * away,
        z=AXIS_Z,
        rotation=rotation,
    )


class AxisRegistry:
    """Shared axes of one load cycle, keyed by (element id, side); popups by node id."""

    def __init__(self) -> None:
        self._axes: dict[AxisKey, SharedAxis] = {}
        self._hover: dict[str, SharedAxis] = {}

    def __len__(self) -> int:
        return len(self._axes) + len(self._hover)

    def __contains__(self, key: AxisKey) -> bool:
        return key in self._axes

    def get(self, element_id: str, side: Side) -> SharedAxis | None:
        return self._axes.get((element_id, side))

    def get_hover(self, node_id: str) -> SharedAxis | None:
        return self._hover.get(node_id)

    def axes(self) -> list[SharedAxis]:
        return list(self._axes.values())

    def hover_axes(self) -> list[SharedAxis]:
        return list(self._hover.values())

    def ensure(self, target: GeometryTarget, side: Side, *, unscale: bool = False) -> tuple[SharedAxis, bool]:
        key = (target.element_id, side)
        axis = self._axes.get(key)
        if axis is not None:
            return axis, False
        axis = SharedAxis(
            element_id=target.element_id,
            node_id=target.node_id,
            side=side,
            size=target.length,
            transform=anchor_transform(target, side),
            unscale=unscale,
        )
        self._axes[key] = axis
        return axis, True

    def ensure_hover(self, hover: HoverTarget) -> tuple[SharedAxis, bool]:
        axis = self._hover.get(hover.node_id)
        if axis is not None:
            return axis, False
        axis = SharedAxis(
            element_id=hover.element_id,
            node_id=hover.node_id,
            side=Side.UP,
            size=0.0,
            transform=AnchorTransform(x=hover.position[0], y=hover.position[1]),
            popup=True,
        )
        self._hover[hover.node_id] = axis
        return axis, True

    def move_axis(self, key: AxisKey, transform: AnchorTransform) -> None:
        """Record a drag or rotation of a side axis by the interaction layer."""

        axis = self._axes.get(key)
        if axis is None:
            raise KeyError(f"no axis for {key[0]}/{Side(key[1]).value}")
        axis.transform = transform
        axis.moved = True

    def take_moved(self) -> list[SharedAxis]:
        moved = [axis for axis in self._axes.values() if axis.moved]
        for axis in moved:
            axis.moved = False
        return moved

    def seal(self) -> None:
        for axis in self._axes.values():
            axis.sealed = True
        for axis in self._hover.values():
            axis.sealed = True

    def persisted_transforms(self) -> dict[str, dict[Side, AnchorTransform]]:
        out: dict[str, dict[Side, AnchorTransform]] = {}
        for axis in self._axes.values():
            out.setdefault(axis.element_id, {})[axis.side] = axis.transform
        return out

    def reset(self) -> None:
        self._axes.clear()
        self._hover.clear()


def _side_plot_candidates(bindings: Iterable[AestheticBinding], *, distribution: bool) -> list[AestheticBinding]:
    return [
        b
        for b in bindings
        if b.geom is GeomKind.HIST
        and not b.popup
        and b.is_distribution == distribution
        and b.state is BindingState.PENDING
    ]


def _report_missing(
    binding: AestheticBinding, component: str, element_id: str, diagnostics: DiagnosticLogger | None
) -> None:
    LOGGER.debug("binding %s: no arrow for %s", binding.binding_id, element_id)
    emit(
        diagnostics,
        Diagnostic(
            action=ACTION_MISSING_TARGET,
            component=component,
            binding=binding.binding_id,
            element_id=element_id,
            side=binding.side.value,
            detail="no arrow for element",
        ),
    )


def build_axes(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    registry: AxisRegistry,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Merge pending distribution bindings into shared axes. Returns axes created."""

    created = 0
    for binding in _side_plot_candidates(bindings, distribution=True):
        try:
            binding.require_side_plot()
        except PlotDataError as exc:
            skip_binding(LOGGER, diagnostics, binding, "build_axes", exc, action=ACTION_SKIPPED_SIDE)
            binding.advance(BindingState.REJECTED)
            continue
        for index, element_id in enumerate(binding.identifiers):
            target = geometry.arrow(element_id)
            if target is None:
                _report_missing(binding, "build_axes", element_id, diagnostics)
                continue
            samples = binding.values[index]
            vmin, vmax = min_f32(samples), max_f32(samples)
            if math.isnan(vmin):
                LOGGER.debug("binding %s: no finite samples for %s", binding.binding_id, element_id)
                emit(
                    diagnostics,
                    Diagnostic(
                        action=ACTION_SKIPPED_DATA,
                        component="build_axes",
                        binding=binding.binding_id,
                        element_id=element_id,
                        side=binding.side.value,
                        detail="no finite samples",
                    ),
                )
            axis, is_new = registry.ensure(target, binding.side)
            created += int(is_new)
            axis.union(vmin, vmax)
            axis.add_condition(binding.condition)
        binding.advance(BindingState.AGGREGATED)
    return created


def build_point_axes(
    bindings: Iterable[AestheticBinding],
    geometry: MapGeometry,
    registry: AxisRegistry,
    diagnostics: DiagnosticLogger | None = None,
) -> int:
    """Same as `build_axes` for scalar bindings; their axes keep a neutral range."""

    created = 0
    for binding in _side_plot_candidates(bindings, distribution=False):
        try:
            binding.require_side_plot()
        except PlotDataError as exc:
            skip_binding(LOGGER, diagnostics, binding, "build_point_axes", exc, action=ACTION_SKIPPED_SIDE)
            binding.advance(BindingState.REJECTED)
            continue
        for element_id in binding.identifiers:
            target = geometry.arrow(element_id)
            if target is None:
                _report_missing(binding, "build_point_axes", element_id, diagnostics)
                continue
            axis, is_new = registry.ensure(target, binding.side, unscale=True)
            created += int(is_new)
            axis.add_condition(binding.condition)
        binding.advance(BindingState.AGGREGATED)
    return created


def build_hover_axes(
    bindings: Iterable[AestheticBinding],
    hovers: Iterable[HoverTarget],
    registry: AxisRegistry,
) -> int:
    """Union the ranges of popup bindings per hovered node."""

    hovers = list(hovers)
    created = 0
    for binding in bindings:
        if not binding.popup or binding.state is not BindingState.PENDING:
            continue
        for hover in hovers:
            index = binding.index_of(hover.element_id)
            if index is None:
                continue
            samples = binding.values[index]
            axis, is_new = registry.ensure_hover(hover)
            created += int(is_new)
            axis.union(min_f32(samples), max_f32(samples))
            axis.add_condition(binding.condition)
        binding.advance(BindingState.AGGREGATED)
    return created
