from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import itertools
from typing import Any, Sequence

import numpy as np

from fluxmap_plot.adapters import coerce_distributions, coerce_points
from fluxmap_plot.errors import GlyphKindError, PlotDataError, UnsupportedSideError
from fluxmap_plot.scales import max_f32, min_f32


ALL_CONDITIONS = "ALL"

_BINDING_IDS = itertools.count(1)


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"


class Channel(str, Enum):
    SIZE = "size"
    COLOR = "color"
    Y = "y"


class GeomKind(str, Enum):
    ARROW = "arrow"
    METABOLITE = "metabolite"
    HIST = "hist"


class PlotKind(str, Enum):
    HIST = "hist"
    KDE = "kde"
    BOX_POINT = "box_point"


class BindingState(str, Enum):
    PENDING = "pending"
    AGGREGATED = "aggregated"
    RENDERED = "rendered"
    REJECTED = "rejected"


_FORWARD = {
    BindingState.PENDING: {BindingState.AGGREGATED, BindingState.REJECTED},
    BindingState.AGGREGATED: {BindingState.RENDERED, BindingState.REJECTED},
    BindingState.RENDERED: set(),
    BindingState.REJECTED: set(),
}


def condition_visible(condition: str | None, active: str) -> bool:
    """A tagged item shows when untagged, when its tag is active, or under ALL."""

    return condition is None or condition == active or active == ALL_CONDITIONS


@dataclass(eq=False)
class AestheticBinding:
    """Ordered identifiers bound to one value (or one sample set) each."""

    identifiers: tuple[str, ...]
    values: np.ndarray | tuple[np.ndarray, ...]
    channel: Channel
    geom: GeomKind
    condition: str | None = None
    side: Side | None = None
    plot: PlotKind = PlotKind.HIST
    popup: bool = False
    binding_id: str = field(default_factory=lambda: f"b{next(_BINDING_IDS)}")
    state: BindingState = field(default=BindingState.PENDING, init=False)

    def __post_init__(self) -> None:
        self.identifiers = tuple(str(i) for i in self.identifiers)
        self.channel = Channel(self.channel)
        self.geom = GeomKind(self.geom)
        self.plot = PlotKind(self.plot)
        if self.side is not None:
            self.side = Side(self.side)
        if len(self.identifiers) != len(self.values):
            raise PlotDataError(
                f"binding {self.binding_id}: {len(self.identifiers)} identifiers but {len(self.values)} values"
            )
        if self.popup:
            if self.side is None:
                self.side = Side.UP
            if not self.is_distribution:
                raise PlotDataError(f"binding {self.binding_id}: popups need one sample set per identifier")
        if self.geom is GeomKind.HIST:
            if self.channel is not Channel.Y:
                raise PlotDataError(f"binding {self.binding_id}: side plots are driven by the y channel")
            if self.side is None:
                raise PlotDataError(f"binding {self.binding_id}: side plots need a side")
        self._index: dict[str, int] = {}
        for i, ident in enumerate(self.identifiers):
            self._index.setdefault(ident, i)

    @property
    def is_distribution(self) -> bool:
        return isinstance(self.values, tuple)

    def index_of(self, element_id: str) -> int | None:
        return self._index.get(element_id)

    def flat_values(self) -> np.ndarray:
        if self.is_distribution:
            if not self.values:
                return np.empty(0, dtype=np.float64)
            return np.concatenate(self.values)
        return np.asarray(self.values, dtype=np.float64)

    def value_range(self) -> tuple[float, float]:
        """Min and max over the finite values; NaN when there are none."""
        flat = self.flat_values()
        flat = flat[np.isfinite(flat)]
        return (min_f32(flat), max_f32(flat))

    def visible_under(self, active: str) -> bool:
        return condition_visible(self.condition, active)

    def require_side_plot(self) -> None:
        if self.side not in (Side.LEFT, Side.RIGHT):
            side = self.side.value if self.side is not None else None
            raise UnsupportedSideError(f"binding {self.binding_id}: side `{side}` is reserved for popups")

    def require_curve_plot(self) -> None:
        if self.plot is PlotKind.BOX_POINT:
            raise GlyphKindError(
                f"binding {self.binding_id}: box-point plots need one value per element, not a distribution"
            )

    def advance(self, state: BindingState) -> None:
        if state is self.state:
            return
        if state not in _FORWARD[self.state]:
            raise ValueError(f"binding {self.binding_id}: cannot move from {self.state.value} to {state.value}")
        self.state = state

    def reset(self) -> None:
        self.state = BindingState.PENDING


def point_binding(
    identifiers: Sequence[Any],
    values: Any,
    *,
    channel: Channel | str,
    geom: GeomKind | str,
    condition: str | None = None,
    side: Side | str | None = None,
    plot: PlotKind | str = PlotKind.BOX_POINT,
) -> AestheticBinding:
    return AestheticBinding(
        identifiers=tuple(identifiers),
        values=coerce_points(values),
        channel=Channel(channel),
        geom=GeomKind(geom),
        condition=condition,
        side=None if side is None else Side(side),
        plot=PlotKind(plot),
    )


def distribution_binding(
    identifiers: Sequence[Any],
    values: Any,
    *,
    channel: Channel | str,
    geom: GeomKind | str,
    condition: str | None = None,
    side: Side | str | None = None,
    plot: PlotKind | str = PlotKind.HIST,
    popup: bool = False,
) -> AestheticBinding:
    return AestheticBinding(
        identifiers=tuple(identifiers),
        values=tuple(coerce_distributions(values)),
        channel=Channel(channel),
        geom=GeomKind(geom),
        condition=condition,
        side=None if side is None else Side(side),
        plot=PlotKind(plot),
        popup=popup,
    )
