from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from fluxmap_plot.scales import format_tick, format_ticks_for_axis, is_valid_range


SIDE_HIST_BINS = 30
POPUP_HIST_BINS = 60
KDE_POINTS = 200


@dataclass(frozen=True)
class PlotPath:
    """Polyline in plot-local coordinates; x is centered on the anchor, y >= 0 grows away from it."""

    vertices: np.ndarray
    closed: bool = True

    def __post_init__(self) -> None:
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 2:
            raise ValueError(f"vertices must have shape (n, 2), got {self.vertices.shape}")

    @property
    def max_height(self) -> float:
        if self.vertices.size == 0:
            return 0.0
        return float(np.max(self.vertices[:, 1]))

    @property
    def extent(self) -> float:
        if self.vertices.size == 0:
            return 0.0
        xs = self.vertices[:, 0]
        return float(np.max(xs) - np.min(xs))


@dataclass(frozen=True)
class BoxPointGlyph:
    box: PlotPath
    center: tuple[float, float]
    slot: int
    slot_count: int


@dataclass(frozen=True)
class TickLabel:
    text: str
    x: float
    y: float
    font_size: float


@dataclass(frozen=True)
class AxisScales:
    x_0: TickLabel
    x_n: TickLabel
    y: TickLabel


def finite_samples(samples: Any) -> np.ndarray:
    arr = np.asarray(samples, dtype=np.float64).ravel()
    return arr[np.isfinite(arr)]


def plot_hist(samples: Any, bins: int, size: float, xlimits: tuple[float, float]) -> PlotPath | None:
    """Histogram outline of `samples` over `xlimits`, stretched to `size` wide.

    Returns None for an empty sample set or a degenerate range.
    """

    if bins <= 0:
        raise ValueError("bins must be > 0")
    if size <= 0:
        raise ValueError("size must be > 0")
    arr = finite_samples(samples)
    xmin, xmax = float(xlimits[0]), float(xlimits[1])
    if arr.size == 0 or not is_valid_range(xmin, xmax):
        return None
    counts, edges = np.histogram(arr, bins=bins, range=(xmin, xmax))
    xs = _to_plot_x(edges, xmin, xmax, size)
    vertices = np.empty((2 * bins + 2, 2), dtype=np.float64)
    vertices[0] = (xs[0], 0.0)
    vertices[1:-1:2, 0] = xs[:-1]
    vertices[2:-1:2, 0] = xs[1:]
    vertices[1:-1:2, 1] = counts
    vertices[2:-1:2, 1] = counts
    vertices[-1] = (xs[-1], 0.0)
    return PlotPath(vertices=vertices, closed=True)


def plot_kde(samples: Any, n_points: int, size: float, xlimits: tuple[float, float]) -> PlotPath | None:
    """Gaussian KDE curve of `samples` evaluated at `n_points` across `xlimits`."""

    if n_points <= 1:
        raise ValueError("n_points must be > 1")
    if size <= 0:
        raise ValueError("size must be > 0")
    arr = finite_samples(samples)
    xmin, xmax = float(xlimits[0]), float(xlimits[1])
    if arr.size == 0 or not is_valid_range(xmin, xmax):
        return None
    bandwidth = silverman_bandwidth(arr, fallback=0.05 * (xmax - xmin))
    grid = np.linspace(xmin, xmax, n_points, dtype=np.float64)
    z = (grid[:, None] - arr[None, :]) / bandwidth
    density = np.exp(-0.5 * z * z).sum(axis=1) / (arr.size * bandwidth * np.sqrt(2.0 * np.pi))
    xs = _to_plot_x(grid, xmin, xmax, size)
    vertices = np.empty((n_points + 2, 2), dtype=np.float64)
    vertices[0] = (xs[0], 0.0)
    vertices[1:-1, 0] = xs
    vertices[1:-1, 1] = density
    vertices[-1] = (xs[-1], 0.0)
    return PlotPath(vertices=vertices, closed=True)


def silverman_bandwidth(arr: np.ndarray, *, fallback: float) -> float:
    n = arr.size
    std = float(np.std(arr, ddof=1)) if n > 1 else 0.0
    q75, q25 = np.percentile(arr, [75.0, 25.0]) if n > 1 else (0.0, 0.0)
    iqr_sigma = float(q75 - q25) / 1.34
    candidates = [s for s in (std, iqr_sigma) if s > 0.0]
    if not candidates:
        return float(fallback) if fallback > 0 else 1.0
    return 0.9 * min(candidates) * n ** (-0.2)


def plot_box_point(slot_count: int, slot: int, height: float, *, slot_width: float = 40.0) -> BoxPointGlyph:
    """Box glyph for one condition, placed in its own horizontal slot."""

    if slot_width <= 0:
        raise ValueError("slot_width must be > 0")
    if height < 0 or not np.isfinite(height):
        raise ValueError(f"box height must be finite and >= 0, got {height}")
    slot_count = max(1, int(slot_count))
    if slot < 0 or slot >= slot_count:
        raise ValueError(f"slot {slot} out of range for {slot_count} slots")
    pad = slot_width * 0.1
    x0 = -0.5 * slot_count * slot_width + slot * slot_width
    left = x0 + pad
    right = x0 + slot_width - pad
    vertices = np.asarray(
        [(left, 0.0), (left, height), (right, height), (right, 0.0)],
        dtype=np.float64,
    )
    return BoxPointGlyph(
        box=PlotPath(vertices=vertices, closed=True),
        center=(x0 + 0.5 * slot_width, 0.5 * height),
        slot=slot,
        slot_count=slot_count,
    )


def plot_scales(xlimits: tuple[float, float], size: float, font_size: float, y_tick: float) -> AxisScales:
    """Tick labels for both ends of the x axis and one y tick."""

    labels = format_ticks_for_axis(np.asarray(xlimits, dtype=np.float64))
    half = 0.5 * size
    return AxisScales(
        x_0=TickLabel(text=labels[0], x=-half, y=-font_size, font_size=font_size),
        x_n=TickLabel(text=labels[-1], x=half, y=-font_size, font_size=font_size),
        y=TickLabel(text=format_tick(y_tick), x=-half - font_size, y=y_tick, font_size=font_size),
    )


def _to_plot_x(values: np.ndarray, xmin: float, xmax: float, size: float) -> np.ndarray:
    return (values - xmin) / (xmax - xmin) * size - 0.5 * size
