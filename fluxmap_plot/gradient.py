from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from fluxmap_plot.color import WHITE, Color
from fluxmap_plot.scales import lerp_hsv, linspace, unit_position


@dataclass(frozen=True)
class Gradient:
    vmin: float
    vmax: float
    color_min: Color
    color_max: Color
    zero_white: bool = False

    @property
    def diverging(self) -> bool:
        return self.zero_white and self.vmin < 0.0 < self.vmax

    def at(self, value: float) -> Color:
        if self.diverging:
            if value <= 0.0:
                return lerp_hsv(_clip01(unit_position(value, self.vmin, 0.0)), self.color_min, WHITE)
            return lerp_hsv(_clip01(unit_position(value, 0.0, self.vmax)), WHITE, self.color_max)
        return lerp_hsv(_clip01(unit_position(value, self.vmin, self.vmax)), self.color_min, self.color_max)

    def sample_rgba8(self, n: int) -> np.ndarray:
        """`n` evenly spaced colors across [vmin, vmax] as an (n, 4) uint8 array."""

        points = linspace(self.vmin, self.vmax, n)
        out = np.empty((points.size, 4), dtype=np.uint8)
        for i, value in enumerate(points.tolist()):
            out[i] = self.at(value).to_rgba8()
        return out


def build_grad(zero_white: bool, vmin: float, vmax: float, color_min: Color, color_max: Color) -> Gradient:
    return Gradient(vmin=float(vmin), vmax=float(vmax), color_min=color_min, color_max=color_max, zero_white=zero_white)


def _clip01(t: float) -> float:
    return max(0.0, min(1.0, t))
