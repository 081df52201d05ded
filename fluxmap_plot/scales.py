from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable

import numpy as np

from fluxmap_plot.color import Color


def lerp(value: float, src_min: float, src_max: float, dst_min: float, dst_max: float) -> float:
    """Affine map from [src_min, src_max] onto [dst_min, dst_max].

    Evaluated with numpy floats, so a degenerate source range yields nan/inf instead of
    raising; use `scale_value` where that case can happen.
    """

    with np.errstate(divide="ignore", invalid="ignore"):
        v = np.float64(value)
        s0 = np.float64(src_min)
        s1 = np.float64(src_max)
        d0 = np.float64(dst_min)
        d1 = np.float64(dst_max)
        return float((v - s0) / (s1 - s0) * (d1 - d0) + d0)


def unit_position(value: float, vmin: float, vmax: float) -> float:
    """Position of `value` in [vmin, vmax] as a fraction; 0.5 when vmin == vmax."""

    if vmax == vmin:
        return 0.5
    return float((value - vmin) / (vmax - vmin))


def scale_value(value: float, src_min: float, src_max: float, dst_min: float, dst_max: float) -> float:
    if src_max == src_min:
        return (float(dst_min) + float(dst_max)) * 0.5
    return lerp(value, src_min, src_max, dst_min, dst_max)


def lerp_hsv(t: float, color_min: Color, color_max: Color) -> Color:
    """Interpolate two colors in HSV space along the shorter hue arc."""

    h1, s1, v1, a1 = color_min.to_hsva()
    h2, s2, v2, a2 = color_max.to_hsva()
    t = float(t)
    th = t
    if h1 > h2:
        h1, h2 = h2, h1
        th = 1.0 - th
    if h2 - h1 > 0.5:
        h1 += 1.0
        hue = (h1 + th * (h2 - h1)) % 1.0
    else:
        hue = h1 + th * (h2 - h1)
    return Color.from_hsva(
        hue,
        s1 + t * (s2 - s1),
        v1 + t * (v2 - v1),
        a1 + t * (a2 - a1),
    )


def min_f32(values: Iterable[float]) -> float:
    arr = _finite_or_nan(values)
    if arr.size == 0:
        return float("nan")
    return float(np.min(arr))


def max_f32(values: Iterable[float]) -> float:
    arr = _finite_or_nan(values)
    if arr.size == 0:
        return float("nan")
    return float(np.max(arr))


def linspace(start: float, stop: float, n: int) -> np.ndarray:
    if n <= 0:
        raise ValueError("n must be > 0")
    return np.linspace(float(start), float(stop), int(n), dtype=np.float64)


def is_valid_range(vmin: float, vmax: float) -> bool:
    return bool(np.isfinite(vmin) and np.isfinite(vmax) and vmax > vmin)


def format_legend_value(value: float) -> str:
    return f"{value:.2e}"


def format_tick(value: float, *, step: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    if step is not None and np.isfinite(step) and step > 0 and abs(value) <= step * 1e-9:
        value = 0.0
    abs_v = abs(value)
    decimals = _decimals_from_step(step) if step is not None else 6
    if abs_v != 0 and (abs_v >= 1e6 or (step is not None and abs(step) < 1e-4) or abs_v < 1e-6):
        return f"{value:.4e}"

    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant)
    except InvalidOperation:
        q = d
    out = format(q, "f")
    # Only trim trailing zeros for fractional values (preserve integer zeros like 30, 40).
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out


def format_ticks_for_axis(ticks: np.ndarray) -> list[str]:
    if ticks.size == 0:
        return []
    if ticks.size == 1:
        return [format_tick(float(ticks[0]))]
    step = float(abs(ticks[1] - ticks[0]))
    return [format_tick(float(v), step=step) for v in ticks]


def _finite_or_nan(values: Iterable[float]) -> np.ndarray:
    arr = np.asarray(values if isinstance(values, np.ndarray) else list(values), dtype=np.float64).ravel()
    return arr[~np.isnan(arr)]


def _decimals_from_step(step: float) -> int:
    if step <= 0 or not np.isfinite(step):
        return 6
    d = Decimal(str(step)).normalize()
    exp = d.as_tuple().exponent
    decimals = max(0, -int(exp))
    return min(12, decimals)
