from __future__ import annotations

import colorsys
from dataclasses import dataclass
import re
from typing import Any, Sequence

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")


@dataclass(frozen=True)
class Color:
    """RGBA color with float channels in [0, 1]."""

    r: float
    g: float
    b: float
    a: float = 1.0

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            value = float(getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"color channel `{name}` must be in [0, 1], got {value}")

    @classmethod
    def from_rgba8(cls, r: int, g: int, b: int, a: int = 255) -> "Color":
        return cls(r / 255.0, g / 255.0, b / 255.0, a / 255.0)

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        if not isinstance(value, str) or not _HEX_COLOR.match(value):
            raise ValueError(f"color must be a hex color (#RRGGBB or #RRGGBBAA), got {value!r}")
        raw = value[1:]
        channels = [int(raw[i : i + 2], 16) for i in range(0, len(raw), 2)]
        return cls.from_rgba8(*channels)

    @classmethod
    def from_hsva(cls, h: float, s: float, v: float, a: float = 1.0) -> "Color":
        r, g, b = colorsys.hsv_to_rgb(h % 1.0, _clamp01(s), _clamp01(v))
        return cls(_clamp01(r), _clamp01(g), _clamp01(b), _clamp01(a))

    def to_hsva(self) -> tuple[float, float, float, float]:
        h, s, v = colorsys.rgb_to_hsv(self.r, self.g, self.b)
        return (h, s, v, self.a)

    def to_rgba8(self) -> tuple[int, int, int, int]:
        return (
            int(round(self.r * 255)),
            int(round(self.g * 255)),
            int(round(self.b * 255)),
            int(round(self.a * 255)),
        )

    def to_hex(self) -> str:
        r, g, b, a = self.to_rgba8()
        return f"#{r:02X}{g:02X}{b:02X}{a:02X}"

    def with_alpha(self, alpha: float) -> "Color":
        return Color(self.r, self.g, self.b, _clamp01(alpha))


WHITE = Color(1.0, 1.0, 1.0, 1.0)
BLACK = Color(0.0, 0.0, 0.0, 1.0)
NEUTRAL_GREY = Color(0.85, 0.85, 0.85, 1.0)


def coerce_color(value: Any, label: str = "color") -> Color:
    """Accept a Color, a hex string or 3/4 ints in [0, 255]."""

    if isinstance(value, Color):
        return value
    if isinstance(value, str):
        try:
            return Color.from_hex(value)
        except ValueError as exc:
            raise ValueError(f"`{label}` must be a hex color (#RRGGBB or #RRGGBBAA)") from exc
    if isinstance(value, Sequence) and len(value) in (3, 4):
        channels = [int(c) for c in value]
        if any(c < 0 or c > 255 for c in channels):
            raise ValueError(f"`{label}` channels must be in [0, 255]")
        return Color.from_rgba8(*channels)
    raise ValueError(f"`{label}` must be a hex string or 3/4 integer channels, got {value!r}")


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
