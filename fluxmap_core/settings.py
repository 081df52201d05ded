from __future__ import annotations

from dataclasses import dataclass, fields, replace
import logging
import math
from pathlib import Path
import tomllib
from typing import Any, Mapping

from fluxmap_core.model import Side
from fluxmap_plot.color import Color, coerce_color

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SideColors:
    """Histogram fill for one side, with per-condition overrides."""

    default: Color
    overrides: Mapping[str, Color]

    def lookup(self, condition: str | None) -> Color:
        if condition is None:
            return self.default
        return self.overrides.get(condition, self.default)


@dataclass(frozen=True)
class EncodingSettings:
    min_reaction: float = 20.0
    max_reaction: float = 60.0
    min_metabolite: float = 20.0
    max_metabolite: float = 60.0
    min_reaction_color: Color = Color.from_rgba8(164, 191, 232)
    max_reaction_color: Color = Color.from_rgba8(42, 98, 183)
    min_metabolite_color: Color = Color.from_rgba8(183, 110, 42)
    max_metabolite_color: Color = Color.from_rgba8(186, 148, 113)
    zero_white: bool = False
    max_left: float = 100.0
    max_right: float = 100.0
    max_top: float = 100.0
    color_left: Color = Color.from_rgba8(218, 150, 135, 124)
    color_right: Color = Color.from_rgba8(125, 206, 96, 124)
    color_top: Color = Color.from_rgba8(161, 134, 216, 124)
    box_min_size: float = 10.0
    box_max_size: float = 40.0
    legend_width: int = 200
    legend_height: int = 40
    # (side, condition, color) triples; a tuple keeps the settings hashable.
    side_overrides: tuple[tuple[Side, str, Color], ...] = ()

    def max_height(self, side: Side) -> float:
        if side is Side.LEFT:
            return self.max_left
        if side is Side.RIGHT:
            return self.max_right
        return self.max_top

    def side_colors(self, side: Side) -> SideColors:
        default = {Side.LEFT: self.color_left, Side.RIGHT: self.color_right, Side.UP: self.color_top}[side]
        overrides = {condition: color for s, condition, color in self.side_overrides if s is side}
        return SideColors(default=default, overrides=overrides)

    def with_side_color(self, side: Side | str, condition: str, color: Any) -> EncodingSettings:
        side = Side(side)
        kept = tuple(entry for entry in self.side_overrides if not (entry[0] is side and entry[1] == condition))
        return replace(self, side_overrides=kept + ((side, str(condition), coerce_color(color)),))


DEFAULT_SETTINGS = EncodingSettings()

_COLOR_KEYS = (
    "min_reaction_color",
    "max_reaction_color",
    "min_metabolite_color",
    "max_metabolite_color",
    "color_left",
    "color_right",
    "color_top",
)
_SIZE_KEYS = ("min_reaction", "max_reaction", "min_metabolite", "max_metabolite", "box_min_size", "box_max_size")
_HEIGHT_KEYS = ("max_left", "max_right", "max_top")
_PIXEL_KEYS = ("legend_width", "legend_height")


def validate_settings(overrides: Mapping[str, Any] | None = None) -> EncodingSettings:
    """Validate and merge user overrides against the default settings."""

    raw: dict[str, Any] = {f.name: getattr(DEFAULT_SETTINGS, f.name) for f in fields(EncodingSettings)}
    raw.pop("side_overrides")
    if overrides:
        for key, value in overrides.items():
            if key not in raw:
                raise ValueError(f"Unknown setting: {key}")
            raw[key] = value

    for key in _COLOR_KEYS:
        raw[key] = coerce_color(raw[key], key)
    for key in _SIZE_KEYS:
        raw[key] = _number(raw[key], key, allow_zero=True)
    for key in _HEIGHT_KEYS:
        raw[key] = _number(raw[key], key, allow_zero=False)
    for key in _PIXEL_KEYS:
        value = raw[key]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"Setting `{key}` must be a positive integer")
    if not isinstance(raw["zero_white"], bool):
        raise ValueError("Setting `zero_white` must be a boolean")
    if raw["box_min_size"] > raw["box_max_size"]:
        raise ValueError("Setting `box_min_size` must not exceed `box_max_size`")
    return EncodingSettings(**raw)


def load_settings(path: str | Path) -> EncodingSettings:
    """Read settings from a TOML file.

    Scalars come from a `[settings]` table when present, else from the top level.
    Per-condition histogram colors live under `[side_colors.<side>]`.
    """

    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"settings file not found: {settings_path}")
    with settings_path.open("rb") as f:
        raw = tomllib.load(f)
    side_table = raw.get("side_colors", {})
    if "settings" in raw:
        table = raw["settings"]
    else:
        table = {k: v for k, v in raw.items() if k != "side_colors"}
    if not isinstance(table, dict) or not isinstance(side_table, dict):
        raise ValueError("`settings` and `side_colors` must be tables")
    settings = validate_settings(table)
    for side_name, per_condition in side_table.items():
        try:
            side = Side(side_name)
        except ValueError as exc:
            raise ValueError(f"unknown side in side_colors: {side_name}") from exc
        if not isinstance(per_condition, dict):
            raise ValueError(f"`side_colors.{side_name}` must be a table")
        for condition, color in per_condition.items():
            settings = settings.with_side_color(side, condition, color)
    LOGGER.info("loaded settings from %s (%d side color overrides)", settings_path, len(settings.side_overrides))
    return settings


def _number(value: Any, key: str, *, allow_zero: bool) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(float(value)):
        raise ValueError(f"Setting `{key}` must be a finite number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"Setting `{key}` must be {'>= 0' if allow_zero else '> 0'}")
    return float(value)
