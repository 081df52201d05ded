from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Iterable, Mapping

from fluxmap_core.model import GeomKind, Side


Vec2 = tuple[float, float]


def normalize(v: Vec2) -> Vec2:
    x, y = float(v[0]), float(v[1])
    n = math.hypot(x, y)
    if n < 1e-12:
        raise ValueError(f"cannot normalize zero-length vector {v}")
    return (x / n, y / n)


def perp(v: Vec2) -> Vec2:
    """Counter-clockwise perpendicular."""

    return (-float(v[1]), float(v[0]))


def angle_between(a: Vec2, b: Vec2) -> float:
    """Signed angle in radians rotating `a` onto `b`."""

    cross = a[0] * b[1] - a[1] * b[0]
    dot = a[0] * b[0] + a[1] * b[1]
    return math.atan2(cross, dot)


@dataclass(frozen=True)
class AnchorTransform:
    x: float
    y: float
    z: float = 0.0
    rotation: float = 0.0

    def __post_init__(self) -> None:
        for name in ("x", "y", "z", "rotation"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"anchor transform `{name}` must be finite")

    @property
    def translation(self) -> Vec2:
        return (self.x, self.y)

    def moved_to(self, other: AnchorTransform) -> AnchorTransform:
        """Take the position and rotation of `other`, keeping this z."""
        return AnchorTransform(x=other.x, y=other.y, z=self.z, rotation=other.rotation)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z, "rotation": self.rotation}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AnchorTransform:
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                z=float(data.get("z", 0.0)),
                rotation=float(data.get("rotation", 0.0)),
            )
        except KeyError as exc:
            raise ValueError(f"anchor transform missing field {exc.args[0]!r}") from exc


@dataclass(frozen=True)
class GeometryTarget:
    """Layout-loader view of one arrow or node."""

    element_id: str
    node_id: str
    kind: GeomKind
    position: Vec2
    direction: Vec2 = (0.0, 1.0)
    length: float = 0.0
    saved_transforms: Mapping[Side, AnchorTransform] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in (GeomKind.ARROW, GeomKind.METABOLITE):
            raise ValueError(f"geometry target kind must be arrow or metabolite, got {self.kind}")
        if not math.isfinite(self.length) or self.length < 0:
            raise ValueError(f"target {self.element_id}: length must be finite and >= 0")
        object.__setattr__(self, "direction", normalize(self.direction))
        object.__setattr__(self, "position", (float(self.position[0]), float(self.position[1])))

    def saved_transform(self, side: Side) -> AnchorTransform | None:
        return self.saved_transforms.get(side)


@dataclass(frozen=True)
class HoverTarget:
    element_id: str
    node_id: str
    position: Vec2


class MapGeometry:
    """Read-only lookup of arrows and metabolite nodes by element id."""

    def __init__(self, targets: Iterable[GeometryTarget] = ()) -> None:
        self._arrows: dict[str, GeometryTarget] = {}
        self._nodes: dict[str, GeometryTarget] = {}
        for target in targets:
            bucket = self._arrows if target.kind is GeomKind.ARROW else self._nodes
            if target.element_id in bucket:
                raise ValueError(f"duplicate {target.kind.value} id `{target.element_id}`")
            bucket[target.element_id] = target

    def arrow(self, element_id: str) -> GeometryTarget | None:
        return self._arrows.get(element_id)

    def metabolite(self, element_id: str) -> GeometryTarget | None:
        return self._nodes.get(element_id)

    def has_arrow(self, element_id: str) -> bool:
        return element_id in self._arrows

    def has_metabolite(self, element_id: str) -> bool:
        return element_id in self._nodes

    def arrows(self) -> list[GeometryTarget]:
        return list(self._arrows.values())

    def metabolites(self) -> list[GeometryTarget]:
        return list(self._nodes.values())
