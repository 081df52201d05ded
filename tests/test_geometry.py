from __future__ import annotations

import math
import unittest

from fluxmap_core.geometry import (
    AnchorTransform,
    GeometryTarget,
    MapGeometry,
    angle_between,
    normalize,
    perp,
)
from fluxmap_core.model import GeomKind, Side


class VectorTests(unittest.TestCase):
    def test_perp_is_counter_clockwise(self) -> None:
        self.assertEqual(perp((1.0, 0.0)), (-0.0, 1.0))
        self.assertEqual(perp((0.0, 1.0)), (-1.0, 0.0))

    def test_angle_between(self) -> None:
        self.assertAlmostEqual(angle_between((0.0, 1.0), (-1.0, 0.0)), math.pi / 2)
        self.assertAlmostEqual(angle_between((0.0, 1.0), (1.0, 0.0)), -math.pi / 2)
        self.assertAlmostEqual(angle_between((1.0, 0.0), (1.0, 0.0)), 0.0)

    def test_normalize(self) -> None:
        self.assertEqual(normalize((3.0, 4.0)), (0.6, 0.8))
        with self.assertRaises(ValueError):
            normalize((0.0, 0.0))


class AnchorTransformTests(unittest.TestCase):
    def test_dict_round_trip(self) -> None:
        t = AnchorTransform(x=1.5, y=-2.0, z=0.5, rotation=0.25)
        self.assertEqual(AnchorTransform.from_dict(t.as_dict()), t)

    def test_missing_field(self) -> None:
        with self.assertRaisesRegex(ValueError, "'y'"):
            AnchorTransform.from_dict({"x": 1.0})

    def test_optional_fields_default(self) -> None:
        t = AnchorTransform.from_dict({"x": 1, "y": 2})
        self.assertEqual((t.z, t.rotation), (0.0, 0.0))

    def test_non_finite_rejected(self) -> None:
        with self.assertRaises(ValueError):
            AnchorTransform(x=float("nan"), y=0.0)

    def test_moved_to_keeps_own_z(self) -> None:
        t = AnchorTransform(x=0.0, y=0.0, z=3.0, rotation=1.0).moved_to(AnchorTransform(5.0, 6.0, 9.0, 0.25))
        self.assertEqual(t, AnchorTransform(5.0, 6.0, 3.0, 0.25))
        self.assertEqual(t.translation, (5.0, 6.0))


class MapGeometryTests(unittest.TestCase):
    def test_direction_is_normalized(self) -> None:
        target = GeometryTarget("PGI", "n1", GeomKind.ARROW, (0, 0), direction=(3.0, 4.0), length=10.0)
        self.assertEqual(target.direction, (0.6, 0.8))
        self.assertEqual(target.position, (0.0, 0.0))

    def test_rejects_hist_kind_and_negative_length(self) -> None:
        with self.assertRaises(ValueError):
            GeometryTarget("PGI", "n1", GeomKind.HIST, (0, 0))
        with self.assertRaises(ValueError):
            GeometryTarget("PGI", "n1", GeomKind.ARROW, (0, 0), length=-1.0)

    def test_lookup_by_kind(self) -> None:
        arrow = GeometryTarget("PGI", "n1", GeomKind.ARROW, (0, 0), length=10.0)
        node = GeometryTarget("g6p_c", "m1", GeomKind.METABOLITE, (5, 5))
        geometry = MapGeometry([arrow, node])
        self.assertIs(geometry.arrow("PGI"), arrow)
        self.assertIs(geometry.metabolite("g6p_c"), node)
        self.assertIsNone(geometry.arrow("g6p_c"))
        self.assertTrue(geometry.has_arrow("PGI"))
        self.assertFalse(geometry.has_metabolite("PGI"))
        self.assertEqual(geometry.arrows(), [arrow])
        self.assertEqual(geometry.metabolites(), [node])

    def test_duplicate_ids_rejected(self) -> None:
        arrow = GeometryTarget("PGI", "n1", GeomKind.ARROW, (0, 0))
        with self.assertRaisesRegex(ValueError, "duplicate"):
            MapGeometry([arrow, GeometryTarget("PGI", "n9", GeomKind.ARROW, (1, 1))])

    def test_saved_transform_lookup(self) -> None:
        saved = AnchorTransform(1.0, 2.0, 0.5, 0.0)
        target = GeometryTarget("PGI", "n1", GeomKind.ARROW, (0, 0), saved_transforms={Side.RIGHT: saved})
        self.assertIs(target.saved_transform(Side.RIGHT), saved)
        self.assertIsNone(target.saved_transform(Side.LEFT))


if __name__ == "__main__":
    unittest.main()
