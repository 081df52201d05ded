from __future__ import annotations

import unittest

from fluxmap_core.diagnostics import ACTION_SKIPPED_DATA
from fluxmap_core.geometry import AnchorTransform, GeometryTarget, HoverTarget, MapGeometry
from fluxmap_core.model import BindingState, GeomKind, Side, distribution_binding, point_binding
from fluxmap_core.pipeline import EncodingPipeline, TickReport
from fluxmap_core.settings import validate_settings


def _geometry() -> MapGeometry:
    return MapGeometry(
        [
            GeometryTarget("PGI", "n1", GeomKind.ARROW, (0.0, 0.0), direction=(1.0, 0.0), length=120.0),
            GeometryTarget("PFK", "n2", GeomKind.ARROW, (200.0, 0.0), direction=(0.0, 1.0), length=90.0),
            GeometryTarget("g6p_c", "m1", GeomKind.METABOLITE, (0.0, 50.0)),
        ]
    )


def _bindings(condition: str = "glucose") -> list:
    return [
        point_binding(["PGI", "PFK"], [1.0, 3.0], channel="color", geom="arrow", condition=condition),
        point_binding(["PGI", "PFK"], [2.0, 4.0], channel="size", geom="arrow"),
        distribution_binding(
            ["PGI"], [[1.0, 2.0, 2.0, 3.0]], channel="y", geom="hist", side="right", condition=condition
        ),
        point_binding(["PGI"], [5.0], channel="y", geom="hist", side="left", condition=condition),
        distribution_binding(["PGI"], [[0.5, 1.5]], channel="y", geom="hist", popup=True, condition=condition),
    ]


class PipelineTickTests(unittest.TestCase):
    def setUp(self) -> None:
        self.records: list[dict] = []
        self.pipeline = EncodingPipeline(
            _geometry(),
            hovers=[HoverTarget("PGI", "n1", (0.0, 0.0))],
            diagnostics=self.records.append,
        )
        self.pipeline.load(_bindings())

    def test_first_tick_builds_and_renders_everything(self) -> None:
        report = self.pipeline.tick()
        self.assertEqual(report, TickReport(axes_built=3, encodings_rendered=3, pending=0, legends_synced=True))
        self.assertEqual(len(self.pipeline.encodings), 3)
        self.assertTrue(all(b.state is BindingState.RENDERED for b in self.pipeline.bindings if b.geom is GeomKind.HIST))
        hist = self.pipeline.encodings.on_side(Side.RIGHT)[0]
        self.assertAlmostEqual(hist.height, self.pipeline.settings.max_right)
        self.assertAlmostEqual(self.pipeline.styles.arrow("PGI").size, 20.0)
        self.assertEqual(self.records, [])

    def test_second_tick_is_idle(self) -> None:
        self.pipeline.tick()
        report = self.pipeline.tick()
        self.assertEqual(report, TickReport(axes_built=0, encodings_rendered=0, pending=0, legends_synced=False))

    def test_condition_change_resyncs_legends(self) -> None:
        self.pipeline.tick()
        self.assertTrue(self.pipeline.legend("arrow").visible)
        self.pipeline.set_condition("ALL")
        self.assertTrue(self.pipeline.tick().legends_synced)
        with self.assertRaises(ValueError):
            self.pipeline.set_condition("lactate")

    def test_hover_shows_popup(self) -> None:
        self.pipeline.tick()
        popup = self.pipeline.encodings.popups()[0]
        self.assertFalse(popup.visible)
        self.pipeline.tick(hovered=["n1"])
        self.assertTrue(popup.visible)
        self.pipeline.tick()
        self.assertFalse(popup.visible)

    def test_moved_axis_carries_its_encodings(self) -> None:
        self.pipeline.tick()
        moved = AnchorTransform(11.0, 12.0, 0.5, 0.2)
        self.pipeline.move_axis("PGI", "right", moved)
        self.pipeline.tick()
        hist = self.pipeline.encodings.on_side(Side.RIGHT)[0]
        self.assertEqual((hist.transform.x, hist.transform.y, hist.transform.rotation), (11.0, 12.0, 0.2))
        self.assertEqual(self.pipeline.persisted_transforms()["PGI"][Side.RIGHT], moved)
        with self.assertRaises(KeyError):
            self.pipeline.move_axis("FBA", "right", moved)

    def test_empty_samples_stay_pending(self) -> None:
        broken = distribution_binding(["PFK"], [[float("nan")]], channel="y", geom="hist", side="right")
        self.pipeline.load(_bindings() + [broken])
        self.assertEqual(self.pipeline.tick().pending, 1)
        self.assertEqual(self.pipeline.tick().pending, 1)
        self.assertIs(broken.state, BindingState.AGGREGATED)
        self.assertTrue(any(r["action"] == "empty_geometry" for r in self.records))

    def test_infinite_box_values_are_skipped(self) -> None:
        boxes = point_binding(
            ["PGI", "PFK"], [float("-inf"), float("inf")], channel="y", geom="hist", side="left", condition="acetate"
        )
        self.pipeline.load(_bindings() + [boxes])
        with self.assertLogs("fluxmap_core.encodings", level="WARNING"):
            report = self.pipeline.tick()
        self.assertEqual(report.pending, 0)
        self.assertIs(boxes.state, BindingState.RENDERED)
        self.assertEqual([r["action"] for r in self.records], [ACTION_SKIPPED_DATA, ACTION_SKIPPED_DATA])


class PipelineLoadTests(unittest.TestCase):
    def test_reload_drops_previous_state_and_keeps_condition(self) -> None:
        pipeline = EncodingPipeline(_geometry())
        pipeline.load(_bindings("glucose") + _bindings("acetate"))
        pipeline.set_condition("acetate")
        pipeline.tick()
        first = len(pipeline.encodings)

        with self.assertLogs("fluxmap_core.pipeline", level="INFO"):
            pipeline.load(_bindings("acetate"))
        self.assertEqual(pipeline.load_cycle, 2)
        self.assertEqual(len(pipeline.encodings), 0)
        self.assertEqual(len(pipeline.axes), 0)
        self.assertEqual(pipeline.conditions.active, "acetate")
        pipeline.tick()
        self.assertLess(len(pipeline.encodings), first)

    def test_untagged_data_has_no_conditions(self) -> None:
        pipeline = EncodingPipeline(_geometry())
        pipeline.load([point_binding(["PGI"], [1.0], channel="size", geom="arrow")])
        pipeline.tick()
        self.assertEqual(pipeline.conditions.labels, [""])

    def test_legend_resize_respawns_legends(self) -> None:
        pipeline = EncodingPipeline(_geometry())
        pipeline.update_settings(validate_settings({"legend_width": 100}))
        self.assertEqual(pipeline.legend("arrow").size, (100, 40))
        self.assertIsNone(pipeline.legend("missing"))


if __name__ == "__main__":
    unittest.main()
