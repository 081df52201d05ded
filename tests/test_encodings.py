from __future__ import annotations

import unittest

from fluxmap_core.axes import AxisRegistry, build_axes, build_hover_axes, build_point_axes
from fluxmap_core.diagnostics import ACTION_EMPTY_GEOMETRY, ACTION_SKIPPED_GLYPH
from fluxmap_core.encodings import (
    BOX_Z_LIFT,
    POPUP_Z,
    EncodingStore,
    encoding_key,
    plot_hover_hist,
    plot_side_box,
    plot_side_hist,
)
from fluxmap_core.geometry import GeometryTarget, HoverTarget, MapGeometry
from fluxmap_core.model import BindingState, GeomKind, PlotKind, Side, distribution_binding, point_binding
from fluxmap_core.settings import DEFAULT_SETTINGS
from fluxmap_plot.color import BLACK


class _Fixture(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = MapGeometry(
            [
                GeometryTarget("PGI", "n1", GeomKind.ARROW, (0.0, 0.0), direction=(1.0, 0.0), length=120.0),
                GeometryTarget("PFK", "n2", GeomKind.ARROW, (200.0, 0.0), direction=(0.0, 1.0), length=90.0),
            ]
        )
        self.registry = AxisRegistry()
        self.store = EncodingStore()
        self.records: list[dict] = []


class SideHistTests(_Fixture):
    def test_histograms_render_with_tick_labels(self) -> None:
        b = distribution_binding(
            ["PGI", "PFK"], [[1.0, 2.0, 2.5], [0.0, 4.0]], channel="y", geom="hist", side="right", condition="c1"
        )
        build_axes([b], self.geometry, self.registry)
        self.assertEqual(plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS), 2)
        self.assertIs(b.state, BindingState.RENDERED)
        enc = self.store.get(encoding_key(b, "PGI", Side.RIGHT))
        assert enc is not None
        self.assertEqual(enc.kind, PlotKind.HIST)
        self.assertEqual(enc.fill, DEFAULT_SETTINGS.color_right)
        self.assertEqual([d.text for d in enc.decorations], ["1", "2.5", "80"])
        self.assertEqual(enc.transform, self.registry.get("PGI", Side.RIGHT).transform)
        self.assertAlmostEqual(enc.path.extent, 120.0)
        self.assertEqual(self.store.revision, 2)

    def test_kde_uses_kde_tick(self) -> None:
        b = distribution_binding(["PGI"], [[1.0, 2.0]], channel="y", geom="hist", side="left", plot="kde")
        build_axes([b], self.geometry, self.registry)
        plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS)
        enc = self.store.get(encoding_key(b, "PGI", Side.LEFT))
        assert enc is not None
        self.assertEqual(enc.kind, PlotKind.KDE)
        self.assertEqual(enc.decorations[-1].text, "0.1")

    def test_empty_samples_stay_aggregated_for_retry(self) -> None:
        b = distribution_binding(["PGI"], [[float("nan")]], channel="y", geom="hist", side="right")
        build_axes([b], self.geometry, self.registry)
        self.assertEqual(plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS, self.records.append), 0)
        self.assertIs(b.state, BindingState.AGGREGATED)
        self.assertEqual(self.records[-1]["action"], ACTION_EMPTY_GEOMETRY)
        self.assertEqual(self.records[-1]["element_id"], "PGI")

    def test_retry_does_not_duplicate_rendered_elements(self) -> None:
        b = distribution_binding(["PGI", "PFK"], [[1.0, 2.0], [float("nan")]], channel="y", geom="hist", side="right")
        build_axes([b], self.geometry, self.registry)
        self.assertEqual(plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS), 1)
        self.assertEqual(plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS), 0)
        self.assertEqual(len(self.store), 1)

    def test_box_plot_on_distribution_is_rejected(self) -> None:
        b = distribution_binding(["PGI"], [[1.0]], channel="y", geom="hist", side="left", plot="box_point")
        build_axes([b], self.geometry, self.registry)
        with self.assertLogs("fluxmap_core.encodings", level="WARNING"):
            plot_side_hist([b], self.registry, self.store, DEFAULT_SETTINGS, self.records.append)
        self.assertIs(b.state, BindingState.REJECTED)
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.records[0]["action"], ACTION_SKIPPED_GLYPH)

    def test_fill_follows_condition_override(self) -> None:
        settings = DEFAULT_SETTINGS.with_side_color("right", "c1", "#FF0000FF")
        b = distribution_binding(["PGI"], [[1.0, 2.0]], channel="y", geom="hist", side="right", condition="c1")
        build_axes([b], self.geometry, self.registry)
        plot_side_hist([b], self.registry, self.store, settings)
        enc = self.store.get(encoding_key(b, "PGI", Side.RIGHT))
        assert enc is not None
        self.assertEqual(enc.fill.to_rgba8(), (255, 0, 0, 255))


class SideBoxTests(_Fixture):
    def test_box_heights_span_box_sizes(self) -> None:
        b = point_binding(["PGI", "PFK"], [1.0, 3.0], channel="y", geom="hist", side="left", condition="c1")
        build_point_axes([b], self.geometry, self.registry)
        self.assertEqual(plot_side_box([b], self.registry, self.store, DEFAULT_SETTINGS), 2)
        low = self.store.get(encoding_key(b, "PGI", Side.LEFT))
        high = self.store.get(encoding_key(b, "PFK", Side.LEFT))
        assert low is not None and high is not None
        self.assertAlmostEqual(low.raw_height, 10.0)
        self.assertAlmostEqual(high.raw_height, 40.0)
        self.assertEqual(low.fill.to_rgba8(), DEFAULT_SETTINGS.min_reaction_color.to_rgba8())
        self.assertEqual(high.fill.to_rgba8(), DEFAULT_SETTINGS.max_reaction_color.to_rgba8())
        self.assertEqual(low.outline, BLACK)
        self.assertTrue(low.unscale)
        axis = self.registry.get("PGI", Side.LEFT)
        self.assertEqual(low.transform.z, axis.transform.z + BOX_Z_LIFT)
        self.assertIs(b.state, BindingState.RENDERED)

    def test_infinite_values_do_not_stretch_the_range(self) -> None:
        b = point_binding(["PGI", "PFK"], [float("-inf"), 2.0], channel="y", geom="hist", side="left")
        build_point_axes([b], self.geometry, self.registry)
        with self.assertLogs("fluxmap_core.encodings", level="WARNING"):
            rendered = plot_side_box([b], self.registry, self.store, DEFAULT_SETTINGS, self.records.append)
        self.assertEqual(rendered, 1)
        box = self.store.get(encoding_key(b, "PFK", Side.LEFT))
        assert box is not None
        self.assertAlmostEqual(box.raw_height, 25.0)
        self.assertEqual(box.fill.a, 1.0)
        self.assertIsNone(self.store.get(encoding_key(b, "PGI", Side.LEFT)))
        self.assertEqual([r["element_id"] for r in self.records], ["PGI"])
        self.assertIs(b.state, BindingState.RENDERED)

    def test_conditions_take_separate_slots(self) -> None:
        b1 = point_binding(["PGI"], [1.0], channel="y", geom="hist", side="left", condition="c1")
        b2 = point_binding(["PGI"], [2.0], channel="y", geom="hist", side="left", condition="c2")
        build_point_axes([b1, b2], self.geometry, self.registry)
        plot_side_box([b1, b2], self.registry, self.store, DEFAULT_SETTINGS)
        first = self.store.get(encoding_key(b1, "PGI", Side.LEFT))
        second = self.store.get(encoding_key(b2, "PGI", Side.LEFT))
        assert first is not None and second is not None
        self.assertEqual((first.glyph.slot, second.glyph.slot), (0, 1))
        self.assertLess(first.glyph.center[0], second.glyph.center[0])

    def test_non_box_plot_kind_warns_and_draws_a_box(self) -> None:
        b = point_binding(["PGI"], [1.0], channel="y", geom="hist", side="left", plot="kde")
        build_point_axes([b], self.geometry, self.registry)
        with self.assertLogs("fluxmap_core.encodings", level="WARNING"):
            self.assertEqual(plot_side_box([b], self.registry, self.store, DEFAULT_SETTINGS), 1)
        self.assertEqual(self.store.get(encoding_key(b, "PGI", Side.LEFT)).kind, PlotKind.BOX_POINT)


class HoverHistTests(_Fixture):
    def test_popups_are_hidden_and_offset(self) -> None:
        hovers = [HoverTarget("PGI", "n1", (10.0, 20.0))]
        b = distribution_binding(["PGI"], [[1.0, 2.0, 3.0]], channel="y", geom="hist", popup=True)
        build_hover_axes([b], hovers, self.registry)
        self.assertEqual(plot_hover_hist([b], self.registry, hovers, self.store, DEFAULT_SETTINGS), 1)
        enc = self.store.get(encoding_key(b, "PGI", Side.UP))
        assert enc is not None
        self.assertTrue(enc.popup)
        self.assertFalse(enc.visible)
        self.assertEqual((enc.transform.x, enc.transform.y, enc.transform.z), (160.0, 170.0, POPUP_Z))
        self.assertAlmostEqual(enc.path.extent, 600.0)
        self.assertEqual(enc.decorations[-1].text, "120")
        self.assertEqual(enc.fill, DEFAULT_SETTINGS.color_top)
        self.assertEqual(self.store.popups(), [enc])
        self.assertEqual(self.store.side_encodings(), [])

    def test_rangeless_popup_is_retried(self) -> None:
        hovers = [HoverTarget("PGI", "n1", (10.0, 20.0))]
        b = distribution_binding(["PGI"], [[float("nan")]], channel="y", geom="hist", popup=True)
        build_hover_axes([b], hovers, self.registry)
        self.assertEqual(plot_hover_hist([b], self.registry, hovers, self.store, DEFAULT_SETTINGS, self.records.append), 0)
        self.assertIs(b.state, BindingState.AGGREGATED)
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.records[0]["action"], ACTION_EMPTY_GEOMETRY)
        self.assertEqual(self.records[0]["side"], "up")


class StoreTests(unittest.TestCase):
    def test_clear_bumps_revision(self) -> None:
        store = EncodingStore()
        store.clear()
        self.assertEqual(store.revision, 1)
        self.assertEqual(len(store), 0)


if __name__ == "__main__":
    unittest.main()
