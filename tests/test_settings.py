from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from fluxmap_core.model import Side
from fluxmap_core.settings import DEFAULT_SETTINGS, load_settings, validate_settings
from fluxmap_plot.color import Color


class ValidateSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = validate_settings()
        self.assertEqual(settings, DEFAULT_SETTINGS)
        self.assertEqual(settings.min_reaction, 20.0)
        self.assertEqual(settings.legend_width, 200)
        self.assertEqual(settings.color_left.to_rgba8(), (218, 150, 135, 124))

    def test_overrides_are_coerced(self) -> None:
        settings = validate_settings({"max_left": 50, "color_right": "#000000FF", "zero_white": True})
        self.assertEqual(settings.max_left, 50.0)
        self.assertIsInstance(settings.max_left, float)
        self.assertEqual(settings.color_right, Color(0.0, 0.0, 0.0, 1.0))
        self.assertTrue(settings.zero_white)

    def test_unknown_key(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown setting: max_bottom"):
            validate_settings({"max_bottom": 10})

    def test_invalid_values(self) -> None:
        bad = [
            {"color_left": "salmon"},
            {"max_top": 0},
            {"min_reaction": -1},
            {"min_metabolite": "big"},
            {"legend_width": 12.5},
            {"legend_height": True},
            {"zero_white": 1},
            {"box_min_size": 50, "box_max_size": 40},
        ]
        for overrides in bad:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    validate_settings(overrides)

    def test_zero_sizes_are_allowed(self) -> None:
        self.assertEqual(validate_settings({"min_reaction": 0}).min_reaction, 0.0)


class SideColorTests(unittest.TestCase):
    def test_lookup_falls_back_to_default(self) -> None:
        settings = DEFAULT_SETTINGS.with_side_color("left", "glucose", "#FF0000FF")
        colors = settings.side_colors(Side.LEFT)
        self.assertEqual(colors.lookup("glucose").to_rgba8(), (255, 0, 0, 255))
        self.assertEqual(colors.lookup("acetate"), settings.color_left)
        self.assertEqual(colors.lookup(None), settings.color_left)
        self.assertEqual(settings.side_colors(Side.RIGHT).lookup("glucose"), settings.color_right)

    def test_with_side_color_replaces_existing_entry(self) -> None:
        settings = DEFAULT_SETTINGS.with_side_color(Side.UP, "c1", [1, 2, 3]).with_side_color(Side.UP, "c1", [4, 5, 6])
        self.assertEqual(len(settings.side_overrides), 1)
        self.assertEqual(settings.side_colors(Side.UP).lookup("c1").to_rgba8(), (4, 5, 6, 255))

    def test_max_height_per_side(self) -> None:
        settings = validate_settings({"max_left": 10, "max_right": 20, "max_top": 30})
        self.assertEqual(
            [settings.max_height(s) for s in (Side.LEFT, Side.RIGHT, Side.UP)],
            [10.0, 20.0, 30.0],
        )


class LoadSettingsTests(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        path = Path(tmp.name) / "settings.toml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_settings_table_and_side_colors(self) -> None:
        path = self._write(
            "[settings]\n"
            "max_left = 80\n"
            "zero_white = true\n"
            "color_top = [10, 20, 30, 40]\n"
            "\n"
            "[side_colors.left]\n"
            'glucose = "#112233FF"\n'
        )
        with self.assertLogs("fluxmap_core.settings", level="INFO"):
            settings = load_settings(path)
        self.assertEqual(settings.max_left, 80.0)
        self.assertTrue(settings.zero_white)
        self.assertEqual(settings.color_top.to_rgba8(), (10, 20, 30, 40))
        self.assertEqual(settings.side_colors(Side.LEFT).lookup("glucose").to_rgba8(), (17, 34, 51, 255))

    def test_top_level_form(self) -> None:
        path = self._write("max_right = 25.5\n")
        self.assertEqual(load_settings(path).max_right, 25.5)

    def test_unknown_side(self) -> None:
        path = self._write('[side_colors.down]\nc1 = "#000000"\n')
        with self.assertRaisesRegex(ValueError, "unknown side"):
            load_settings(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_settings("/nonexistent/fluxmap-settings.toml")


if __name__ == "__main__":
    unittest.main()
