import json
import tempfile
import unittest
from pathlib import Path

from mdgraph.settings import AppSettings, PaletteSource


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.config_path = self.root / "config.json"
        self.wal_path = self.root / "wal" / "colors.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_config_loads_empty(self) -> None:
        settings = AppSettings(self.config_path)
        self.assertEqual(settings.load(), {})

    def test_invalid_config_keeps_previous_value(self) -> None:
        self.config_path.write_text(json.dumps({"physics": {"charge": -30}}), encoding="utf-8")
        settings = AppSettings(self.config_path)
        settings.load()

        self.config_path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("mdgraph", level="ERROR"):
            value = settings.load()

        self.assertEqual(value, {"physics": {"charge": -30}})

    def test_pywal_colors_are_ordered_numerically(self) -> None:
        self.wal_path.parent.mkdir()
        colors = {f"color{i}": f"#{i:06d}" for i in range(12)}
        shuffled = dict(sorted(colors.items()))  # lexical: color0, color1, color10, ...
        self.wal_path.write_text(json.dumps({"colors": shuffled}), encoding="utf-8")

        palette = PaletteSource(self.wal_path, AppSettings(self.config_path)).load()

        self.assertEqual(palette, [f"#{i:06d}" for i in range(12)])

    def test_config_palette_used_without_pywal(self) -> None:
        self.config_path.write_text(json.dumps({"visuals": {"palette": ["#abcdef"]}}), encoding="utf-8")
        settings = AppSettings(self.config_path)
        settings.load()

        self.assertEqual(PaletteSource(self.wal_path, settings).load(), ["#abcdef"])

    def test_default_palette_is_last_resort(self) -> None:
        source = PaletteSource(self.wal_path, AppSettings(self.config_path), default=["#000000"])

        self.assertEqual(source.load(), ["#000000"])
        self.assertEqual(source.current(), ["#000000"])


if __name__ == "__main__":
    unittest.main()
