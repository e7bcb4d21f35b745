"""Tests for persisted view preferences."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazylineage.runtime import config


class ConfigPersistenceTests(unittest.TestCase):
    def test_round_trip_of_every_preference(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "nested" / "config.json"
            with mock.patch("lazylineage.runtime.config.CONFIG_PATH", config_path):
                config.save_show_node_list(True)
                config.save_theme_name(" ocean ")
                config.save_zoom(1.75)

                self.assertTrue(config.load_show_node_list())
                self.assertEqual(config.load_theme_name(), "ocean")
                self.assertEqual(config.load_zoom(), 1.75)
                self.assertEqual(config.load_config()["show_node_list"], True)

    def test_missing_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("lazylineage.runtime.config.CONFIG_PATH", Path(tmp) / "absent.json"):
                self.assertEqual(config.load_config(), {})
                self.assertFalse(config.load_show_node_list())
                self.assertIsNone(config.load_theme_name())
                self.assertEqual(config.load_zoom(), 1.0)
                self.assertEqual(config.load_runner_wrapper(), "auto")

    def test_malformed_values_are_sanitized(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            with mock.patch("lazylineage.runtime.config.CONFIG_PATH", config_path):
                config.save_config({"show_node_list": "yes", "theme": "  ", "zoom": 99, "runner_wrapper": "UV"})
                self.assertFalse(config.load_show_node_list())
                self.assertIsNone(config.load_theme_name())
                self.assertEqual(config.load_zoom(), config.ZOOM_MAX)
                self.assertEqual(config.load_runner_wrapper(), "uv")

                config.save_config({"zoom": True, "runner_wrapper": "make"})
                self.assertEqual(config.load_zoom(), 1.0)
                self.assertEqual(config.load_runner_wrapper(), "auto")

    def test_non_object_json_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            config_path.write_text("[1, 2, 3]", encoding="utf-8")
            with mock.patch("lazylineage.runtime.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})
                config.save_zoom(0.5)
                self.assertEqual(config.load_zoom(), 0.5)


if __name__ == "__main__":
    unittest.main()
