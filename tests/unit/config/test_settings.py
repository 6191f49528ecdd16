"""Tests for config persistence and settings sanitization.

Malformed or missing values must fall back to defaults instead of raising.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from rmexport import config
from rmexport.export import DEFAULT_RCU_COMMAND, split_command


class SettingsTests(unittest.TestCase):
    def test_defaults_when_config_missing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("rmexport.config.CONFIG_PATH", Path(tmp) / "missing.json"):
                settings = config.load_settings()

        self.assertEqual(settings.ssh_host, "remarkable-usb")
        self.assertEqual(settings.remote_dir, "/home/root/.local/share/remarkable/xochitl")
        self.assertEqual(settings.cache_ttl_seconds, 1200.0)
        self.assertEqual(settings.rcu_command, "rcu")
        self.assertIsNone(settings.viewer_command)

    def test_default_rcu_command_matches_exporter_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("rmexport.config.CONFIG_PATH", Path(tmp) / "missing.json"):
                settings = config.load_settings()

        self.assertEqual(split_command(settings.rcu_command), DEFAULT_RCU_COMMAND)
        self.assertIs(config.DEFAULT_RCU_COMMAND, DEFAULT_RCU_COMMAND)

    def test_saved_values_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "nested" / "config.json"
            with mock.patch("rmexport.config.CONFIG_PATH", config_path):
                config.save_config(
                    {
                        "ssh_host": " tablet ",
                        "cache_ttl_seconds": 60,
                        "export_dir": str(Path(tmp) / "out"),
                        "save_dir": str(Path(tmp) / "keep"),
                        "cache_dir": str(Path(tmp) / "cache"),
                        "viewer_command": "evince",
                    }
                )
                settings = config.load_settings()

        self.assertEqual(settings.ssh_host, "tablet")
        self.assertEqual(settings.cache_ttl_seconds, 60.0)
        self.assertEqual(settings.export_dir, Path(tmp) / "out")
        self.assertEqual(settings.save_dir, Path(tmp) / "keep")
        self.assertEqual(settings.cache_dir, Path(tmp) / "cache")
        self.assertEqual(settings.viewer_command, "evince")

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("rmexport.config.CONFIG_PATH", Path(tmp) / "config.json"):
                config.save_config(
                    {
                        "ssh_host": "   ",
                        "cache_ttl_seconds": True,
                        "rcu_command": 42,
                        "viewer_command": "",
                    }
                )
                settings = config.load_settings()

        self.assertEqual(settings.ssh_host, "remarkable-usb")
        self.assertEqual(settings.cache_ttl_seconds, 1200.0)
        self.assertEqual(settings.rcu_command, "rcu")
        self.assertIsNone(settings.viewer_command)

    def test_non_positive_ttl_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("rmexport.config.CONFIG_PATH", Path(tmp) / "config.json"):
                config.save_config({"cache_ttl_seconds": 0})
                self.assertEqual(config.load_settings().cache_ttl_seconds, 1200.0)

    def test_malformed_json_loads_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            config_path.write_text("{not json", encoding="utf-8")
            with mock.patch("rmexport.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})
            config_path.write_text("[1, 2]", encoding="utf-8")
            with mock.patch("rmexport.config.CONFIG_PATH", config_path):
                self.assertEqual(config.load_config(), {})


if __name__ == "__main__":
    unittest.main()
