"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
import unittest
from unittest.mock import patch

from permission_broker.config import DEFAULT_CONFIG, ensure_config_dir, load_config
from permission_broker.exceptions import ConfigValidationError


class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config = load_config(config_path=config_path)
            self.assertEqual(config, DEFAULT_CONFIG)
            self.assertEqual(config["broker"]["directory_name"], "claude-permission")
            self.assertEqual(config["broker"]["poll_interval_seconds"], 0.5)
            self.assertEqual(config["broker"]["settle_delay_seconds"], 0.1)
            self.assertEqual(config["broker"]["shutdown_join_seconds"], 1.0)
            self.assertEqual(config["broker"]["prompt_timeout_seconds"], 30.0)

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[broker]
directory_name = "agent-permission"
prompt_timeout_seconds = 10

[logging]
level = "debug"
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config["broker"]["directory_name"], "agent-permission")
            self.assertEqual(config["broker"]["prompt_timeout_seconds"], 10.0)
            self.assertEqual(config["broker"]["poll_interval_seconds"], 0.5)
            self.assertEqual(config["logging"]["level"], "DEBUG")

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        cases = [
            '[broker]\ndirectory_name = "../escape"\n',
            "[broker]\npoll_interval_seconds = 0\n",
            '[logging]\nlevel = "LOUD"\n',
        ]
        for content in cases:
            with self.subTest(content=content), tempfile.TemporaryDirectory() as temp_dir:
                config_path = Path(temp_dir) / "config.toml"
                config_path.write_text(content, encoding="utf-8")
                with self.assertLogs("permission_broker.config", level="WARNING"):
                    config = load_config(config_path=config_path)
                self.assertEqual(config, DEFAULT_CONFIG)

    def test_unparsable_toml_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[broker\n", encoding="utf-8")
            with self.assertLogs("permission_broker.config", level="WARNING"):
                config = load_config(config_path=config_path)
            self.assertEqual(config, DEFAULT_CONFIG)

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_config_file_permissions_are_private(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("", encoding="utf-8")
            config_path.chmod(0o644)
            load_config(config_path=config_path)
            self.assertEqual(config_path.stat().st_mode & 0o777, 0o600)

    def test_unexpected_validation_error_is_raised(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            with patch(
                "permission_broker.config.Config.model_validate",
                side_effect=TypeError("broken model"),
            ):
                with self.assertRaises(ConfigValidationError):
                    load_config(config_path=config_path)

    def test_ensure_config_dir_creates_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "nested" / "permission-broker"
            self.assertEqual(ensure_config_dir(target), target)
            self.assertTrue(target.is_dir())


if __name__ == "__main__":
    unittest.main()
