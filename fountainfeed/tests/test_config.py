"""
Unit tests for EngineConfig and its voluptuous schema.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fountainfeed.config import CONFIG_SCHEMA, EngineConfig
from fountainfeed.const import API_URL, BATCH_SIZE, CACHE_TTL, PAGE_SIZE, TOTAL_PAGES
from fountainfeed.errors import ConfigError


class TestConfigSchema(unittest.TestCase):

    def test_defaults_filled_in(self):
        data = CONFIG_SCHEMA({})
        self.assertEqual(data["api_url"], API_URL)
        self.assertEqual(data["total_pages"], TOTAL_PAGES)
        self.assertEqual(data["batch_size"], BATCH_SIZE)
        self.assertTrue(data["discover_page_count"])

    def test_default_config_matches_dataclass_defaults(self):
        self.assertEqual(EngineConfig.from_dict({}), EngineConfig())


class TestEngineConfig(unittest.TestCase):

    def test_values_coerced(self):
        config = EngineConfig.from_dict({
            "batch_size": "4",
            "batch_delay": "0.25",
            "discover_page_count": "false",
            "page_size": 20,
        })
        self.assertEqual(config.batch_size, 4)
        self.assertEqual(config.batch_delay, 0.25)
        self.assertFalse(config.discover_page_count)
        self.assertEqual(config.page_size, 20)

    def test_invalid_values_rejected(self):
        for data in (
            {"batch_size": 0},
            {"page_size": "many"},
            {"batch_delay": -1},
            {"cache_ttl": 0},
            {"api_url": "ftp://example.org"},
        ):
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    EngineConfig.from_dict(data)

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigError):
            EngineConfig.from_dict({"colour": "blue"})

    def test_cache_path(self):
        config = EngineConfig.from_dict({"cache_dir": "/tmp/fountains"})
        self.assertEqual(config.cache_path, Path("/tmp/fountains"))

    def test_config_is_immutable(self):
        with self.assertRaises(AttributeError):
            EngineConfig().page_size = 10


class TestConfigFromEnv(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        # An empty .env keeps a developer's real .env out of these tests
        self.dotenv = Path(self._tmp.name) / ".env"
        self.dotenv.write_text("", encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults_without_environment(self):
        with patch.dict(os.environ, {}, clear=True):
            config = EngineConfig.from_env(self.dotenv)
        self.assertEqual(config.page_size, PAGE_SIZE)
        self.assertEqual(config.cache_ttl, CACHE_TTL)

    def test_environment_variables_read(self):
        env = {"FOUNTAINFEED_PAGE_SIZE": "25", "FOUNTAINFEED_BATCH_DELAY": "0"}
        with patch.dict(os.environ, env, clear=True):
            config = EngineConfig.from_env(self.dotenv)
        self.assertEqual(config.page_size, 25)
        self.assertEqual(config.batch_delay, 0.0)

    def test_dotenv_file_read(self):
        self.dotenv.write_text("FOUNTAINFEED_HEAD_PAGES=5\n", encoding="utf-8")
        with patch.dict(os.environ, {}, clear=True):
            config = EngineConfig.from_env(self.dotenv)
        self.assertEqual(config.head_pages, 5)

    def test_overrides_win_and_none_is_ignored(self):
        env = {"FOUNTAINFEED_CACHE_DIR": "/from/env", "FOUNTAINFEED_PAGE_SIZE": "25"}
        with patch.dict(os.environ, env, clear=True):
            config = EngineConfig.from_env(self.dotenv, cache_dir="/explicit", page_size=None)
        self.assertEqual(config.cache_dir, "/explicit")
        self.assertEqual(config.page_size, 25)

    def test_invalid_environment_value(self):
        with patch.dict(os.environ, {"FOUNTAINFEED_BATCH_SIZE": "zero"}, clear=True):
            with self.assertRaises(ConfigError):
                EngineConfig.from_env(self.dotenv)


if __name__ == "__main__":
    unittest.main()
