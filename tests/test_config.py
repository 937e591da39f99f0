"""Tests for configuration loading."""

import os
import tempfile
import unittest
from unittest.mock import patch

import yaml

from cast_mirror.config import Config

ENV_VARS = ("NEYNAR_API_KEY", "NEYNAR_BASE_URL", "CAST_STORE_BACKEND", "CAST_STORE_URL")


class TestConfig(unittest.TestCase):
    """Test cases for Config."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        self.env_path = os.path.join(self.temp_dir.name, ".env")
        self.db_path = os.path.join(self.temp_dir.name, "nested", "casts.db")

        with open(self.env_path, "w", encoding="utf-8") as f:
            f.write("NEYNAR_API_KEY=from-dotenv\n")

        self.env_patch = patch.dict(os.environ, {}, clear=False)
        self.env_patch.start()
        for name in ENV_VARS:
            os.environ.pop(name, None)

    def tearDown(self):
        """Clean up test environment."""
        self.env_patch.stop()
        self.temp_dir.cleanup()

    def write_yaml(self, data):
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)

    def test_defaults_without_yaml(self):
        os.environ["CAST_STORE_BACKEND"] = "memory"
        config = Config.from_files(os.path.join(self.temp_dir.name, "missing.yaml"), self.env_path)

        self.assertEqual(config.sync_interval_sec, 600)
        self.assertEqual(config.rate_limit.limit, 5)
        self.assertEqual(config.rate_limit.window_sec, 60)
        self.assertEqual(config.feed.channel_ids, "base")
        self.assertEqual(config.feed.page_size, 25)
        self.assertEqual(config.feed.api_key, "from-dotenv")

    def test_yaml_sections_are_merged(self):
        self.write_yaml({
            "sync_interval_sec": 120,
            "feed": {"channel_ids": "memes", "page_size": 50, "unknown_key": 1},
            "rate_limit": {"limit": 10},
            "store": {"backend": "sqlalchemy", "url": f"sqlite:///{self.db_path}"},
            "api": {"port": 9000},
        })

        config = Config.from_files(self.config_path, self.env_path)

        self.assertEqual(config.sync_interval_sec, 120)
        self.assertEqual(config.feed.channel_ids, "memes")
        self.assertEqual(config.feed.page_size, 50)
        self.assertFalse(hasattr(config.feed, "unknown_key"))
        self.assertEqual(config.rate_limit.limit, 10)
        self.assertEqual(config.rate_limit.window_sec, 60)
        self.assertEqual(config.api.port, 9000)
        self.assertTrue(os.path.isdir(os.path.dirname(self.db_path)))

    def test_environment_overrides_yaml(self):
        self.write_yaml({"store": {"backend": "sqlalchemy", "url": f"sqlite:///{self.db_path}"}})
        os.environ["NEYNAR_API_KEY"] = "from-env"
        os.environ["CAST_STORE_BACKEND"] = "memory"
        os.environ["NEYNAR_BASE_URL"] = "http://localhost:9999/v2/farcaster"

        config = Config.from_files(self.config_path, self.env_path)

        self.assertEqual(config.feed.api_key, "from-env")
        self.assertEqual(config.store.backend, "memory")
        self.assertEqual(config.feed.base_url, "http://localhost:9999/v2/farcaster")

    def test_validate_valid(self):
        config = Config()
        config.feed.api_key = "key"
        self.assertEqual(config.validate(), [])

    def test_validate_errors(self):
        config = Config(sync_interval_sec=10)
        config.feed.page_size = 0
        config.rate_limit.limit = 0
        config.store.backend = "redis"

        errors = config.validate()

        self.assertIn("Missing NEYNAR_API_KEY in environment", errors)
        self.assertIn("sync_interval_sec must be at least 60 seconds", errors)
        self.assertTrue(any("page_size" in e for e in errors))
        self.assertTrue(any("rate_limit.limit" in e for e in errors))
        self.assertTrue(any("store.backend" in e for e in errors))


if __name__ == "__main__":
    unittest.main()
