"""Tests for the configuration module."""

import os
import tempfile
import unittest
from unittest.mock import patch

import yaml

from reddit_fetcher.config import DEFAULT_USER_AGENT, Config, FetchConfig, RateLimitConfig


class TestConfig(unittest.TestCase):
    """Test cases for the Config class."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        self.env_path = os.path.join(self.temp_dir.name, ".env")

        self.sample_config = {
            "base_url": "https://oauth.reddit.com",
            "request_timeout_sec": 15,
            "logging_config_path": "logging.yaml",
            "rate_limit": {
                "max_requests_per_minute": 60,
                "min_remaining_calls": 10,
                "sleep_buffer_sec": 3
            },
            "retry": {
                "max_retries": 2,
                "failure_threshold": 4
            },
            "fetch": {
                "max_concurrency": 4,
                "max_comment_depth": 20,
                "fail_fast": True,
                "timeout_sec": 120
            },
            "monitoring": {
                "enable_prometheus": False,
                "prometheus_port": 9100
            },
            "unknown_setting": "ignored"
        }

        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.sample_config, f)

        with open(self.env_path, "w", encoding="utf-8") as f:
            f.write("REDDIT_CLIENT_ID=test_client_id\n")
            f.write("REDDIT_CLIENT_SECRET=test_client_secret\n")
            f.write("REDDIT_USERNAME=test_username\n")
            f.write("REDDIT_PASSWORD=test_password\n")
            f.write("REDDIT_USER_AGENT=test_user_agent\n")
            f.write("REDDIT_ACCESS_TOKEN=test_token\n")

        # load_dotenv never overrides variables that are already set
        self.env_patcher = patch.dict(os.environ, {}, clear=True)
        self.env_patcher.start()

    def tearDown(self):
        """Clean up test environment."""
        self.env_patcher.stop()
        self.temp_dir.cleanup()

    def test_load_from_files(self):
        """Test loading configuration from files."""
        config = Config.from_files(self.config_path, self.env_path)

        # Check env values
        self.assertEqual(config.client_id, "test_client_id")
        self.assertEqual(config.client_secret, "test_client_secret")
        self.assertEqual(config.username, "test_username")
        self.assertEqual(config.password, "test_password")
        self.assertEqual(config.user_agent, "test_user_agent")
        self.assertEqual(config.access_token, "test_token")

        # Check yaml values
        self.assertEqual(config.request_timeout_sec, 15)
        self.assertEqual(config.logging_config_path, "logging.yaml")
        self.assertEqual(config.rate_limit, RateLimitConfig(60, 10, 3))
        self.assertEqual(config.retry.max_retries, 2)
        self.assertEqual(config.retry.failure_threshold, 4)
        self.assertEqual(config.retry.initial_backoff, 1.0)  # default kept
        self.assertEqual(config.fetch, FetchConfig(4, 20, True, 120))
        self.assertEqual(config.monitoring.prometheus_port, 9100)
        self.assertFalse(hasattr(config, "unknown_setting"))

    def test_missing_yaml_uses_defaults(self):
        """Test that a missing YAML file leaves the defaults in place."""
        config = Config.from_files(os.path.join(self.temp_dir.name, "missing.yaml"), self.env_path)

        self.assertEqual(config.fetch, FetchConfig())
        self.assertEqual(config.access_token, "test_token")

    def test_default_user_agent(self):
        """Test the user agent default when the environment does not set one."""
        empty_env = os.path.join(self.temp_dir.name, "empty.env")
        with open(empty_env, "w", encoding="utf-8") as f:
            f.write("")

        config = Config.from_files(self.config_path, empty_env)

        self.assertEqual(config.user_agent, DEFAULT_USER_AGENT)
        self.assertEqual(config.access_token, "")

    def test_validate_valid_config(self):
        """Test validation with valid configuration."""
        config = Config.from_files(self.config_path, self.env_path)
        errors = config.validate()
        self.assertEqual(len(errors), 0)

    def test_validate_invalid_config(self):
        """Test validation with invalid configuration."""
        config = Config()
        config.base_url = "oauth.reddit.com"
        config.fetch.max_concurrency = 0
        config.fetch.max_comment_depth = -1
        config.fetch.timeout_sec = 0
        config.rate_limit.max_requests_per_minute = 0
        config.retry.initial_backoff = 10
        config.retry.max_backoff = 5

        errors = ' '.join(config.validate())

        self.assertIn("Missing REDDIT_ACCESS_TOKEN", errors)
        self.assertIn("base_url must be an http(s) URL", errors)
        self.assertIn("fetch.max_concurrency must be at least 1", errors)
        self.assertIn("fetch.max_comment_depth cannot be negative", errors)
        self.assertIn("fetch.timeout_sec must be greater than 0", errors)
        self.assertIn("rate_limit.max_requests_per_minute must be greater than 0", errors)
        self.assertIn("initial_backoff <= max_backoff", errors)

    def test_validate_without_token(self):
        """Test that the token is optional when the caller supplies credentials."""
        self.assertEqual(Config().validate(require_token=False), [])


if __name__ == "__main__":
    unittest.main()
