"""Tests for the CLI module."""

import json
import os
import tempfile
import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from tests.builders import FakeTransport, comments_response, listing, post, post_id_of, to_bytes
from reddit_fetcher.cli import app
from reddit_fetcher.client import RedditClient
from reddit_fetcher.config import Config
from reddit_fetcher.errors import ConfigError


def respond(request):
    if "/comments/" in request.path:
        return to_bytes(comments_response(post_id_of(request)))
    return to_bytes(listing([post("aaa111", title="Hello")], after="t3_aaa111"))


def fake_client(*args, **kwargs):
    config = Config()
    config.rate_limit.max_requests_per_minute = 60000
    return RedditClient(config, transport=FakeTransport(respond))


class TestCli(unittest.TestCase):
    """Test cases for the CLI interface."""

    def setUp(self):
        """Set up test environment."""
        self.runner = CliRunner()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        self.env_path = os.path.join(self.temp_dir.name, ".env")

        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write("""
fetch:
  max_concurrency: 2
            """)

    def tearDown(self):
        """Clean up test environment."""
        self.temp_dir.cleanup()

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=fake_client)
    def test_comments_command(self, mock_from_files):
        """Test printing a comment tree as JSON."""
        result = self.runner.invoke(app, ["comments", "golang", "abc123", "--config", self.config_path])

        self.assertEqual(result.exit_code, 0, result.output)
        document = json.loads(result.output)
        self.assertEqual(document["post"]["id"], "abc123")
        self.assertEqual([c["id"] for c in document["comments"]], ["c1", "c2"])
        mock_from_files.assert_called_once_with(self.config_path, None)

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=fake_client)
    def test_comments_summary(self, mock_from_files):
        """Test the summary output of the comments command."""
        result = self.runner.invoke(app, ["comments", "golang", "abc123", "--summary"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            json.loads(result.output),
            {"post": "t3_abc123", "comments": 2, "depth": 1, "more_ids": 0},
        )

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=fake_client)
    def test_comments_invalid_request(self, mock_from_files):
        """Test that validation errors exit with status 1."""
        result = self.runner.invoke(app, ["comments", "golang", "NOT-VALID"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("post_id", result.output)

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=fake_client)
    def test_many_command(self, mock_from_files):
        """Test fetching several posts with one failure."""
        result = self.runner.invoke(app, ["many", "golang", "aaa111", "BAD", "bbb222"])

        self.assertEqual(result.exit_code, 1)
        lines = [line for line in result.output.splitlines() if line.startswith(("aaa111", "BAD", "bbb222"))]
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("aaa111\tok\t2 comments"))
        self.assertTrue(lines[1].startswith("BAD\terror\t"))
        self.assertTrue(lines[2].startswith("bbb222\tok"))

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=fake_client)
    def test_posts_command(self, mock_from_files):
        """Test listing posts."""
        result = self.runner.invoke(app, ["posts", "golang", "--sort", "new"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("t3_aaa111\t42\t2\tHello", result.output)
        self.assertIn("next: t3_aaa111", result.output)

    def test_posts_rejects_unknown_sort(self):
        """Test that only hot and new are accepted."""
        result = self.runner.invoke(app, ["posts", "golang", "--sort", "rising"])

        self.assertEqual(result.exit_code, 2)

    @patch("reddit_fetcher.cli.RedditClient.from_files", side_effect=ConfigError("Missing REDDIT_ACCESS_TOKEN in environment"))
    def test_config_error_exits(self, mock_from_files):
        """Test that configuration errors exit with status 1."""
        result = self.runner.invoke(app, ["comments", "golang", "abc123"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("REDDIT_ACCESS_TOKEN", result.output)

    def test_check_config(self):
        """Test the check-config command with and without a token."""
        with open(self.env_path, "w", encoding="utf-8") as f:
            f.write("REDDIT_USER_AGENT=test_user_agent\n")

        with patch.dict(os.environ, {}, clear=True):
            result = self.runner.invoke(app, ["check-config", "--config", self.config_path, "--env", self.env_path])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Missing REDDIT_ACCESS_TOKEN", result.output)

        with open(self.env_path, "a", encoding="utf-8") as f:
            f.write("REDDIT_ACCESS_TOKEN=token\n")

        with patch.dict(os.environ, {}, clear=True):
            result = self.runner.invoke(app, ["check-config", "--config", self.config_path, "--env", self.env_path])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Configuration OK", result.output)


if __name__ == "__main__":
    unittest.main()
