"""Tests for logging setup."""

import logging
from unittest.mock import patch

import yaml

from reddit_fetcher.utils.logging_utils import DEFAULT_LOG_FORMAT, setup_logging


def test_no_path_uses_basic_config():
    with patch("logging.basicConfig") as mock_basic_config:
        setup_logging()

    mock_basic_config.assert_called_once_with(level=logging.INFO, format=DEFAULT_LOG_FORMAT)


def test_missing_file_falls_back(tmp_path):
    with patch("logging.basicConfig") as mock_basic_config, patch("logging.warning") as mock_warning:
        setup_logging(tmp_path / "missing.yaml", level=logging.DEBUG)

    mock_basic_config.assert_called_once_with(level=logging.DEBUG, format=DEFAULT_LOG_FORMAT)
    assert "not found" in mock_warning.call_args[0][0]


def test_yaml_file_is_applied(tmp_path):
    config_path = tmp_path / "logging.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "loggers": {"reddit_fetcher.test_logging": {"level": "WARNING"}},
            }
        ),
        encoding="utf-8",
    )

    with patch("logging.basicConfig") as mock_basic_config:
        setup_logging(config_path)

    mock_basic_config.assert_not_called()
    assert logging.getLogger("reddit_fetcher.test_logging").level == logging.WARNING


def test_invalid_file_falls_back(tmp_path):
    config_path = tmp_path / "logging.yaml"
    config_path.write_text("version: 1\nhandlers:\n  console:\n    class: no.such.Handler\n", encoding="utf-8")

    with patch("logging.basicConfig") as mock_basic_config, patch("logging.error") as mock_error:
        setup_logging(config_path)

    mock_basic_config.assert_called_once()
    assert "Error loading logging configuration" in mock_error.call_args[0][0]
