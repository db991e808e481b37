#!/usr/bin/env python3
"""Tests for Settings."""
from pathlib import Path

from carlog.config import DEFAULT_DATA_DIR, Settings


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.data_dir == DEFAULT_DATA_DIR
        assert settings.log_level == "INFO"
        assert settings.log_json is False
        assert settings.secret_key == "dev-secret-key-change-in-prod"

    def test_from_environment(self, tmp_path):
        settings = Settings.from_env(
            {
                "CARLOG_DATA_DIR": str(tmp_path),
                "CARLOG_LOG_LEVEL": "DEBUG",
                "CARLOG_LOG_JSON": "true",
                "SECRET_KEY": "s3cret",
            }
        )
        assert settings.data_dir == Path(tmp_path)
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True
        assert settings.secret_key == "s3cret"
