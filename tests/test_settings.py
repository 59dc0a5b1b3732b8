"""
Tests for the FundHoldings settings module.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from fundholdings.settings import Settings


class TestSettings:
    """Test cases for the Settings class."""

    def test_default_settings(self):
        """Test that default settings are correctly initialized."""
        settings = Settings()

        assert settings.attempt_timeout == 10.0
        assert settings.inter_attempt_delay == 0.5
        assert settings.inter_fund_delay == 0.1
        assert settings.max_retries == 2
        assert settings.backoff_base == 0.5
        assert settings.cache_max_age_days == 7
        assert settings.max_concurrent_funds == 1
        assert settings.log_level == "INFO"

    def test_derived_paths(self, temp_dir):
        """Test that data_dir and cache_path derive from root_dir."""
        settings = Settings(root_dir=temp_dir)

        assert settings.data_dir == temp_dir / "data"
        assert settings.cache_path == temp_dir / "data" / "holdings.db"

    def test_explicit_paths(self, temp_dir):
        """Test that explicit paths win over derived ones."""
        settings = Settings(root_dir=temp_dir, cache_path=temp_dir / "x.db")

        assert settings.cache_path == temp_dir / "x.db"

    def test_directory_creation(self, temp_dir):
        """Test that create_directories creates the data directory."""
        settings = Settings(root_dir=temp_dir)
        settings.create_directories()

        assert Path(settings.data_dir).is_dir()

    def test_environment_override(self, monkeypatch):
        """Test FUNDHOLDINGS_ environment variables."""
        monkeypatch.setenv("FUNDHOLDINGS_ATTEMPT_TIMEOUT", "3.5")
        monkeypatch.setenv("FUNDHOLDINGS_MAX_CONCURRENT_FUNDS", "4")

        settings = Settings()

        assert settings.attempt_timeout == 3.5
        assert settings.max_concurrent_funds == 4

    def test_invalid_values(self):
        """Test that non-positive timeouts and concurrency are rejected."""
        with pytest.raises(ValidationError):
            Settings(attempt_timeout=0)
        with pytest.raises(ValidationError):
            Settings(max_concurrent_funds=0)
        with pytest.raises(ValidationError):
            Settings(inter_attempt_delay=-1)
