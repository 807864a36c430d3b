"""
Tests for settings module.

Tests settings validation and environment variable loading.
"""
from __future__ import annotations

import pytest

from testregistry.settings import DEFAULT_IMAGE, Settings, create_settings_from_env


class TestSettings:
    """Test Settings dataclass validation."""

    def test_defaults(self):
        """Test the default registry image and timeouts."""
        settings = Settings()
        assert settings.image == DEFAULT_IMAGE
        assert settings.startup_timeout_s == 60.0
        assert settings.wait_timeout_s == 30.0
        assert settings.poll_interval_s == 0.1
        assert settings.poll_interval_max_s == 1.0
        assert settings.http_timeout_s == 5.0

    def test_empty_image_raises(self):
        with pytest.raises(ValueError, match="image is required"):
            Settings(image="")

    @pytest.mark.parametrize("field", [
        "startup_timeout_s", "wait_timeout_s", "poll_interval_s", "http_timeout_s",
    ])
    def test_non_positive_values_raise(self, field):
        """Test that timeouts and intervals must be positive."""
        with pytest.raises(ValueError, match=f"{field} must be positive"):
            Settings(**{field: 0})

    def test_max_interval_below_interval_raises(self):
        with pytest.raises(ValueError, match="poll_interval_max_s"):
            Settings(poll_interval_s=2.0, poll_interval_max_s=1.0)

    def test_frozen(self):
        settings = Settings()
        with pytest.raises(AttributeError):
            settings.image = "registry:2"


class TestCreateSettingsFromEnv:
    """Test environment variable loading."""

    def test_defaults_without_env(self):
        assert create_settings_from_env() == Settings()

    def test_values_from_env(self, monkeypatch):
        monkeypatch.setenv("TESTREGISTRY_IMAGE", "ghcr.io/olareg/olareg:v0.1.0")
        monkeypatch.setenv("TESTREGISTRY_STARTUP_TIMEOUT", "120")
        monkeypatch.setenv("TESTREGISTRY_WAIT_TIMEOUT", "5.5")
        monkeypatch.setenv("TESTREGISTRY_POLL_INTERVAL", "0.2")
        monkeypatch.setenv("TESTREGISTRY_POLL_INTERVAL_MAX", "2")
        monkeypatch.setenv("TESTREGISTRY_HTTP_TIMEOUT", "1")

        settings = create_settings_from_env()

        assert settings.image == "ghcr.io/olareg/olareg:v0.1.0"
        assert settings.startup_timeout_s == 120.0
        assert settings.wait_timeout_s == 5.5
        assert settings.poll_interval_s == 0.2
        assert settings.poll_interval_max_s == 2.0
        assert settings.http_timeout_s == 1.0

    def test_invalid_number_raises(self, monkeypatch):
        monkeypatch.setenv("TESTREGISTRY_WAIT_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="TESTREGISTRY_WAIT_TIMEOUT must be a number"):
            create_settings_from_env()

    def test_invalid_value_fails_validation(self, monkeypatch):
        monkeypatch.setenv("TESTREGISTRY_HTTP_TIMEOUT", "-1")

        with pytest.raises(ValueError, match="http_timeout_s must be positive"):
            create_settings_from_env()

    def test_fresh_instance_each_call(self, monkeypatch):
        first = create_settings_from_env()
        monkeypatch.setenv("TESTREGISTRY_WAIT_TIMEOUT", "1")

        assert create_settings_from_env().wait_timeout_s == 1.0
        assert first.wait_timeout_s == 30.0
