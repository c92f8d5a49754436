"""Tests for core configuration classes."""

from __future__ import annotations

from rescuesync.core.config import ClassifierConfig, RemoteConfig


class TestRemoteConfig:
    """Tests for RemoteConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with defaults."""
        config = RemoteConfig(server_url="https://rescue.example.org")
        assert config.server_url == "https://rescue.example.org"
        assert config.timeout == 10.0
        assert config.verify_ssl is True

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from server URL."""
        config = RemoteConfig(server_url="https://rescue.example.org/")
        assert config.server_url == "https://rescue.example.org"

    def test_is_secure(self) -> None:
        assert RemoteConfig(server_url="https://a.org").is_secure is True
        assert RemoteConfig(server_url="http://localhost:8000").is_secure is False


class TestClassifierConfig:
    """Tests for ClassifierConfig class."""

    def test_defaults(self) -> None:
        config = ClassifierConfig(endpoint_url="http://classifier/classify")
        assert config.timeout == 5.0
