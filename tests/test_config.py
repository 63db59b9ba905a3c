"""Tests for Settings."""

import pytest

from tubefeed.config import Settings
from tubefeed.core.errors import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    """Remove the test-wide defaults set in conftest."""
    for name in ("DATABASE_URL", "YOUTUBE_API_KEYS", "YOUTUBE_API_KEY", "POLL_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings(_env_file=None)

    assert settings.search_query == "football in:title OR football in:description"
    assert settings.poll_interval_seconds == 10
    assert settings.retry_backoff_seconds == 10
    assert settings.max_results_per_request == 50
    assert settings.port == 8080
    assert settings.api_keys == []


def test_keys_parsed_in_order(clean_env):
    clean_env.setenv("YOUTUBE_API_KEYS", " key-b , key-c,,key-b ")
    clean_env.setenv("YOUTUBE_API_KEY", "key-a")

    settings = Settings(_env_file=None)

    assert settings.api_keys == ["key-a", "key-b", "key-c"]


def test_intervals_from_env(clean_env):
    clean_env.setenv("POLL_INTERVAL_SECONDS", "2.5")

    assert Settings(_env_file=None).poll_interval_seconds == 2.5


def test_missing_database_url_rejected(clean_env):
    clean_env.setenv("YOUTUBE_API_KEYS", "key-a")

    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        Settings(_env_file=None).require_runtime_config()


def test_missing_keys_rejected(clean_env):
    clean_env.setenv("DATABASE_URL", "postgresql://localhost/tubefeed")

    with pytest.raises(ConfigurationError, match="API key"):
        Settings(_env_file=None).require_runtime_config()


def test_complete_config_accepted(clean_env):
    clean_env.setenv("DATABASE_URL", "postgresql://localhost/tubefeed")
    clean_env.setenv("YOUTUBE_API_KEY", "key-a")

    Settings(_env_file=None).require_runtime_config()
