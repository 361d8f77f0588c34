"""Unit tests for settings loading."""

from pathlib import Path

import pytest

from config import DEFAULT_GITHUB_ORG, DEFAULT_TEAM_LABEL, Settings
from errors import ConfigError

_VARS = [
    "GITHUB_ORG",
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_API_TOKEN",
    "HUB_HTTP_TIMEOUT",
    "HUB_HTTP_RETRIES",
    "HUB_FEED_LIMIT",
    "HUB_TEAM_LABEL",
    "HUB_DATA_FILE",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_falls_back_to_defaults() -> None:
    settings = Settings.from_env()

    assert settings.github_org == DEFAULT_GITHUB_ORG
    assert settings.github_token is None
    assert settings.feed_limit == 10
    assert settings.team_label == DEFAULT_TEAM_LABEL
    assert settings.data_file is None
    assert not settings.has_cloudflare_credentials


def test_from_env_uses_environment_variables(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_ORG", "acme")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
    monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3/")
    monkeypatch.setenv("CLOUDFLARE_ACCOUNT_ID", "acc")
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "cf")
    monkeypatch.setenv("HUB_FEED_LIMIT", "5")
    monkeypatch.setenv("HUB_DATA_FILE", "/tmp/hub.json")

    settings = Settings.from_env()

    assert settings.github_org == "acme"
    assert settings.github_token == "ghp_x"
    assert settings.github_api_url == "https://ghe.example.com/api/v3"
    assert settings.has_cloudflare_credentials
    assert settings.feed_limit == 5
    assert settings.data_file == Path("/tmp/hub.json")


def test_from_env_uses_override_first(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_ORG", "from-env")

    assert Settings.from_env(github_org="override").github_org == "override"


def test_from_env_rejects_malformed_numbers(monkeypatch) -> None:
    monkeypatch.setenv("HUB_HTTP_TIMEOUT", "soon")

    with pytest.raises(ConfigError):
        Settings.from_env()


def test_from_env_rejects_negative_feed_limit(monkeypatch) -> None:
    monkeypatch.setenv("HUB_FEED_LIMIT", "-1")

    with pytest.raises(ConfigError):
        Settings.from_env()


def test_from_env_rejects_unknown_log_format(monkeypatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "xml")

    with pytest.raises(ConfigError):
        Settings.from_env()
