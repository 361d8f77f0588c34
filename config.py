"""Hub settings — read once from the environment and passed to the connectors."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from errors import ConfigError

DEFAULT_GITHUB_ORG = "advo-ph"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_TEAM_LABEL = "ADVO Team"


@dataclass(frozen=True)
class Settings:
    """Configuration for the connectors, the feed and the API layer."""

    github_org: str = DEFAULT_GITHUB_ORG
    github_token: str | None = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    cloudflare_account_id: str | None = None
    cloudflare_api_token: str | None = None
    cloudflare_api_url: str = DEFAULT_CLOUDFLARE_API_URL
    http_timeout: float = 10.0
    http_retries: int = 2
    retry_backoff: float = 0.5
    feed_limit: int = 10
    team_label: str = DEFAULT_TEAM_LABEL
    data_file: Path | None = None
    cache_ttl: float = 300.0
    log_format: str = "text"
    log_level: str = "INFO"

    @property
    def has_cloudflare_credentials(self) -> bool:
        return bool(self.cloudflare_account_id and self.cloudflare_api_token)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from the process environment.

        Priority: explicit override > environment variable > default.
        """
        settings = cls(
            github_org=os.getenv("GITHUB_ORG") or DEFAULT_GITHUB_ORG,
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_api_url=(os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/"),
            cloudflare_account_id=os.getenv("CLOUDFLARE_ACCOUNT_ID") or None,
            cloudflare_api_token=os.getenv("CLOUDFLARE_API_TOKEN") or None,
            cloudflare_api_url=(os.getenv("CLOUDFLARE_API_URL") or DEFAULT_CLOUDFLARE_API_URL).rstrip("/"),
            http_timeout=_env_number("HUB_HTTP_TIMEOUT", 10.0, float),
            http_retries=_env_number("HUB_HTTP_RETRIES", 2, int),
            retry_backoff=_env_number("HUB_RETRY_BACKOFF", 0.5, float),
            feed_limit=_env_number("HUB_FEED_LIMIT", 10, int),
            team_label=os.getenv("HUB_TEAM_LABEL") or DEFAULT_TEAM_LABEL,
            data_file=_env_path("HUB_DATA_FILE"),
            cache_ttl=_env_number("HUB_CACHE_TTL", 300.0, float),
            log_format=(os.getenv("LOG_FORMAT") or "text").lower(),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
        if overrides:
            settings = replace(settings, **overrides)
        _validate(settings)
        return settings


def _env_number(name: str, default, cast):
    """Read a numeric variable, raising ConfigError if it does not parse."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    return Path(raw) if raw else None


def _validate(settings: Settings) -> None:
    if settings.http_timeout <= 0:
        raise ConfigError("HUB_HTTP_TIMEOUT must be positive")
    if settings.http_retries < 0:
        raise ConfigError("HUB_HTTP_RETRIES must not be negative")
    if settings.feed_limit < 0:
        raise ConfigError("HUB_FEED_LIMIT must not be negative")
    if settings.log_format not in ("text", "json"):
        raise ConfigError(f"LOG_FORMAT must be 'text' or 'json', got {settings.log_format!r}")
