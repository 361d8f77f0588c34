"""Exception types for the hub — remote fetch failures and persistence errors."""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when a setting is present but malformed."""


class FetchError(Exception):
    """Base exception for a failed read against an external host.

    Connectors raise these internally; their public methods catch them,
    log them, and return an empty default instead.
    """

    def __init__(self, message: str, source: str = "", status: int | None = None):
        super().__init__(message)
        self.source = source
        self.status = status


class HTTPStatusFetchError(FetchError):
    """The host answered with a non-2xx status."""


class TransportFetchError(FetchError):
    """The request never produced a response (DNS, connect, timeout)."""


class RateLimitedError(HTTPStatusFetchError):
    """The host enforced a rate limit."""

    def __init__(
        self,
        message: str,
        source: str = "",
        status: int | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, source=source, status=status)
        self.retry_after = retry_after


class CredentialsMissingError(FetchError):
    """The host needs credentials that are not configured."""


class PayloadError(FetchError):
    """The response body could not be decoded (bad JSON, bad manifest)."""


class StoreError(Exception):
    """Base exception for persistence failures."""


class ProjectNotFoundError(StoreError):
    """No project with that id, or the caller may not see it."""

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class InvalidProjectError(StoreError):
    """A write was rejected because the record would be inconsistent."""
