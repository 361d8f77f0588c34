"""Shared async JSON client for the read-only connectors.

Requests go through `_get_json`, which retries transient failures with
exponential backoff and raises a typed `FetchError` when it gives up.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from config import Settings
from errors import FetchError, HTTPStatusFetchError, PayloadError, RateLimitedError, TransportFetchError

logger = logging.getLogger(__name__)

# Never wait longer than this between attempts, whatever the host asks for.
MAX_RETRY_DELAY_SECONDS = 10.0


class JSONAPIClient:
    """Base class: owns (or borrows) an httpx.AsyncClient and the retry policy."""

    source = "api"

    def __init__(self, settings: Settings, base_url: str, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout)

    def _headers(self) -> dict[str, str]:
        return {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, path: str, params: dict | None = None):
        """GET base_url + path and return the decoded JSON body.

        Raises:
            TransportFetchError: no response after all attempts.
            RateLimitedError: still rate limited after all attempts, or the
                limit resets later than MAX_RETRY_DELAY_SECONDS from now.
            HTTPStatusFetchError: non-2xx response.
            PayloadError: 2xx response whose body is not JSON.
        """
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = await self._client.get(
                    url,
                    params=params,
                    headers=self._headers(),
                    timeout=self.settings.http_timeout,
                )
            except httpx.HTTPError as e:
                error: FetchError = TransportFetchError(
                    f"{self.source} request to {path} failed: {type(e).__name__}: {e}",
                    source=self.source,
                )
            else:
                if response.is_success:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise PayloadError(
                            f"{self.source} returned invalid JSON for {path}: {e}",
                            source=self.source,
                            status=response.status_code,
                        ) from e
                error = _status_error(self.source, path, response)

            if attempt >= self.settings.http_retries or not _is_retryable(error) or _wait_too_long(error):
                raise error
            delay = self._retry_delay(attempt, error)
            logger.info("%s; retrying in %.2fs (attempt %d)", error, delay, attempt + 1)
            await asyncio.sleep(delay)
            attempt += 1

    def _retry_delay(self, attempt: int, error: FetchError) -> float:
        delay = self.settings.retry_backoff * (2**attempt)
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            delay = max(delay, error.retry_after)
        return min(delay, MAX_RETRY_DELAY_SECONDS)


def _status_error(source: str, path: str, response: httpx.Response) -> HTTPStatusFetchError:
    status = response.status_code
    message = f"{source} API error {status} for {path}"
    if status == 429 or (status == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
        return RateLimitedError(
            message,
            source=source,
            status=status,
            retry_after=_parse_retry_after(response.headers),
        )
    return HTTPStatusFetchError(message, source=source, status=status)


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Seconds to wait, from Retry-After or GitHub's x-ratelimit-reset epoch."""
    retry_after = headers.get("retry-after")
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            return None
    reset = headers.get("x-ratelimit-reset")
    if reset:
        try:
            return max(0.0, float(reset) - time.time())
        except ValueError:
            return None
    return None


def _wait_too_long(error: FetchError) -> bool:
    """A rate limit that resets past the delay cap is not worth waiting out."""
    return (
        isinstance(error, RateLimitedError)
        and error.retry_after is not None
        and error.retry_after > MAX_RETRY_DELAY_SECONDS
    )


def _is_retryable(error: FetchError) -> bool:
    if isinstance(error, (TransportFetchError, RateLimitedError)):
        return True
    return error.status is not None and error.status >= 500
