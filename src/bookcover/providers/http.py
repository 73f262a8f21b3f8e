# ABOUTME: HTTP client abstraction for cover provider API calls.
# ABOUTME: Provides shared per-provider rate limiting, retry with backoff, and injectable transport.

import logging
import threading
import time
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
DEFAULT_TIMEOUT = 10.0


class ProviderError(Exception):
    """Base class for failures talking to a cover provider."""


class ProviderUnavailableError(ProviderError):
    """Raised on network errors, timeouts, and non-2xx responses."""


class MalformedResponseError(ProviderError):
    """Raised when a provider returns a payload that cannot be parsed."""


class RateLimiter:
    """Fixed minimum interval between calls, safe to share across threads."""

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._lock = threading.Lock()
        self._last_call: float = 0.0

    def wait(self) -> None:
        """Sleep if needed to keep calls at least min_interval apart."""
        if self.min_interval <= 0:
            return
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_call
            if self._last_call > 0 and elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_call = time.monotonic()


_limiters: dict[str, RateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(name: str, min_interval: float) -> RateLimiter:
    """Return the process-wide limiter for a provider, creating it on first use."""
    with _limiters_lock:
        limiter = _limiters.get(name)
        if limiter is None:
            limiter = RateLimiter(min_interval)
            _limiters[name] = limiter
        return limiter


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP GET operations against provider APIs."""

    def get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]: ...

    def get_text(self, url: str, params: dict[str, str] | None = None) -> str: ...

    def get_bytes(self, url: str) -> tuple[bytes, str | None]: ...


class CoverHttpClient:
    """HTTP client with rate limiting and retry for provider API calls.

    Wraps httpx.Client with a shared RateLimiter and retry logic for transient
    failures (429, 5xx). Every request carries a timeout.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter | None = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": "bookcover/0.1.0"},
            "timeout": timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._limiter = rate_limiter or RateLimiter(0.0)
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    def get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """Send a GET request and return the parsed JSON body.

        Raises:
            ProviderUnavailableError: On transport errors or exhausted retries.
            MalformedResponseError: If the body is not a JSON object.
        """
        response = self._request(url, params)
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected JSON object from {url}")
        return data

    def get_text(self, url: str, params: dict[str, str] | None = None) -> str:
        """Send a GET request and return the decoded body."""
        return self._request(url, params).text

    def get_bytes(self, url: str) -> tuple[bytes, str | None]:
        """Send a GET request and return the raw body and its content type."""
        response = self._request(url, None)
        return response.content, response.headers.get("content-type")

    def close(self) -> None:
        self._client.close()

    def _request(self, url: str, params: dict[str, str] | None) -> httpx.Response:
        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            self._limiter.wait()
            try:
                response = self._client.get(url, params=params)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise ProviderUnavailableError(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise ProviderUnavailableError(f"HTTP {response.status_code} from {url}")

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                time.sleep(delay)

        raise ProviderUnavailableError(
            f"HTTP {last_status} from {url} after {attempts} attempts"
        )
