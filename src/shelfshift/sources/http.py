# ABOUTME: Async HTTP client abstraction for content provider API calls.
# ABOUTME: Shared rate limit across concurrent tasks, retry with backoff, injectable transport.

import asyncio
import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_USER_AGENT = "shelfshift/0.1.0"


class ProviderFetchError(Exception):
    """Raised when an HTTP request to a content provider fails."""


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for async HTTP GET operations against provider APIs."""

    async def get(self, url: str, params: dict[str, str] | None = None) -> Any: ...


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds requested by a Retry-After header, if it holds a number."""
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class ProviderHttpClient:
    """httpx.AsyncClient wrapper shared by every provider in a migration.

    Provider searches run concurrently, so the minimum request interval is
    enforced under a lock: requests leave one at a time, spaced at least
    min_request_interval apart. Transient failures (429, 5xx) are retried
    with exponential backoff, or after the server's Retry-After delay when
    it sends one. Use as an async context manager, or call aclose().
    """

    def __init__(
        self,
        *,
        min_request_interval: float = 0.1,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT},
            timeout=timeout,
            transport=transport,
        )
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "ProviderHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, params: dict[str, str] | None = None) -> Any:
        """Send a GET request and decode its JSON body.

        Args:
            url: The URL to request.
            params: Optional query parameters.

        Returns:
            Parsed JSON response body.

        Raises:
            ProviderFetchError: On transport errors, non-retryable statuses,
                invalid JSON, or once retries are exhausted.
        """
        for attempt in range(self._max_retries + 1):
            response = await self._send(url, params)
            if response.status_code == 200:
                return self._decode(response, url)
            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise ProviderFetchError(f"HTTP {response.status_code} from {url}")
            if attempt == self._max_retries:
                break

            delay = _retry_after(response)
            if delay is None:
                delay = self._retry_delay * (2**attempt)
            logger.warning(
                "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                response.status_code,
                url,
                delay,
                attempt + 1,
                self._max_retries,
            )
            await asyncio.sleep(delay)

        raise ProviderFetchError(
            f"HTTP {response.status_code} from {url} after {self._max_retries + 1} attempts"
        )

    async def _send(self, url: str, params: dict[str, str] | None) -> httpx.Response:
        await self._wait_for_slot()
        try:
            return await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ProviderFetchError(f"Request failed: {url}: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderFetchError(f"Invalid JSON from {url}") from exc

    async def _wait_for_slot(self) -> None:
        """Sleep until this request may leave without breaking the rate limit."""
        if self._min_interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            if now < self._next_slot:
                await asyncio.sleep(self._next_slot - now)
            self._next_slot = time.monotonic() + self._min_interval
