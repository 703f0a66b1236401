# ABOUTME: Async HTTP client abstraction for metadata provider API calls and cover checks.
# ABOUTME: Provides per-call timeouts, optional rate limiting and retry, and injectable transport.

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_USER_AGENT = "bookenrich/0.1.0"
DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_CONCURRENT_REQUESTS = 8


class MetadataFetchError(Exception):
    """Raised when an HTTP request to a metadata provider fails.

    status_code is None for transport-level failures (DNS, connect, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


@dataclass(frozen=True)
class HeadResult:
    """Outcome of a HEAD request: status plus the headers cover checks need."""

    status_code: int
    content_type: str = ""
    content_length: int | None = None


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for the HTTP operations the enrichment engine performs."""

    async def get(
        self, url: str, params: dict[str, str] | None = None, *, timeout: float | None = None
    ) -> dict[str, Any]: ...

    async def head(self, url: str, *, timeout: float | None = None) -> HeadResult: ...


class EnrichHttpClient:
    """HTTP client with per-call timeouts, rate limiting and retry.

    Wraps httpx.AsyncClient. Retries are off by default: a failed provider
    call simply produces an empty result upstream, and any retry policy
    belongs to the caller. At most max_concurrent_requests requests are in
    flight at once; the rest wait their turn.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        min_request_interval: float = 0.0,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": user_agent},
            "timeout": timeout,
            "follow_redirects": True,
            "verify": verify,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0
        self._rate_lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrent_requests)

    async def __aenter__(self) -> "EnrichHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self, url: str, params: dict[str, str] | None = None, *, timeout: float | None = None
    ) -> dict[str, Any]:
        """Send a GET request and return the parsed JSON body.

        Raises:
            MetadataFetchError: On transport errors, non-200 responses,
                exhausted retries, or a body that is not JSON.
        """
        response = await self._request("GET", url, params=params, timeout=timeout)
        try:
            return response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"Invalid JSON from {url}: {exc}") from exc

    async def head(self, url: str, *, timeout: float | None = None) -> HeadResult:
        """Send a HEAD request and report status and content headers.

        Unlike get(), any HTTP status is returned rather than raised, so the
        caller can classify it. Transport failures still raise.
        """
        async with self._slots:
            await self._rate_limit()
            try:
                response = await self._client.head(url, timeout=self._timeout(timeout))
            except httpx.HTTPError as exc:
                raise MetadataFetchError(f"Request failed: {url}: {exc}") from exc

        length_header = response.headers.get("content-length")
        content_length = int(length_header) if length_header and length_header.isdigit() else None
        return HeadResult(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            content_length=content_length,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None,
        timeout: float | None,
    ) -> httpx.Response:
        async with self._slots:
            return await self._send_with_retry(method, url, params=params, timeout=timeout)

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None,
        timeout: float | None,
    ) -> httpx.Response:
        await self._rate_limit()

        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, url, params=params, timeout=self._timeout(timeout)
                )
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise MetadataFetchError(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise MetadataFetchError(
                    f"HTTP {response.status_code} from {url}",
                    status_code=response.status_code,
                )

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
                await asyncio.sleep(delay)

        raise MetadataFetchError(
            f"HTTP {last_status} from {url} after {attempts} attempts",
            status_code=last_status,
        )

    def _timeout(self, timeout: float | None) -> float | httpx.Timeout:
        return timeout if timeout is not None else self._client.timeout

    async def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        async with self._rate_lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval and self._last_request_time > 0:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()
