"""HTTP client for downloading ICS calendar files."""

import asyncio
import logging
import random
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from . import __version__
from .exceptions import ICalDumpError
from .models import CalendarSource, FetchResponse

logger = logging.getLogger(__name__)

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": f"icaldump/{__version__}",
    "Accept": "text/calendar, text/plain, application/octet-stream, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


class CalendarFetchError(ICalDumpError):
    """Base exception for calendar download errors."""


class CalendarAuthError(CalendarFetchError):
    """Authentication error during calendar download."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CalendarNetworkError(CalendarFetchError):
    """Network error during calendar download."""


class CalendarTimeoutError(CalendarFetchError):
    """Timeout during calendar download."""


class _RetryableStatusError(Exception):
    """Server error response that is worth retrying."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class ICSFetcher:
    """Async HTTP client for downloading ICS calendar files.

    Usable as an async context manager. A client passed in by the caller is
    reused and never closed by the fetcher.
    """

    def __init__(self, settings: Any = None, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Object with optional request_timeout, max_retries and
                retry_backoff_factor attributes
            client: Optional externally managed HTTP client
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None
        self.max_retries = int(getattr(settings, "max_retries", 3))
        self.backoff_factor = float(getattr(settings, "retry_backoff_factor", 1.5))
        self.request_timeout = float(getattr(settings, "request_timeout", 30))

        logger.debug("ICS fetcher initialized (external client: %s)", not self._owns_client)

    async def __aenter__(self) -> "ICSFetcher":
        await self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if the fetcher created it."""
        if self.client is not None and self._owns_client:
            if not self.client.is_closed:
                await self.client.aclose()
                logger.debug("Closed HTTP client")
            self.client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(connect=10.0, read=self.request_timeout, write=10.0, pool=30.0)
            self.client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
            self._owns_client = True
        return self.client

    @staticmethod
    def normalize_url(url: str) -> str:
        """Rewrite webcal:// subscription links to https://."""
        url = url.strip()
        if url.lower().startswith("webcal://"):
            return "https://" + url[len("webcal://"):]
        return url

    @staticmethod
    def validate_url(url: str) -> bool:
        """Accept only HTTP(S) URLs with a hostname."""
        try:
            parsed = urlparse(url)
        except ValueError as e:
            logger.debug("URL validation error for %s: %s", url, e)
            return False

        if parsed.scheme not in ("http", "https"):
            logger.debug("Rejected non-HTTP(S) URL: %s", url)
            return False
        if not parsed.hostname:
            logger.debug("Rejected URL with missing hostname: %s", url)
            return False
        return True

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with jitter, capped at MAX_BACKOFF_SECONDS."""
        base_backoff = min(self.backoff_factor**attempt, MAX_BACKOFF_SECONDS)
        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    async def _make_request_with_retry(
        self, url: str, headers: dict[str, str], timeout: float
    ) -> httpx.Response:
        """GET the URL, retrying timeouts, network errors and 5xx responses.

        Raises:
            httpx.HTTPStatusError: For non-retryable or exhausted error responses
            httpx.TimeoutException: When every attempt timed out
            httpx.NetworkError: When every attempt failed to connect
        """
        client = await self._ensure_client()
        attempt = 0

        while True:
            try:
                response = await client.get(url, headers=headers, timeout=timeout)
                if response.status_code >= 500:
                    raise _RetryableStatusError(response)
                response.raise_for_status()
                return response
            except (httpx.TimeoutException, httpx.NetworkError, _RetryableStatusError) as e:
                if attempt >= self.max_retries:
                    if isinstance(e, _RetryableStatusError):
                        e.response.raise_for_status()
                    raise
                backoff = self._calculate_backoff(attempt)
                logger.warning(
                    "Fetch attempt %d/%d for %s failed (%s), retrying in %.1fs",
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                    e,
                    backoff,
                )
                attempt += 1
                await asyncio.sleep(backoff)

    def _create_response(self, response: httpx.Response) -> FetchResponse:
        content = response.text
        if not content or not content.strip():
            logger.warning("Empty calendar content received (HTTP %d)", response.status_code)
            return FetchResponse(
                success=False,
                status_code=response.status_code,
                headers=dict(response.headers),
                error_message="Empty response body",
            )

        logger.debug("Fetched %d bytes (HTTP %d)", len(content), response.status_code)
        return FetchResponse(
            success=True,
            content=content,
            status_code=response.status_code,
            headers=dict(response.headers),
        )

    async def fetch_ics(self, source: CalendarSource) -> FetchResponse:
        """Download ICS content for a calendar source.

        Args:
            source: Calendar source with URL, timeout and custom headers

        Returns:
            FetchResponse; unsuccessful for invalid URLs, empty bodies and
            non-auth HTTP errors

        Raises:
            CalendarAuthError: HTTP 401 or 403
            CalendarTimeoutError: Every attempt timed out
            CalendarNetworkError: Connection failures
            CalendarFetchError: Any other unexpected failure
        """
        url = self.normalize_url(source.url)
        if not self.validate_url(url):
            logger.error("Invalid calendar URL: %s", source.url)
            return FetchResponse(success=False, error_message=f"Invalid calendar URL: {source.url}")

        headers = dict(source.custom_headers)
        timeout = float(source.timeout or self.request_timeout)

        try:
            logger.debug("Fetching ICS from %s", url)
            response = await self._make_request_with_retry(url, headers, timeout)
            return self._create_response(response)

        except httpx.TimeoutException as e:
            logger.exception("Timeout fetching ICS from %s", url)
            raise CalendarTimeoutError(f"Request timeout after {timeout}s") from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("HTTP error fetching ICS from %s: %d", url, status)
            if status == 401:
                raise CalendarAuthError("Authentication failed - check credentials", status) from e
            if status == 403:
                raise CalendarAuthError("Access forbidden - insufficient permissions", status) from e
            return FetchResponse(
                success=False,
                status_code=status,
                error_message=f"HTTP {status}: {e.response.reason_phrase}",
                headers=dict(e.response.headers),
            )

        except httpx.NetworkError as e:
            logger.exception("Network error fetching ICS from %s", url)
            raise CalendarNetworkError(f"Network error: {e}") from e

        except Exception as e:
            logger.exception("Unexpected error fetching ICS from %s", url)
            raise CalendarFetchError(f"Unexpected error: {e}") from e

    async def fetch_text(self, source: CalendarSource) -> str:
        """Download a calendar and return its text.

        Raises:
            CalendarFetchError: If the download did not produce calendar text
        """
        response = await self.fetch_ics(source)
        if not response.success or response.content is None:
            raise CalendarFetchError(
                f"Failed to fetch calendar {source.name or source.url}: {response.error_message}"
            )
        return response.content
