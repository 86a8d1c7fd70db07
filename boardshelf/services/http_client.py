"""HTTP client service with retry logic and request spacing."""

import asyncio
import time
from typing import Any

import httpx
import structlog

from .errors import TransportError

log = structlog.stdlib.get_logger()

# The collection service answers 202 while it prepares a collection export
QUEUED_STATUS_CODE = 202


class HttpClientService:
    """Fetches documents as text, retrying transient failures."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        min_request_interval: float = 0.0,
        queued_delay: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff in seconds
            max_delay: Maximum delay between retries in seconds
            min_request_interval: Minimum spacing between requests in seconds
            queued_delay: Wait before re-asking for a queued (202) export
            transport: Optional httpx transport, mainly for tests
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.min_request_interval = min_request_interval
        self.queued_delay = queued_delay
        self._last_request_time: float = 0.0

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": "boardshelf/0.1", "Accept": "application/xml"},
            follow_redirects=True,
            transport=transport,
        )

        log.info(
            "HTTP client service initialized",
            timeout=timeout,
            max_retries=max_retries,
            min_request_interval=min_request_interval,
        )

    async def get_text(self, url: str, params: dict[str, str] | None = None) -> str:
        """GET ``url`` and return the decoded body.

        Raises:
            TransportError: If the request fails after all retries, or on a
                non-retryable client error
        """
        for attempt in range(self.max_retries + 1):
            await self._enforce_request_interval()
            try:
                log.debug(
                    "Making HTTP GET request",
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1,
                )
                response = await self._client.get(url, params=params)
                response.raise_for_status()

                if response.status_code == QUEUED_STATUS_CODE:
                    if attempt == self.max_retries:
                        raise TransportError(
                            "The collection export is still being prepared. Please try again shortly.",
                            url=url,
                            status_code=QUEUED_STATUS_CODE,
                        )
                    log.info("Request queued by service, waiting", url=url, delay=self.queued_delay)
                    await asyncio.sleep(self.queued_delay)
                    continue

                log.info(
                    "HTTP GET request successful",
                    url=url,
                    status_code=response.status_code,
                    content_length=len(response.content),
                )
                return response.text

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                log.warning(
                    "HTTP GET request failed",
                    url=url,
                    attempt=attempt + 1,
                    error=str(e),
                    error_type=type(e).__name__,
                )

                status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                if status_code == 429:
                    retry_after = self._retry_after(e.response.headers)
                    if retry_after is not None and attempt < self.max_retries:
                        log.info("Rate limited, waiting", delay=retry_after)
                        await asyncio.sleep(retry_after)
                        continue
                elif status_code is not None and 400 <= status_code < 500:
                    log.error("Client error, not retrying", status_code=status_code)
                    raise TransportError(
                        f"Request failed with HTTP {status_code}",
                        original_error=e,
                        url=url,
                        status_code=status_code,
                    ) from e

                if attempt == self.max_retries:
                    log.error(
                        "HTTP GET request failed after all retries",
                        url=url,
                        total_attempts=self.max_retries + 1,
                    )
                    raise TransportError(
                        "Unable to reach the collection service",
                        original_error=e,
                        url=url,
                        status_code=status_code,
                    ) from e

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                log.info("Retrying after delay", delay=delay)
                await asyncio.sleep(delay)

        raise RuntimeError("Unexpected end of retry loop")

    @staticmethod
    def _retry_after(headers: httpx.Headers) -> float | None:
        value = headers.get("retry-after")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    async def _enforce_request_interval(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.min_request_interval:
            sleep_time = self.min_request_interval - elapsed
            log.debug("Spacing requests: sleeping", sleep_time=sleep_time)
            await asyncio.sleep(sleep_time)
        self._last_request_time = time.monotonic()

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
