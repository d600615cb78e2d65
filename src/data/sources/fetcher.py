import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger

from src.utils.exceptions import (
    DataFetchError,
    HttpStatusError,
    InvalidPayloadError,
    NetworkError,
    RequestTimeoutError,
)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_HEADERS = {
    "User-Agent": "Oracle-Portfolio/1.0",
    "Accept": "application/json",
}


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the zero-indexed ``attempt`` failed."""
    return float(2 ** attempt)


async def fetch_with_retry(
    url: str,
    max_attempts: int = 3,
    timeout_ms: int = 5000,
    *,
    params: Optional[dict[str, Any]] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFn = asyncio.sleep,
    source: str = "",
) -> Any:
    """GET ``url`` and decode its JSON body, retrying transport and HTTP failures.

    Every attempt is bounded by ``timeout_ms``. Between attempts the caller
    waits ``2 ** attempt`` seconds; there is no wait after the last one. When
    all attempts fail the last error is raised unchanged. A body that is not
    JSON raises ``InvalidPayloadError`` straight away since retrying would not
    change it. The client's own timeouts are disabled for these requests so
    ``timeout_ms`` is the only bound.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(headers=DEFAULT_HEADERS, timeout=None)

    timeout = timeout_ms / 1000
    last_error: DataFetchError

    try:
        for attempt in range(max_attempts):
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{max_attempts})")
                response = await asyncio.wait_for(
                    client.get(url, params=params, headers=DEFAULT_HEADERS, timeout=None),
                    timeout=timeout,
                )

                if not 200 <= response.status_code < 300:
                    raise HttpStatusError(response.status_code, source=source, url=url)

                try:
                    return response.json()
                except ValueError as e:
                    logger.error(f"Non-JSON body from {url}: {e}")
                    raise InvalidPayloadError(
                        ["response body is not valid JSON"], source=source
                    ) from e

            except (asyncio.TimeoutError, httpx.TimeoutException):
                last_error = RequestTimeoutError(
                    f"Request timed out after {timeout_ms}ms",
                    source=source,
                    url=url,
                    timeout_ms=timeout_ms,
                )
            except httpx.RequestError as e:
                last_error = NetworkError(str(e) or type(e).__name__, source=source, url=url)
            except HttpStatusError as e:
                last_error = e

            if attempt == max_attempts - 1:
                logger.error(f"Giving up on {url} after {max_attempts} attempts: {last_error}")
                raise last_error

            sleep_time = backoff_delay(attempt)
            logger.warning(f"Request to {url} failed ({last_error}), retrying in {sleep_time:.0f}s")
            await sleep(sleep_time)
    finally:
        if owns_client:
            await client.aclose()


class RetryingFetcher:
    """Shares one ``httpx.AsyncClient`` across many ``fetch_with_retry`` calls."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = 3,
        timeout_ms: int = 5000,
        sleep: SleepFn = asyncio.sleep,
        source: str = "",
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(headers=DEFAULT_HEADERS, timeout=None)
        self.max_attempts = max_attempts
        self.timeout_ms = timeout_ms
        self.sleep = sleep
        self.source = source

    async def get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
        source: Optional[str] = None,
    ) -> Any:
        return await fetch_with_retry(
            url,
            max_attempts=max_attempts or self.max_attempts,
            timeout_ms=timeout_ms or self.timeout_ms,
            params=params,
            client=self.client,
            sleep=self.sleep,
            source=source if source is not None else self.source,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "RetryingFetcher":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
