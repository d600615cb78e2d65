"""
Resource hooks - one fetched resource with a three-state result.

A hook performs one fetch when started, exposes ``data``, ``is_loading``
and ``error``, re-fetches on ``refetch()`` and, when the resource has an
interval, on a background task. Every fetch takes a generation token; a
result whose token is no longer the latest is dropped. Once closed, a hook
never updates its state again.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel

from src.data.sources.fetcher import RetryingFetcher, SleepFn
from src.hooks.state import Failure, FetchResult, Idle, Loading, Success, data_of
from src.utils.exceptions import InvalidPayloadError, OraclePortfolioError, UpstreamError

T = TypeVar("T")

Listener = Callable[[FetchResult], None]


@dataclass(frozen=True)
class ResourceDefinition(Generic[T]):
    """Static description of one resource."""

    name: str
    url: str
    parse: Callable[[Any], T]
    interval_seconds: Optional[float] = None
    fallback: Optional[T] = None
    # A {success: false} envelope swaps in the fallback instead of failing.
    fallback_on_unsuccessful: bool = False
    timeout_ms: Optional[int] = None
    default_params: dict[str, Any] = field(default_factory=dict)


def stamp_fallback(fallback: Any) -> Any:
    """Copy a fallback model with ``last_update`` set to now."""
    if isinstance(fallback, BaseModel) and "last_update" in type(fallback).model_fields:
        return fallback.model_copy(update={"last_update": datetime.now(timezone.utc)})
    return fallback


class ResourceHook(Generic[T]):
    def __init__(
        self,
        definition: ResourceDefinition[T],
        fetcher: RetryingFetcher,
        params: Optional[dict[str, Any]] = None,
        use_fallbacks: bool = True,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.definition = definition
        self.fetcher = fetcher
        self.params: dict[str, Any] = {**definition.default_params, **(params or {})}
        self.use_fallbacks = use_fallbacks
        self._sleep = sleep

        self._result: FetchResult = Idle()
        self._generation = 0
        self._closed = False
        self._interval_task: Optional[asyncio.Task[None]] = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._listeners: list[Listener] = []
        self.fetch_count = 0

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def result(self) -> FetchResult:
        return self._result

    @property
    def data(self) -> Optional[T]:
        return data_of(self._result)

    @property
    def is_loading(self) -> bool:
        return isinstance(self._result, Loading)

    @property
    def error(self) -> Optional[Exception]:
        return self._result.error if isinstance(self._result, Failure) else None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def start(self) -> FetchResult:
        """Activate the hook: one fetch now, then the interval task if any."""
        result = await self.refetch()
        interval = self.definition.interval_seconds
        if interval and not self._closed and self._interval_task is None:
            self._interval_task = asyncio.create_task(
                self._run_interval(interval), name=f"{self.name}-interval"
            )
        return result

    async def refetch(self) -> FetchResult:
        if self._closed:
            return self._result

        self._generation += 1
        token = self._generation
        self._commit(token, Loading(previous=data_of(self._result)))

        task = asyncio.create_task(self._load(token), name=f"{self.name}-fetch-{token}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not self._closed:
                raise
        return self._result

    async def set_params(self, **params: Any) -> FetchResult:
        """Replace request parameters and re-fetch."""
        self.params = {**self.params, **params}
        return await self.refetch()

    async def close(self) -> None:
        """Stop the interval, cancel in-flight fetches and freeze the state."""
        if self._closed:
            return
        self._closed = True
        tasks = list(self._inflight)
        if self._interval_task is not None:
            tasks.append(self._interval_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._interval_task = None
        self._listeners.clear()
        logger.debug(f"Hook {self.name} closed after {self.fetch_count} fetches")

    async def __aenter__(self) -> "ResourceHook[T]":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _run_interval(self, interval: float) -> None:
        while not self._closed:
            await self._sleep(interval)
            if self._closed:
                break
            logger.debug(f"Interval refresh of {self.name}")
            await self.refetch()

    async def _load(self, token: int) -> None:
        self.fetch_count += 1
        try:
            raw = await self.fetcher.get_json(
                self.definition.url,
                params=self.params or None,
                timeout_ms=self.definition.timeout_ms,
                source=self.name,
            )
            outcome: FetchResult = Success(self._parse(raw))
        except UpstreamError as e:
            if self.definition.fallback_on_unsuccessful and self._fallback() is not None:
                logger.warning(f"{self.name} reported an error ({e.message}), using fallback data")
                outcome = Success(self._fallback())
            else:
                logger.error(f"{self.name} fetch failed: {e}")
                outcome = Failure(e, self._fallback())
        except OraclePortfolioError as e:
            fallback = self._fallback()
            if fallback is not None:
                logger.warning(f"{self.name} fetch failed, showing fallback: {e}")
            else:
                logger.error(f"{self.name} fetch failed: {e}")
            outcome = Failure(e, fallback)
        self._commit(token, outcome)

    def _parse(self, raw: Any) -> T:
        try:
            return self.definition.parse(raw)
        except OraclePortfolioError:
            raise
        except Exception as e:
            logger.exception(f"{self.name} parser failed on malformed payload")
            raise InvalidPayloadError([f"malformed payload: {e}"], source=self.name) from e

    def _fallback(self) -> Optional[T]:
        if not self.use_fallbacks:
            return None
        return stamp_fallback(self.definition.fallback)

    def _commit(self, token: int, result: FetchResult) -> None:
        if self._closed:
            return
        if token != self._generation:
            logger.debug(f"Discarding stale {self.name} result (token {token} < {self._generation})")
            return
        self._result = result
        for listener in list(self._listeners):
            listener(result)
