from __future__ import annotations

import asyncio
from typing import Any, Optional

from loguru import logger

from config.settings import Settings
from src.data.sources.fetcher import RetryingFetcher
from src.hooks.backtesting import BacktestingHook
from src.hooks.country import CountryStore
from src.hooks.resource import ResourceHook
from src.hooks.resources import BACKTESTING, COUNTRY_RESOURCES, build_definitions


class DashboardHooks:
    """
    Every dashboard resource hook, wired to one fetcher and one country store.

    Country-dependent hooks get the selected code as a request parameter;
    changing the selection re-fetches just those.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: RetryingFetcher,
        country_store: Optional[CountryStore] = None,
    ) -> None:
        self.settings = settings
        self.fetcher = fetcher
        self.country_store = country_store or CountryStore(settings.backtest.default_country)

        country = self.country_store.code
        self.hooks: dict[str, ResourceHook[Any]] = {}
        for name, definition in build_definitions(settings).items():
            params = {"country": country} if name in COUNTRY_RESOURCES else None
            self.hooks[name] = ResourceHook(
                definition, fetcher, params=params, use_fallbacks=settings.use_fallbacks
            )
        self._backtesting = BacktestingHook.from_settings(
            settings, fetcher, params={"country": country}
        )
        self.hooks[BACKTESTING] = self._backtesting

        self._pending: set[asyncio.Future[Any]] = set()
        self._unsubscribe = self.country_store.subscribe(self._on_country_change)

    @property
    def backtesting(self) -> BacktestingHook:
        return self._backtesting

    def __getitem__(self, name: str) -> ResourceHook[Any]:
        return self.hooks[name]

    async def start(self) -> None:
        await asyncio.gather(*(hook.start() for hook in self.hooks.values()))
        await self.backtesting.fetch_health()
        logger.info(f"Dashboard hooks started for {self.country_store.code}")

    async def refetch(self, name: str) -> Any:
        if name not in self.hooks:
            raise KeyError(f"Unknown resource '{name}'")
        return await self.hooks[name].refetch()

    async def select_country(self, code: str) -> None:
        """Update the store and wait for the dependent hooks to re-fetch."""
        self.country_store.select(code)
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_country_change(self, code: str) -> None:
        for name in COUNTRY_RESOURCES:
            future = asyncio.ensure_future(self.hooks[name].set_params(country=code))
            self._pending.add(future)
            future.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        self._unsubscribe()
        for future in list(self._pending):
            future.cancel()
        await asyncio.gather(*(hook.close() for hook in self.hooks.values()))
        await self.fetcher.close()
        logger.info("Dashboard hooks closed")

    async def __aenter__(self) -> "DashboardHooks":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
