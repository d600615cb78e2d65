from typing import Optional

import httpx

from config.settings import Settings
from src.data.sources.fetcher import RetryingFetcher
from src.hooks.state import Idle, Loading, Success, Failure, FetchResult, data_of
from src.hooks.resource import ResourceDefinition, ResourceHook
from src.hooks.backtesting import BacktestingHook, parse_backtesting
from src.hooks.country import CountryStore
from src.hooks.registry import DashboardHooks


def create_dashboard_hooks(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    country: Optional[str] = None,
) -> DashboardHooks:
    """
    Create every dashboard hook around a shared fetcher.

    Args:
        settings: Application settings
        client: Optional httpx client, mostly for tests
        country: Initial country, defaults to the configured one

    Returns:
        DashboardHooks, not yet started

    Example:
        >>> async with create_dashboard_hooks(get_settings()) as hooks:
        ...     print(hooks["market_stress"].data)
    """
    fetcher = RetryingFetcher(
        client=client,
        max_attempts=settings.fetch.max_attempts,
        timeout_ms=settings.fetch.timeout_ms,
    )
    store = CountryStore(country or settings.backtest.default_country)
    return DashboardHooks(settings, fetcher, country_store=store)


__all__ = [
    "Idle",
    "Loading",
    "Success",
    "Failure",
    "FetchResult",
    "data_of",
    "ResourceDefinition",
    "ResourceHook",
    "BacktestingHook",
    "parse_backtesting",
    "CountryStore",
    "DashboardHooks",
    "create_dashboard_hooks",
]
