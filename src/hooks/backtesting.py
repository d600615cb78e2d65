from __future__ import annotations

import asyncio
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from config.settings import Settings
from src.analytics.dates import clamp_date_range
from src.analytics.metrics import summarize_backtest
from src.analytics.plausibility import ensure_plausible
from src.data.sources.fetcher import RetryingFetcher, SleepFn
from src.hooks.fallbacks import EMPTY_BACKTEST, unhealthy_backtest_health
from src.hooks.resource import ResourceDefinition, ResourceHook
from src.hooks.resources import BACKTESTING
from src.hooks.state import Success
from src.models import BacktestHealth, BacktestingPayload, BacktestSummary
from src.utils.exceptions import OraclePortfolioError, describe_error
from src.validation.backtesting import validate_backtesting_response


def parse_backtesting(raw: Any) -> BacktestingPayload:
    """Structural validation first, then the plausibility heuristics."""
    return ensure_plausible(validate_backtesting_response(raw))


def backtesting_definition(settings: Settings) -> ResourceDefinition[BacktestingPayload]:
    bt = settings.backtest
    return ResourceDefinition(
        name=BACKTESTING,
        url=settings.api.backtesting_url,
        parse=parse_backtesting,
        interval_seconds=None,
        fallback=EMPTY_BACKTEST,
        timeout_ms=settings.fetch.backtesting_timeout_ms,
        default_params={
            "country": bt.default_country,
            "start_date": bt.default_start_date,
            "end_date": bt.default_end_date,
        },
    )


class BacktestingHook(ResourceHook[BacktestingPayload]):
    """
    Backtesting comparison for one country and date window.

    The window is clamped into the range the upstream has data for before
    any request goes out. There is no interval refresh.
    """

    def __init__(
        self,
        definition: ResourceDefinition[BacktestingPayload],
        fetcher: RetryingFetcher,
        health_url: str,
        params: Optional[dict[str, Any]] = None,
        use_fallbacks: bool = True,
        min_date: str = "2023-01-01",
        max_date: str = "2024-12-31",
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(definition, fetcher, params=params, use_fallbacks=use_fallbacks, sleep=sleep)
        self.health_url = health_url
        self.min_date = min_date
        self.max_date = max_date
        self.params = self._clamped(self.params)
        self.health: Optional[BacktestHealth] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: RetryingFetcher,
        params: Optional[dict[str, Any]] = None,
    ) -> "BacktestingHook":
        return cls(
            backtesting_definition(settings),
            fetcher,
            health_url=settings.api.backtesting_health_url,
            params=params,
            use_fallbacks=settings.use_fallbacks,
            min_date=settings.backtest.min_date,
            max_date=settings.backtest.max_date,
        )

    def _clamped(self, params: dict[str, Any]) -> dict[str, Any]:
        start, end = clamp_date_range(
            params["start_date"], params["end_date"], self.min_date, self.max_date
        )
        country = str(params.get("country") or "FRA").strip().upper()
        return {**params, "country": country, "start_date": start, "end_date": end}

    async def set_params(self, **params: Any):
        self.params = self._clamped({**self.params, **params})
        return await self.refetch()

    @property
    def summary(self) -> Optional[BacktestSummary]:
        if isinstance(self.result, Success):
            return summarize_backtest(self.result.data)
        return None

    @property
    def error_message(self) -> Optional[str]:
        return describe_error(self.error) if self.error is not None else None

    async def fetch_health(self) -> BacktestHealth:
        """Upstream health document, or an "unhealthy" one when it cannot be read."""
        try:
            raw = await self.fetcher.get_json(self.health_url, source=f"{BACKTESTING}_health")
            self.health = BacktestHealth.model_validate(raw)
        except (OraclePortfolioError, ValidationError) as e:
            logger.warning(f"Backtesting health check failed: {e}")
            self.health = unhealthy_backtest_health()
        return self.health
