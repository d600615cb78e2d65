"""
HTTP functions backing the dashboard.

Each handler takes a ``FunctionContext`` and the query string and returns
the JSON body. Upstream failures degrade to defaults and are reported via
``data_source``; only unexpected errors escape to the CORS wrapper.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx
from loguru import logger

from config.settings import Settings
from src.analytics.market import (
    DEFAULT_HIGH_YIELD_SPREAD,
    DEFAULT_VIX,
    adjust_regime,
    classify_stress,
)
from src.data.regimes import (
    ETF_SYMBOLS,
    FALLBACK_ETF_PRICES,
    FRED_SOURCE_URLS,
    HIGH_YIELD_SERIES,
    MANUFACTURING_SERIES,
    REGIME_CONFIG,
    VIX_SERIES,
    get_regime_config,
)
from src.data.sources.alpha_vantage import AlphaVantageClient
from src.data.sources.fetcher import RetryingFetcher, SleepFn
from src.data.sources.fred import FredClient
from src.models import MarketStress, StressSources
from src.utils.exceptions import DataFetchError

API_VERSION = "2.0.0"

Handler = Callable[["FunctionContext", Mapping[str, str]], Awaitable[dict[str, Any]]]


class FunctionContext:
    """Upstream clients for one request, sharing a single fetcher."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.sleep = sleep
        self.fetcher = RetryingFetcher(
            client=client,
            max_attempts=settings.fetch.max_attempts,
            timeout_ms=settings.fetch.upstream_timeout_ms,
            sleep=sleep,
        )
        upstream = settings.upstream
        self.fred = FredClient(upstream.fred_api_key, self.fetcher, upstream.fred_url)
        self.alpha_vantage = AlphaVantageClient(
            upstream.alpha_vantage_api_key, self.fetcher, upstream.alpha_vantage_url
        )

    async def close(self) -> None:
        await self.fetcher.close()

    async def __aenter__(self) -> "FunctionContext":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_market_stress(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    vix, spread = DEFAULT_VIX, DEFAULT_HIGH_YIELD_SPREAD

    if ctx.fred.configured:
        data_source = "fallback"
        try:
            latest_vix = await ctx.fred.latest_value(VIX_SERIES)
            if latest_vix is not None:
                vix = latest_vix
                data_source = "fred_api"
            latest_spread = await ctx.fred.latest_value(HIGH_YIELD_SERIES)
            if latest_spread is not None:
                spread = latest_spread
        except DataFetchError as e:
            logger.error(f"FRED unavailable, using default stress inputs: {e}")
            data_source = "fallback_after_error"
    else:
        logger.info("No FRED key configured, serving demo stress values")
        data_source = "demo_mode"

    stress = MarketStress(
        stress_level=classify_stress(vix, spread),
        vix=round(vix, 2),
        high_yield_spread=round(spread, 2),
        data_source=data_source,
        data_sources=StressSources(vix=FRED_SOURCE_URLS["vix"], spread=FRED_SOURCE_URLS["spread"]),
        last_update=datetime.now(timezone.utc),
    )
    return {"success": True, **stress.model_dump(mode="json"), "timestamp": _now()}


async def get_market_data(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    prices = dict(FALLBACK_ETF_PRICES)

    if ctx.alpha_vantage.configured:
        success_count = 0
        for i, symbol in enumerate(ETF_SYMBOLS):
            try:
                price = await ctx.alpha_vantage.global_quote(symbol)
            except DataFetchError as e:
                logger.error(f"Quote for {symbol} failed: {e}")
                price = None
            if price is not None:
                prices[symbol] = price
                success_count += 1
            if i < len(ETF_SYMBOLS) - 1:
                await ctx.sleep(ctx.settings.upstream.quote_pause_seconds)

        if success_count == len(ETF_SYMBOLS):
            data_source = "alpha_vantage_complete"
        elif success_count > 0:
            data_source = "alpha_vantage_partial"
        else:
            data_source = "fallback"
    else:
        logger.info("No Alpha Vantage key configured, serving demo prices")
        data_source = "demo_mode"

    market_data: dict[str, Any] = {f"{s.lower()}_price": prices[s] for s in ETF_SYMBOLS}
    market_data["data_source"] = data_source
    now = _now()
    return {"success": True, "market_data": market_data, "timestamp": now, "last_update": now}


async def get_allocations(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    code, config = get_regime_config(query.get("country"))
    allocations = config.allocations
    now = _now()
    return {
        "success": True,
        "country": code,
        "country_name": config.name,
        "data": {
            "regime": config.regime_base,
            "confidence": config.confidence_base,
            "allocations": allocations.model_dump(exclude={"total"}),
            "indicators": config.indicators.model_dump(),
        },
        "allocation": allocations.to_legacy_dict(),
        "timestamp": now,
        "last_update": now,
    }


async def get_regime(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    code, config = get_regime_config(query.get("country"))
    regime, confidence = config.regime_base, config.confidence_base

    if ctx.fred.configured:
        data_source = "config"
        try:
            pmi = await ctx.fred.latest_value(MANUFACTURING_SERIES)
            if pmi is not None:
                regime, confidence = adjust_regime(regime, confidence, pmi)
                data_source = "fred_api"
        except DataFetchError as e:
            logger.error(f"FRED unavailable, keeping base regime for {code}: {e}")
            data_source = "config_after_error"
    else:
        data_source = "demo_mode"

    now = _now()
    return {
        "success": True,
        "country": code,
        "country_name": config.name,
        "regime": regime,
        "confidence": round(confidence, 3),
        "data_source": data_source,
        "indicators": config.indicators.model_dump(),
        "timestamp": now,
        "last_update": now,
    }


async def get_countries(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    now = _now()
    countries = [
        {
            "code": code,
            "name": config.name,
            "regime": config.regime_base,
            "confidence": config.confidence_base,
            "allocations": config.allocations.model_dump(exclude={"total"}),
            "indicators": config.indicators.model_dump(),
            "last_update": now,
        }
        for code, config in REGIME_CONFIG.items()
    ]
    return {
        "success": True,
        "countries": countries,
        "total_countries": len(countries),
        "timestamp": now,
        "last_update": now,
    }


async def get_health(ctx: FunctionContext, query: Mapping[str, str]) -> dict[str, Any]:
    return {
        "success": True,
        "status": "healthy",
        "version": API_VERSION,
        "timestamp": _now(),
        "services": {
            "functions": "operational",
            "cors": "configured",
            "secrets": {
                "fred": "configured" if ctx.fred.configured else "demo_mode",
                "alpha_vantage": "configured" if ctx.alpha_vantage.configured else "demo_mode",
            },
        },
        "endpoints": list(ROUTES),
        "supported_countries": list(REGIME_CONFIG),
    }


ROUTES: dict[str, Handler] = {
    "getMarketStress": get_market_stress,
    "getMarketData": get_market_data,
    "getAllocations": get_allocations,
    "getRegime": get_regime,
    "getCountries": get_countries,
    "getHealth": get_health,
}
