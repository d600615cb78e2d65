"""
Resource definitions for the dashboard endpoints.

Parsers turn an endpoint envelope into a model. A ``{success: false}``
envelope raises ``UpstreamError``; anything that does not fit the model
raises ``InvalidPayloadError``.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from config.settings import Settings
from src.data.regimes import ETF_DESCRIPTIONS, ETF_SYMBOLS
from src.hooks import fallbacks
from src.hooks.resource import ResourceDefinition
from src.models import (
    AllocationView,
    AssetAllocation,
    CountryProfile,
    MarketData,
    MarketStress,
    RegimeSnapshot,
)
from src.utils.exceptions import InvalidPayloadError, UpstreamError

T = TypeVar("T")

MARKET_DATA = "market_data"
MARKET_STRESS = "market_stress"
ALLOCATIONS = "allocations"
REGIME = "regime"
COUNTRIES = "countries"
BACKTESTING = "backtesting"

# Labels emitted by older deployments of the stress function
LEGACY_STRESS_LABELS = {
    "FAIBLE": "LOW",
    "MODÉRÉ": "MODERATE",
    "ÉLEVÉ": "HIGH",
    "EXTRÊME": "EXTREME",
}


def require_success(raw: Any, source: str) -> dict[str, Any]:
    """Return the envelope when ``success`` is true, else raise."""
    if not isinstance(raw, dict):
        raise InvalidPayloadError(["response is not an object"], source=source)
    if raw.get("success") is not True:
        message = raw.get("error") or "endpoint returned success=false"
        raise UpstreamError(str(message), source=source)
    return raw


def _timestamp(raw: dict[str, Any]) -> Any:
    return raw.get("last_update") or raw.get("timestamp") or datetime.now(timezone.utc)


def _build(source: str, factory: Callable[[], T]) -> T:
    try:
        return factory()
    except ValidationError as e:
        reasons = [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidPayloadError(reasons, source=source) from e


def parse_market_stress(raw: Any) -> MarketStress:
    env = require_success(raw, MARKET_STRESS)
    level = env.get("stress_level")
    if isinstance(level, str):
        level = LEGACY_STRESS_LABELS.get(level, level)
    sources = env.get("data_sources") if isinstance(env.get("data_sources"), dict) else {}
    return _build(MARKET_STRESS, lambda: MarketStress(
        stress_level=level,
        vix=env.get("vix"),
        high_yield_spread=env.get("high_yield_spread"),
        data_source=env.get("data_source") or "unknown",
        data_sources={
            "vix": sources.get("vix") or "FRED",
            "spread": sources.get("spread") or "FRED",
        },
        last_update=_timestamp(env),
    ))


def parse_market_data(raw: Any) -> MarketData:
    env = require_success(raw, MARKET_DATA)
    quotes = env.get("market_data")
    if not isinstance(quotes, dict):
        raise UpstreamError("response carries no market_data", source=MARKET_DATA)
    return _build(MARKET_DATA, lambda: MarketData(
        etfs={symbol: quotes.get(f"{symbol.lower()}_price") for symbol in ETF_SYMBOLS},
        descriptions=dict(ETF_DESCRIPTIONS),
        data_source=quotes.get("data_source") or "unknown",
        last_update=_timestamp(env),
    ))


def parse_allocations(raw: Any) -> AllocationView:
    env = require_success(raw, ALLOCATIONS)
    data = env.get("data") if isinstance(env.get("data"), dict) else {}
    regime = data.get("regime") or env.get("regime") or "EXPANSION"
    legacy = env.get("allocation")
    if isinstance(legacy, dict):
        return _build(ALLOCATIONS, lambda: AllocationView.from_legacy(regime, legacy, _timestamp(env)))
    allocations = data.get("allocations") if isinstance(data.get("allocations"), dict) else {}
    return _build(ALLOCATIONS, lambda: AllocationView(
        regime=regime,
        allocation=AssetAllocation(
            stocks=allocations.get("stocks", 65),
            bonds=allocations.get("bonds", 25),
            commodities=allocations.get("commodities", 5),
            cash=allocations.get("cash", 5),
        ),
        last_update=_timestamp(env),
    ))


def parse_regime(raw: Any) -> RegimeSnapshot:
    env = require_success(raw, REGIME)
    return _build(REGIME, lambda: RegimeSnapshot(
        country=env.get("country"),
        country_name=env.get("country_name") or "",
        regime=env.get("regime"),
        confidence=env.get("confidence"),
        data_source=env.get("data_source") or "config",
        indicators=env.get("indicators"),
        last_update=_timestamp(env),
    ))


def parse_countries(raw: Any) -> list[CountryProfile]:
    env = require_success(raw, COUNTRIES)
    items = env.get("countries")
    if not isinstance(items, list):
        raise InvalidPayloadError(["missing countries array"], source=COUNTRIES)
    return _build(COUNTRIES, lambda: [CountryProfile.model_validate(item) for item in items])


def build_definitions(settings: Settings) -> dict[str, ResourceDefinition[Any]]:
    """Dashboard resources keyed by name, with intervals and fallbacks from settings."""
    api = settings.api
    refresh = settings.refresh
    return {
        MARKET_DATA: ResourceDefinition(
            name=MARKET_DATA,
            url=api.market_data_url,
            parse=parse_market_data,
            interval_seconds=refresh.market_data_seconds,
            fallback=fallbacks.FALLBACK_MARKET_DATA,
            fallback_on_unsuccessful=True,
        ),
        MARKET_STRESS: ResourceDefinition(
            name=MARKET_STRESS,
            url=api.market_stress_url,
            parse=parse_market_stress,
            interval_seconds=refresh.market_stress_seconds,
            fallback=fallbacks.FALLBACK_MARKET_STRESS,
        ),
        ALLOCATIONS: ResourceDefinition(
            name=ALLOCATIONS,
            url=api.allocations_url,
            parse=parse_allocations,
            interval_seconds=refresh.allocations_seconds,
            fallback=fallbacks.FALLBACK_ALLOCATIONS,
            fallback_on_unsuccessful=True,
            default_params={"country": settings.backtest.default_country},
        ),
        REGIME: ResourceDefinition(
            name=REGIME,
            url=api.regime_url,
            parse=parse_regime,
            interval_seconds=refresh.regime_seconds,
            default_params={"country": settings.backtest.default_country},
        ),
        COUNTRIES: ResourceDefinition(
            name=COUNTRIES,
            url=api.countries_url,
            parse=parse_countries,
            interval_seconds=refresh.countries_seconds,
            fallback=list(fallbacks.FALLBACK_COUNTRIES),
        ),
    }


RESOURCE_NAMES = (MARKET_DATA, MARKET_STRESS, ALLOCATIONS, REGIME, COUNTRIES, BACKTESTING)

# Resources that take the selected country as a request parameter
COUNTRY_RESOURCES = (ALLOCATIONS, REGIME, BACKTESTING)
