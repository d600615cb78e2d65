"""
Fallback payloads shown when a resource cannot be fetched.

Each constant carries ``FALLBACK_TIMESTAMP``; hooks restamp ``last_update``
with the time the fallback was applied.
"""
from datetime import datetime, timezone

from src.data.regimes import (
    DEFAULT_COUNTRY,
    ETF_DESCRIPTIONS,
    FALLBACK_ETF_PRICES,
    FRED_SOURCE_URLS,
    REGIME_CONFIG,
)
from src.models import (
    AllocationView,
    AssetAllocation,
    BacktestHealth,
    BacktestingPayload,
    CountryProfile,
    MarketData,
    MarketStress,
    StressSources,
)

FALLBACK_TIMESTAMP = datetime(1970, 1, 1, tzinfo=timezone.utc)

FALLBACK_MARKET_DATA = MarketData(
    etfs=dict(FALLBACK_ETF_PRICES),
    descriptions=dict(ETF_DESCRIPTIONS),
    data_source="fallback",
    last_update=FALLBACK_TIMESTAMP,
)

FALLBACK_MARKET_STRESS = MarketStress(
    stress_level="MODERATE",
    vix=20.5,
    high_yield_spread=3.2,
    data_source="fallback",
    data_sources=StressSources(vix=FRED_SOURCE_URLS["vix"], spread=FRED_SOURCE_URLS["spread"]),
    last_update=FALLBACK_TIMESTAMP,
)

FALLBACK_ALLOCATIONS = AllocationView(
    regime="EXPANSION",
    allocation=AssetAllocation(stocks=65, bonds=25, commodities=5, cash=5),
    last_update=FALLBACK_TIMESTAMP,
)

_default = REGIME_CONFIG[DEFAULT_COUNTRY]

FALLBACK_COUNTRIES: tuple[CountryProfile, ...] = (
    CountryProfile(
        code=DEFAULT_COUNTRY,
        name=_default.name,
        regime=_default.regime_base,
        confidence=_default.confidence_base,
        allocations=_default.allocations,
        indicators=_default.indicators,
        last_update=FALLBACK_TIMESTAMP,
    ),
)

EMPTY_BACKTEST = BacktestingPayload(performance_series=[])


def unhealthy_backtest_health() -> BacktestHealth:
    return BacktestHealth(
        success=False,
        status="unhealthy",
        version="unknown",
        endpoints_status={"getBacktesting": "error", "apis_connectivity": "error"},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
