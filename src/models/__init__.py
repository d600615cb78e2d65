from src.models.market import StressLevel, StressSources, MarketStress, MarketData
from src.models.regime import (
    RegimeType,
    AssetAllocation,
    EconomicIndicators,
    RegimeConfig,
    CountryProfile,
    RegimeSnapshot,
    AllocationView,
)
from src.models.backtest import (
    BacktestPeriod,
    StrategyMetrics,
    BacktestMetrics,
    CumulativePoint,
    MonthlyReturn,
    AllocationSnapshot,
    DataQuality,
    BacktestingPayload,
    BacktestSummary,
    BacktestHealth,
)

__all__ = [
    "StressLevel",
    "StressSources",
    "MarketStress",
    "MarketData",
    "RegimeType",
    "AssetAllocation",
    "EconomicIndicators",
    "RegimeConfig",
    "CountryProfile",
    "RegimeSnapshot",
    "AllocationView",
    "BacktestPeriod",
    "StrategyMetrics",
    "BacktestMetrics",
    "CumulativePoint",
    "MonthlyReturn",
    "AllocationSnapshot",
    "DataQuality",
    "BacktestingPayload",
    "BacktestSummary",
    "BacktestHealth",
]
