"""Static regime heuristics and market reference data.

These tables are process-wide constants. Callers get frozen models back, so
nothing downstream can mutate them.
"""
from types import MappingProxyType

from src.models import AssetAllocation, EconomicIndicators, RegimeConfig

DEFAULT_COUNTRY = "FRA"

REGIME_CONFIG: "MappingProxyType[str, RegimeConfig]" = MappingProxyType({
    "FRA": RegimeConfig(
        name="France",
        regime_base="EXPANSION",
        confidence_base=0.85,
        allocations=AssetAllocation(stocks=65, bonds=25, commodities=5, cash=5),
        indicators=EconomicIndicators(growth=0.025, inflation=0.028, unemployment=0.075),
    ),
    "DEU": RegimeConfig(
        name="Germany",
        regime_base="STAGFLATION",
        confidence_base=0.72,
        allocations=AssetAllocation(stocks=40, bonds=20, commodities=30, cash=10),
        indicators=EconomicIndicators(growth=0.018, inflation=0.032, unemployment=0.055),
    ),
    "USA": RegimeConfig(
        name="United States",
        regime_base="RECOVERY",
        confidence_base=0.91,
        allocations=AssetAllocation(stocks=70, bonds=15, commodities=10, cash=5),
        indicators=EconomicIndicators(growth=0.035, inflation=0.025, unemployment=0.045),
    ),
    "GBR": RegimeConfig(
        name="United Kingdom",
        regime_base="EXPANSION",
        confidence_base=0.78,
        allocations=AssetAllocation(stocks=60, bonds=30, commodities=5, cash=5),
        indicators=EconomicIndicators(growth=0.022, inflation=0.030, unemployment=0.065),
    ),
})

ETF_SYMBOLS = ("TLT", "SPY", "GLD", "HYG")

ETF_DESCRIPTIONS = MappingProxyType({
    "SPY": "SPDR S&P 500 ETF Trust",
    "TLT": "iShares 20+ Year Treasury Bond ETF",
    "GLD": "SPDR Gold Shares",
    "HYG": "iShares iBoxx $ High Yield Corporate Bond ETF",
})

FALLBACK_ETF_PRICES = MappingProxyType({
    "SPY": 418.74,
    "TLT": 95.12,
    "GLD": 201.45,
    "HYG": 78.23,
})

# FRED series ids used by the market stress and regime functions
VIX_SERIES = "VIXCLS"
HIGH_YIELD_SERIES = "BAMLH0A0HYM2EY"
MANUFACTURING_SERIES = "MANEMP"

FRED_SOURCE_URLS = MappingProxyType({
    "vix": f"https://fred.stlouisfed.org/series/{VIX_SERIES}",
    "spread": f"https://fred.stlouisfed.org/series/{HIGH_YIELD_SERIES}",
})


def get_regime_config(country: str | None) -> tuple[str, RegimeConfig]:
    """Resolve a country code, falling back to ``DEFAULT_COUNTRY`` when unknown."""
    code = (country or DEFAULT_COUNTRY).strip().upper()
    if code not in REGIME_CONFIG:
        code = DEFAULT_COUNTRY
    return code, REGIME_CONFIG[code]
