"""
Series statistics for backtesting returns.

Returns are fractional (0.01 == 1%). Empty or degenerate input yields 0.0
rather than NaN so the results can go straight to the dashboard.
"""
from typing import Sequence

import numpy as np

from src.models import AssetAllocation, BacktestingPayload

DEFAULT_RISK_FREE_RATE = 0.02


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = DEFAULT_RISK_FREE_RATE) -> float:
    """(mean - risk_free_rate) / population std of ``returns``."""
    arr = np.asarray(returns, dtype=float)
    if arr.size == 0:
        return 0.0
    volatility = float(arr.std())
    if volatility == 0:
        return 0.0
    return float((arr.mean() - risk_free_rate) / volatility)


def max_drawdown(returns: Sequence[float]) -> float:
    """Largest peak-to-trough fall of the compounded series, as a fraction."""
    arr = np.asarray(returns, dtype=float)
    if arr.size == 0:
        return 0.0
    cumulative = np.cumprod(1.0 + arr)
    # Compounding starts from 1.0, which counts as the first peak.
    peaks = np.maximum.accumulate(np.concatenate(([1.0], cumulative)))[1:]
    drawdowns = (peaks - cumulative) / peaks
    return float(max(drawdowns.max(), 0.0))


def correlation(series1: Sequence[float], series2: Sequence[float]) -> float:
    """Pearson correlation; 0.0 for mismatched, empty or constant series."""
    a = np.asarray(series1, dtype=float)
    b = np.asarray(series2, dtype=float)
    if a.size == 0 or a.size != b.size:
        return 0.0
    da = a - a.mean()
    db = b - b.mean()
    denominator = float(np.sqrt((da * da).sum() * (db * db).sum()))
    if denominator == 0:
        return 0.0
    return float((da * db).sum() / denominator)


def normalize_allocation(allocation: AssetAllocation) -> AssetAllocation:
    """Rescale weights so they sum to 100. An all-zero allocation is returned as is."""
    total = allocation.total
    if total == 0:
        return allocation
    weights = np.array(
        [allocation.stocks, allocation.bonds, allocation.commodities, allocation.cash],
        dtype=float,
    ) / total * 100
    stocks, bonds, commodities, cash = (round(float(w), 4) for w in weights)
    return AssetAllocation(stocks=stocks, bonds=bonds, commodities=commodities, cash=cash)


def monthly_return_stats(payload: BacktestingPayload) -> dict[str, float]:
    """Sharpe, drawdown and correlation of the monthly returns (given in percent)."""
    pairs = [
        (m.oracle_return / 100, m.benchmark_return / 100)
        for m in payload.monthly_returns
        if m.oracle_return is not None and m.benchmark_return is not None
    ]
    oracle = [p[0] for p in pairs]
    benchmark = [p[1] for p in pairs]
    return {
        "oracle_sharpe": sharpe_ratio(oracle),
        "benchmark_sharpe": sharpe_ratio(benchmark),
        "oracle_max_drawdown": max_drawdown(oracle),
        "benchmark_max_drawdown": max_drawdown(benchmark),
        "correlation": correlation(oracle, benchmark),
    }
