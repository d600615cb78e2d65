"""
Derived metrics - display-ready numbers computed from backtesting payloads.

Everything here is pure: no I/O, no settings lookups. Any value that cannot
be turned into a finite number is reported as ``"N/A"`` instead of raising.
"""
import math
from typing import Any, Literal, Union

from loguru import logger

from src.models import BacktestingPayload, BacktestSummary

NA: Literal["N/A"] = "N/A"

MetricValue = Union[float, Literal["N/A"]]

# Reported and recomputed outperformance may differ by rounding only.
OUTPERFORMANCE_TOLERANCE = 0.01


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are finite. Booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_percent_return(cumulative: Any) -> MetricValue:
    """
    Convert a cumulative growth factor into a percent return.

    Args:
        cumulative: Growth factor where 1.0 means unchanged

    Returns:
        ``(cumulative - 1) * 100`` rounded to 2 decimals, or ``"N/A"``

    Example:
        >>> to_percent_return(1.0523)
        5.23
    """
    if not is_finite_number(cumulative):
        return NA
    return round((cumulative - 1) * 100, 2)


def compute_outperformance(oracle_return: Any, benchmark_return: Any) -> MetricValue:
    """Oracle minus benchmark, both already in percent."""
    if not is_finite_number(oracle_return) or not is_finite_number(benchmark_return):
        return NA
    return round(oracle_return - benchmark_return, 2)


def safe_percentage(value: Any, decimals: int = 1) -> str:
    """Format a percent value for display, accepting numeric strings."""
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return NA
    if not is_finite_number(value):
        return NA
    return f"{value:.{decimals}f}"


def _rounded(value: Any) -> MetricValue:
    return round(value, 2) if is_finite_number(value) else NA


def summarize_backtest(payload: BacktestingPayload) -> BacktestSummary:
    """
    Build headline numbers from the last point of the performance series.

    The outperformance figure is always recomputed from the two series. The
    value the API reported is carried along as ``reported_outperformance``
    for comparison only.
    """
    complete = [p for p in payload.performance_series if p.is_complete]

    if complete:
        last = complete[-1]
        oracle_return = to_percent_return(last.oracle_cumulative)
        benchmark_return = to_percent_return(last.benchmark_cumulative)
    else:
        # No usable point: fall back to the totals the API reported.
        oracle_return = _rounded(payload.metrics.oracle.total_return)
        benchmark_return = _rounded(payload.metrics.benchmark.total_return)

    outperformance = compute_outperformance(oracle_return, benchmark_return)

    reported: MetricValue = NA
    if payload.metrics.outperformance is not None:
        reported = _rounded(payload.metrics.outperformance.total_return)

    if (
        reported != NA
        and outperformance != NA
        and abs(reported - outperformance) > OUTPERFORMANCE_TOLERANCE
    ):
        logger.warning(
            f"Reported outperformance {reported} differs from computed {outperformance}, "
            f"using computed value"
        )

    return BacktestSummary(
        oracle_return=oracle_return,
        benchmark_return=benchmark_return,
        outperformance=outperformance,
        reported_outperformance=reported,
        total_months=payload.total_months or 0,
    )
