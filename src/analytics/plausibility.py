from typing import Any, Optional

from loguru import logger

from src.analytics.metrics import is_finite_number, to_percent_return
from src.models import BacktestingPayload
from src.utils.exceptions import ImplausibleDataError

MAX_PLAUSIBLE_MONTHS = 1000
EXTREME_RETURN_PCT = 95.0
TOTAL_LOSS_PCT = -100.0


def _series_total_return(payload: BacktestingPayload, reported: Any, field: str) -> Optional[float]:
    """Prefer the reported total return, else derive it from the last series point."""
    if is_finite_number(reported):
        return float(reported)
    for point in reversed(payload.performance_series):
        value = to_percent_return(getattr(point, field))
        if value != "N/A":
            return value
    return None


def plausibility_issues(payload: BacktestingPayload) -> list[str]:
    """List every reason the payload looks implausible. Empty means usable."""
    oracle = _series_total_return(payload, payload.metrics.oracle.total_return, "oracle_cumulative")
    benchmark = _series_total_return(
        payload, payload.metrics.benchmark.total_return, "benchmark_cumulative"
    )
    months = payload.total_months

    issues: list[str] = []
    if oracle == TOTAL_LOSS_PCT or benchmark == TOTAL_LOSS_PCT:
        issues.append("total return of -100% reported")
    if months is not None and months > MAX_PLAUSIBLE_MONTHS:
        issues.append(f"period of {months:g} months exceeds {MAX_PLAUSIBLE_MONTHS}")
    if (
        oracle is not None
        and benchmark is not None
        and abs(oracle) > EXTREME_RETURN_PCT
        and abs(benchmark) > EXTREME_RETURN_PCT
    ):
        issues.append(f"both series beyond +/-{EXTREME_RETURN_PCT:g}% ({oracle}, {benchmark})")
    return issues


def ensure_plausible(payload: BacktestingPayload) -> BacktestingPayload:
    """Raise ImplausibleDataError when any heuristic trips."""
    issues = plausibility_issues(payload)
    if issues:
        logger.warning(f"Backtesting data rejected as implausible: {'; '.join(issues)}")
        raise ImplausibleDataError(issues)
    return payload
