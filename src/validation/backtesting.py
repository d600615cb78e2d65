"""
Structural validation of backtesting responses.

The response is checked stage by stage. Once a stage fails, every later
stage is reported as failed too, so the reason list always says which part
of the nesting is missing and what could not be reached because of it.
"""
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from src.models import BacktestingPayload
from src.utils.exceptions import InvalidPayloadError

SOURCE = "backtesting"


def _stage_success(raw: Any) -> Optional[Any]:
    if isinstance(raw, dict) and raw.get("success") is True:
        return raw
    return None


def _stage_data(raw: Any) -> Optional[Any]:
    data = raw.get("data")
    return data if isinstance(data, dict) else None


def _stage_performance(data: Any) -> Optional[Any]:
    perf = data.get("performance_data")
    return perf if isinstance(perf, dict) else None


def _stage_cumulative(perf: Any) -> Optional[Any]:
    series = perf.get("cumulative_performance")
    return series if isinstance(series, list) else None


def _stage_non_empty(series: Any) -> Optional[Any]:
    return series if len(series) > 0 else None


# Each stage receives the previous stage's output and returns None on failure.
STAGES: tuple[tuple[str, Callable[[Any], Optional[Any]]], ...] = (
    ("invalid success flag", _stage_success),
    ("missing data wrapper", _stage_data),
    ("missing performance_data", _stage_performance),
    ("missing cumulative_performance array", _stage_cumulative),
    ("empty data array", _stage_non_empty),
)


def structural_issues(raw: Any) -> list[str]:
    """Return one reason per failed stage; an empty list means every stage passed."""
    reasons: list[str] = []
    current = raw
    for reason, check in STAGES:
        if reasons:
            reasons.append(reason)
            continue
        current = check(current)
        if current is None:
            reasons.append(reason)
    return reasons


def _metrics_section(data: dict[str, Any]) -> dict[str, Any]:
    """Accept both the nested ``metrics{oracle, benchmark}`` form and the flat one."""
    metrics = data.get("metrics")
    if isinstance(metrics, dict) and ("oracle" in metrics or "benchmark" in metrics):
        return {
            "oracle": metrics.get("oracle") or {},
            "benchmark": metrics.get("benchmark") or {},
            "outperformance": metrics.get("outperformance"),
        }
    return {
        "oracle": metrics if isinstance(metrics, dict) else {},
        "benchmark": data.get("benchmark_metrics") if isinstance(data.get("benchmark_metrics"), dict) else {},
        "outperformance": data.get("outperformance"),
    }


def _dicts_only(items: Any) -> list[dict[str, Any]]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def validate_backtesting_response(raw: Any) -> BacktestingPayload:
    """
    Validate a raw backtesting response and build the frozen payload.

    Args:
        raw: Decoded JSON body as returned by the fetch client

    Returns:
        BacktestingPayload

    Raises:
        InvalidPayloadError: If any structural stage fails or the fields
            cannot be coerced. No partial payload is ever returned.
    """
    reasons = structural_issues(raw)
    if reasons:
        logger.error(f"Backtesting payload rejected: {', '.join(reasons)}")
        raise InvalidPayloadError(reasons, source=SOURCE)

    data = raw["data"]
    perf = data["performance_data"]
    period = data.get("period") if isinstance(data.get("period"), dict) else {}

    # Months may sit in data_quality, period or at the top level.
    quality = data.get("data_quality") if isinstance(data.get("data_quality"), dict) else None
    if "total_months" not in period and "total_months" in data:
        period = {**period, "total_months": data["total_months"]}

    points = perf["cumulative_performance"]
    non_objects = sum(1 for p in points if not isinstance(p, dict))
    if non_objects:
        reason = f"cumulative_performance has {non_objects} non-object points"
        logger.error(f"Backtesting payload rejected: {reason}")
        raise InvalidPayloadError([reason], source=SOURCE)

    try:
        payload = BacktestingPayload(
            country=data.get("country") or raw.get("country"),
            strategy=data.get("strategy"),
            benchmark=data.get("benchmark"),
            period=period,
            metrics=_metrics_section(data),
            performance_series=points,
            monthly_returns=_dicts_only(perf.get("monthly_returns")),
            allocations_history=_dicts_only(data.get("allocations_history")),
            data_quality=quality,
        )
    except ValidationError as e:
        field_reasons = [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        logger.error(f"Backtesting payload fields rejected: {field_reasons}")
        raise InvalidPayloadError(field_reasons, source=SOURCE) from e

    skipped = sum(1 for p in payload.performance_series if not p.is_complete)
    if skipped:
        logger.warning(f"{skipped} series points carry non-numeric cumulative values")

    logger.debug(
        f"Backtesting payload accepted: {len(payload.performance_series)} points, "
        f"{len(payload.monthly_returns)} monthly returns"
    )
    return payload
