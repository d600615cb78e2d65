"""
View models for the dashboard.

Builders here turn hook state and backtesting payloads into plain dicts for
the web UI. They never raise on malformed input: a bad payload becomes a
panel or chart with an explicit status and message.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal, Optional

from loguru import logger
from pydantic import BaseModel

from src.analytics.metrics import summarize_backtest, to_percent_return
from src.analytics.plausibility import plausibility_issues
from src.analytics.stats import monthly_return_stats
from src.hooks.resources import BACKTESTING
from src.hooks.state import Failure, FetchResult, Idle, Loading, Success
from src.models import BacktestingPayload
from src.utils.exceptions import InvalidPayloadError, describe_error
from src.validation.backtesting import validate_backtesting_response

if TYPE_CHECKING:
    from src.hooks.backtesting import BacktestingHook
    from src.hooks.registry import DashboardHooks

ChartStatus = Literal["ok", "no_data", "invalid_structure"]
PanelStatus = Literal["loading", "ok", "error", "fallback"]


@dataclass(frozen=True)
class ChartPoint:
    date: str
    oracle: float
    benchmark: float


@dataclass(frozen=True)
class ChartView:
    status: ChartStatus
    message: str = ""
    points: tuple[ChartPoint, ...] = ()
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Panel:
    resource: str
    status: PanelStatus
    data: Any = None
    message: Optional[str] = None
    retry_available: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource": self.resource,
            "status": self.status,
            "data": self.data,
            "message": self.message,
            "retry_available": self.retry_available,
            **self.extra,
        }


def to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def build_chart_view(payload: Any) -> ChartView:
    """
    Chart points for the oracle vs benchmark comparison.

    Accepts a validated payload or raw JSON. Points whose cumulative values
    are not finite numbers are skipped; implausible series are excluded.
    """
    if payload is None:
        return ChartView(status="no_data", message="No backtesting data available")

    if not isinstance(payload, BacktestingPayload):
        try:
            payload = validate_backtesting_response(payload)
        except InvalidPayloadError as e:
            return ChartView(status="invalid_structure", message=describe_error(e))

    issues = plausibility_issues(payload)
    if issues:
        logger.warning(f"Chart excludes implausible backtesting data: {issues}")
        return ChartView(status="no_data", message=f"Implausible data excluded: {'; '.join(issues)}")

    points: list[ChartPoint] = []
    skipped = 0
    for index, point in enumerate(payload.performance_series):
        if not point.is_complete:
            skipped += 1
            continue
        points.append(
            ChartPoint(
                date=point.date or f"Point {index + 1}",
                oracle=to_percent_return(point.oracle_cumulative),
                benchmark=to_percent_return(point.benchmark_cumulative),
            )
        )

    if skipped:
        logger.warning(f"Chart skipped {skipped} points with non-numeric values")

    if not points:
        return ChartView(status="no_data", message="No valid data points", skipped=skipped)
    return ChartView(status="ok", points=tuple(points), skipped=skipped)


def build_panel(resource: str, result: FetchResult) -> Panel:
    """Map a hook result onto one of the four panel states."""
    if isinstance(result, Success):
        return Panel(resource, "ok", data=to_jsonable(result.data))

    if isinstance(result, Failure):
        message = describe_error(result.error)
        if result.fallback is not None:
            return Panel(
                resource,
                "fallback",
                data=to_jsonable(result.fallback),
                message=f"Showing fallback data: {message}",
                retry_available=True,
            )
        return Panel(resource, "error", message=message, retry_available=True)

    if isinstance(result, Loading):
        return Panel(resource, "loading", data=to_jsonable(result.previous))

    if isinstance(result, Idle):
        return Panel(resource, "loading")

    raise TypeError(f"Unknown fetch result: {result!r}")


def build_backtesting_panel(hook: "BacktestingHook") -> Panel:
    panel = build_panel(hook.name, hook.result)
    payload = hook.result.data if isinstance(hook.result, Success) else None

    extra: dict[str, Any] = {
        "params": dict(hook.params),
        "chart": build_chart_view(payload).to_dict(),
        "summary": None,
        "stats": None,
        "health": to_jsonable(hook.health),
    }
    if payload is not None:
        extra["summary"] = summarize_backtest(payload).model_dump()
        extra["stats"] = monthly_return_stats(payload)

    # The raw payload is large; the chart and summary carry what the UI needs.
    return Panel(
        panel.resource,
        panel.status,
        data=None,
        message=panel.message,
        retry_available=panel.retry_available,
        extra=extra,
    )


def build_dashboard_summary(hooks: "DashboardHooks") -> dict[str, Any]:
    """Aggregate every panel for the web dashboard."""
    panels = {
        name: build_panel(name, hook.result).to_dict()
        for name, hook in hooks.hooks.items()
        if name != BACKTESTING
    }
    panels[BACKTESTING] = build_backtesting_panel(hooks.backtesting).to_dict()
    return {
        "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        "country": hooks.country_store.code,
        "panels": panels,
    }
