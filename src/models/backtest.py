"""Backtesting payload models.

The upstream backtesting function is treated as untrusted input. These models
are only built by ``src.validation.backtesting`` after the structural checks
pass, and they are frozen once accepted.
"""
from __future__ import annotations

import math
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator


def finite_or_none(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings to float; anything else becomes None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return f if math.isfinite(f) else None


class BacktestPeriod(BaseModel):
    model_config = {"frozen": True}

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    total_months: Optional[float] = None

    @field_validator("total_months", mode="before")
    @classmethod
    def coerce_months(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)


class StrategyMetrics(BaseModel):
    """Performance metrics for one series. Returns are already in percent."""

    model_config = {"frozen": True, "populate_by_name": True}

    total_return: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_return", "totalReturn")
    )
    annualized_return: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("annualized_return", "annualizedReturn")
    )
    volatility: Optional[float] = None
    sharpe_ratio: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("sharpe_ratio", "sharpeRatio")
    )
    max_drawdown: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("max_drawdown", "maxDrawdown")
    )

    @field_validator(
        "total_return", "annualized_return", "volatility", "sharpe_ratio", "max_drawdown",
        mode="before",
    )
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)


class BacktestMetrics(BaseModel):
    model_config = {"frozen": True}

    oracle: StrategyMetrics = Field(default_factory=StrategyMetrics)
    benchmark: StrategyMetrics = Field(default_factory=StrategyMetrics)
    outperformance: Optional[StrategyMetrics] = None

    @field_validator("outperformance", mode="before")
    @classmethod
    def accept_scalar(cls, v: Any) -> Any:
        # Some endpoints report outperformance as a bare number.
        if isinstance(v, (int, float, str)) and not isinstance(v, bool):
            return {"total_return": v}
        return v


class CumulativePoint(BaseModel):
    model_config = {"frozen": True}

    date: Optional[str] = None
    oracle_cumulative: Optional[float] = None
    benchmark_cumulative: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def stringify_date(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("oracle_cumulative", "benchmark_cumulative", mode="before")
    @classmethod
    def coerce_cumulative(cls, v: Any) -> Optional[float]:
        # Only real numbers count as cumulative values; numeric strings do not.
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return float(v) if math.isfinite(v) else None

    @property
    def is_complete(self) -> bool:
        return self.oracle_cumulative is not None and self.benchmark_cumulative is not None


class MonthlyReturn(BaseModel):
    model_config = {"frozen": True}

    date: Optional[str] = None
    oracle_return: Optional[float] = None
    benchmark_return: Optional[float] = None

    @field_validator("oracle_return", "benchmark_return", mode="before")
    @classmethod
    def coerce_returns(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)


class AllocationSnapshot(BaseModel):
    model_config = {"frozen": True}

    date: str
    regime: str
    allocations: dict[str, float]


class DataQuality(BaseModel):
    model_config = {"frozen": True}

    source: Optional[str] = None
    total_months: Optional[float] = None
    missing_data: Optional[float] = None
    last_update: Optional[str] = None
    calculation_time: Optional[str] = None

    @field_validator("total_months", "missing_data", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)


class BacktestingPayload(BaseModel):
    """Accepted backtesting response, immutable once built."""

    model_config = {"frozen": True}

    country: Optional[str] = None
    strategy: Optional[str] = None
    benchmark: Optional[str] = None
    period: BacktestPeriod = Field(default_factory=BacktestPeriod)
    metrics: BacktestMetrics = Field(default_factory=BacktestMetrics)
    performance_series: list[CumulativePoint]
    monthly_returns: list[MonthlyReturn] = []
    allocations_history: list[AllocationSnapshot] = []
    data_quality: Optional[DataQuality] = None

    @property
    def total_months(self) -> Optional[float]:
        if self.data_quality and self.data_quality.total_months:
            return self.data_quality.total_months
        return self.period.total_months


class BacktestSummary(BaseModel):
    """Display-ready headline numbers. ``"N/A"`` replaces any non-finite value."""

    model_config = {"frozen": True}

    oracle_return: Union[float, Literal["N/A"]]
    benchmark_return: Union[float, Literal["N/A"]]
    outperformance: Union[float, Literal["N/A"]]
    reported_outperformance: Union[float, Literal["N/A"]] = "N/A"
    total_months: float = 0


class BacktestHealth(BaseModel):
    model_config = {"frozen": True}

    success: bool
    status: str
    version: str = "unknown"
    endpoints_status: dict[str, str] = {}
    timestamp: str = ""

    @property
    def is_healthy(self) -> bool:
        return self.success and self.status == "healthy"
