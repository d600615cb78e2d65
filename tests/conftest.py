"""Shared fixtures: raw backtesting responses and a sleep that never waits."""
from typing import Any, Optional

import pytest


def make_backtest_response(
    points: Optional[list[Any]] = None,
    oracle_total: Any = 12.0,
    benchmark_total: Any = 5.0,
    outperformance: Any = 7.0,
    total_months: Any = 24,
) -> dict[str, Any]:
    if points is None:
        points = [
            {"date": "2023-01-31", "oracle_cumulative": 1.02, "benchmark_cumulative": 1.01},
            {"date": "2023-06-30", "oracle_cumulative": 1.07, "benchmark_cumulative": 1.03},
            {"date": "2024-12-31", "oracle_cumulative": 1.12, "benchmark_cumulative": 1.05},
        ]
    return {
        "success": True,
        "data": {
            "country": "FRA",
            "strategy": "oracle_regime",
            "benchmark": "60_40",
            "period": {"start_date": "2023-01-01", "end_date": "2024-12-31", "total_months": total_months},
            "metrics": {
                "oracle": {"total_return": oracle_total, "sharpe_ratio": 1.1},
                "benchmark": {"totalReturn": benchmark_total},
                "outperformance": outperformance,
            },
            "performance_data": {
                "cumulative_performance": points,
                "monthly_returns": [
                    {"date": "2023-01-31", "oracle_return": 2.0, "benchmark_return": 1.0},
                    {"date": "2023-02-28", "oracle_return": -1.0, "benchmark_return": -0.5},
                    {"date": "2023-03-31", "oracle_return": 3.0, "benchmark_return": 1.5},
                ],
            },
            "allocations_history": [
                {
                    "date": "2023-01-31",
                    "regime": "EXPANSION",
                    "allocations": {"stocks": 65, "bonds": 25, "commodities": 5, "cash": 5},
                }
            ],
            "data_quality": {"source": "FRED", "total_months": total_months, "missing_data": 0},
        },
    }


@pytest.fixture
def backtest_response():
    """Factory for raw backtesting responses."""
    return make_backtest_response


class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
