import pytest

from src.analytics import (
    adjust_regime,
    classify_stress,
    correlation,
    max_drawdown,
    monthly_return_stats,
    normalize_allocation,
    sharpe_ratio,
)
from src.models import AssetAllocation
from src.validation import validate_backtesting_response


def test_sharpe_ratio() -> None:
    assert sharpe_ratio([]) == 0.0
    assert sharpe_ratio([0.01, 0.01, 0.01]) == 0.0
    # mean 0.05, population std 0.05
    assert sharpe_ratio([0.0, 0.1], risk_free_rate=0.0) == pytest.approx(1.0)


def test_max_drawdown() -> None:
    assert max_drawdown([]) == 0.0
    assert max_drawdown([0.01, 0.02, 0.03]) == 0.0
    assert max_drawdown([0.1, -0.5]) == pytest.approx(0.5)
    assert max_drawdown([-0.2, 0.1]) == pytest.approx(0.2)


def test_correlation() -> None:
    assert correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
    assert correlation([1, 2], [1, 2, 3]) == 0.0
    assert correlation([1, 1, 1], [1, 2, 3]) == 0.0
    assert correlation([], []) == 0.0


def test_normalize_allocation() -> None:
    normalized = normalize_allocation(AssetAllocation(stocks=30, bonds=10, commodities=10, cash=0))
    assert normalized.stocks == 60.0
    assert normalized.bonds == 20.0
    assert normalized.total == pytest.approx(100.0)

    empty = AssetAllocation(stocks=0, bonds=0, commodities=0, cash=0)
    assert normalize_allocation(empty) is empty


def test_monthly_return_stats(backtest_response) -> None:
    stats = monthly_return_stats(validate_backtesting_response(backtest_response()))

    assert set(stats) == {
        "oracle_sharpe",
        "benchmark_sharpe",
        "oracle_max_drawdown",
        "benchmark_max_drawdown",
        "correlation",
    }
    assert stats["oracle_max_drawdown"] == pytest.approx(0.01)
    assert stats["correlation"] == pytest.approx(1.0)


@pytest.mark.parametrize(
    "vix,spread,expected",
    [
        (12.0, 1.5, "LOW"),
        (15.0, 1.5, "MODERATE"),
        (20.5, 3.2, "MODERATE"),
        (20.0, 4.0, "HIGH"),
        (30.0, 5.9, "HIGH"),
        (40.0, 1.0, "EXTREME"),
        (20.0, 6.5, "EXTREME"),
    ],
)
def test_classify_stress(vix, spread, expected) -> None:
    assert classify_stress(vix, spread) == expected


@pytest.mark.parametrize(
    "regime,confidence,pmi,expected",
    [
        ("STAGFLATION", 0.72, 51.0, ("EXPANSION", 0.82)),
        ("RECOVERY", 0.91, 55.0, ("EXPANSION", 0.95)),
        ("EXPANSION", 0.85, 40.0, ("RECESSION", 0.75)),
        ("EXPANSION", 0.65, 44.0, ("RECESSION", 0.6)),
        ("RECOVERY", 0.91, 47.0, ("RECOVERY", 0.91)),
        ("RECOVERY", 0.91, None, ("RECOVERY", 0.91)),
    ],
)
def test_adjust_regime(regime, confidence, pmi, expected) -> None:
    assert adjust_regime(regime, confidence, pmi) == expected
