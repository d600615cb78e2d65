from src.analytics.metrics import (
    NA,
    is_finite_number,
    to_percent_return,
    compute_outperformance,
    safe_percentage,
    summarize_backtest,
)
from src.analytics.plausibility import plausibility_issues, ensure_plausible
from src.analytics.dates import clamp_date_range
from src.analytics.market import classify_stress, adjust_regime
from src.analytics.stats import (
    sharpe_ratio,
    max_drawdown,
    correlation,
    normalize_allocation,
    monthly_return_stats,
)

__all__ = [
    "NA",
    "is_finite_number",
    "to_percent_return",
    "compute_outperformance",
    "safe_percentage",
    "summarize_backtest",
    "plausibility_issues",
    "ensure_plausible",
    "clamp_date_range",
    "classify_stress",
    "adjust_regime",
    "sharpe_ratio",
    "max_drawdown",
    "correlation",
    "normalize_allocation",
    "monthly_return_stats",
]
