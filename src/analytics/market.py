from typing import Optional

from src.models import StressLevel

DEFAULT_VIX = 20.5
DEFAULT_HIGH_YIELD_SPREAD = 3.2

# (level, vix upper bound, spread upper bound), checked in order
STRESS_BUCKETS: tuple[tuple[StressLevel, float, float], ...] = (
    ("LOW", 15.0, 2.0),
    ("MODERATE", 25.0, 4.0),
    ("HIGH", 35.0, 6.0),
)

PMI_EXPANSION_THRESHOLD = 50.0
PMI_RECESSION_THRESHOLD = 45.0
CONFIDENCE_STEP = 0.1
CONFIDENCE_CAP = 0.95
CONFIDENCE_FLOOR = 0.6


def classify_stress(vix: float, high_yield_spread: float) -> StressLevel:
    """Both the VIX and the spread must sit under a bucket's bounds to qualify."""
    for level, vix_bound, spread_bound in STRESS_BUCKETS:
        if vix < vix_bound and high_yield_spread < spread_bound:
            return level
    return "EXTREME"


def adjust_regime(regime: str, confidence: float, pmi: Optional[float]) -> tuple[str, float]:
    """
    Nudge a base regime with the latest manufacturing reading.

    Args:
        regime: Base regime label from the country config
        confidence: Base confidence in [0, 1]
        pmi: Latest manufacturing value, or None when unavailable

    Returns:
        Tuple of (regime, confidence) with confidence rounded to 3 decimals
    """
    if pmi is not None:
        if pmi > PMI_EXPANSION_THRESHOLD:
            regime = "EXPANSION"
            confidence = min(CONFIDENCE_CAP, confidence + CONFIDENCE_STEP)
        elif pmi < PMI_RECESSION_THRESHOLD:
            regime = "RECESSION"
            confidence = max(CONFIDENCE_FLOOR, confidence - CONFIDENCE_STEP)
    return regime, round(confidence, 3)
