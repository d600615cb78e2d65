from datetime import date
from typing import Union

from loguru import logger

DateLike = Union[str, date]

MIN_BACKTEST_DATE = date(2023, 1, 1)
MAX_BACKTEST_DATE = date(2024, 12, 31)


def _parse(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e


def _clamp(value: date, lower: date, upper: date, label: str) -> date:
    if value < lower:
        logger.warning(f"{label} {value} before available data, adjusted to {lower}")
        return lower
    if value > upper:
        logger.warning(f"{label} {value} after available data, adjusted to {upper}")
        return upper
    return value


def clamp_date_range(
    start: DateLike,
    end: DateLike,
    min_date: DateLike = MIN_BACKTEST_DATE,
    max_date: DateLike = MAX_BACKTEST_DATE,
) -> tuple[str, str]:
    """
    Clamp a backtesting window into the range the upstream has data for.

    Args:
        start: Requested start date (ISO string or date)
        end: Requested end date (ISO string or date)
        min_date: Earliest available date
        max_date: Latest available date

    Returns:
        Tuple of ISO ``YYYY-MM-DD`` strings ``(start, end)``

    Raises:
        ValueError: If a date does not parse or start falls after end
    """
    lower, upper = _parse(min_date), _parse(max_date)
    start_d = _clamp(_parse(start), lower, upper, "Start date")
    end_d = _clamp(_parse(end), lower, upper, "End date")

    if start_d > end_d:
        raise ValueError(f"Start date {start_d} is after end date {end_d}")

    return start_d.isoformat(), end_d.isoformat()
