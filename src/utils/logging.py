"""Loguru sink configuration."""
from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str, log_dir: Path | None = None) -> None:
    """Route loguru to stderr and, when ``log_dir`` is given, a rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "oracle_portfolio.log",
            level=level.upper(),
            rotation="10 MB",
            retention=5,
            enqueue=False,
        )
