from loguru import logger

from src.utils.logging import setup_logging


def test_setup_logging_writes_file(tmp_path) -> None:
    log_dir = tmp_path / "logs"
    setup_logging("info", log_dir)

    logger.info("hooks started")
    logger.debug("below threshold")
    logger.remove()

    content = (log_dir / "oracle_portfolio.log").read_text()
    assert "hooks started" in content
    assert "below threshold" not in content


def test_setup_logging_without_dir(tmp_path) -> None:
    setup_logging("DEBUG")
    logger.remove()
    assert list(tmp_path.iterdir()) == []
