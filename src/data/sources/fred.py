from typing import Any, Optional

from loguru import logger

from src.data.sources.fetcher import RetryingFetcher

FRED_SOURCE = "FRED"


class FredClient:
    """Latest observations from the FRED series API."""

    def __init__(self, api_key: Optional[str], fetcher: RetryingFetcher, base_url: str) -> None:
        self.api_key = api_key
        self.fetcher = fetcher
        self.base_url = base_url

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def latest_value(self, series_id: str) -> Optional[float]:
        """
        Most recent value of ``series_id``.

        Returns None when FRED has no observation or reports the missing
        marker ``"."``. Transport failures propagate as DataFetchError.
        """
        params = {
            "series_id": series_id,
            "api_key": self.api_key,
            "file_type": "json",
            "limit": 1,
            "sort_order": "desc",
        }
        raw = await self.fetcher.get_json(self.base_url, params=params, source=FRED_SOURCE)
        return self._parse_latest(series_id, raw)

    @staticmethod
    def _parse_latest(series_id: str, raw: Any) -> Optional[float]:
        observations = raw.get("observations") if isinstance(raw, dict) else None
        if not observations or not isinstance(observations[0], dict):
            logger.warning(f"FRED returned no observations for {series_id}")
            return None

        value = observations[0].get("value")
        if value in (None, "", "."):
            logger.warning(f"FRED observation for {series_id} is missing")
            return None
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            logger.warning(f"FRED value for {series_id} is not numeric: {value!r}")
            return None

        logger.debug(f"{series_id} from FRED: {parsed}")
        return parsed
