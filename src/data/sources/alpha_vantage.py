import math
from typing import Any, Optional

from loguru import logger

from src.data.sources.fetcher import RetryingFetcher

ALPHA_VANTAGE_SOURCE = "AlphaVantage"


class AlphaVantageClient:
    """GLOBAL_QUOTE lookups. Callers pace requests; the free tier is rate limited."""

    def __init__(self, api_key: Optional[str], fetcher: RetryingFetcher, base_url: str) -> None:
        self.api_key = api_key
        self.fetcher = fetcher
        self.base_url = base_url

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def global_quote(self, symbol: str) -> Optional[float]:
        """Latest price for ``symbol`` rounded to cents, or None if the quote is unusable."""
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key}
        raw = await self.fetcher.get_json(self.base_url, params=params, source=ALPHA_VANTAGE_SOURCE)
        return self._parse_price(symbol, raw)

    @staticmethod
    def _parse_price(symbol: str, raw: Any) -> Optional[float]:
        quote = raw.get("Global Quote") if isinstance(raw, dict) else None
        if not isinstance(quote, dict) or not quote.get("05. price"):
            logger.warning(f"No quote for {symbol} in Alpha Vantage response")
            return None
        try:
            price = float(quote["05. price"])
        except (TypeError, ValueError):
            logger.warning(f"Unparseable price for {symbol}: {quote['05. price']!r}")
            return None
        if not math.isfinite(price) or price <= 0:
            return None
        return round(price, 2)
