"""Error taxonomy shared by the fetch client, hooks and HTTP functions."""
from __future__ import annotations


class OraclePortfolioError(Exception):
    """Base class for every error raised by Oracle Portfolio."""


class ConfigError(OraclePortfolioError):
    """Raised when settings are missing or inconsistent."""


class DataFetchError(OraclePortfolioError):
    """A fetch failed at the transport or HTTP layer. Retryable."""

    def __init__(self, message: str, source: str = "", url: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.url = url

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class NetworkError(DataFetchError):
    """Connection failed or the request raised before a response arrived."""


class RequestTimeoutError(DataFetchError):
    """The per-attempt timer fired and the request was cancelled."""

    def __init__(
        self, message: str, source: str = "", url: str = "", timeout_ms: int | None = None
    ) -> None:
        super().__init__(message, source=source, url=url)
        self.timeout_ms = timeout_ms


class HttpStatusError(DataFetchError):
    """The server answered with a status outside [200, 299]."""

    def __init__(self, status_code: int, source: str = "", url: str = "") -> None:
        super().__init__(f"HTTP {status_code}", source=source, url=url)
        self.status_code = status_code


class UpstreamError(OraclePortfolioError):
    """The endpoint answered with a well-formed ``{success: false}`` envelope."""

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.source = source


class InvalidPayloadError(OraclePortfolioError):
    """Structural validation of a response failed. Never retried."""

    def __init__(self, reasons: list[str], source: str = "") -> None:
        self.reasons = list(reasons)
        self.source = source
        super().__init__(f"Invalid payload: {', '.join(self.reasons)}")


class ImplausibleDataError(OraclePortfolioError):
    """A structurally valid payload failed the plausibility heuristics."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__(f"Implausible data: {', '.join(self.reasons)}")


def describe_error(exc: BaseException) -> str:
    """One-line message for the dashboard, by failure class."""
    if isinstance(exc, RequestTimeoutError):
        if exc.timeout_ms:
            return f"Request timeout ({exc.timeout_ms / 1000:g}s) - API too slow"
        return "Request timeout - API too slow"
    if isinstance(exc, NetworkError):
        return "Network error - Check internet connection"
    if isinstance(exc, HttpStatusError):
        return f"Server error - HTTP {exc.status_code}"
    if isinstance(exc, InvalidPayloadError):
        return f"Data validation failed - {', '.join(exc.reasons)}"
    if isinstance(exc, ImplausibleDataError):
        return f"Implausible data - {', '.join(exc.reasons)}"
    if isinstance(exc, UpstreamError):
        return f"API error - {exc.message}"
    return str(exc) or type(exc).__name__
