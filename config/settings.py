from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    root_url: str = Field(
        default="https://us-central1-oracle-portfolio-prod.cloudfunctions.net",
        alias="ORACLE_API_ROOT",
    )
    backtesting_url: str = Field(
        default="https://us-central1-oracle-portfolio-prod.cloudfunctions.net/getBacktesting",
        alias="BACKTESTING_API_URL",
    )
    backtesting_health_url: str = Field(
        default="https://us-central1-oracle-portfolio-prod.cloudfunctions.net/getBacktestingHealth",
        alias="BACKTESTING_HEALTH_URL",
    )

    @computed_field
    @property
    def market_stress_url(self) -> str:
        return f"{self.root_url}/getMarketStress"

    @computed_field
    @property
    def market_data_url(self) -> str:
        return f"{self.root_url}/getMarketData"

    @computed_field
    @property
    def allocations_url(self) -> str:
        return f"{self.root_url}/getAllocations"

    @computed_field
    @property
    def regime_url(self) -> str:
        return f"{self.root_url}/getRegime"

    @computed_field
    @property
    def countries_url(self) -> str:
        return f"{self.root_url}/getCountries"


class FetchSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    max_attempts: int = Field(default=3, ge=1, alias="FETCH_MAX_ATTEMPTS")
    timeout_ms: int = Field(default=5000, gt=0, alias="FETCH_TIMEOUT_MS")
    backtesting_timeout_ms: int = Field(default=30000, gt=0, alias="BACKTESTING_TIMEOUT_MS")
    upstream_timeout_ms: int = Field(default=15000, gt=0, alias="UPSTREAM_TIMEOUT_MS")


class RefreshSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REFRESH_")

    market_data_seconds: float = 60
    market_stress_seconds: float = 5 * 60
    allocations_seconds: float = 5 * 60
    regime_seconds: float = 30 * 60
    countries_seconds: float = 60 * 60


class BacktestSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BACKTEST_")

    default_country: str = "FRA"
    default_start_date: str = "2023-01-01"
    default_end_date: str = "2024-12-31"
    min_date: str = "2023-01-01"
    max_date: str = "2024-12-31"


class UpstreamSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    fred_api_key: Optional[str] = Field(default=None, alias="FRED_API_KEY")
    alpha_vantage_api_key: Optional[str] = Field(default=None, alias="ALPHA_VANTAGE_API_KEY")
    fred_url: str = "https://api.stlouisfed.org/fred/series/observations"
    alpha_vantage_url: str = "https://www.alphavantage.co/query"
    quote_pause_seconds: float = Field(default=1.0, alias="QUOTE_PAUSE_SECONDS")
    allowed_origins: list[str] = Field(
        default=[
            "https://oracle-portfolio-prod.web.app",
            "https://oracle-portfolio-prod.firebaseapp.com",
            "http://localhost:3000",
            "http://localhost:5000",
        ],
        alias="ALLOWED_ORIGINS",
    )


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    host: str = Field(default="127.0.0.1", alias="SERVER_HOST")
    functions_port: int = Field(default=5001, alias="FUNCTIONS_PORT")
    dashboard_port: int = Field(default=8787, alias="DASHBOARD_PORT")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="DEBUG", alias="LOG_LEVEL")
    log_dir: Path = Field(default=Path("logs"), alias="LOG_DIR")
    use_fallbacks: bool = Field(default=True, alias="USE_FALLBACKS")

    api: ApiSettings = Field(default_factory=ApiSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
