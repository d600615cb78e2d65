from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

StressLevel = Literal["LOW", "MODERATE", "HIGH", "EXTREME"]


class StressSources(BaseModel):
    model_config = {"from_attributes": True}

    vix: str = "FRED"
    spread: str = "FRED"


class MarketStress(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    stress_level: StressLevel
    vix: float = Field(ge=0)
    high_yield_spread: float
    data_source: str = "unknown"
    data_sources: StressSources = Field(default_factory=StressSources)
    last_update: datetime


class MarketData(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    etfs: dict[str, float]
    descriptions: dict[str, str] = {}
    data_source: str = "unknown"
    last_update: datetime
