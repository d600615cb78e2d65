from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, computed_field

RegimeType = Literal["EXPANSION", "RECOVERY", "STAGFLATION", "RECESSION"]


class AssetAllocation(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    stocks: float = Field(ge=0, le=100)
    bonds: float = Field(ge=0, le=100)
    commodities: float = Field(ge=0, le=100)
    cash: float = Field(ge=0, le=100)

    @computed_field
    @property
    def total(self) -> float:
        return self.stocks + self.bonds + self.commodities + self.cash

    def to_legacy_dict(self) -> dict[str, float]:
        """Key names still read by older dashboard clients."""
        return {
            "actions": self.stocks,
            "obligations": self.bonds,
            "or": self.commodities,
            "cash": self.cash,
        }


class EconomicIndicators(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    growth: float
    inflation: float
    unemployment: float


class RegimeConfig(BaseModel):
    """Static regime heuristics for one country."""

    model_config = {"from_attributes": True, "frozen": True}

    name: str
    regime_base: RegimeType
    confidence_base: float = Field(ge=0.0, le=1.0)
    allocations: AssetAllocation
    indicators: EconomicIndicators


class CountryProfile(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    code: str
    name: str
    regime: str
    confidence: float
    allocations: AssetAllocation
    indicators: Optional[EconomicIndicators] = None
    last_update: datetime

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class RegimeSnapshot(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    country: str
    country_name: str = ""
    regime: str
    confidence: float = Field(ge=0.0, le=1.0)
    data_source: str = "config"
    indicators: Optional[EconomicIndicators] = None
    last_update: datetime


class AllocationView(BaseModel):
    """Allocation panel payload, normalised from both upstream formats."""

    model_config = {"from_attributes": True, "frozen": True}

    regime: str
    allocation: AssetAllocation
    last_update: datetime

    @classmethod
    def from_legacy(cls, regime: str, legacy: dict[str, Any], last_update: datetime) -> "AllocationView":
        return cls(
            regime=regime,
            allocation=AssetAllocation(
                stocks=legacy.get("actions", 0),
                bonds=legacy.get("obligations", 0),
                commodities=legacy.get("or", 0),
                cash=legacy.get("cash", 0),
            ),
            last_update=last_update,
        )
