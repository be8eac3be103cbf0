from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, StrictFloat, StrictInt


class Holding(BaseModel):
    symbol: str
    amount: float


class HoldingRequest(BaseModel):
    symbol: str
    amount: StrictInt | StrictFloat


class HoldingValue(BaseModel):
    symbol: str
    amount: float
    price: float = 0.0
    change_24h: float = 0.0
    value: float = 0.0
    stale: bool = False
    error: Optional[str] = None


class PortfolioValuation(BaseModel):
    currency: str
    total_value: float = 0.0
    holdings: list[HoldingValue] = Field(default_factory=list)
