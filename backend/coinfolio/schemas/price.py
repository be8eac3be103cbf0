from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UpstreamPrice(BaseModel):
    price: float
    change_24h: float = 0.0


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change_24h: float = 0.0
    stale: bool = False
