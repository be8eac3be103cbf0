from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AssetRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: float = 0.0
    change_24h: float = 0.0


class CoinSummary(BaseModel):
    symbol: str
    name: str
    id: str
    image: Optional[str] = None
