from __future__ import annotations

from typing import Protocol

from coinfolio.schemas.asset import AssetRecord
from coinfolio.schemas.price import UpstreamPrice


class UpstreamClient(Protocol):
    """Market-data provider used by the directory and the resolver.

    Implementations raise ``UpstreamUnavailable`` on any failed call and
    return ``None`` from ``fetch_price`` when the id has no price.
    """

    async def fetch_markets(self) -> list[AssetRecord]: ...

    async def fetch_price(self, asset_id: str) -> UpstreamPrice | None: ...
