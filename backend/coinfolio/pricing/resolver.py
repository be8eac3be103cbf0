from __future__ import annotations

import asyncio
import logging

from coinfolio.cache import PriceCache
from coinfolio.errors import NotFound, UpstreamUnavailable
from coinfolio.pricing.directory import AssetDirectory
from coinfolio.providers.base import UpstreamClient
from coinfolio.schemas.price import PriceQuote
from coinfolio.symbols import require_symbol

logger = logging.getLogger(__name__)


class PriceResolver:
    """Lookup-or-fetch for single-symbol price quotes.

    A fresh cache entry is returned without touching the directory. On a miss
    the first caller starts one fetch task for the symbol; every concurrent
    caller awaits that same task and sees the same outcome. When the upstream
    fails, the last cached quote is served with ``stale=True``.
    """

    def __init__(
        self,
        directory: AssetDirectory,
        upstream: UpstreamClient,
        cache: PriceCache[PriceQuote],
    ) -> None:
        self._directory = directory
        self._upstream = upstream
        self._cache = cache
        self._inflight: dict[str, asyncio.Task[PriceQuote]] = {}

    def in_flight(self, symbol: str) -> bool:
        return require_symbol(symbol) in self._inflight

    async def get_price(self, symbol: str) -> PriceQuote:
        key = require_symbol(symbol)
        entry = self._cache.lookup(key)
        if self._cache.is_fresh(entry):
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch(key))
            self._inflight[key] = task
        return await asyncio.shield(task)

    async def _fetch(self, key: str) -> PriceQuote:
        try:
            asset_id = await self._directory.resolve(key)
            try:
                upstream_price = await self._upstream.fetch_price(asset_id)
            except UpstreamUnavailable as exc:
                return self._stale_or_raise(key, exc)
            if upstream_price is None:
                raise NotFound(f"No price data for {key} (id {asset_id}).")

            quote = PriceQuote(
                symbol=key,
                price=upstream_price.price,
                change_24h=upstream_price.change_24h,
            )
            self._cache.put(key, quote)
            return quote
        finally:
            self._inflight.pop(key, None)

    def _stale_or_raise(self, key: str, exc: UpstreamUnavailable) -> PriceQuote:
        entry = self._cache.lookup(key)
        if entry is None:
            raise exc
        logger.warning(
            "[resolver] serving stale %s quote (age %.1fs): %s",
            key,
            self._cache.age(entry),
            exc,
        )
        return entry.value.model_copy(update={"stale": True})
