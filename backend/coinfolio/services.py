from __future__ import annotations

from dataclasses import dataclass

from coinfolio.cache import PriceCache
from coinfolio.config.settings import Settings
from coinfolio.portfolio.holdings import HoldingsStore
from coinfolio.pricing.directory import AssetDirectory
from coinfolio.pricing.resolver import PriceResolver
from coinfolio.providers.base import UpstreamClient
from coinfolio.providers.coingecko import CoinGeckoClient
from coinfolio.schemas.price import PriceQuote
from coinfolio.storage.holdings_file import HoldingsFile


@dataclass
class Services:
    settings: Settings
    upstream: UpstreamClient
    directory: AssetDirectory
    resolver: PriceResolver
    holdings: HoldingsStore

    async def close(self) -> None:
        close = getattr(self.upstream, "close", None)
        if close is not None:
            await close()


def build_services(settings: Settings, upstream: UpstreamClient | None = None) -> Services:
    upstream = upstream or CoinGeckoClient.from_settings(settings)
    directory = AssetDirectory(
        upstream,
        ttl_seconds=settings.cache.directory_ttl_seconds,
        static_ids=settings.static_asset_ids,
        failure_cooldown_seconds=settings.cache.directory_failure_cooldown_seconds,
    )
    price_cache: PriceCache[PriceQuote] = PriceCache(settings.cache.price_ttl_seconds)
    resolver = PriceResolver(directory, upstream, price_cache)
    holdings = HoldingsStore.load(HoldingsFile(settings.holdings_path))
    return Services(
        settings=settings,
        upstream=upstream,
        directory=directory,
        resolver=resolver,
        holdings=holdings,
    )
