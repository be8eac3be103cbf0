from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

from coinfolio.cache import PriceCache
from coinfolio.providers.base import UpstreamClient
from coinfolio.schemas.asset import AssetRecord
from coinfolio.symbols import normalize_symbol

logger = logging.getLogger(__name__)

_LISTING_KEY = "listing"


@dataclass(frozen=True)
class DirectorySnapshot:
    records: tuple[AssetRecord, ...] = ()
    by_symbol: Mapping[str, AssetRecord] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_records(cls, records: Iterable[AssetRecord]) -> "DirectorySnapshot":
        ordered = tuple(records)
        by_symbol: dict[str, AssetRecord] = {}
        for record in ordered:
            by_symbol.setdefault(normalize_symbol(record.symbol), record)
        return cls(records=ordered, by_symbol=MappingProxyType(by_symbol))


EMPTY_SNAPSHOT = DirectorySnapshot()

ResolutionStrategy = Callable[[str, DirectorySnapshot], str | None]


def match_listing(symbol: str, snapshot: DirectorySnapshot) -> str | None:
    record = snapshot.by_symbol.get(symbol)
    return record.id if record else None


def static_table(table: Mapping[str, str]) -> ResolutionStrategy:
    normalized = {normalize_symbol(key): value for key, value in table.items() if value}

    def match_static(symbol: str, snapshot: DirectorySnapshot) -> str | None:
        return normalized.get(symbol)

    return match_static


def identity(symbol: str, snapshot: DirectorySnapshot) -> str | None:
    return symbol.lower() or None


def resolve_with(
    strategies: Sequence[ResolutionStrategy], symbol: str, snapshot: DirectorySnapshot
) -> str:
    for strategy in strategies:
        asset_id = strategy(symbol, snapshot)
        if asset_id:
            return asset_id
    return symbol.lower()


class AssetDirectory:
    """Symbol to canonical id mapping backed by the upstream bulk listing.

    The listing is cached as one unit with its own TTL. Concurrent callers
    that find it stale join a single refresh task. A failed refresh keeps the
    previous listing and suppresses further attempts for the cooldown period.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        ttl_seconds: float,
        static_ids: Mapping[str, str] | None = None,
        failure_cooldown_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._upstream = upstream
        self._cache: PriceCache[DirectorySnapshot] = PriceCache(ttl_seconds, clock=clock)
        self._clock = clock
        self._failure_cooldown_seconds = failure_cooldown_seconds
        self._strategies: tuple[ResolutionStrategy, ...] = (
            match_listing,
            static_table(static_ids or {}),
            identity,
        )
        self._refresh_task: asyncio.Task[DirectorySnapshot] | None = None
        self._failed_at: float | None = None
        self.last_error: Exception | None = None

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None

    def _cached(self) -> DirectorySnapshot:
        entry = self._cache.lookup(_LISTING_KEY)
        return entry.value if entry else EMPTY_SNAPSHOT

    def _in_cooldown(self) -> bool:
        if self._failed_at is None:
            return False
        return self._clock() - self._failed_at < self._failure_cooldown_seconds

    async def snapshot(self) -> DirectorySnapshot:
        entry = self._cache.lookup(_LISTING_KEY)
        if self._cache.is_fresh(entry):
            return entry.value
        if self._in_cooldown():
            return self._cached()
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh())
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> DirectorySnapshot:
        try:
            records = await self._upstream.fetch_markets()
        except Exception as exc:
            self._failed_at = self._clock()
            self.last_error = exc
            previous = self._cached()
            logger.warning(
                "[directory] listing refresh failed (%s); keeping %d cached assets",
                exc,
                len(previous.records),
            )
            return previous
        else:
            snapshot = DirectorySnapshot.from_records(records)
            self._cache.put(_LISTING_KEY, snapshot)
            self._failed_at = None
            self.last_error = None
            logger.info("[directory] listing refreshed: %d assets", len(snapshot.records))
            return snapshot
        finally:
            self._refresh_task = None

    async def resolve(self, symbol: str) -> str:
        normalized = normalize_symbol(symbol)
        snapshot = await self.snapshot()
        return resolve_with(self._strategies, normalized, snapshot)

    async def list(self) -> list[AssetRecord]:
        snapshot = await self.snapshot()
        return list(snapshot.records)
