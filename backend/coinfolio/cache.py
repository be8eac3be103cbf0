from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class PriceCache(Generic[T]):
    """Clock-aware key/value store with a time-to-live.

    Stale entries are kept so callers can still serve them when a refresh
    fails; freshness is decided by ``is_fresh``, never by eviction.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[T]] = {}

    def lookup(self, key: Hashable) -> CacheEntry[T] | None:
        return self._entries.get(key)

    def get(self, key: Hashable) -> tuple[T, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.value, self.age(entry)

    def put(self, key: Hashable, value: T) -> CacheEntry[T]:
        entry = CacheEntry(value=value, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def age(self, entry: CacheEntry[T]) -> float:
        return self._clock() - entry.fetched_at

    def is_fresh(self, entry: CacheEntry[T] | None) -> bool:
        if entry is None:
            return False
        return self.age(entry) < self.ttl_seconds

    def clear(self) -> None:
        self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)
