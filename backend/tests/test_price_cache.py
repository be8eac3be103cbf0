import pytest

from coinfolio.cache import PriceCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_get_returns_value_and_age() -> None:
    clock = FakeClock()
    cache: PriceCache[str] = PriceCache(30, clock=clock)

    cache.put("BTC", "quote")
    clock.advance(12.5)

    assert cache.get("BTC") == ("quote", 12.5)
    assert cache.get("ETH") is None


def test_entry_is_fresh_only_within_ttl() -> None:
    clock = FakeClock()
    cache: PriceCache[int] = PriceCache(30, clock=clock)
    cache.put("BTC", 1)

    clock.advance(29.9)
    assert cache.is_fresh(cache.lookup("BTC")) is True

    clock.advance(0.1)
    assert cache.is_fresh(cache.lookup("BTC")) is False
    assert cache.is_fresh(None) is False


def test_stale_entries_are_kept_until_overwritten() -> None:
    clock = FakeClock()
    cache: PriceCache[int] = PriceCache(10, clock=clock)
    cache.put("BTC", 1)
    clock.advance(60)

    stale = cache.lookup("BTC")
    assert stale is not None
    assert stale.value == 1

    cache.put("BTC", 2)
    fresh = cache.lookup("BTC")
    assert fresh.value == 2
    assert cache.is_fresh(fresh) is True
    # The old entry object is never mutated by the overwrite.
    assert stale.value == 1
    assert len(cache) == 1


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PriceCache(0)
