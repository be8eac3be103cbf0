import asyncio

from coinfolio.errors import UpstreamUnavailable
from coinfolio.pricing.directory import (
    AssetDirectory,
    DirectorySnapshot,
    identity,
    match_listing,
    resolve_with,
    static_table,
)
from coinfolio.schemas.asset import AssetRecord

STATIC_IDS = {"BTC": "bitcoin", "ETH": "ethereum"}


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeUpstream:
    def __init__(self, markets=None) -> None:
        self.markets = markets if markets is not None else []
        self.market_calls = 0
        self.gate: asyncio.Event | None = None

    async def fetch_markets(self) -> list[AssetRecord]:
        self.market_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.markets, Exception):
            raise self.markets
        return list(self.markets)

    async def fetch_price(self, asset_id: str):
        return None


def record(asset_id: str, symbol: str) -> AssetRecord:
    return AssetRecord(id=asset_id, symbol=symbol, name=asset_id.title())


def build_directory(upstream: FakeUpstream, clock: FakeClock, cooldown: float = 60.0) -> AssetDirectory:
    return AssetDirectory(
        upstream,
        ttl_seconds=3600,
        static_ids=STATIC_IDS,
        failure_cooldown_seconds=cooldown,
        clock=clock,
    )


def test_cold_directory_with_failing_listing_uses_static_table() -> None:
    upstream = FakeUpstream(markets=UpstreamUnavailable("down"))
    directory = build_directory(upstream, FakeClock())

    assert asyncio.run(directory.resolve("BTC")) == "bitcoin"
    assert asyncio.run(directory.list()) == []
    assert isinstance(directory.last_error, UpstreamUnavailable)


def test_listing_match_wins_over_static_table() -> None:
    upstream = FakeUpstream(markets=[record("wrapped-bitcoin", "btc")])
    directory = build_directory(upstream, FakeClock())

    assert asyncio.run(directory.resolve("btc")) == "wrapped-bitcoin"


def test_unknown_symbol_falls_back_to_lowercase_identity() -> None:
    directory = build_directory(FakeUpstream(markets=[record("solana", "SOL")]), FakeClock())

    assert asyncio.run(directory.resolve("Pepe")) == "pepe"


def test_fresh_listing_is_reused_without_network_call() -> None:
    upstream = FakeUpstream(markets=[record("solana", "SOL")])
    clock = FakeClock()
    directory = build_directory(upstream, clock)

    asyncio.run(directory.resolve("SOL"))
    clock.now += 3599
    asyncio.run(directory.list())
    assert upstream.market_calls == 1

    clock.now += 1
    asyncio.run(directory.list())
    assert upstream.market_calls == 2


def test_concurrent_callers_join_one_refresh() -> None:
    upstream = FakeUpstream(markets=[record("solana", "SOL")])
    directory = build_directory(upstream, FakeClock())

    async def scenario() -> list[str]:
        upstream.gate = asyncio.Event()
        tasks = [asyncio.create_task(directory.resolve("sol")) for _ in range(5)]
        for _ in range(3):
            await asyncio.sleep(0)
        assert directory.refresh_in_flight is True
        upstream.gate.set()
        return await asyncio.gather(*tasks)

    assert asyncio.run(scenario()) == ["solana"] * 5
    assert upstream.market_calls == 1
    assert directory.refresh_in_flight is False


def test_failed_refresh_keeps_previous_listing() -> None:
    upstream = FakeUpstream(markets=[record("solana", "SOL")])
    clock = FakeClock()
    directory = build_directory(upstream, clock)
    asyncio.run(directory.list())

    clock.now += 7200
    upstream.markets = UpstreamUnavailable("rate limited", rate_limited=True)

    records = asyncio.run(directory.list())
    assert [item.id for item in records] == ["solana"]
    assert asyncio.run(directory.resolve("SOL")) == "solana"


def test_failed_refresh_is_not_retried_during_cooldown() -> None:
    upstream = FakeUpstream(markets=UpstreamUnavailable("down"))
    clock = FakeClock()
    directory = build_directory(upstream, clock, cooldown=60)

    asyncio.run(directory.resolve("BTC"))
    clock.now += 30
    asyncio.run(directory.resolve("ETH"))
    assert upstream.market_calls == 1

    clock.now += 30
    upstream.markets = [record("solana", "SOL")]
    asyncio.run(directory.resolve("SOL"))
    assert upstream.market_calls == 2
    assert directory.last_error is None


def test_resolution_strategies_in_isolation() -> None:
    snapshot = DirectorySnapshot.from_records(
        [record("tether", "USDT"), record("bridged-tether", "usdt")]
    )
    strategies = (match_listing, static_table({"usdc": "usd-coin"}), identity)

    # First listed record keeps a duplicated symbol.
    assert match_listing("USDT", snapshot) == "tether"
    assert resolve_with(strategies, "USDC", snapshot) == "usd-coin"
    assert resolve_with(strategies, "XYZ", snapshot) == "xyz"
    assert static_table(STATIC_IDS)("DOGE", snapshot) is None
