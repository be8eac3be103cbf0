from __future__ import annotations

import logging
from typing import Any

import httpx

from coinfolio.config.settings import Settings
from coinfolio.errors import UpstreamUnavailable
from coinfolio.schemas.asset import AssetRecord
from coinfolio.schemas.price import UpstreamPrice
from coinfolio.symbols import is_valid_symbol, normalize_symbol

logger = logging.getLogger(__name__)

_MARKETS_PATH = "/coins/markets"
_SIMPLE_PRICE_PATH = "/simple/price"
_API_KEY_HEADER = "x-cg-demo-api-key"


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def parse_market_rows(payload: Any) -> list[AssetRecord]:
    if not isinstance(payload, list):
        raise UpstreamUnavailable("Unexpected markets payload.")
    records: list[AssetRecord] = []
    for row in payload:
        if not isinstance(row, dict):
            continue
        asset_id = row.get("id")
        symbol = row.get("symbol")
        if not isinstance(asset_id, str) or not isinstance(symbol, str):
            continue
        if not asset_id or not is_valid_symbol(symbol):
            continue
        image = row.get("image")
        records.append(
            AssetRecord(
                id=asset_id,
                symbol=normalize_symbol(symbol),
                name=str(row.get("name") or symbol),
                image=image if isinstance(image, str) else None,
                current_price=_as_float(row.get("current_price")),
                change_24h=_as_float(row.get("price_change_percentage_24h")),
            )
        )
    return records


def parse_simple_price(payload: Any, asset_id: str, currency: str) -> UpstreamPrice | None:
    if not isinstance(payload, dict):
        raise UpstreamUnavailable("Unexpected price payload.")
    data = payload.get(asset_id)
    if not isinstance(data, dict):
        return None
    price = data.get(currency)
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    return UpstreamPrice(
        price=price,
        change_24h=_as_float(data.get(f"{currency}_24h_change")),
    )


class CoinGeckoClient:
    """Async client for the two CoinGecko endpoints the price layer needs.

    Every failure (transport error, timeout, non-2xx status, undecodable
    body) is raised as ``UpstreamUnavailable``; an id the provider has no
    price for is reported as ``None`` by ``fetch_price``.
    """

    def __init__(
        self,
        base_url: str,
        vs_currency: str,
        timeout_seconds: float,
        markets_per_page: int = 250,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.vs_currency = vs_currency.lower()
        self.markets_per_page = markets_per_page
        headers = {"Accept": "application/json"}
        if api_key:
            headers[_API_KEY_HEADER] = api_key
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoinGeckoClient":
        return cls(
            base_url=settings.upstream.base_url,
            vs_currency=settings.upstream.vs_currency,
            timeout_seconds=settings.upstream.timeout_seconds,
            markets_per_page=settings.upstream.markets_per_page,
            api_key=settings.providers.coingecko_api_key,
        )

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            logger.warning("[coingecko] %s returned HTTP %s", path, code)
            if code == 429:
                raise UpstreamUnavailable("Upstream rate limit reached.", rate_limited=True) from exc
            raise UpstreamUnavailable(f"Upstream returned HTTP {code}.") from exc
        except httpx.TimeoutException as exc:
            logger.warning("[coingecko] %s timed out", path)
            raise UpstreamUnavailable("Upstream request timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning("[coingecko] %s failed: %s", path, exc)
            raise UpstreamUnavailable(f"Upstream request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("[coingecko] %s returned invalid JSON", path)
            raise UpstreamUnavailable("Upstream returned invalid JSON.") from exc

    async def fetch_markets(self) -> list[AssetRecord]:
        payload = await self._get_json(
            _MARKETS_PATH,
            {
                "vs_currency": self.vs_currency,
                "order": "market_cap_desc",
                "per_page": str(self.markets_per_page),
                "page": "1",
                "sparkline": "false",
            },
        )
        return parse_market_rows(payload)

    async def fetch_price(self, asset_id: str) -> UpstreamPrice | None:
        payload = await self._get_json(
            _SIMPLE_PRICE_PATH,
            {
                "ids": asset_id,
                "vs_currencies": self.vs_currency,
                "include_24hr_change": "true",
            },
        )
        return parse_simple_price(payload, asset_id, self.vs_currency)
