from __future__ import annotations

import asyncio
import math
from typing import Sequence

from coinfolio.errors import CoinfolioError
from coinfolio.pricing.resolver import PriceResolver
from coinfolio.schemas.portfolio import Holding, HoldingValue, PortfolioValuation


async def value_portfolio(
    holdings: Sequence[Holding], resolver: PriceResolver, currency: str
) -> PortfolioValuation:
    """Price every holding concurrently and sum the line values.

    A holding whose price cannot be resolved is valued at zero and carries
    the error message instead of failing the whole valuation.
    """
    results = await asyncio.gather(
        *(resolver.get_price(holding.symbol) for holding in holdings),
        return_exceptions=True,
    )

    lines: list[HoldingValue] = []
    for holding, result in zip(holdings, results):
        if isinstance(result, CoinfolioError):
            lines.append(
                HoldingValue(symbol=holding.symbol, amount=holding.amount, error=str(result))
            )
            continue
        if isinstance(result, BaseException):
            raise result
        value = holding.amount * result.price
        in_range = math.isfinite(value)
        lines.append(
            HoldingValue(
                symbol=holding.symbol,
                amount=holding.amount,
                price=result.price,
                change_24h=result.change_24h,
                value=value if in_range else 0.0,
                stale=result.stale,
                error=None if in_range else "Holding value is out of range.",
            )
        )

    return PortfolioValuation(
        currency=currency.upper(),
        total_value=sum(line.value for line in lines),
        holdings=lines,
    )
