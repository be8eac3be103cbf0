from __future__ import annotations

import asyncio
import logging
import math
from contextlib import asynccontextmanager
from typing import AsyncIterator, Protocol, Sequence

from coinfolio.errors import PersistenceError, ValidationError
from coinfolio.schemas.portfolio import Holding
from coinfolio.symbols import normalize_symbol, require_symbol

logger = logging.getLogger(__name__)

MAX_AMOUNT = 1e15


class HoldingsPersistence(Protocol):
    def load(self) -> list[Holding]: ...

    async def save(self, holdings: Sequence[Holding]) -> None: ...


def _validate_amount(amount: object) -> float:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError("Amount must be a number.")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT:g}.")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Amount must be a finite number greater than zero.")
    return float(amount)


class HoldingsStore:
    """Ordered holdings, at most one per canonical symbol.

    Mutations only touch memory. Callers await ``persist`` afterwards to
    write the full list through the persistence collaborator, or run the
    mutation inside ``transaction`` so a failed write restores the previous
    holdings.
    """

    def __init__(self, persistence: HoldingsPersistence | None = None) -> None:
        self._persistence = persistence
        self._holdings: list[Holding] = []
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, persistence: HoldingsPersistence) -> "HoldingsStore":
        store = cls(persistence)
        try:
            saved = persistence.load()
        except PersistenceError as exc:
            logger.warning("[holdings] starting with empty portfolio: %s", exc)
            return store
        for holding in saved:
            try:
                store.upsert(holding.symbol, holding.amount)
            except ValidationError as exc:
                logger.warning("[holdings] skipping saved entry %r: %s", holding.symbol, exc)
        logger.info("[holdings] loaded %d holdings", len(store))
        return store

    def __len__(self) -> int:
        return len(self._holdings)

    def list(self) -> list[Holding]:
        return [holding.model_copy() for holding in self._holdings]

    def _index(self, symbol: str) -> int | None:
        for index, holding in enumerate(self._holdings):
            if holding.symbol == symbol:
                return index
        return None

    def upsert(self, symbol: str, amount: float) -> Holding:
        normalized = require_symbol(symbol)
        holding = Holding(symbol=normalized, amount=_validate_amount(amount))
        index = self._index(normalized)
        if index is None:
            self._holdings.append(holding)
        else:
            self._holdings[index] = holding
        return holding.model_copy()

    def remove(self, symbol: str) -> bool:
        index = self._index(normalize_symbol(symbol))
        if index is None:
            return False
        del self._holdings[index]
        return True

    async def persist(self) -> None:
        if self._persistence is None:
            return
        snapshot = self.list()
        try:
            await self._persistence.save(snapshot)
        except PersistenceError:
            logger.error("[holdings] failed to persist %d holdings", len(snapshot))
            raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["HoldingsStore"]:
        async with self._lock:
            previous = list(self._holdings)
            try:
                yield self
                await self.persist()
            except BaseException:
                self._holdings = previous
                raise
