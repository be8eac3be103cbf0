from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from coinfolio.errors import PersistenceError
from coinfolio.schemas.portfolio import Holding

_HOLDINGS_ADAPTER = TypeAdapter(list[Holding])


class HoldingsFile:
    """JSON array of ``{symbol, amount}`` rewritten in full on every save."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> list[Holding]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            return _HOLDINGS_ADAPTER.validate_python(json.loads(raw))
        except (OSError, json.JSONDecodeError, SchemaError) as exc:
            raise PersistenceError(f"Could not read holdings from {self.path}: {exc}") from exc

    def write(self, holdings: Sequence[Holding]) -> None:
        payload = json.dumps(
            [holding.model_dump() for holding in holdings], indent=2
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Could not write holdings to {self.path}: {exc}") from exc

    async def save(self, holdings: Sequence[Holding]) -> None:
        async with self._lock:
            await asyncio.to_thread(self.write, list(holdings))
