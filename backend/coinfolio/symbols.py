from __future__ import annotations

import re

from coinfolio.errors import ValidationError

_SYMBOL_RE = re.compile(r"^[^\s/\\?#%]{1,32}$")


def normalize_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    return bool(_SYMBOL_RE.match(normalize_symbol(symbol)))


def require_symbol(symbol: str) -> str:
    normalized = normalize_symbol(symbol)
    if not _SYMBOL_RE.match(normalized):
        raise ValidationError(f"Invalid symbol: {symbol!r}")
    return normalized
