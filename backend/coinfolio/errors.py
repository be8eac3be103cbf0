from __future__ import annotations


class CoinfolioError(Exception):
    """Base class for errors raised by the price and holdings layers."""


class ValidationError(CoinfolioError):
    pass


class NotFound(CoinfolioError):
    pass


class UpstreamUnavailable(CoinfolioError):
    def __init__(self, message: str, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.rate_limited = rate_limited


class PersistenceError(CoinfolioError):
    pass
