from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class UpstreamSettings(BaseModel):
    base_url: str = "https://api.coingecko.com/api/v3"
    vs_currency: str = "php"
    timeout_seconds: float = 10.0
    markets_per_page: int = 250


class CacheSettings(BaseModel):
    price_ttl_seconds: float = 30.0
    directory_ttl_seconds: float = 3600.0
    directory_failure_cooldown_seconds: float = 60.0


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COINFOLIO_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )
    coingecko_api_key: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COINFOLIO_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    holdings_path: str = Field(
        default="data/portfolio.json",
        validation_alias=AliasChoices("HOLDINGS_PATH", "COINFOLIO_HOLDINGS_PATH"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "COINFOLIO_LOG_LEVEL"),
    )
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    static_asset_ids: Dict[str, str] = Field(
        default_factory=lambda: {
            "BTC": "bitcoin",
            "ETH": "ethereum",
            "SOL": "solana",
            "USDT": "tether",
            "USDC": "usd-coin",
            "BNB": "binancecoin",
            "XRP": "ripple",
            "ADA": "cardano",
            "DOGE": "dogecoin",
            "DOT": "polkadot",
            "AVAX": "avalanche-2",
            "LINK": "chainlink",
            "LTC": "litecoin",
            "TRX": "tron",
            "SHIB": "shiba-inu",
            "MATIC": "matic-network",
        }
    )


settings = Settings()
