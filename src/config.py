from __future__ import annotations

from decimal import Decimal
from functools import cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    coingecko_api_key: str | None = None
    price_source: Literal["reference", "coingecko"] = "reference"

    supported_currencies: tuple[str, ...] = ("eur", "usd")
    default_currency: str = "eur"
    # Used when neither the source nor the cache can price an asset.
    default_price: Decimal = Decimal("0")

    native_asset: str = "ETH"
    native_coin_id: str = "ethereum"

    cost_basis_method: Literal["FIFO", "LIFO", "HIFO", "WAC"] = "FIFO"
    long_term_days: int = 365

    price_rate_limit_requests: int = 10
    price_rate_limit_window_seconds: float = 60.0
    price_min_interval_seconds: float = 1.0
    price_retry_attempts: int = 2
    price_retry_delay_seconds: float = 1.0
    http_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
